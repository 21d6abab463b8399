"""
Process-wide change notifier.

Lets independently mounted UI regions observe store mutations without
threading callbacks through every view. Notifications carry no payload:
a listener re-reads whatever it needs from the store, which also makes
duplicate deliveries harmless.

Every subscription must be released when its owner is torn down. Use the
callable returned by subscribe(), or the subscription() context manager for
scoped lifetimes.
"""

import logging
from contextlib import contextmanager
from typing import Callable, Iterator

from enums.store_event import StoreEvent

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


class _Subscription:
    __slots__ = ("event", "listener", "active")

    def __init__(self, event: StoreEvent, listener: Listener):
        self.event = event
        self.listener = listener
        self.active = True


class EventBus:

    def __init__(self):
        self._subscriptions: dict[StoreEvent, list[_Subscription]] = {}

    def subscribe(self, event: StoreEvent, listener: Listener) -> Callable[[], None]:
        """
        Register a listener for an event.

        The same callable may be registered more than once; each registration
        gets its own unsubscribe handle.

        Returns:
            unsubscribe callable; calling it more than once is a no-op
        """
        event = StoreEvent(event)
        subscription = _Subscription(event, listener)
        self._subscriptions.setdefault(event, []).append(subscription)
        logger.debug(f"[EventBus] Listener added to {event.value} ({self.listener_count(event)} total)")

        def unsubscribe() -> None:
            if not subscription.active:
                return
            subscription.active = False
            # Identity match, so duplicate registrations are removed one at a time
            subscriptions = self._subscriptions.get(event, [])
            self._subscriptions[event] = [s for s in subscriptions if s is not subscription]
            logger.debug(f"[EventBus] Listener removed from {event.value} ({self.listener_count(event)} left)")

        return unsubscribe

    @contextmanager
    def subscription(self, event: StoreEvent, listener: Listener) -> Iterator[Callable[[], None]]:
        """Scoped subscription: the listener is removed when the block exits, even on error."""
        unsubscribe = self.subscribe(event, listener)
        try:
            yield unsubscribe
        finally:
            unsubscribe()

    def publish(self, event: StoreEvent) -> None:
        """
        Notify every listener registered for the event, synchronously and in
        registration order.

        A failing listener is logged and skipped; the remaining listeners still
        get the notification.
        """
        event = StoreEvent(event)
        # Snapshot: listeners may unsubscribe (or subscribe) while being notified
        for subscription in list(self._subscriptions.get(event, [])):
            if not subscription.active:
                continue
            try:
                subscription.listener()
            except Exception:
                logger.exception(f"[EventBus] Listener {subscription.listener!r} failed on {event.value}")

    def listener_count(self, event: StoreEvent) -> int:
        return len(self._subscriptions.get(StoreEvent(event), []))
