"""
Order details + carrier tracking reconciliation.

An order view first loads the order, then (when the carrier already knows
the shipment) asks the server for a tracking refresh. The refresh is an
overlay: a returned order replaces the one on screen wholesale, an
error-only result keeps what is shown. Tracking errors are only surfaced once
an AWB is assigned; before that "no tracking yet" is the expected state.

Refreshes for the same order id are coalesced into one request, and a
per-order generation counter drops responses that were overtaken by a newer
load or refresh. Views that have been closed ignore late completions.
"""

import asyncio
import logging

from enums.api_failure_kind import ApiFailureKind
from enums.tracking_state import TrackingState
from exceptions.api import ApiException, SessionExpiredException
from models.order import OrderDTO, OrderTrackingDTO
from services.api_client import ApiClient

logger = logging.getLogger(__name__)

SESSION_EXPIRED_MESSAGE = "Your session has expired. Please log in again to view order details."
LOAD_FAILED_MESSAGE = "Failed to load order details. Please try again."
ORDER_NOT_FOUND_MESSAGE = "Order not found."
REFRESH_FAILED_MESSAGE = "Failed to refresh tracking"


class OrderTrackingView:
    """State backing one mounted order details view."""

    def __init__(self, order_id: str):
        self.order_id = str(order_id)
        self.order: OrderDTO | None = None
        self.loading = False
        self.tracking_loading = False
        self.error: str | None = None
        self.error_kind: ApiFailureKind | None = None
        self.tracking_error: str | None = None
        self.session_expired = False
        self.closed = False

    def close(self) -> None:
        self.closed = True

    @property
    def has_awb(self) -> bool:
        return self.order is not None and self.order.has_awb

    @property
    def visible_tracking_error(self) -> str | None:
        # A pending AWB makes tracking errors expected noise
        return self.tracking_error if self.has_awb else None

    @property
    def state(self) -> TrackingState:
        if not self.has_awb:
            return TrackingState.NO_TRACKING_YET
        if self.tracking_error:
            return TrackingState.TRACKING_STALE
        return TrackingState.TRACKING_AVAILABLE

    @property
    def is_terminal(self) -> bool:
        return self.order is not None and self.order.status.is_terminal

    def __repr__(self):
        return (
            f"OrderTrackingView(order_id={self.order_id!r}, state={self.state.value}, "
            f"loading={self.loading}, tracking_loading={self.tracking_loading}, closed={self.closed})"
        )


class OrderTrackingReconciler:

    def __init__(self, api_client: ApiClient):
        self._api_client = api_client
        self._generations: dict[str, int] = {}
        self._in_flight: dict[str, tuple[asyncio.Task, int]] = {}
        # Running load()/refresh() calls per order
        self._active: dict[str, int] = {}

    def _next_generation(self, order_id: str) -> int:
        generation = self._generations.get(order_id, 0) + 1
        self._generations[order_id] = generation
        return generation

    def _is_current(self, order_id: str, generation: int) -> bool:
        return self._generations.get(order_id) == generation

    def _enter(self, order_id: str) -> None:
        self._active[order_id] = self._active.get(order_id, 0) + 1

    def _leave(self, order_id: str) -> None:
        remaining = self._active[order_id] - 1
        if remaining:
            self._active[order_id] = remaining
            return
        del self._active[order_id]
        self._drop_idle_generation(order_id)

    def _drop_idle_generation(self, order_id: str) -> None:
        # Nothing left to compare against, a later call can restart at 1
        if order_id not in self._active and order_id not in self._in_flight:
            self._generations.pop(order_id, None)

    async def load(self, view: OrderTrackingView) -> None:
        """
        Load the order for the view, then refresh tracking when an AWB or a
        shipment id is present.

        Failures are recorded on the view (error / error_kind /
        session_expired), never raised.
        """
        if view.closed:
            return
        self._enter(view.order_id)
        try:
            await self._load(view)
        finally:
            self._leave(view.order_id)

    async def _load(self, view: OrderTrackingView) -> None:
        order_id = view.order_id
        generation = self._next_generation(order_id)
        view.loading = True
        view.error = None
        view.error_kind = None
        view.session_expired = False

        try:
            response = await self._api_client.get_order(order_id)
        except SessionExpiredException:
            if not view.closed:
                logger.info(f"[Tracking] Session expired while loading order {order_id}")
                view.error = SESSION_EXPIRED_MESSAGE
                view.error_kind = ApiFailureKind.SESSION_EXPIRED
                view.session_expired = True
                view.loading = False
            return
        except ApiException as e:
            if not view.closed:
                logger.warning(f"[Tracking] Failed to load order {order_id}: {e.message}")
                view.error = LOAD_FAILED_MESSAGE
                view.error_kind = e.kind
                view.loading = False
            return

        if view.closed:
            logger.debug(f"[Tracking] View for order {order_id} closed before load completed")
            return
        if not self._is_current(order_id, generation):
            logger.debug(f"[Tracking] Discarding stale load of order {order_id} (generation {generation})")
            view.loading = False
            return

        view.loading = False
        if response.order is None:
            view.error = ORDER_NOT_FOUND_MESSAGE
            view.error_kind = ApiFailureKind.REJECTED
            return

        view.order = response.order
        logger.info(f"[Tracking] Loaded order {order_id} ({view.order.status.value})")
        if view.order.should_refresh_tracking:
            await self.refresh(view)

    async def refresh(self, view: OrderTrackingView) -> None:
        """
        Refresh carrier tracking for the view's order.

        A refresh already in flight for the same order is joined instead of
        issuing a second request. Orders in a terminal status may still be
        refreshed.
        """
        if view.closed:
            return
        self._enter(view.order_id)
        try:
            await self._refresh(view)
        finally:
            self._leave(view.order_id)

    async def _refresh(self, view: OrderTrackingView) -> None:
        order_id = view.order_id

        entry = self._in_flight.get(order_id)
        if entry is not None and self._is_current(order_id, entry[1]):
            task, generation = entry
            logger.debug(f"[Tracking] Joining in-flight refresh for order {order_id}")
        else:
            generation = self._next_generation(order_id)
            task = asyncio.create_task(self._api_client.get_order_tracking(order_id))
            self._in_flight[order_id] = (task, generation)
            task.add_done_callback(lambda t: self._forget(order_id, t))

        view.tracking_loading = True
        view.tracking_error = None
        try:
            # Shielded so a cancelled waiter doesn't cancel the shared request
            result = await asyncio.shield(task)
        except SessionExpiredException:
            if self._should_apply(view, generation):
                view.session_expired = True
                view.tracking_error = SESSION_EXPIRED_MESSAGE
            return
        except ApiException as e:
            if self._should_apply(view, generation):
                logger.warning(f"[Tracking] Refresh of order {order_id} failed: {e.message}")
                view.tracking_error = REFRESH_FAILED_MESSAGE
            return
        finally:
            if not view.closed:
                view.tracking_loading = False

        if self._should_apply(view, generation):
            self._apply(view, result)

    def _should_apply(self, view: OrderTrackingView, generation: int) -> bool:
        if view.closed:
            logger.debug(f"[Tracking] View for order {view.order_id} closed, dropping refresh result")
            return False
        if not self._is_current(view.order_id, generation):
            logger.debug(f"[Tracking] Dropping stale refresh of order {view.order_id} (generation {generation})")
            return False
        return True

    @staticmethod
    def _apply(view: OrderTrackingView, result: OrderTrackingDTO) -> None:
        if result.order is not None:
            view.order = result.order
            logger.info(
                f"[Tracking] Order {view.order_id} refreshed: "
                f"{len(result.order.tracking_events)} events, awb assigned={result.order.has_awb}"
            )
        if result.error:
            view.tracking_error = result.error
            if view.has_awb:
                logger.warning(f"[Tracking] Tracking error for order {view.order_id}: {result.error}")
            else:
                logger.debug(f"[Tracking] Ignoring tracking error for order {view.order_id} without AWB")

    def _forget(self, order_id: str, task: asyncio.Task) -> None:
        # Every waiter may have been cancelled already, so the failure is read here
        if not task.cancelled() and task.exception() is not None:
            logger.debug(f"[Tracking] Refresh request for order {order_id} ended with: {task.exception()!r}")
        entry = self._in_flight.get(order_id)
        if entry is not None and entry[0] is task:
            del self._in_flight[order_id]
            self._drop_idle_generation(order_id)

    def in_flight_count(self) -> int:
        return len(self._in_flight)

    def tracked_order_count(self) -> int:
        """Orders that still hold a generation counter."""
        return len(self._generations)
