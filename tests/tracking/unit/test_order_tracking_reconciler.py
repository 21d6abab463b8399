"""
Unit Tests: OrderTrackingReconciler

Tests for services/tracking.py covering:
- load() - order fetch, failure classification, conditional tracking refresh
- refresh() - overlay merge, AWB-gated error display, coalescing
- stale responses and closed views
"""

import asyncio
import gc
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from enums.api_failure_kind import ApiFailureKind
from enums.tracking_state import TrackingState
from exceptions.api import ApiRequestRejectedException, ApiUnavailableException, SessionExpiredException
from models.order import OrderDTO, OrderResponseDTO, OrderTrackingDTO
from services.tracking import (
    LOAD_FAILED_MESSAGE,
    REFRESH_FAILED_MESSAGE,
    SESSION_EXPIRED_MESSAGE,
    OrderTrackingReconciler,
    OrderTrackingView,
)


def make_order(**overrides) -> OrderDTO:
    data = {"id": "O1", "status": "shipped", "total": 1936}
    data.update(overrides)
    return OrderDTO.model_validate(data)


@pytest.fixture
def api_client():
    client = MagicMock()
    client.get_order = AsyncMock()
    client.get_order_tracking = AsyncMock()
    return client


@pytest.fixture
def reconciler(api_client):
    return OrderTrackingReconciler(api_client)


@pytest.fixture
def view():
    return OrderTrackingView("O1")


class TestLoad:

    @pytest.mark.asyncio
    async def test_order_without_carrier_reference_skips_refresh(self, reconciler, api_client, view):
        api_client.get_order.return_value = OrderResponseDTO(order=make_order(status="pending"))

        await reconciler.load(view)

        assert view.order.id == "O1"
        assert view.loading is False
        assert view.state == TrackingState.NO_TRACKING_YET
        api_client.get_order_tracking.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_pending_awb_still_triggers_refresh(self, reconciler, api_client, view):
        api_client.get_order.return_value = OrderResponseDTO(order=make_order(shiprocketAwb="PENDING"))
        api_client.get_order_tracking.return_value = OrderTrackingDTO(error="AWB not assigned")

        await reconciler.load(view)

        api_client.get_order_tracking.assert_awaited_once_with("O1")
        assert view.tracking_error == "AWB not assigned"
        assert view.visible_tracking_error is None
        assert view.state == TrackingState.NO_TRACKING_YET

    @pytest.mark.asyncio
    async def test_shipment_id_triggers_refresh_and_result_replaces_order(self, reconciler, api_client, view):
        api_client.get_order.return_value = OrderResponseDTO(order=make_order(shiprocketShipmentId=555))
        refreshed = make_order(
            shiprocketShipmentId=555,
            shiprocketAwb="1234567890",
            shiprocketTrackingEvents=[{"activity": "Picked up", "date": "2026-10-01T10:00:00Z"}],
        )
        api_client.get_order_tracking.return_value = OrderTrackingDTO(order=refreshed)

        await reconciler.load(view)

        assert view.order is refreshed
        assert view.has_awb
        assert view.state == TrackingState.TRACKING_AVAILABLE
        assert view.tracking_loading is False

    @pytest.mark.asyncio
    async def test_session_expired(self, reconciler, api_client, view):
        api_client.get_order.side_effect = SessionExpiredException("/orders/O1", "Invalid or expired token")

        await reconciler.load(view)

        assert view.error == SESSION_EXPIRED_MESSAGE
        assert view.error_kind == ApiFailureKind.SESSION_EXPIRED
        assert view.session_expired is True
        assert view.order is None
        assert view.loading is False

    @pytest.mark.asyncio
    async def test_server_failure_is_retryable(self, reconciler, api_client, view):
        api_client.get_order.side_effect = ApiUnavailableException("/orders/O1", "bad gateway", status=502)

        await reconciler.load(view)

        assert view.error == LOAD_FAILED_MESSAGE
        assert view.error_kind == ApiFailureKind.RETRYABLE
        assert view.session_expired is False

    @pytest.mark.asyncio
    async def test_rejected_request(self, reconciler, api_client, view):
        api_client.get_order.side_effect = ApiRequestRejectedException("/orders/O1/guest", 404, "Order not found")

        await reconciler.load(view)

        assert view.error == LOAD_FAILED_MESSAGE
        assert view.error_kind == ApiFailureKind.REJECTED

    @pytest.mark.asyncio
    async def test_manual_reload_clears_previous_error(self, reconciler, api_client, view):
        api_client.get_order.side_effect = ApiUnavailableException("/orders/O1", "timeout")
        await reconciler.load(view)

        api_client.get_order.side_effect = None
        api_client.get_order.return_value = OrderResponseDTO(order=make_order())
        await reconciler.load(view)

        assert view.error is None
        assert view.error_kind is None
        assert view.order is not None


class TestRefresh:

    @pytest.mark.asyncio
    async def test_error_only_result_keeps_order(self, reconciler, api_client, view):
        original = make_order(shiprocketAwb="1234567890")
        view.order = original
        api_client.get_order_tracking.return_value = OrderTrackingDTO(error="Carrier timeout")

        await reconciler.refresh(view)

        assert view.order is original
        assert view.visible_tracking_error == "Carrier timeout"
        assert view.state == TrackingState.TRACKING_STALE

    @pytest.mark.asyncio
    async def test_error_hidden_without_awb(self, reconciler, api_client, view):
        view.order = make_order(shiprocketAwb="", shiprocketShipmentId=555)
        api_client.get_order_tracking.return_value = OrderTrackingDTO(error="AWB pending")

        await reconciler.refresh(view)

        assert view.tracking_error == "AWB pending"
        assert view.visible_tracking_error is None

    @pytest.mark.asyncio
    async def test_order_and_error_both_applied(self, reconciler, api_client, view):
        view.order = make_order(shiprocketAwb="1234567890")
        refreshed = make_order(shiprocketAwb="1234567890", shiprocketStatus="IN TRANSIT")
        api_client.get_order_tracking.return_value = OrderTrackingDTO(order=refreshed, error="Partial data")

        await reconciler.refresh(view)

        assert view.order is refreshed
        assert view.visible_tracking_error == "Partial data"

    @pytest.mark.asyncio
    async def test_unexpected_api_failure_sets_refresh_failed(self, reconciler, api_client, view):
        view.order = make_order(shiprocketAwb="1234567890")
        api_client.get_order_tracking.side_effect = ApiRequestRejectedException("/orders/O1/tracking", 400, "bad")

        await reconciler.refresh(view)

        assert view.tracking_error == REFRESH_FAILED_MESSAGE
        assert view.tracking_loading is False

    @pytest.mark.asyncio
    async def test_session_expiry_during_refresh(self, reconciler, api_client, view):
        view.order = make_order(shiprocketAwb="1234567890")
        api_client.get_order_tracking.side_effect = SessionExpiredException("/orders/O1/tracking")

        await reconciler.refresh(view)

        assert view.session_expired is True
        assert view.tracking_error == SESSION_EXPIRED_MESSAGE
        assert view.order is not None

    @pytest.mark.asyncio
    async def test_terminal_order_can_still_be_refreshed(self, reconciler, api_client, view):
        view.order = make_order(status="delivered", shiprocketAwb="1234567890")
        api_client.get_order_tracking.return_value = OrderTrackingDTO(order=make_order(status="delivered"))

        await reconciler.refresh(view)

        api_client.get_order_tracking.assert_awaited_once()
        assert view.is_terminal


class TestConcurrency:

    @pytest.mark.asyncio
    async def test_concurrent_refreshes_are_coalesced(self, reconciler, api_client):
        release = asyncio.Event()
        refreshed = make_order(shiprocketAwb="1234567890")

        async def slow_tracking(order_id):
            await release.wait()
            return OrderTrackingDTO(order=refreshed)

        api_client.get_order_tracking.side_effect = slow_tracking
        first_view = OrderTrackingView("O1")
        second_view = OrderTrackingView("O1")

        pending = asyncio.gather(reconciler.refresh(first_view), reconciler.refresh(second_view))
        await asyncio.sleep(0)
        assert reconciler.in_flight_count() == 1
        release.set()
        await pending

        assert api_client.get_order_tracking.await_count == 1
        assert first_view.order is refreshed
        assert second_view.order is refreshed
        assert reconciler.in_flight_count() == 0

    @pytest.mark.asyncio
    async def test_refresh_overtaken_by_reload_is_discarded(self, reconciler, api_client, view):
        release = asyncio.Event()
        stale = make_order(shiprocketAwb="OLD-AWB-1")
        fresh = make_order(shiprocketShipmentId=555, status="delivered")

        async def tracking(order_id):
            if api_client.get_order_tracking.await_count == 1:
                await release.wait()
                return OrderTrackingDTO(order=stale)
            return OrderTrackingDTO(error="Carrier timeout")

        api_client.get_order_tracking.side_effect = tracking
        api_client.get_order.return_value = OrderResponseDTO(order=fresh)
        view.order = make_order(shiprocketAwb="OLD-AWB-1")

        slow_refresh = asyncio.create_task(reconciler.refresh(view))
        await asyncio.sleep(0)
        await reconciler.load(view)
        release.set()
        await slow_refresh

        assert view.order is fresh
        assert api_client.get_order_tracking.await_count == 2

    @pytest.mark.asyncio
    async def test_closed_view_ignores_late_completion(self, reconciler, api_client, view):
        release = asyncio.Event()

        async def slow_order(order_id):
            await release.wait()
            return OrderResponseDTO(order=make_order(shiprocketAwb="1234567890"))

        api_client.get_order.side_effect = slow_order
        loading = asyncio.create_task(reconciler.load(view))
        await asyncio.sleep(0)

        view.close()
        release.set()
        await loading

        assert view.order is None
        api_client.get_order_tracking.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_closed_view_ignores_late_tracking(self, reconciler, api_client, view):
        release = asyncio.Event()
        original = make_order(shiprocketAwb="1234567890")
        view.order = original

        async def slow_tracking(order_id):
            await release.wait()
            return OrderTrackingDTO(order=make_order(status="delivered"), error="late")

        api_client.get_order_tracking.side_effect = slow_tracking
        refreshing = asyncio.create_task(reconciler.refresh(view))
        await asyncio.sleep(0)

        view.close()
        release.set()
        await refreshing

        assert view.order is original
        assert view.tracking_error is None

    @pytest.mark.asyncio
    async def test_refresh_on_closed_view_is_no_op(self, reconciler, api_client, view):
        view.close()

        await reconciler.refresh(view)
        await reconciler.load(view)

        api_client.get_order.assert_not_awaited()
        api_client.get_order_tracking.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failure_after_waiter_cancelled_is_consumed(self, reconciler, api_client, view, caplog):
        release = asyncio.Event()
        loop_errors = []
        loop = asyncio.get_running_loop()
        loop.set_exception_handler(lambda _, context: loop_errors.append(context))

        async def failing_tracking(order_id):
            await release.wait()
            raise SessionExpiredException("/orders/O1/tracking", "Invalid or expired token")

        api_client.get_order_tracking.side_effect = failing_tracking
        view.order = make_order(shiprocketAwb="1234567890")
        refreshing = asyncio.create_task(reconciler.refresh(view))
        await asyncio.sleep(0)

        refreshing.cancel()
        with pytest.raises(asyncio.CancelledError):
            await refreshing
        view.close()

        with caplog.at_level(logging.DEBUG, logger="services.tracking"):
            release.set()
            while reconciler.in_flight_count():
                await asyncio.sleep(0)
            gc.collect()

        loop.set_exception_handler(None)
        assert loop_errors == []
        assert "ended with: SessionExpiredException" in caplog.text
        assert view.session_expired is False

    @pytest.mark.asyncio
    async def test_generation_counters_are_dropped_once_idle(self, reconciler, api_client):
        release = asyncio.Event()

        async def slow_tracking(order_id):
            await release.wait()
            return OrderTrackingDTO(error="Carrier timeout")

        api_client.get_order.side_effect = lambda order_id: OrderResponseDTO(
            order=make_order(id=order_id, shiprocketAwb="1234567890")
        )
        api_client.get_order_tracking.side_effect = slow_tracking

        views = [OrderTrackingView(f"O{i}") for i in range(5)]
        loading = asyncio.gather(*(reconciler.load(v) for v in views))
        await asyncio.sleep(0)
        assert reconciler.tracked_order_count() == 5

        release.set()
        await loading
        while reconciler.in_flight_count():
            await asyncio.sleep(0)

        assert reconciler.tracked_order_count() == 0
        assert all(v.visible_tracking_error == "Carrier timeout" for v in views)
