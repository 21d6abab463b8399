"""
Unit Tests: composition root and CLI commands
"""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from enums.storage_key import StorageKey
from enums.store_event import StoreEvent
from exceptions.api import ApiUnavailableException
from models.order import OrderResponseDTO, OrderTrackingDTO, OrderDTO
from services.api_client import ApiClient
from storefront import create_storefront
import run


@pytest_asyncio.fixture
async def storefront(database_url):
    api_client = ApiClient(base_url="http://127.0.0.1:1/api")
    api_client.get_order = AsyncMock()
    api_client.get_order_tracking = AsyncMock()
    storefront = await create_storefront(database_url, api_client)
    yield storefront
    await storefront.close()


@pytest.mark.asyncio
async def test_components_share_one_bus_and_client(storefront, bedsheet):
    notifications = []
    storefront.event_bus.subscribe(StoreEvent.CART_UPDATED, lambda: notifications.append(storefront.store.total_items))

    await storefront.store.add_to_cart(bedsheet, 2)

    assert notifications == [2]
    assert storefront.auth.token is None
    assert (await storefront.checkout.get_summary()).subtotal == Decimal("1598.00")


@pytest.mark.asyncio
async def test_persisted_session_is_restored_on_startup(database_url, storage):
    await storage.write(StorageKey.AUTH_TOKEN, "jwt-token")
    await storage.write_json(StorageKey.AUTH_USER, {"id": "U1", "name": "Asha"})

    async with await create_storefront(database_url, ApiClient(base_url="http://127.0.0.1:1/api")) as storefront:
        assert storefront.auth.is_authenticated
        assert storefront.api_client.token == "jwt-token"


@pytest.mark.asyncio
async def test_show_cart_prints_lines_and_totals(storefront, bedsheet, capsys):
    await storefront.store.add_to_cart(bedsheet, 2, size="king")

    await run.show_cart(storefront)

    output = capsys.readouterr().out
    assert "2 x Cotton Bedsheet (king / Ivory / bedsheet)" in output
    assert "Total:    1885.64 INR" in output


@pytest.mark.asyncio
async def test_show_empty_wishlist(storefront, capsys):
    await run.show_wishlist(storefront)
    assert capsys.readouterr().out.strip() == "Wishlist is empty"


@pytest.mark.asyncio
async def test_track_order_prints_tracking_panel(storefront, capsys):
    order = OrderDTO.model_validate({
        "id": "O1",
        "status": "shipped",
        "shiprocketAwb": "1234567890",
        "shiprocketTrackingEvents": [{"activity": "Picked up", "date": "2026-10-01T10:00:00Z", "location": "Mumbai"}],
    })
    storefront.api_client.get_order.return_value = OrderResponseDTO(order=order)
    storefront.api_client.get_order_tracking.return_value = OrderTrackingDTO(error="Carrier timeout")

    exit_code = await run.track_order(storefront, "O1")

    output = capsys.readouterr().out
    assert exit_code == 0
    assert "Order O1: shipped" in output
    assert "Tracking: tracking_stale" in output
    assert "Picked up (Mumbai)" in output
    assert "Tracking error: Carrier timeout" in output


@pytest.mark.asyncio
async def test_track_order_reports_load_failure(storefront, capsys):
    storefront.api_client.get_order.side_effect = ApiUnavailableException("/orders/O1", "bad gateway", status=502)

    assert await run.track_order(storefront, "O1") == 1
    assert "Failed to load order details" in capsys.readouterr().out


def test_parser_requires_order_id_for_track():
    parser = run.build_parser()

    assert parser.parse_args(["track", "O1"]).order_id == "O1"
    with pytest.raises(SystemExit):
        parser.parse_args(["track"])
