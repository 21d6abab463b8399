import re
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, AliasChoices, field_validator, model_validator
from pydantic.alias_generators import to_camel

from enums.order_status import OrderStatus

_PENDING_AWB = re.compile(r"pending", re.IGNORECASE)


def is_awb_assigned(awb: str | None) -> bool:
    """
    True when the carrier has issued a real AWB.

    Until the shipment is picked up the backend stores an empty value or a
    placeholder such as "PENDING" / "awb_pending"; both mean "not yet assigned".
    """
    if not awb:
        return False
    awb = str(awb).strip()
    return bool(awb) and _PENDING_AWB.search(awb) is None


def _parse_event_time(raw) -> datetime | None:
    if isinstance(raw, datetime):
        return raw
    if not raw:
        return None
    try:
        return datetime.fromisoformat(str(raw).strip().replace("Z", "+00:00"))
    except ValueError:
        return None


class TrackingEventDTO(BaseModel):
    """One carrier scan. Carriers disagree on field names, so they are folded here."""
    label: str = "Update"
    timestamp: datetime | None = None
    location: str | None = None

    @model_validator(mode="before")
    @classmethod
    def normalize_carrier_fields(cls, data):
        if not isinstance(data, dict) or "label" in data:
            return data
        label = (
            data.get("activity")
            or data.get("status")
            or data.get("title")
            or data.get("description")
            or "Update"
        )
        raw_time = next(
            (data[k] for k in ("date", "time", "timestamp", "updated_at", "created_at", "occurred_at") if data.get(k)),
            None
        )
        return {
            "label": str(label),
            "timestamp": _parse_event_time(raw_time),
            "location": data.get("location") or data.get("city"),
        }


class OrderItemDTO(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    product_id: str | None = Field(default=None, validation_alias=AliasChoices("productId", "product_id", "id"))
    name: str = ""
    size: str | None = None
    color: str | None = None
    sku: str | None = None
    price: Decimal = Decimal("0")
    quantity: int = 1

    @field_validator("product_id", mode="before")
    @classmethod
    def coerce_product_id(cls, value):
        return str(value) if value is not None else value

    @field_validator("color", mode="before")
    @classmethod
    def color_name(cls, value):
        if isinstance(value, dict):
            return value.get("name")
        return value


class ShippingAddressDTO(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    name: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = Field(default=None, validation_alias=AliasChoices("address", "street"))
    city: str | None = None
    state: str | None = None
    pincode: str | None = None

    @field_validator("phone", "pincode", mode="before")
    @classmethod
    def coerce_str(cls, value):
        return str(value) if value is not None else value


class OrderDTO(BaseModel):
    """
    Read-only client projection of a server order.

    The client never builds one itself; it only receives and re-fetches them.
    Carrier fields accept both the neutral names and the Shiprocket names the
    backend uses.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    status: OrderStatus = OrderStatus.PENDING
    items: list[OrderItemDTO] = []
    total: Decimal = Field(default=Decimal("0"), validation_alias=AliasChoices("total", "totalAmount"))
    payment_method: str | None = None
    payment_status: str | None = None
    shipping_address: ShippingAddressDTO | None = None
    created_at: datetime | None = None

    carrier_order_id: str | None = Field(
        default=None, validation_alias=AliasChoices("carrierOrderId", "shiprocketOrderId"))
    carrier_shipment_id: str | None = Field(
        default=None, validation_alias=AliasChoices("carrierShipmentId", "shiprocketShipmentId"))
    carrier_awb: str | None = Field(
        default=None, validation_alias=AliasChoices("carrierAwb", "shiprocketAwb"))
    carrier_tracking_url: str | None = Field(
        default=None, validation_alias=AliasChoices("carrierTrackingUrl", "shiprocketTrackingUrl"))
    carrier_status: str | None = Field(
        default=None, validation_alias=AliasChoices("carrierStatus", "shiprocketStatus"))
    tracking_events: list[TrackingEventDTO] = Field(
        default=[], validation_alias=AliasChoices("trackingEvents", "shiprocketTrackingEvents"))
    tracking_updated_at: datetime | None = Field(
        default=None, validation_alias=AliasChoices("trackingUpdatedAt", "shiprocketTrackingEventsUpdatedAt"))
    pickup_location: str | None = Field(
        default=None, validation_alias=AliasChoices("pickupLocation", "shiprocketPickupLocation"))

    @field_validator("id", "carrier_order_id", "carrier_shipment_id", "carrier_awb", mode="before")
    @classmethod
    def coerce_identifier(cls, value):
        # Shiprocket ids come back as numbers
        return str(value) if value is not None else value

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, value):
        if value is None:
            return OrderStatus.PENDING
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("tracking_events", mode="before")
    @classmethod
    def default_events(cls, value):
        return value or []

    @property
    def has_awb(self) -> bool:
        return is_awb_assigned(self.carrier_awb)

    @property
    def has_shipment(self) -> bool:
        return self.has_awb or bool(self.carrier_shipment_id) or bool(self.carrier_order_id)

    @property
    def should_refresh_tracking(self) -> bool:
        # Any carrier reference (even a pending AWB) means the carrier knows the order
        return bool(self.carrier_awb) or bool(self.carrier_shipment_id)

    @property
    def sorted_tracking_events(self) -> list[TrackingEventDTO]:
        """Newest first; events without a parseable time go last."""
        return sorted(
            self.tracking_events,
            key=lambda e: (e.timestamp is not None, e.timestamp.timestamp() if e.timestamp else 0.0),
            reverse=True
        )

    @property
    def latest_tracking_event(self) -> TrackingEventDTO | None:
        events = self.sorted_tracking_events
        return events[0] if events else None


class OrderResponseDTO(BaseModel):
    success: bool | None = None
    order: OrderDTO | None = None


class OrdersResponseDTO(BaseModel):
    orders: list[OrderDTO] = []


class OrderTrackingDTO(BaseModel):
    """
    Result of a tracking refresh.

    Best-effort overlay: `order` is the refreshed projection when the server
    has one, `error` explains why it doesn't. Neither is guaranteed.
    """
    order: OrderDTO | None = None
    error: str | None = None
