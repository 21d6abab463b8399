"""
Models Package

SQLAlchemy tables for the durable client storage and pydantic DTOs for
everything the storefront client reads from or sends to the commerce API.
"""

from models.base import Base
from models.storage_record import StorageRecord, StorageRecordDTO
from models.product import ProductDTO, ProductVariantDTO
from models.cart import CartLine, CartLineKey
from models.order import (
    OrderDTO,
    OrderItemDTO,
    ShippingAddressDTO,
    TrackingEventDTO,
    OrderResponseDTO,
    OrdersResponseDTO,
    OrderTrackingDTO,
    is_awb_assigned
)
from models.user import UserDTO, AuthResponseDTO
from models.checkout import PromoDTO, CheckoutSummaryDTO
from models.contact import ContactMessageDTO

__all__ = [
    'Base',
    'StorageRecord',
    'StorageRecordDTO',
    'ProductDTO',
    'ProductVariantDTO',
    'CartLine',
    'CartLineKey',
    'OrderDTO',
    'OrderItemDTO',
    'ShippingAddressDTO',
    'TrackingEventDTO',
    'OrderResponseDTO',
    'OrdersResponseDTO',
    'OrderTrackingDTO',
    'is_awb_assigned',
    'UserDTO',
    'AuthResponseDTO',
    'PromoDTO',
    'CheckoutSummaryDTO',
    'ContactMessageDTO',
]
