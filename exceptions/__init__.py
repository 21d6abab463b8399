"""
Custom exceptions for the storefront client.

This module provides a hierarchy of custom exceptions for consistent error handling
throughout the application.

Exception Hierarchy:
--------------------
StorefrontException (base)
├── CartException
│   ├── InvalidQuantityException
│   └── EmptyCartException
├── StorageException
│   ├── StorageReadException
│   ├── StorageWriteException
│   └── CorruptSnapshotException
├── ApiException (carries ApiFailureKind)
│   ├── SessionExpiredException
│   ├── ApiUnavailableException
│   ├── InvalidApiResponseException
│   └── ApiRequestRejectedException
├── CheckoutException
│   └── InvalidPromoCodeException
└── ContactException
    └── InvalidContactMessageException

Usage:
------
Services raise specific exceptions:
    raise InvalidQuantityException(product_id="P1", quantity=0)

UI callers catch and decide what to show:
    try:
        response = await api_client.get_order(order_id)
    except SessionExpiredException:
        prompt_login()
    except ApiException as e:
        show_retry(str(e))
"""

from .base import StorefrontException
from .cart import CartException, InvalidQuantityException, EmptyCartException
from .storage import StorageException, StorageReadException, StorageWriteException, CorruptSnapshotException
from .api import (
    ApiException,
    SessionExpiredException,
    ApiUnavailableException,
    InvalidApiResponseException,
    ApiRequestRejectedException
)
from .checkout import CheckoutException, InvalidPromoCodeException
from .contact import ContactException, InvalidContactMessageException

__all__ = [
    # Base
    'StorefrontException',

    # Cart
    'CartException',
    'InvalidQuantityException',
    'EmptyCartException',

    # Storage
    'StorageException',
    'StorageReadException',
    'StorageWriteException',
    'CorruptSnapshotException',

    # API
    'ApiException',
    'SessionExpiredException',
    'ApiUnavailableException',
    'InvalidApiResponseException',
    'ApiRequestRejectedException',

    # Checkout
    'CheckoutException',
    'InvalidPromoCodeException',

    # Contact
    'ContactException',
    'InvalidContactMessageException',
]
