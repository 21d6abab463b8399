"""
Checkout-related exceptions.
"""

from .base import StorefrontException


class CheckoutException(StorefrontException):
    """Base exception for checkout errors."""
    pass


class InvalidPromoCodeException(CheckoutException):
    """Raised when a promo code is blank before it is sent to the server."""

    def __init__(self, code: str | None):
        super().__init__(
            "Please enter a promo code",
            details={'code': code}
        )
        self.code = code
