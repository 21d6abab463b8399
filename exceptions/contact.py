"""
Contact form exceptions.
"""

from .base import StorefrontException


class ContactException(StorefrontException):
    """Base exception for contact form errors."""
    pass


class InvalidContactMessageException(ContactException):
    """Raised when a contact form fails local validation."""

    def __init__(self, errors: dict[str, str]):
        fields = ', '.join(sorted(errors))
        super().__init__(
            f"Invalid contact message: {fields}",
            details=errors
        )
        self.errors = errors
