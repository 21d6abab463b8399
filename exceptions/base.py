"""
Root of the storefront client's error hierarchy.
"""


class StorefrontException(Exception):
    """
    Any failure the storefront client reports on purpose.

    Three families derive from it: local state (cart, storage), the remote
    API (with an ApiFailureKind), and form input (checkout, contact). A UI
    layer can catch this class once and show `message`.

    Attributes:
        message: Text safe to show to the shopper
        details: Context for logs (product_id, key, endpoint, status, ...).
            Entries whose value is None are dropped.
    """

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = {k: v for k, v in (details or {}).items() if v is not None}

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        fields = [repr(self.message)] + [f"{k}={v!r}" for k, v in self.details.items()]
        return f"{type(self).__name__}({', '.join(fields)})"
