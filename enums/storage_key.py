from enum import Enum


class StorageKey(str, Enum):
    """Fixed keys of the durable client-side records."""
    CART = "featherfold_cart"
    WISHLIST = "wishlist"
    AUTH_USER = "featherfold_user"
    AUTH_TOKEN = "featherfold_token"
    PROMO = "featherfold_promo"
