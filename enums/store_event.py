from enum import Enum


class StoreEvent(str, Enum):
    """
    Names of the process-wide change notifications.

    Events carry no payload: listeners re-read the store.
    """
    CART_UPDATED = "cartUpdated"
    WISHLIST_UPDATED = "wishlistUpdated"
