from enum import Enum


class TrackingState(str, Enum):
    """
    State of the tracking panel on the order details view.

    NO_TRACKING_YET -> (AWB assigned) -> TRACKING_AVAILABLE -> (refresh)
        -> TRACKING_AVAILABLE | TRACKING_STALE
    """
    NO_TRACKING_YET = "no_tracking_yet"
    TRACKING_AVAILABLE = "tracking_available"
    TRACKING_STALE = "tracking_stale"
