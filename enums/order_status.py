from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "pending"            # Created, awaiting confirmation
    CONFIRMED = "confirmed"        # Payment verified / confirmed by admin
    SHIPPED = "shipped"            # Handed over to the carrier
    DELIVERED = "delivered"        # Final
    CANCELLED = "cancelled"        # Final

    @classmethod
    def _missing_(cls, value):
        # Backend is not consistent about casing ("SHIPPED" vs "shipped")
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return None

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.DELIVERED, OrderStatus.CANCELLED)
