from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, AliasChoices
from pydantic.alias_generators import to_camel


class PromoDTO(BaseModel):
    """A validated promo code; persisted as {code, percent} like the web shop does."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    code: str
    discount_percent: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        le=100,
        validation_alias=AliasChoices("discountPercent", "percent")
    )


class CheckoutSummaryDTO(BaseModel):
    subtotal: Decimal
    shipping: Decimal
    tax: Decimal
    discount: Decimal
    total: Decimal
    promo_code: str | None = None
    discount_percent: Decimal = Decimal("0")
