# A cart line is one product variant in the local cart. Lines are identified by
# product id plus the selected size, color and type: adding the same variant
# again increases the quantity of the existing line instead of adding a duplicate.
from decimal import Decimal
from typing import NamedTuple

from pydantic import BaseModel, Field


class CartLineKey(NamedTuple):
    product_id: str
    size: str | None
    color: str | None
    type: str | None


class CartLine(BaseModel):
    product_id: str
    name: str = ""
    quantity: int = Field(ge=1)
    unit_price: Decimal = Field(ge=0)
    selected_size: str | None = None
    selected_color: str | None = None
    selected_type: str | None = None
    sku: str | None = None

    @property
    def key(self) -> CartLineKey:
        return CartLineKey(self.product_id, self.selected_size, self.selected_color, self.selected_type)

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity
