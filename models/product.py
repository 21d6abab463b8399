from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, AliasChoices, field_validator
from pydantic.alias_generators import to_camel


class ProductVariantDTO(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    color: str | None = None
    size: str | None = None
    sku: str | None = None
    price: Decimal | None = None


class ProductDTO(BaseModel):
    """
    Catalogue product as returned by /products.

    Mongo-backed products come with `_id`, the rest with `id`. Colors arrive
    either as plain names or as {"name", "hex"} objects; only the name is kept.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    name: str = ""
    price: Decimal = Decimal("0")
    original_price: Decimal | None = None
    sizes: list[str] = []
    colors: list[str] = []
    type: str | None = None
    images: list[str] = []
    variants: list[ProductVariantDTO] = []

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value):
        return str(value) if value is not None else value

    @field_validator("price", mode="before")
    @classmethod
    def default_price(cls, value):
        return 0 if value is None else value

    @field_validator("colors", mode="before")
    @classmethod
    def normalize_colors(cls, value):
        if not isinstance(value, list):
            return []
        names = []
        for color in value:
            if isinstance(color, str):
                names.append(color)
            elif isinstance(color, dict):
                names.append(color.get("name") or color.get("value") or "Unknown")
        return names
