"""
SKU helpers for cart lines.

Real SKUs come from the product's variants. When the catalogue doesn't
list a variant for the chosen color/size, a deterministic cart SKU is
derived from the product name: {NAME4}{COLOR2}{SIZE2}CARTC, with XX for
a missing part. Such SKUs are recognised by the CARTC suffix.
"""

import re

from models.product import ProductDTO

CART_SKU_SUFFIX = "CARTC"

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")


def _code(value: str | None, length: int) -> str:
    return _NON_ALNUM.sub("", value or "").upper()[:length]


def generate_sku(product_name: str, color: str | None, size: str | None) -> str:
    """
    Examples:
        generate_sku("Cotton Bedsheet", "Ivory", "king") → "COTTIVKICARTC"
        generate_sku("Cotton Bedsheet", "Ivory", None)   → "COTTIVXXCARTC"
    """
    name_prefix = _code(product_name, 4)
    if color and size:
        variant_code = _code(color, 2) + _code(size, 2)
    elif color:
        variant_code = _code(color, 2) + "XX"
    else:
        variant_code = "XX"
    return f"{name_prefix}{variant_code}{CART_SKU_SUFFIX}"


def is_generated_sku(sku: str | None) -> bool:
    return not sku or sku.endswith(CART_SKU_SUFFIX)


def find_variant_sku(product: ProductDTO, color: str | None, size: str | None) -> str:
    """Catalogue SKU of the matching variant, falling back to a generated cart SKU."""
    for variant in product.variants:
        if variant.color == color and variant.size == size and variant.sku:
            return variant.sku
    return generate_sku(product.name, color, size)
