import pytest

from models.product import ProductDTO
from utils.sku import find_variant_sku, generate_sku, is_generated_sku


@pytest.mark.parametrize("name, color, size, expected", [
    ("Cotton Bedsheet", "Ivory", "king", "COTTIVKICARTC"),
    ("Cotton Bedsheet", "Ivory", None, "COTTIVXXCARTC"),
    ("Cotton Bedsheet", None, None, "COTTXXCARTC"),
    ("Bamboo-Silk Duvet!", "sea green", "Super King", "BAMBSESUCARTC"),
])
def test_generate_sku(name, color, size, expected):
    assert generate_sku(name, color, size) == expected


def test_is_generated_sku():
    assert is_generated_sku("COTTIVKICARTC")
    assert is_generated_sku(None)
    assert not is_generated_sku("FF-CB-IV-K")


def test_find_variant_sku_prefers_catalogue_variant():
    product = ProductDTO(
        id="P1",
        name="Cotton Bedsheet",
        variants=[
            {"color": "Ivory", "size": "king", "sku": "FF-CB-IV-K"},
            {"color": "Sage", "size": "king", "sku": None},
        ],
    )

    assert find_variant_sku(product, "Ivory", "king") == "FF-CB-IV-K"
    assert find_variant_sku(product, "Sage", "king") == "COTTSAKICARTC"
    assert find_variant_sku(product, "Ivory", "queen") == "COTTIVQUCARTC"
