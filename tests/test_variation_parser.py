"""Tests for the embedded-JSON variant taxonomy."""

from core.types import AttributeValue
from parsers.variation_parser import VariationParser


def test_taxonomy_from_embedded_json(unescaped_html: str) -> None:
    taxonomy = VariationParser().parse(unescaped_html)

    assert taxonomy == {
        "Color": (
            AttributeValue("Black", "https://img.dhresource.com/0x0/black.jpg"),
            AttributeValue("White", None),
        ),
        "Size": (AttributeValue("S"), AttributeValue("M")),
    }
    assert list(taxonomy) == ["Color", "Size"]


def test_shipping_from_is_excluded(unescaped_html: str) -> None:
    assert "Shipping from" not in VariationParser().parse(unescaped_html)


def test_missing_landmarks_yield_empty_taxonomy() -> None:
    text = '"itemAttrList":[{"attrName":"Color","itemAttrvalList":[]}],"otherKey":[]'

    assert VariationParser().parse(text) == {}
    assert VariationParser().parse("") == {}


def test_invalid_json_yields_empty_taxonomy() -> None:
    text = '"itemAttrList":[{"attrName":"Color",,}],"firstItemAttrList":[]'

    assert VariationParser().parse(text) == {}


def test_backslashes_are_stripped_before_decoding() -> None:
    text = r'"itemAttrList":[{"attrName":"Size","itemAttrvalList":[{"attrValName":"X\L"}]}],"firstItemAttrList":[]'

    assert VariationParser().parse(text) == {"Size": (AttributeValue("XL"),)}


def test_attribute_value_to_dict() -> None:
    assert AttributeValue("S").to_dict() == {"value": "S", "imageUrl": None}
