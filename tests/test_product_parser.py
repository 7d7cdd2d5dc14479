"""Tests for DOM field extraction and shared URL helpers."""

import pytest

from core.types import AttributeValue
from parsers.base_parser import SelectorConfig, upscale_image_url
from parsers.product_parser import ProductParser


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://img.dhresource.com/200x200/a.jpg", "https://img.dhresource.com/0x0/a.jpg"),
        ("https://img.dhresource.com/100X100/a.jpg", "https://img.dhresource.com/0x0/a.jpg"),
        ("https://img.dhresource.com/260x260/a_200x200.jpg", "https://img.dhresource.com/0x0/a_0x0.jpg"),
        ("https://img.dhresource.com/0x0/a.jpg", "https://img.dhresource.com/0x0/a.jpg"),
        ("", ""),
        (None, ""),
    ],
)
def test_upscale_image_url(url, expected) -> None:
    assert upscale_image_url(url) == expected


def test_upscale_image_url_is_idempotent() -> None:
    url = "https://img.dhresource.com/200x200/100x100/a.jpg"
    once = upscale_image_url(url)

    assert upscale_image_url(once) == once


def test_parse_product_fields(unescaped_html: str) -> None:
    fields = ProductParser().parse(unescaped_html)

    assert fields.title == "Wireless Earbuds Bluetooth 5.3"
    assert fields.images == (
        "https://img.dhresource.com/0x0/a.jpg",
        "https://img.dhresource.com/0x0/b.jpg",
    )
    assert fields.specifications == {"Brand": "Acme", "Model": "X-100"}
    assert fields.sold_count == 356


def test_dom_attributes_exclude_shipping_from(unescaped_html: str) -> None:
    attributes = ProductParser().parse(unescaped_html).attributes

    assert "Shipping from" not in attributes
    assert attributes == {
        "Color": (
            AttributeValue("Red", "https://img.dhresource.com/0x0/red.jpg"),
            AttributeValue("Blue", "https://img.dhresource.com/0x0/blue.jpg"),
        )
    }


def test_missing_markup_yields_defaults() -> None:
    fields = ProductParser().parse("<html><body><p>nothing here</p></body></html>")

    assert fields.title == ""
    assert fields.images == ()
    assert fields.specifications == {}
    assert fields.sold_count == 0
    assert fields.attributes == {}


def test_prefix_selectors_tolerate_hashed_suffixes() -> None:
    html = """
    <div class="productInfo_productInfo__NEWHASH other">
      <h1>First</h1><h1>Second</h1>
    </div>
    <div class="wrapper productSellerMsg_sold">12 sold</div>
    """

    fields = ProductParser().parse(html)

    assert fields.title == "First"
    # the class attribute must start with the prefix
    assert fields.sold_count == 0


def test_sold_count_joins_nested_text_nodes() -> None:
    html = '<div class="productSellerMsg_sold__a"><b>1</b><b>2</b> sold</div>'

    assert ProductParser().parse(html).sold_count == 12


def test_custom_selectors() -> None:
    html = '<section class="pdp_title_1"><h1>Custom</h1></section>'
    parser = ProductParser(SelectorConfig(product_info="pdp_title"))

    assert parser.parse(html).title == "Custom"


def test_one_failing_field_does_not_degrade_the_others(monkeypatch, unescaped_html: str) -> None:
    parser = ProductParser()

    def _boom(_soup):
        raise ValueError("markup drift")

    monkeypatch.setattr(parser, "extract_images", _boom)

    fields = parser.parse(unescaped_html)

    assert fields.images == ()
    assert fields.title == "Wireless Earbuds Bluetooth 5.3"
    assert fields.sold_count == 356
