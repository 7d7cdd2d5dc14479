"""
Structured fields read from the product page DOM.

Each ``extract_*`` method is independent; ``ProductParser.parse`` runs all
of them and degrades individual fields to their defaults so one markup
change never costs the whole record.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from bs4 import BeautifulSoup, Tag

from core.types import AttributeTaxonomy, AttributeValue
from parsers.base_parser import (
    SHIPPING_FROM_ATTRIBUTE,
    BaseParser,
    build_soup,
    select_prefixed,
    select_prefixed_one,
    upscale_image_url,
)
from utils.error_handling import ParseDegraded
from utils.helpers import sanitize_text, safe_int_conversion

SOLD_COUNT_PATTERN = re.compile(r"(\d+)\s*sold", re.IGNORECASE)


@dataclass
class ProductFields:
    title: str = ""
    images: Tuple[str, ...] = ()
    specifications: Dict[str, str] = field(default_factory=dict)
    sold_count: int = 0
    attributes: AttributeTaxonomy = field(default_factory=dict)


class ProductParser(BaseParser[ProductFields]):
    field_name = "productFields"

    def default(self) -> ProductFields:
        return ProductFields()

    def parse(self, html: Union[str, BeautifulSoup]) -> ProductFields:
        soup = build_soup(html)
        return ProductFields(
            title=self._field("title", self.extract_title, soup, ""),
            images=self._field("images", self.extract_images, soup, ()),
            specifications=self._field("specifications", self.extract_specifications, soup, {}),
            sold_count=self._field("soldCount", self.extract_sold_count, soup, 0),
            attributes=self._field("attributes", self.extract_attributes, soup, {}),
        )

    def _field(self, name, extractor, soup, default):
        try:
            return extractor(soup)
        except Exception as exc:  # noqa: BLE001
            degraded = ParseDegraded(name, exc)
            self.logger.warning("%s", degraded, extra={"event_type": "degraded"})
            return default

    def extract_title(self, soup: BeautifulSoup) -> str:
        heading = select_prefixed_one(soup, self.selectors.product_info, "h1")
        if heading is None:
            return ""
        return heading.get_text().strip()

    def extract_images(self, soup: BeautifulSoup) -> Tuple[str, ...]:
        images: Dict[str, None] = {}
        for img in select_prefixed(soup, self.selectors.thumbnail_list, "li span img"):
            src = upscale_image_url(img.get("src"))
            if src:
                images.setdefault(src, None)
        return tuple(images)

    def extract_specifications(self, soup: BeautifulSoup) -> Dict[str, str]:
        specifications: Dict[str, str] = {}
        for container in select_prefixed(soup, self.selectors.specifications):
            for item in container.find_all("li"):
                label_tag = item.find("span")
                value_tag = select_prefixed_one(item, self.selectors.specification_value)
                if label_tag is None or value_tag is None:
                    continue
                label = label_tag.get_text().replace(":", "", 1).strip()
                value = value_tag.get_text().strip()
                if label and value:
                    specifications[label] = value
        return specifications

    def extract_sold_count(self, soup: BeautifulSoup) -> int:
        text = "".join(
            node.get_text() for node in select_prefixed(soup, self.selectors.sold_count)
        )
        match = SOLD_COUNT_PATTERN.search(sanitize_text(text))
        if not match:
            return 0
        return safe_int_conversion(match.group(1)) or 0

    def extract_attributes(self, soup: BeautifulSoup) -> AttributeTaxonomy:
        """Variant taxonomy from the SKU selector blocks."""
        taxonomy: AttributeTaxonomy = {}
        for block in select_prefixed(soup, self.selectors.sku_item):
            name_tag = select_prefixed_one(block, self.selectors.sku_name)
            if name_tag is None:
                continue
            name = sanitize_text(name_tag.get_text()).rstrip(":").strip()
            if not name or name == SHIPPING_FROM_ATTRIBUTE:
                continue
            values = self._attribute_values(block)
            if values:
                taxonomy[name] = values
        return taxonomy

    def _attribute_values(self, block: Tag) -> Tuple[AttributeValue, ...]:
        values: List[AttributeValue] = []
        seen = set()
        for option in select_prefixed(block, self.selectors.sku_list, "li"):
            img = option.find("img")
            value = (
                option.get("title")
                or (img.get("alt") if img is not None else None)
                or option.get_text()
            )
            value = sanitize_text(value)
            if not value or value in seen:
                continue
            seen.add(value)
            image_url: Optional[str] = None
            if img is not None and img.get("src"):
                image_url = upscale_image_url(img.get("src"))
            values.append(AttributeValue(value=value, image_url=image_url))
        return tuple(values)
