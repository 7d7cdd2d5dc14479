import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Generic, List, Optional, TypeVar, Union

from bs4 import BeautifulSoup, Tag

from utils.error_handling import ParseDegraded
from utils.logger import get_logger

T = TypeVar("T")

# Thumbnail resolution tokens used across the marketplace CDN.
RESOLUTION_TOKEN_PATTERN = re.compile(r"(?:100x100|200x200|260x260)", re.IGNORECASE)
FULL_RESOLUTION_TOKEN = "0x0"

SHIPPING_FROM_ATTRIBUTE = "Shipping from"


@dataclass(frozen=True)
class SelectorConfig:
    """
    Class-name prefixes for the marketplace's product page markup.

    Class names carry stable prefixes while their suffixes are build
    hashes, so every selector is a ``[class^="prefix"]`` match.
    """

    product_info: str = "productInfo_productInfo"
    thumbnail_list: str = "masterMap_smallMapList"
    specifications: str = "prodSpecifications_showUl"
    specification_value: str = "prodSpecifications_deswrap"
    sold_count: str = "productSellerMsg_sold"
    description: str = "prodDesc_decHtml"
    sku_item: str = "productSku_attrItem"
    sku_name: str = "productSku_attrName"
    sku_list: str = "productSku_attrList"


def upscale_image_url(url: Optional[str]) -> str:
    """Rewrite every thumbnail resolution token to the full-size marker.

    Idempotent: the full-size marker never matches the token pattern.
    """
    if not url:
        return ""
    return RESOLUTION_TOKEN_PATTERN.sub(FULL_RESOLUTION_TOKEN, url.strip())


def prefix_selector(prefix: str) -> str:
    return f'[class^="{prefix}"]'


def build_soup(html: Union[str, BeautifulSoup]) -> BeautifulSoup:
    if isinstance(html, BeautifulSoup):
        return html
    return BeautifulSoup(html or "", "html.parser")


def select_prefixed(root: Tag, prefix: str, descendant: str = "") -> List[Tag]:
    """All elements under ``root`` whose class attribute starts with ``prefix``."""
    selector = prefix_selector(prefix)
    if descendant:
        selector = f"{selector} {descendant}"
    return root.select(selector)


def select_prefixed_one(root: Tag, prefix: str, descendant: str = "") -> Optional[Tag]:
    selector = prefix_selector(prefix)
    if descendant:
        selector = f"{selector} {descendant}"
    return root.select_one(selector)


def unescape_embedded_quotes(html: str) -> str:
    """Undo the ``\\"`` escaping of JSON blobs inlined in the page source."""
    return html.replace('\\"', '"')


class BaseParser(ABC, Generic[T]):
    """
    Base class for the page extractors.

    Subclasses implement ``parse``; callers that must never fail use
    ``parse_safely``, which swaps any parsing exception for the
    extractor's empty default and logs the degradation.
    """

    field_name: str = "field"

    def __init__(self, selectors: Optional[SelectorConfig] = None):
        self.selectors = selectors or SelectorConfig()
        self.logger = get_logger(__name__)

    @abstractmethod
    def parse(self, source: Any) -> T:
        """Extract this parser's field from the page."""

    @abstractmethod
    def default(self) -> T:
        """Value used when extraction fails."""

    def parse_safely(self, source: Any) -> T:
        try:
            return self.parse(source)
        except Exception as exc:  # noqa: BLE001
            degraded = ParseDegraded(self.field_name, exc)
            self.logger.warning(
                "%s",
                degraded,
                extra={"event_type": "degraded", "event_data": degraded.context},
            )
            return self.default()
