"""
Description sanitizer.

Descriptions are lifted from the marketplace's own listing markup and
re-hosted on an unrelated catalog page, so the output must not link back to
the marketplace or keep its device-specific layout attributes.
"""

import re
from typing import List, Optional, Union

from bs4 import BeautifulSoup, Comment, PageElement, Tag

from parsers.base_parser import BaseParser, build_soup, select_prefixed_one, upscale_image_url

REMOVED_TAGS = ["style", "script", "link"]
PRESENTATION_ATTRIBUTES = ("class", "style")
IMAGE_STRIPPED_ATTRIBUTES = ("class", "style", "width", "height", "loading")

BLOCK_OPEN_PATTERN = re.compile(r"<(?:div|td|th)\b", re.IGNORECASE)
BLOCK_CLOSE_PATTERN = re.compile(r"</(?:div|td|th)\s*>", re.IGNORECASE)
TABLE_OPEN_PATTERN = re.compile(r"<table\b[^>]*>", re.IGNORECASE)
TABLE_CLOSE_PATTERN = re.compile(r"</table\s*>", re.IGNORECASE)
TABLE_ROW_PATTERN = re.compile(r"</?(?:tbody|thead|tfoot|tr)\b[^>]*>", re.IGNORECASE)
EMPTY_PARAGRAPH_PATTERN = re.compile(r"<p\b[^>]*>(?:\s|&nbsp;|<br\s*/?>)*</p\s*>", re.IGNORECASE)
TARGETLESS_ANCHOR_PATTERN = re.compile(
    r"<a\b(?![^>]*\bhref\s*=\s*[\"']?[^\"'\s>#])[^>]*>(.*?)</a\s*>",
    re.IGNORECASE | re.DOTALL,
)
OPENING_TAG_PATTERN = re.compile(r"<[a-zA-Z][^>]*>")
QUOTED_LAYOUT_ATTRIBUTE_PATTERN = re.compile(
    r"\s+(?:width|height|style)=(?:\"[^\"]*\"|'[^']*')", re.IGNORECASE
)
BARE_LAYOUT_ATTRIBUTE_PATTERN = re.compile(r"\s+(?:width|height)=\d+%?", re.IGNORECASE)

IMG_TAG_PATTERN = re.compile(r"<img\b[^>]*>", re.IGNORECASE)
HTML_WHITESPACE_PATTERN = re.compile(r"[ \t\n\r\f]+")
BLOCK_TAGS = frozenset(
    {
        "address", "article", "aside", "blockquote", "br", "dd", "details", "div",
        "dl", "dt", "figcaption", "figure", "footer", "h1", "h2", "h3", "h4", "h5",
        "h6", "header", "hr", "li", "main", "nav", "ol", "p", "pre", "section",
        "summary", "table", "tbody", "td", "tfoot", "th", "thead", "tr", "ul",
    }
)
PRESERVED_TAGS = ["pre", "textarea", "script", "style"]
_PROTECTED_PLACEHOLDER = "__MINIFY_IMG_{}__"
_PLACEHOLDER_PATTERN = re.compile(r"__MINIFY_IMG_(\d+)__")


def _is_block_boundary(neighbour: Optional[PageElement], parent: Optional[Tag]) -> bool:
    if neighbour is not None:
        return isinstance(neighbour, Tag) and neighbour.name in BLOCK_TAGS
    return parent is None or parent.name == "[document]" or parent.name in BLOCK_TAGS


def _strip_layout_attributes(match: re.Match) -> str:
    tag = QUOTED_LAYOUT_ATTRIBUTE_PATTERN.sub("", match.group(0))
    return BARE_LAYOUT_ATTRIBUTE_PATTERN.sub("", tag)


def minify_html(fragment: str, protect: Optional[re.Pattern] = IMG_TAG_PATTERN) -> str:
    """Drop comments and collapse whitespace without changing how the fragment renders.

    Whitespace touching a block-level boundary is removed, any other run becomes
    a single space, and ``pre``/``textarea`` contents are left as written.
    ``protect`` matches are swapped out before parsing and restored verbatim.
    """
    if not fragment:
        return ""

    protected: List[str] = []

    def _stash(match: re.Match) -> str:
        protected.append(match.group(0))
        return _PROTECTED_PLACEHOLDER.format(len(protected) - 1)

    working = protect.sub(_stash, fragment) if protect is not None else fragment
    soup = BeautifulSoup(working, "html.parser")
    for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()
    soup.smooth()

    for text in list(soup.find_all(string=True)):
        if text.find_parent(PRESERVED_TAGS) is not None:
            continue
        collapsed = HTML_WHITESPACE_PATTERN.sub(" ", str(text))
        if _is_block_boundary(text.previous_sibling, text.parent):
            collapsed = collapsed.lstrip(" ")
        if _is_block_boundary(text.next_sibling, text.parent):
            collapsed = collapsed.rstrip(" ")
        if not collapsed:
            text.extract()
        elif collapsed != text:
            text.replace_with(collapsed)

    return _PLACEHOLDER_PATTERN.sub(lambda m: protected[int(m.group(1))], soup.decode())


class DescriptionParser(BaseParser[str]):
    field_name = "description"

    def __init__(self, marketplace_domain: str = "dhgate.com", selectors=None):
        super().__init__(selectors)
        self.marketplace_domain = marketplace_domain.lower()
        escaped = re.escape(self.marketplace_domain)
        self._marketplace_link_pattern = re.compile(
            rf"https?://(?:[\w\-]+\.)*{escaped}[^\"'\s<>]*?\.html", re.IGNORECASE
        )

    def default(self) -> str:
        return ""

    def parse(self, html: Union[str, BeautifulSoup]) -> str:
        soup = build_soup(html)
        container = select_prefixed_one(soup, self.selectors.description)
        if container is None:
            return ""

        self.clean_subtree(container)
        return minify_html(self.normalize_markup(container.decode_contents()))

    def _points_to_marketplace(self, href: Optional[str]) -> bool:
        return bool(href) and self.marketplace_domain in href.lower()

    def clean_subtree(self, element: Tag) -> None:
        for tag in element.find_all(REMOVED_TAGS):
            tag.decompose()

        for tag in element.find_all(True):
            if tag.name == "img":
                tag["src"] = upscale_image_url(tag.get("src"))
                for attr in IMAGE_STRIPPED_ATTRIBUTES:
                    tag.attrs.pop(attr, None)
            elif tag.name == "a":
                if self._points_to_marketplace(tag.get("href")):
                    tag.unwrap()
                else:
                    for attr in PRESENTATION_ATTRIBUTES:
                        tag.attrs.pop(attr, None)
            else:
                for attr in PRESENTATION_ATTRIBUTES:
                    tag.attrs.pop(attr, None)

    def normalize_markup(self, fragment: str) -> str:
        """Regex-level pass over the serialized fragment."""
        fragment = BLOCK_OPEN_PATTERN.sub("<p", fragment)
        fragment = BLOCK_CLOSE_PATTERN.sub("</p>", fragment)
        fragment = TABLE_OPEN_PATTERN.sub("<p>", fragment)
        fragment = TABLE_CLOSE_PATTERN.sub("</p>", fragment)
        fragment = TABLE_ROW_PATTERN.sub("", fragment)
        fragment = self._marketplace_link_pattern.sub("", fragment)
        fragment = TARGETLESS_ANCHOR_PATTERN.sub(r"\1", fragment)
        fragment = OPENING_TAG_PATTERN.sub(_strip_layout_attributes, fragment)

        previous = None
        while previous != fragment:
            previous = fragment
            fragment = EMPTY_PARAGRAPH_PATTERN.sub("", fragment)
        return fragment
