"""
Variant attributes from the JSON array inlined in the page source.

The page is not JSON, so the array is cut out between two textual
landmarks (its own key and the sibling key that follows it) and only
trusted once it decodes. Anything else yields an empty taxonomy.
"""

import json
import re
from typing import Any, Dict, List, Optional

from core.types import AttributeTaxonomy, AttributeValue
from parsers.base_parser import SHIPPING_FROM_ATTRIBUTE, BaseParser, upscale_image_url

ATTRIBUTE_LIST_KEY = "itemAttrList"
ATTRIBUTE_LIST_SIBLING_KEY = "firstItemAttrList"

ATTRIBUTE_LIST_PATTERN = re.compile(
    rf'"{ATTRIBUTE_LIST_KEY}":\[(.*?)\](?=,"{ATTRIBUTE_LIST_SIBLING_KEY}")'
)


class VariationParser(BaseParser[AttributeTaxonomy]):
    field_name = "attributes"

    def default(self) -> AttributeTaxonomy:
        return {}

    def locate(self, text: str) -> Optional[str]:
        """Return the bracketed array literal between the landmarks, if present."""
        match = ATTRIBUTE_LIST_PATTERN.search(text or "")
        if not match:
            return None
        return "[" + match.group(1) + "]"

    def decode(self, literal: str) -> Optional[List[Dict[str, Any]]]:
        try:
            payload = json.loads(literal.replace("\\", ""))
        except json.JSONDecodeError as exc:
            self.logger.warning(
                "Embedded attribute list is not valid JSON: %s",
                exc,
                extra={"event_type": "degraded"},
            )
            return None
        if not isinstance(payload, list):
            return None
        return payload

    def parse(self, text: str) -> AttributeTaxonomy:
        literal = self.locate(text)
        if literal is None:
            return {}
        entries = self.decode(literal)
        if entries is None:
            return {}

        taxonomy: AttributeTaxonomy = {}
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            name = entry.get("attrName")
            if not isinstance(name, str) or not name or name == SHIPPING_FROM_ATTRIBUTE:
                continue
            values = []
            for option in entry.get("itemAttrvalList") or []:
                if not isinstance(option, dict):
                    continue
                value = option.get("attrValName")
                if value is None:
                    continue
                image_url = upscale_image_url(option.get("picUrl")) or None
                values.append(AttributeValue(value=str(value), image_url=image_url))
            taxonomy[name] = tuple(values)
        return taxonomy
