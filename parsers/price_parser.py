"""Quantity break-point price tiers scraped from the raw page text."""

import re
from decimal import Decimal
from typing import Dict, Tuple

from core.types import PriceTier
from parsers.base_parser import BaseParser
from utils.helpers import safe_decimal_conversion, safe_int_conversion

# ``[^}]`` keeps the lookahead inside one price record.
PRICE_RECORD_PATTERN = re.compile(
    r'"endQty":(\d+)[^}]*?(?:"promDiscountPrice"|"originalPrice"):(\d+(?:\.\d+)?)'
)


class PriceTierParser(BaseParser[Tuple[PriceTier, ...]]):
    field_name = "priceTiers"

    def default(self) -> Tuple[PriceTier, ...]:
        return ()

    def collect_ceilings(self, text: str) -> Dict[int, Decimal]:
        """Map each ceiling quantity to the last price matched for it."""
        ceilings: Dict[int, Decimal] = {}
        for match in PRICE_RECORD_PATTERN.finditer(text or ""):
            quantity = safe_int_conversion(match.group(1))
            price = safe_decimal_conversion(match.group(2))
            if not quantity or not price:
                continue
            ceilings[quantity] = price
        return ceilings

    def parse(self, text: str) -> Tuple[PriceTier, ...]:
        ceilings = sorted(self.collect_ceilings(text).items())
        tiers = []
        previous_ceiling = 0
        for ceiling, price in ceilings:
            tiers.append(PriceTier(min_quantity=previous_ceiling + 1, price=price))
            previous_ceiling = ceiling
        if not tiers:
            self.logger.debug("No quantity price records found", extra={"event_type": "parse"})
        return tuple(tiers)
