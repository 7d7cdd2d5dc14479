import re
from decimal import Decimal, InvalidOperation
from typing import Optional, Any
from urllib.parse import urlparse

from utils.logger import get_logger

logger = get_logger(__name__)

ITEM_CODE_PATTERN = re.compile(r"/(\d+)\.html")
CURRENCY_PREFIX_PATTERN = re.compile(r"^\s*[A-Z]{2,3}(?=[\s$€£¥\d])\s*")


def sanitize_text(text: Any) -> str:
    """Sanitize text by removing control characters and normalizing whitespace."""
    if not isinstance(text, str):
        return ""

    sanitized = re.sub(r"[\x00-\x1f\x7f-\x9f]", " ", text)
    return re.sub(r"\s+", " ", sanitized).strip()


def safe_float_conversion(value: Any) -> Optional[float]:
    """Safely convert value to float with error handling."""
    if value is None:
        return None

    try:
        if isinstance(value, (int, float)):
            return float(value)
        elif isinstance(value, str):
            cleaned = value.strip()
            if not cleaned:
                return None
            return float(cleaned.replace(",", "."))
        else:
            return float(value)
    except (ValueError, TypeError) as e:
        logger.warning("Error converting to float: %s (%s)", value, e)
        return None


def safe_int_conversion(value: Any) -> Optional[int]:
    """Safely convert value to int with error handling."""
    if value is None or isinstance(value, bool):
        return None

    try:
        if isinstance(value, (int, float)):
            return int(value)
        elif isinstance(value, str):
            cleaned = value.strip()
            if not cleaned:
                return None
            return int(float(cleaned.replace(",", ".")))
        else:
            return int(value)
    except (ValueError, TypeError) as e:
        logger.warning("Error converting to int: %s (%s)", value, e)
        return None


def safe_decimal_conversion(value: Any) -> Optional[Decimal]:
    """Convert a numeric token to Decimal without going through float."""
    if value is None:
        return None
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        logger.warning("Error converting to decimal: %s (%s)", value, e)
        return None


def strip_currency_prefix(price_text: Any) -> str:
    """Drop a leading currency code such as ``US`` from ``US $12.99``."""
    if price_text is None:
        return ""
    return CURRENCY_PREFIX_PATTERN.sub("", str(price_text)).strip()


def strip_url_fragment(url: Any) -> str:
    if not url:
        return ""
    return str(url).split("#", 1)[0]


def extract_item_code(url: Optional[str]) -> Optional[str]:
    """Return the numeric item identifier that precedes ``.html`` in the URL path."""
    if not isinstance(url, str) or not url:
        return None
    try:
        path = urlparse(url).path or url
    except ValueError:
        path = url
    match = ITEM_CODE_PATTERN.search(path)
    return match.group(1) if match else None
