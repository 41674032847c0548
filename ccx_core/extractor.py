"""
Amount Extractor

Pure functions that pull a currency code and a numeric amount out of
free-form text:

- "€1 234"      -> ("EUR", 1234.0)
- "1.234,56 zł" -> ("PLN", 1234.56)
- "$1,234"      -> ("USD", 1234.0)

Neither function raises; anything that does not parse is ``None``.
"""

import math
import re
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

# Marker patterns shared with the scanner
CURRENCY_PATTERN = re.compile(r"(?:€|EUR|\$|USD|PLN|zł|\bzl\b)", re.IGNORECASE)
NUMBER_PATTERN = re.compile(r"[0-9][0-9\s.,\u00a0]*[0-9]")

# Priority order: first matching rule wins
CURRENCY_RULES = (
    ("EUR", re.compile(r"EUR|€", re.IGNORECASE)),
    ("USD", re.compile(r"USD|\$", re.IGNORECASE)),
    ("PLN", re.compile(r"PLN|zł", re.IGNORECASE)),
    ("PLN", re.compile(r"\bZL\b", re.IGNORECASE)),
)

_WHITESPACE = re.compile(r"[\s\u00a0]+")


@dataclass(frozen=True)
class DetectedValue:
    """Currency and amount found for one candidate, with the text that supplied them."""
    currency_code: str
    amount: float
    source_text: str

    @property
    def group_key(self) -> str:
        return f"{self.currency_code}:{format_amount(self.amount)}"


def has_currency_marker(text: str) -> bool:
    return bool(text) and CURRENCY_PATTERN.search(text) is not None


def has_number(text: str) -> bool:
    return bool(text) and NUMBER_PATTERN.search(text) is not None


def extract_currency(text: str) -> Optional[str]:
    """
    Detect the currency referenced by ``text``.

    Args:
        text: Any text fragment

    Returns:
        ISO code (EUR, USD, PLN) or None
    """
    if not text:
        return None
    for code, pattern in CURRENCY_RULES:
        if pattern.search(text):
            return code
    return None


def normalize_separators(raw: str) -> str:
    """
    Rewrite a whitespace-free digit run into a float-parseable string.

    Handles:
    - both separators: right-most one is the decimal (1.234,56 / 1,234.56)
    - comma only: final group of 3 digits means thousands (1,234), else decimal (12,5)
    - dot only: same rule with dots (1.234 vs 12.5)
    """
    last_comma = raw.rfind(",")
    last_dot = raw.rfind(".")

    if last_comma > -1 and last_dot > -1:
        decimal = "," if last_comma > last_dot else "."
        thousands = "." if decimal == "," else ","
        return raw.replace(thousands, "").replace(decimal, ".", 1)
    if last_comma > -1:
        if len(raw.split(",")[-1]) == 3:
            return raw.replace(",", "")
        return raw.replace(",", ".")
    if last_dot > -1:
        if len(raw.split(".")[-1]) == 3:
            return raw.replace(".", "")
    return raw


def extract_amount(text: str) -> Optional[float]:
    """
    Extract the first numeric amount from ``text``.

    Args:
        text: Any text fragment

    Returns:
        Finite float or None
    """
    if not text:
        return None

    match = NUMBER_PATTERN.search(text)
    if not match:
        return None

    raw = _WHITESPACE.sub("", match.group(0))
    if not raw:
        return None

    try:
        value = float(normalize_separators(raw))
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def format_amount(amount: float) -> str:
    """Render an amount the way it appears in group keys (100, 12.5, 1234.56)."""
    if float(amount).is_integer():
        return str(int(amount))
    return repr(float(amount))


def resolve_value(own_text: str, context: Iterable[str] = ()) -> Tuple[Optional[DetectedValue], str]:
    """
    Resolve currency and amount for a candidate.

    Own text is tried first; missing pieces are then filled from the context
    fragments in order. The fragment that completes the pair becomes the
    source text.

    Returns:
        (DetectedValue or None, source text)
    """
    currency = extract_currency(own_text)
    amount = extract_amount(own_text)
    source_text = own_text

    if currency is None or amount is None:
        for fragment in context:
            if currency is None:
                currency = extract_currency(fragment)
            if amount is None:
                amount = extract_amount(fragment)
            if currency is not None and amount is not None:
                source_text = fragment
                break

    if currency is None or amount is None:
        return None, source_text
    return DetectedValue(currency, amount, source_text), source_text
