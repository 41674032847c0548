"""
Conversion Formatter

Renders converted amounts as whole-unit, locale-aware currency strings and
joins them into the annotation text ("$108 | 464 zł").
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, Optional

from babel import Locale, UnknownLocaleError
from babel.numbers import UnknownCurrencyError, parse_pattern, validate_currency

logger = logging.getLogger(__name__)

SEPARATOR = " | "


def plain_format(amount: float, code: str) -> str:
    """Fallback rendering used when a currency or locale is unsupported."""
    return f"{amount:.2f} {code}"


def format_currency(amount: float, code: str, locale: str = "en_US") -> str:
    """
    Format ``amount`` in ``code`` rounded to whole units.

    Uses the locale's standard currency pattern with the fraction digits
    removed. Never raises.
    """
    try:
        validate_currency(code)
        parsed_locale = Locale.parse(locale)
        pattern = parse_pattern(parsed_locale.currency_formats["standard"].pattern)
        pattern.frac_prec = (0, 0)
        rounded = Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        return pattern.apply(rounded, parsed_locale, currency=code, currency_digits=False)
    except (UnknownCurrencyError, UnknownLocaleError) as e:
        logger.debug(f"Falling back to plain format for {code}: {e}")
        return plain_format(amount, code)
    except Exception as e:
        logger.warning(f"Currency formatting failed for {code}, using plain format: {e}")
        return plain_format(amount, code)


def is_numeric_rate(rate) -> bool:
    return isinstance(rate, (int, float)) and not isinstance(rate, bool)


def build_conversion(
    amount: float,
    targets: Iterable[str],
    rates: Dict[str, float],
    locale: str = "en_US",
) -> Optional[str]:
    """
    Build annotation text for ``amount`` in every target with a numeric rate.

    Returns:
        Joined display text, or None when no target had a rate
    """
    parts = []
    for target in targets:
        rate = rates.get(target)
        if is_numeric_rate(rate):
            parts.append(format_currency(amount * rate, target, locale))
    if not parts:
        return None
    return SEPARATOR.join(parts)
