"""
User options: the ordered set of target currencies.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, List

from .storage import KeyValueStore

logger = logging.getLogger(__name__)

OPTIONS_KEY = "ccxOptions"
DEFAULT_TARGETS = ("USD", "EUR", "PLN")

CURRENCY_CODE = re.compile(r"^[A-Z]{3}$")


@dataclass(frozen=True)
class Options:
    targets: List[str] = field(default_factory=lambda: list(DEFAULT_TARGETS))


DEFAULT_OPTIONS = Options()


def normalize_targets(targets: Iterable) -> List[str]:
    """Uppercase, keep valid 3-letter codes, drop duplicates, keep order."""
    seen: List[str] = []
    for target in targets:
        upper = str(target).strip().upper()
        if CURRENCY_CODE.match(upper) and upper not in seen:
            seen.append(upper)
    return seen


def parse_options(stored: Any) -> Options:
    """Options from a stored value; anything malformed or empty is the defaults."""
    if not isinstance(stored, dict) or not isinstance(stored.get("targets"), list):
        return DEFAULT_OPTIONS
    targets = normalize_targets(stored["targets"])
    if not targets:
        return DEFAULT_OPTIONS
    return Options(targets=targets)


async def get_options(store: KeyValueStore) -> Options:
    return parse_options(await store.get(OPTIONS_KEY))


async def set_options(store: KeyValueStore, targets: Iterable) -> Options:
    normalized = normalize_targets(targets) or list(DEFAULT_TARGETS)
    await store.set(OPTIONS_KEY, {"targets": normalized})
    logger.info(f"Target currencies set to {', '.join(normalized)}")
    return Options(targets=normalized)
