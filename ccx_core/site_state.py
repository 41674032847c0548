"""
Per-site enable switch. Sparse map of hostname -> True; absent means disabled.
"""

import logging
from typing import Any, Dict, Optional

from .storage import KeyValueStore

logger = logging.getLogger(__name__)

SITE_STATE_KEY = "ccxSiteState"


def normalize_host(host: Optional[str]) -> Optional[str]:
    if not host:
        return None
    normalized = host.strip().lower()
    return normalized or None


def is_enabled_in(state: Any, host: Optional[str]) -> bool:
    """Look ``host`` up in a stored site-state map."""
    key = normalize_host(host)
    if not key or not isinstance(state, dict):
        return False
    return state.get(key) is True


async def read_state_map(store: KeyValueStore) -> Dict[str, bool]:
    stored = await store.get(SITE_STATE_KEY)
    if not isinstance(stored, dict):
        return {}
    return stored


async def get_site_enabled(store: KeyValueStore, host: Optional[str]) -> bool:
    return is_enabled_in(await read_state_map(store), host)


async def set_site_enabled(store: KeyValueStore, host: Optional[str], enabled: bool) -> None:
    key = normalize_host(host)
    if not key:
        return
    state = dict(await read_state_map(store))
    if enabled:
        state[key] = True
    else:
        state.pop(key, None)
    await store.set(SITE_STATE_KEY, state)
    logger.info(f"Conversions {'enabled' if enabled else 'disabled'} for {key}")
