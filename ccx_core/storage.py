#!/usr/bin/env python3
"""
Key-value store for options, site toggles and cached rate tables.

Two backends share one interface:
- MemoryStore: in-process dict (tests, embedding)
- JSONFileStore: one JSON file in the workspace, shared between processes
  (read-then-write, last write wins)

Subscribers are told which keys changed, with old and new values.
"""

import json
import logging
import os
from copy import deepcopy
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .exceptions import StoreError

logger = logging.getLogger(__name__)

Changes = Dict[str, Dict[str, Any]]
ChangeListener = Callable[[Changes], None]

STORE_FILENAME = "ccx_store.json"


class KeyValueStore:
    """Async key-value store with change notifications."""

    def __init__(self):
        self._listeners: List[ChangeListener] = []

    async def get(self, key: str) -> Any:
        raise NotImplementedError

    async def set(self, key: str, value: Any) -> None:
        raise NotImplementedError

    async def remove(self, key: str) -> None:
        raise NotImplementedError

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a change listener; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, key: str, old_value: Any, new_value: Any) -> None:
        changes = {key: {"old_value": old_value, "new_value": new_value}}
        for listener in list(self._listeners):
            try:
                listener(changes)
            except Exception:
                logger.exception(f"Store listener failed for {key}")


class MemoryStore(KeyValueStore):
    """Dict-backed store."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        super().__init__()
        self._data: Dict[str, Any] = deepcopy(initial or {})

    async def get(self, key: str) -> Any:
        return deepcopy(self._data.get(key))

    async def set(self, key: str, value: Any) -> None:
        old = self._data.get(key)
        self._data[key] = deepcopy(value)
        self._emit(key, old, deepcopy(value))

    async def remove(self, key: str) -> None:
        if key in self._data:
            old = self._data.pop(key)
            self._emit(key, old, None)


def _ensure_base(workspace: Optional[Path] = None) -> Path:
    base = Path(workspace or os.getenv("CCX_WORKSPACE", "./workspace"))
    candidates = [
        base,
        Path(os.path.expanduser("~")) / ".cache" / "ccx",
        Path("/tmp/ccx"),
    ]
    for cand in candidates:
        try:
            cand.mkdir(parents=True, exist_ok=True)
            test = cand / ".writetest"
            with open(test, "w") as f:
                f.write("ok")
            test.unlink(missing_ok=True)
            return cand
        except OSError:
            continue
    return base


class JSONFileStore(KeyValueStore):
    """
    Store persisted as a single JSON object on disk.

    A missing or malformed file reads as empty.
    """

    def __init__(self, path: Optional[Path] = None, workspace: Optional[Path] = None):
        super().__init__()
        self.path = Path(path) if path else _ensure_base(workspace) / STORE_FILENAME

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable store {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp, self.path)
        except OSError as e:
            raise StoreError(f"Cannot write store {self.path}: {e}") from e

    async def get(self, key: str) -> Any:
        return self._read().get(key)

    async def set(self, key: str, value: Any) -> None:
        data = self._read()
        old = data.get(key)
        data[key] = value
        self._write(data)
        self._emit(key, old, value)

    async def remove(self, key: str) -> None:
        data = self._read()
        if key in data:
            old = data.pop(key)
            self._write(data)
            self._emit(key, old, None)
