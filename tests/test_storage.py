"""
Tests for the key-value stores, options and site state
"""

import json
from pathlib import Path

import pytest

from ccx_core.options import DEFAULT_TARGETS, OPTIONS_KEY, get_options, normalize_targets, set_options
from ccx_core.site_state import SITE_STATE_KEY, get_site_enabled, is_enabled_in, normalize_host, set_site_enabled
from ccx_core.storage import JSONFileStore, MemoryStore, _ensure_base


class TestMemoryStore:

    @pytest.mark.asyncio
    async def test_values_are_copies(self):
        store = MemoryStore()
        value = {"targets": ["USD"]}
        await store.set("k", value)
        value["targets"].append("EUR")
        assert await store.get("k") == {"targets": ["USD"]}

    @pytest.mark.asyncio
    async def test_change_notifications(self):
        store = MemoryStore({"k": 1})
        changes = []
        unsubscribe = store.subscribe(changes.append)

        await store.set("k", 2)
        await store.remove("k")
        await store.remove("missing")
        unsubscribe()
        await store.set("k", 3)

        assert changes == [
            {"k": {"old_value": 1, "new_value": 2}},
            {"k": {"old_value": 2, "new_value": None}},
        ]

    @pytest.mark.asyncio
    async def test_listener_errors_contained(self):
        store = MemoryStore()

        def broken(changes):
            raise RuntimeError("boom")

        store.subscribe(broken)
        await store.set("k", 1)
        assert await store.get("k") == 1


class TestJSONFileStore:

    @pytest.mark.asyncio
    async def test_persists_between_instances(self, tmp_path: Path):
        path = tmp_path / "store.json"
        await JSONFileStore(path=path).set("ccxOptions", {"targets": ["GBP"]})

        assert json.loads(path.read_text(encoding="utf-8")) == {"ccxOptions": {"targets": ["GBP"]}}
        assert await JSONFileStore(path=path).get("ccxOptions") == {"targets": ["GBP"]}

    @pytest.mark.asyncio
    async def test_malformed_file_reads_empty(self, tmp_path: Path):
        path = tmp_path / "store.json"
        path.write_text("{not json", encoding="utf-8")
        store = JSONFileStore(path=path)
        assert await store.get("anything") is None

        await store.set("k", 1)
        assert await store.get("k") == 1

    @pytest.mark.asyncio
    async def test_remove(self, tmp_path: Path):
        store = JSONFileStore(path=tmp_path / "store.json")
        await store.set("k", 1)
        await store.remove("k")
        assert await store.get("k") is None

    def test_workspace_default_path(self, tmp_path: Path):
        store = JSONFileStore(workspace=tmp_path / "ws")
        assert store.path == tmp_path / "ws" / "ccx_store.json"

    def test_ensure_base_creates_dir(self, tmp_path: Path):
        base = _ensure_base(tmp_path / "a" / "b")
        assert base == tmp_path / "a" / "b"
        assert base.is_dir()


class TestOptions:

    def test_normalize_targets(self):
        assert normalize_targets(["usd", " eur ", "USD", "x1", "GBPX", "pln"]) == ["USD", "EUR", "PLN"]

    @pytest.mark.asyncio
    async def test_defaults_when_absent_or_malformed(self):
        assert (await get_options(MemoryStore())).targets == list(DEFAULT_TARGETS)
        assert (await get_options(MemoryStore({OPTIONS_KEY: {"targets": "USD"}}))).targets == list(DEFAULT_TARGETS)
        assert (await get_options(MemoryStore({OPTIONS_KEY: {"targets": ["??"]}}))).targets == list(DEFAULT_TARGETS)

    @pytest.mark.asyncio
    async def test_set_options(self):
        store = MemoryStore()
        options = await set_options(store, ["gbp", "usd", "gbp"])
        assert options.targets == ["GBP", "USD"]
        assert await store.get(OPTIONS_KEY) == {"targets": ["GBP", "USD"]}

    @pytest.mark.asyncio
    async def test_set_empty_restores_defaults(self):
        store = MemoryStore()
        options = await set_options(store, [])
        assert options.targets == ["USD", "EUR", "PLN"]


class TestSiteState:

    def test_normalize_host(self):
        assert normalize_host(" Shop.Example ") == "shop.example"
        assert normalize_host("   ") is None
        assert normalize_host(None) is None

    def test_is_enabled_in(self):
        assert is_enabled_in({"shop.example": True}, "SHOP.example")
        assert not is_enabled_in({"shop.example": "yes"}, "shop.example")
        assert not is_enabled_in(None, "shop.example")

    @pytest.mark.asyncio
    async def test_enable_disable(self):
        store = MemoryStore()
        await set_site_enabled(store, "Shop.Example", True)
        assert await store.get(SITE_STATE_KEY) == {"shop.example": True}
        assert await get_site_enabled(store, "shop.example")

        await set_site_enabled(store, "shop.example", False)
        assert await store.get(SITE_STATE_KEY) == {}
        assert not await get_site_enabled(store, "shop.example")

    @pytest.mark.asyncio
    async def test_missing_host_is_noop(self):
        store = MemoryStore()
        await set_site_enabled(store, "", True)
        assert await store.get(SITE_STATE_KEY) is None
        assert not await get_site_enabled(store, None)

    @pytest.mark.asyncio
    async def test_malformed_state_is_disabled(self):
        store = MemoryStore({SITE_STATE_KEY: ["shop.example"]})
        assert not await get_site_enabled(store, "shop.example")
        await set_site_enabled(store, "other.example", True)
        assert await store.get(SITE_STATE_KEY) == {"other.example": True}
