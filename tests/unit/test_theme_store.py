"""
Unit tests for the theme preference store and its key-value backends.
"""
import json
import pytest
from unittest.mock import AsyncMock
from providers.kv_store import FileKeyValueStore, MemoryKeyValueStore
from services.theme_service import DARK_PALETTE, LIGHT_PALETTE, ThemeStore


class TestMemoryKeyValueStore:
    """Test process-lifetime storage"""

    @pytest.mark.asyncio
    async def test_get_and_set(self):
        store = MemoryKeyValueStore()
        assert await store.get_item("theme:u1") is None

        await store.set_item("theme:u1", "dark")
        assert await store.get_item("theme:u1") == "dark"


class TestFileKeyValueStore:
    """Test JSON-file storage"""

    @pytest.mark.asyncio
    async def test_survives_new_instance(self, tmp_path):
        path = tmp_path / "prefs" / "theme.json"

        await FileKeyValueStore(str(path)).set_item("theme:u1", "dark")
        reopened = FileKeyValueStore(str(path))

        assert await reopened.get_item("theme:u1") == "dark"
        assert json.loads(path.read_text()) == {"theme:u1": "dark"}

    @pytest.mark.asyncio
    async def test_missing_file_reads_empty(self, tmp_path):
        store = FileKeyValueStore(str(tmp_path / "absent.json"))
        assert await store.get_item("theme:u1") is None

    @pytest.mark.asyncio
    async def test_corrupt_file_raises_value_error(self, tmp_path):
        path = tmp_path / "theme.json"
        path.write_text("{not json")

        with pytest.raises(ValueError):
            await FileKeyValueStore(str(path)).get_item("theme:u1")


class TestThemeStore:
    """Test ThemeStore"""

    @pytest.fixture
    def store(self):
        return ThemeStore(MemoryKeyValueStore())

    @pytest.mark.asyncio
    async def test_first_load_persists_light(self, store):
        assert await store.load("u1") is False
        assert await store.store.get_item("theme:u1") == "light"

    @pytest.mark.asyncio
    async def test_toggle_flips_and_persists(self, store):
        assert await store.toggle("u1") is True
        assert await store.store.get_item("theme:u1") == "dark"
        assert await store.toggle("u1") is False
        assert await store.load("u1") is False

    @pytest.mark.asyncio
    async def test_preferences_are_per_user(self, store):
        await store.set("u1", True)
        assert await store.load("u1") is True
        assert await store.load("u2") is False

    @pytest.mark.asyncio
    async def test_unreadable_store_defaults_to_light(self, tmp_path):
        path = tmp_path / "theme.json"
        path.write_text("{not json")

        assert await ThemeStore(FileKeyValueStore(str(path))).load("u1") is False

    @pytest.mark.asyncio
    async def test_failed_write_still_reports_choice(self):
        backend = MemoryKeyValueStore()
        backend.set_item = AsyncMock(side_effect=OSError("read-only"))

        assert await ThemeStore(backend).set("u1", True) is True

    @pytest.mark.asyncio
    async def test_describe(self, store):
        await store.set("u1", True)
        info = await store.describe("u1")

        assert info["theme"] == "dark"
        assert info["is_dark"] is True
        assert info["palette"] == DARK_PALETTE

    def test_palettes_share_keys(self):
        assert set(LIGHT_PALETTE) == set(DARK_PALETTE)
        assert ThemeStore.palette(False)["background"] == "#f5f5f5"
        assert ThemeStore.palette(True)["background"] == "#121212"
