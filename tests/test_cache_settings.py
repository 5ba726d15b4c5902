"""Tests for the database-backed cache and the settings store."""

from datetime import datetime, timedelta

import pytest

from exilon.db import get_session, Setting
from exilon.services import CacheService, SettingsService
from exilon.services.cache import EXTENSION_CACHE_KEYS


class FakeClock:
    """Controllable replacement for datetime.utcnow."""

    def __init__(self):
        self.now = datetime(2026, 1, 1, 12, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(test_db, clock):
    return CacheService(clock=clock)


class TestCache:
    """Test CacheService."""

    def test_put_and_get(self, cache):
        cache.put("key", {"a": [1, 2]}, ttl=60)
        assert cache.get("key") == {"a": [1, 2]}
        assert cache.has("key")

    def test_missing_returns_default(self, cache):
        assert cache.get("missing", "default") == "default"
        assert not cache.has("missing")

    def test_expires_after_ttl(self, cache, clock):
        cache.put("key", "value", ttl=60)

        clock.advance(59)
        assert cache.get("key") == "value"

        clock.advance(1)
        assert cache.get("key") is None

    def test_forever(self, cache, clock):
        cache.forever("key", "value")
        clock.advance(10 ** 8)
        assert cache.get("key") == "value"

    def test_remember_computes_once(self, cache):
        calls = []

        def compute():
            calls.append(1)
            return [1, 2, 3]

        assert cache.remember("key", 60, compute) == [1, 2, 3]
        assert cache.remember("key", 60, compute) == [1, 2, 3]
        assert len(calls) == 1

    def test_cached_falsy_values_are_hits(self, cache):
        cache.put("empty", {}, ttl=60)
        assert cache.remember("empty", 60, lambda: {"recomputed": True}) == {}

    def test_forget(self, cache):
        cache.put("a", 1)
        cache.put("b", 2)

        assert cache.forget("a", "missing") == 1
        assert cache.get("a") is None
        assert cache.get("b") == 2

    def test_forget_prefix(self, cache):
        cache.put("marketplace.items.1.all.", [])
        cache.put("marketplace.items.2.all.", [])
        cache.put("marketplaceXitems", [])

        assert cache.forget_prefix("marketplace.items.") == 2
        assert cache.has("marketplaceXitems")

    def test_forget_prefix_escapes_wildcards(self, cache):
        cache.put("extension_updates_plugins", {})
        cache.put("extensionXupdates", {})

        assert cache.forget_prefix("extension_") == 1
        assert cache.has("extensionXupdates")

    def test_clear_extension_caches(self, cache):
        for key in EXTENSION_CACHE_KEYS:
            cache.put(key, "x")
        cache.put("cms_updates", "kept")

        cache.clear_extension_caches()

        assert not any(cache.has(key) for key in EXTENSION_CACHE_KEYS)
        assert cache.get("cms_updates") == "kept"

    def test_flush(self, cache):
        cache.put("a", 1)
        cache.flush()
        assert not cache.has("a")


class TestSettings:
    """Test SettingsService."""

    def test_set_and_get(self, test_db):
        settings = SettingsService()
        settings.set("name", "My Server")

        assert settings.get("name") == "My Server"
        assert SettingsService().get("name") == "My Server"

    def test_default(self, test_db):
        assert SettingsService().get("missing", "fallback") == "fallback"

    def test_json_settings(self, test_db):
        settings = SettingsService()
        settings.set("enabled_plugins", ["blog", "shop"])
        settings.set("themes.config.nova", {"color": "red"})

        with get_session() as session:
            stored = session.query(Setting).filter_by(name="enabled_plugins").first().value

        assert stored == '["blog", "shop"]'
        assert settings.get("enabled_plugins") == ["blog", "shop"]
        assert settings.get("themes.config.nova") == {"color": "red"}

    def test_boolean_settings(self, test_db):
        settings = SettingsService()
        settings.set("maintenance.enabled", True)
        settings.set("register", False)

        assert settings.get("maintenance.enabled") is True
        assert settings.get("register") is False

    def test_update_settings_returns_previous_values(self, test_db):
        settings = SettingsService()
        settings.set("name", "Old")

        old = settings.update_settings({"name": "New", "description": "Hello"})

        assert old == {"name": "Old", "description": None}
        assert settings.get("name") == "New"
        assert settings.get("description") == "Hello"

    def test_none_deletes(self, test_db):
        settings = SettingsService()
        settings.set("name", "Old")
        settings.update_settings({"name": None})

        assert settings.get("name") is None
        with get_session() as session:
            assert session.query(Setting).filter_by(name="name").count() == 0

    def test_cache_refreshed_on_write(self, test_db):
        cache = CacheService()
        settings = SettingsService(cache)
        settings.set("name", "First")
        assert cache.get("settings")["name"] == "First"

        # Written behind the cache's back: not visible until the next write
        with get_session() as session:
            session.add(Setting(name="other", value="direct"))
        assert settings.get("other") is None

        settings.set("name", "Second")
        assert settings.get("other") == "direct"
        assert settings.get("name") == "Second"
