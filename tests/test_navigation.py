"""Tests for the admin navigation builder."""

import pytest

from exilon.services import CacheService, NavigationService, PluginService, SettingsService
from exilon.services.navigation import CORE_NAVIGATION, convert_admin_section, merge_navigation


@pytest.fixture
def navigation(test_db):
    return NavigationService()


def ids(entries):
    return [entry["id"] for entry in entries]


class TestConvertAdminSection:
    """Test legacy admin_section conversion."""

    def test_defaults(self):
        entry = convert_admin_section("blog", {})

        assert entry == {
            "id": "blog",
            "label": "Blog",
            "type": "section",
            "permission": "admin.settings",
            "icon": "Plugin",
            "position": 100,
            "plugin": "blog",
            "trans": False,
        }

    def test_items_get_ids_and_positions(self):
        entry = convert_admin_section("shop", {
            "label": "Shop",
            "position": 40,
            "items": [
                {"label": "Items", "href": "/admin/shop/items"},
                {"label": "Orders", "href": "/admin/shop/orders", "permission": "shop.orders"},
            ],
        })

        assert entry["position"] == 40
        assert ids(entry["items"]) == ["shop.0", "shop.1"]
        assert [item["position"] for item in entry["items"]] == [0, 10]
        assert entry["items"][1]["permission"] == "shop.orders"

    def test_null_values_use_defaults(self):
        entry = convert_admin_section("blog", {
            "label": None,
            "icon": None,
            "permission": None,
            "position": None,
            "items": [{"label": "Posts", "position": None}],
        })

        assert entry["label"] == "Blog"
        assert entry["icon"] == "Plugin"
        assert entry["permission"] == "admin.settings"
        assert entry["position"] == 100
        assert entry["items"][0]["position"] == 0

    def test_numeric_string_position(self):
        assert convert_admin_section("blog", {"position": "25"})["position"] == 25
        assert convert_admin_section("blog", {"position": "top"})["position"] == 100


class TestMerge:
    """Test merge ordering."""

    def test_sorted_by_position_with_default(self):
        merged = merge_navigation(
            [{"id": "a", "position": 10}, {"id": "b", "position": 50}],
            [{"id": "plugin-a"}, {"id": "plugin-b", "position": 20}],
        )
        assert ids(merged) == ["a", "plugin-b", "b", "plugin-a"]

    def test_ties_keep_core_then_plugin_order(self):
        merged = merge_navigation(
            [{"id": "core", "position": 30}],
            [{"id": "first", "position": 30}, {"id": "second", "position": 30}],
        )
        assert ids(merged) == ["core", "first", "second"]

    def test_null_and_string_positions(self):
        merged = merge_navigation(
            [{"id": "dashboard", "position": 10}, {"id": "users", "position": 20}],
            [
                convert_admin_section("blog", {"position": None}),
                {"id": "shop", "position": "15"},
                {"id": "vote", "position": "soon"},
            ],
        )
        assert ids(merged) == ["dashboard", "shop", "users", "blog", "vote"]


class TestNavigationService:
    """Test NavigationService.build."""

    def test_core_only(self, navigation):
        assert navigation.build() == CORE_NAVIGATION

    def test_enabled_plugins_contribute(self, navigation, make_plugin):
        make_plugin("blog", navigation={"id": "blog", "label": "Blog", "position": 25})
        make_plugin("shop", admin_section={"label": "Shop", "items": [{"label": "Items", "href": "/x"}]})
        make_plugin("vote", navigation={"id": "vote", "label": "Vote", "position": 15})
        SettingsService().set("enabled_plugins", ["shop", "blog"])

        result = navigation.build()

        assert ids(result) == ["dashboard", "users", "blog", "extensions", "shop"]
        assert result[2]["plugin"] == "blog"
        assert result[4]["items"][0]["id"] == "shop.0"

    def test_string_position_from_manifest(self, navigation, make_plugin):
        make_plugin("blog", navigation={"id": "blog", "label": "Blog", "position": "25"})
        make_plugin("shop", admin_section={"label": "Shop", "position": None})
        SettingsService().set("enabled_plugins", ["shop", "blog"])

        assert ids(navigation.build()) == ["dashboard", "users", "blog", "extensions", "shop"]

    def test_unknown_and_invalid_entries_skipped(self, navigation, make_plugin):
        make_plugin("blog", navigation={"id": "blog", "label": "Blog"})
        SettingsService().set("enabled_plugins", ["ghost", 42, "blog"])

        assert ids(navigation.get_plugin_navigation()) == ["blog"]

    def test_result_is_cached_until_cleared(self, navigation, make_plugin):
        assert ids(navigation.build()) == ["dashboard", "users", "extensions"]

        make_plugin("blog", navigation={"id": "blog", "label": "Blog"})
        SettingsService().set("enabled_plugins", ["blog"])
        assert "blog" not in ids(navigation.build())

        navigation.clear_cache()
        navigation.registry.clear_cache()
        assert ids(navigation.build())[-1] == "blog"

    def test_toggle_invalidates_navigation(self, test_db, make_plugin):
        make_plugin("blog", navigation={"id": "blog", "label": "Blog"})
        cache = CacheService()
        navigation = NavigationService(cache=cache)
        assert "blog" not in ids(navigation.build())

        PluginService(cache=cache).toggle("blog")

        assert "blog" in ids(NavigationService(cache=cache).build())

    def test_core_navigation_not_mutated(self, navigation, make_plugin):
        make_plugin("blog", navigation={"id": "blog", "label": "Blog"})
        SettingsService().set("enabled_plugins", ["blog"])

        navigation.build()[0]["label"] = "Changed"

        assert CORE_NAVIGATION[0]["label"] == "Dashboard"
