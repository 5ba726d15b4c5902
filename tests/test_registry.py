"""Tests for extension discovery."""

import json

from exilon.core import ExtensionRegistry


class TestDiscovery:
    """Test scanning the plugins and themes directories."""

    def test_discovers_plugins(self, project_root, make_plugin):
        make_plugin("blog")
        make_plugin("shop", version="2.1.0")

        registry = ExtensionRegistry()

        assert sorted(registry.get_plugins()) == ["blog", "shop"]
        assert registry.get_plugin("shop").version == "2.1.0"
        assert registry.has_plugin("blog")
        assert not registry.has_plugin("vote")

    def test_skips_hidden_temp_and_unmanaged_directories(self, project_root, make_plugin):
        make_plugin("blog")
        make_plugin("hidden", directory=".hidden")
        make_plugin("private", directory="_private")
        make_plugin("temp", directory="temp")
        (project_root / "plugins" / "no-manifest").mkdir()
        (project_root / "plugins" / "README.md").write_text("not a plugin")

        assert list(ExtensionRegistry().get_plugins()) == ["blog"]

    def test_invalid_manifest_is_skipped(self, project_root, make_plugin):
        make_plugin("blog")
        broken = project_root / "plugins" / "broken"
        broken.mkdir()
        (broken / "plugin.json").write_text("{broken")

        assert list(ExtensionRegistry().get_plugins()) == ["blog"]

    def test_missing_directory(self, tmp_path):
        registry = ExtensionRegistry(plugins_path=tmp_path / "nope", themes_path=tmp_path / "nope")
        assert registry.get_plugins() == {}
        assert registry.get_themes() == {}

    def test_memoized_until_cleared(self, project_root, make_plugin):
        make_plugin("blog")
        registry = ExtensionRegistry()
        assert list(registry.get_plugins()) == ["blog"]

        make_plugin("shop")
        assert list(registry.get_plugins()) == ["blog"]

        registry.clear_cache()
        assert sorted(registry.get_plugins()) == ["blog", "shop"]

    def test_themes(self, project_root, make_theme):
        make_theme("nova", name="Nova")

        registry = ExtensionRegistry()

        assert registry.get_theme("nova").name == "Nova"
        assert registry.get("theme", "nova").type == "theme"
        assert [m.id for m in registry.all("theme")] == ["nova"]

    def test_plugin_manifest_returns_raw_data(self, project_root, make_plugin):
        path = make_plugin("blog", admin_section={"label": "Blog"})

        raw = ExtensionRegistry().plugin_manifest("blog")

        assert raw == json.loads((path / "plugin.json").read_text())
        assert ExtensionRegistry().plugin_manifest("missing") is None
