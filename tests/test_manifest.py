"""Tests for manifest parsing and version comparison."""

import json

import pytest

from exilon.core import ManifestError, compare_versions, is_newer, normalize_version
from exilon.core.manifest import is_valid_slug, parse_manifest, read_manifest


def write_manifest(directory, data, name="plugin.json"):
    directory.mkdir(parents=True, exist_ok=True)
    (directory / name).write_text(data if isinstance(data, str) else json.dumps(data))
    return directory


class TestParseManifest:
    """Test plugin.json / theme.json parsing."""

    def test_defaults(self, tmp_path):
        directory = write_manifest(tmp_path / "blog", {"id": "blog"})

        manifest = parse_manifest(directory)

        assert manifest.id == "blog"
        assert manifest.name == "blog"
        assert manifest.version == "1.0.0"
        assert manifest.description == ""
        assert manifest.type == "plugin"
        assert manifest.path == directory
        assert manifest.has_migrations is False
        assert manifest.has_settings is False

    def test_plugin_id_key(self, tmp_path):
        directory = write_manifest(tmp_path / "shop", {"plugin_id": "shop", "name": "Shop"})
        assert parse_manifest(directory).id == "shop"

    def test_directory_name_fallback(self, tmp_path):
        directory = write_manifest(tmp_path / "vote", {"name": "Vote"})
        assert parse_manifest(directory).id == "vote"

    def test_explicit_id_required_for_uploads(self, tmp_path):
        directory = write_manifest(tmp_path / "vote", {"name": "Vote"})

        with pytest.raises(ManifestError, match="missing id"):
            parse_manifest(directory, require_id=True)

    @pytest.mark.parametrize("bad_id", ["Blog", "my plugin", "../etc", "blög"])
    def test_invalid_id_rejected(self, tmp_path, bad_id):
        directory = write_manifest(tmp_path / "x", {"id": bad_id})

        with pytest.raises(ManifestError, match="Invalid plugin ID format"):
            parse_manifest(directory)

    def test_invalid_json(self, tmp_path):
        directory = write_manifest(tmp_path / "broken", "{not json")

        with pytest.raises(ManifestError, match="Invalid plugin.json"):
            parse_manifest(directory)

    def test_non_object_document(self, tmp_path):
        directory = write_manifest(tmp_path / "list", "[1, 2]")

        with pytest.raises(ManifestError):
            parse_manifest(directory)

    def test_missing_file(self, tmp_path):
        (tmp_path / "empty").mkdir()

        with pytest.raises(ManifestError, match="Missing plugin.json file"):
            parse_manifest(tmp_path / "empty")

    def test_theme_manifest(self, tmp_path):
        directory = write_manifest(
            tmp_path / "nova",
            {"id": "nova", "name": "Nova", "requires": {"plugin:shop": "^1.0"}},
            name="theme.json",
        )

        manifest = parse_manifest(directory, "theme")

        assert manifest.type == "theme"
        assert manifest.requires == ["plugin:shop"]

    def test_legacy_admin_section_is_navigation(self, tmp_path):
        section = {"label": "Blog", "items": [{"label": "Posts", "href": "/admin/posts"}]}
        directory = write_manifest(tmp_path / "blog", {"id": "blog", "admin_section": section})

        assert parse_manifest(directory).navigation == section

    def test_author_object(self, tmp_path):
        directory = write_manifest(tmp_path / "blog", {"id": "blog", "author": {"name": "Exilon", "url": "x"}})
        assert parse_manifest(directory).author == "Exilon"

    def test_settings_schema(self, tmp_path):
        settings = {"per_page": {"type": "number", "default": 10}}
        directory = write_manifest(tmp_path / "blog", {"id": "blog", "settings": settings})

        manifest = parse_manifest(directory)

        assert manifest.has_settings is True
        assert manifest.settings == settings

    def test_invalid_settings_schema(self, tmp_path):
        directory = write_manifest(tmp_path / "blog", {"id": "blog", "settings": ["per_page"]})

        with pytest.raises(ManifestError):
            parse_manifest(directory)

    def test_has_migrations(self, tmp_path):
        directory = write_manifest(tmp_path / "blog", {"id": "blog"})
        migrations = directory / "database" / "migrations"
        migrations.mkdir(parents=True)
        (migrations / "001_posts.sql").write_text("CREATE TABLE posts (id INTEGER);")

        assert parse_manifest(directory).has_migrations is True


class TestReadManifest:
    """Test raw manifest reading."""

    def test_missing_returns_none(self, tmp_path):
        assert read_manifest(tmp_path) is None

    def test_invalid_returns_none(self, tmp_path):
        write_manifest(tmp_path, "{oops")
        assert read_manifest(tmp_path) is None

    def test_returns_raw_dict(self, tmp_path):
        write_manifest(tmp_path, {"id": "blog", "custom": True})
        assert read_manifest(tmp_path) == {"id": "blog", "custom": True}


def test_is_valid_slug():
    assert is_valid_slug("shop-v2_beta")
    assert not is_valid_slug("")
    assert not is_valid_slug(None)
    assert not is_valid_slug("Shop")


class TestVersions:
    """Test version comparison."""

    def test_normalize(self):
        assert normalize_version(" v1.2.0 ") == "1.2.0"
        assert normalize_version("V2") == "2"

    @pytest.mark.parametrize("a,b,expected", [
        ("1.0.0", "1.0.0", 0),
        ("1.0.1", "1.0.0", 1),
        ("1.2", "1.10", -1),
        ("1.0", "1.0.0", 0),
        ("v2.0.0", "1.9.9", 1),
        ("1.0.0-beta", "1.0.0", -1),
        ("1.0.0-rc.1", "1.0.0-beta", 1),
        ("1.0.0", "1.0.0-rc.1", 1),
        ("1.0.0-rc.10", "1.0.0-rc.2", 1),
        ("1.0.0-beta.2", "1.0.0-beta.11", -1),
        ("1.0.0-rc.1", "1.0.0-rc.1.1", -1),
    ])
    def test_compare(self, a, b, expected):
        assert compare_versions(a, b) == expected

    def test_is_newer(self):
        assert is_newer("1.1.0", "1.0.0")
        assert not is_newer("1.0.0", "1.0.0")
        assert not is_newer("0.9.0", "1.0.0")
