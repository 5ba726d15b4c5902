"""Tests for installing plugins and themes from ZIP archives."""

import json

import pytest

from exilon.core import InvalidArchiveError
from exilon.db import get_session, InstalledExtension
from exilon.services import ExtensionInstaller, PluginService


def manifest(extension_id, **extra):
    data = {"id": extension_id, "name": extension_id.capitalize(), "version": "1.0.0"}
    data.update(extra)
    return json.dumps(data)


@pytest.fixture
def installer(test_db):
    return ExtensionInstaller()


def leftovers(project_root):
    temp = project_root / "storage" / "temp"
    return list(temp.iterdir()) if temp.exists() else []


class TestInstallArchive:
    """Test install_archive."""

    def test_install_plugin_from_root(self, installer, make_zip, project_root):
        archive = make_zip({"plugin.json": manifest("blog"), "src/routes.php": "<?php"})

        result = installer.install_archive(archive)

        installed = project_root / "plugins" / "blog"
        assert (installed / "plugin.json").is_file()
        assert (installed / "src" / "routes.php").is_file()
        assert result["extension"]["id"] == "blog"
        assert result["enabled"] is True
        assert PluginService().is_enabled("blog")
        assert leftovers(project_root) == []

    def test_install_from_single_top_level_directory(self, installer, make_zip, project_root):
        archive = make_zip({
            "blog-main/plugin.json": manifest("blog"),
            "blog-main/README.md": "docs",
            "__MACOSX/blog-main/._plugin.json": "junk",
        })

        installer.install_archive(archive)

        assert (project_root / "plugins" / "blog" / "README.md").is_file()
        assert not (project_root / "plugins" / "blog-main").exists()

    def test_records_installed_extension(self, installer, make_zip):
        archive = make_zip({"plugin.json": manifest("blog", version="1.2.0")})

        installer.install_archive(archive, source="upload")

        with get_session() as session:
            record = session.query(InstalledExtension).filter_by(plugin_id="blog").one()
            assert record.version == "1.2.0"
            assert record.source == "upload"
            assert record.type == "plugin"
            assert record.is_enabled is True

    def test_missing_manifest_rejected_without_leftovers(self, installer, make_zip, project_root):
        archive = make_zip({"readme.txt": "no manifest here"})

        with pytest.raises(InvalidArchiveError, match="Missing plugin.json file"):
            installer.install_archive(archive)

        assert list((project_root / "plugins").iterdir()) == []
        assert leftovers(project_root) == []

    def test_manifest_without_id_rejected(self, installer, make_zip, project_root):
        archive = make_zip({"blog/plugin.json": json.dumps({"name": "Blog"})})

        with pytest.raises(InvalidArchiveError, match="missing id"):
            installer.install_archive(archive)

        assert list((project_root / "plugins").iterdir()) == []

    def test_invalid_id_rejected(self, installer, make_zip):
        archive = make_zip({"plugin.json": manifest("Bad Id")})

        with pytest.raises(InvalidArchiveError, match="Invalid plugin ID format"):
            installer.install_archive(archive)

    def test_path_traversal_rejected(self, installer, make_zip, project_root):
        archive = make_zip({"plugin.json": manifest("blog"), "../../evil.txt": "x"})

        with pytest.raises(InvalidArchiveError, match="Unsafe path"):
            installer.install_archive(archive)

        assert not (project_root / "evil.txt").exists()
        assert leftovers(project_root) == []

    def test_not_a_zip(self, installer, tmp_path):
        archive = tmp_path / "plugin.zip"
        archive.write_text("definitely not a zip")

        with pytest.raises(InvalidArchiveError, match="not a valid ZIP"):
            installer.install_archive(archive)

    def test_too_large(self, installer, make_zip):
        archive = make_zip({"plugin.json": manifest("blog")})
        installer.max_upload_size = 10

        with pytest.raises(InvalidArchiveError, match="too large"):
            installer.install_archive(archive)

    def test_reinstall_backs_up_previous_version(self, installer, make_zip, project_root):
        installer.install_archive(make_zip({"plugin.json": manifest("blog", version="1.0.0")}, "v1.zip"))
        result = installer.install_archive(make_zip({"plugin.json": manifest("blog", version="2.0.0")}, "v2.zip"))

        assert result["backup"] is not None
        assert result["extension"]["version"] == "2.0.0"

        backups = installer.list_backups("plugin")
        assert len(backups) == 1
        assert backups[0]["name"].startswith("blog_")
        backed_up = json.loads((project_root / "storage" / "backups" / "plugins" / backups[0]["name"]
                                / "plugin.json").read_text())
        assert backed_up["version"] == "1.0.0"

        with get_session() as session:
            assert session.query(InstalledExtension).filter_by(plugin_id="blog").one().version == "2.0.0"

    def test_reinstall_runs_new_migrations(self, installer, make_zip, project_root):
        installer.install_archive(make_zip({
            "plugin.json": manifest("blog"),
            "database/migrations/001_posts.sql": "CREATE TABLE blog_posts (id INTEGER PRIMARY KEY);",
        }, "v1.zip"))
        installer.install_archive(make_zip({
            "plugin.json": manifest("blog", version="1.1.0"),
            "database/migrations/001_posts.sql": "CREATE TABLE blog_posts (id INTEGER PRIMARY KEY);",
            "database/migrations/002_tags.sql": "CREATE TABLE blog_tags (id INTEGER PRIMARY KEY);",
        }, "v2.zip"))

        assert installer.plugins.migrations.applied("blog") == ["001_posts.sql", "002_tags.sql"]

    def test_auto_enable_disabled(self, installer, make_zip):
        result = installer.install_archive(make_zip({"plugin.json": manifest("blog")}), auto_enable=False)

        assert result["enabled"] is False
        assert not PluginService().is_enabled("blog")

    def test_install_theme(self, installer, make_zip, project_root):
        archive = make_zip({"nova/theme.json": manifest("nova"), "nova/resources/css/app.css": "body{}"})

        result = installer.install_archive(archive, kind="theme")

        assert (project_root / "themes" / "nova" / "resources" / "css" / "app.css").is_file()
        assert result["enabled"] is False

    def test_theme_archive_needs_theme_json(self, installer, make_zip):
        archive = make_zip({"plugin.json": manifest("nova")})

        with pytest.raises(InvalidArchiveError, match="Missing theme.json file"):
            installer.install_archive(archive, kind="theme")
