"""Shared test fixtures for the ExilonCMS extension backend."""

import json
import os
import sys
import zipfile

import pytest
import yaml

# Add parent directory to path so we can import exilon modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from exilon.config import load_config
from exilon.db import dispose_engine, init_db

TEST_CONFIG = {
    "app": {"name": "Test Site", "version": "1.0.0", "url": "http://localhost:8000"},
    "database": {"path": "data/test.db"},
    "paths": {"plugins": "plugins", "themes": "themes", "public": "public", "storage": "storage"},
    "marketplace": {"url": "https://marketplace.test", "timeout": 10},
    "github": {"enabled": True, "repository": "Exilon-Studios/ExilonCMS", "token": None},
    "updates": {"cache_ttl": 3600},
    "navigation": {"cache_ttl": 3600},
    "installer": {"max_upload_size": 10485760},
    "discord": {"webhook_url": None},
}


@pytest.fixture
def project_root(tmp_path):
    """A temporary project directory with config/config.yaml loaded."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    config_path = config_dir / "config.yaml"
    config_path.write_text(yaml.safe_dump(TEST_CONFIG))

    load_config(str(config_path))

    for name in ("plugins", "themes", "public", "storage"):
        (tmp_path / name).mkdir()

    return tmp_path


@pytest.fixture
def test_db(project_root):
    """Create a temporary test database."""
    db_path = project_root / "data" / "test.db"
    init_db(str(db_path))

    yield str(db_path)

    # Cleanup
    dispose_engine()


@pytest.fixture
def make_plugin(project_root):
    """Factory writing a plugin directory with its plugin.json (and optional migrations)."""
    def _make(plugin_id, migrations=None, directory=None, **manifest):
        path = project_root / "plugins" / (directory or plugin_id)
        path.mkdir(parents=True)

        data = {"id": plugin_id, "name": plugin_id.capitalize(), "version": "1.0.0"}
        data.update(manifest)
        (path / "plugin.json").write_text(json.dumps(data))

        if migrations:
            migrations_dir = path / "database" / "migrations"
            migrations_dir.mkdir(parents=True)
            for name, sql in migrations.items():
                (migrations_dir / name).write_text(sql)

        return path

    return _make


@pytest.fixture
def make_theme(project_root):
    """Factory writing a theme directory with its theme.json (and optional resources)."""
    def _make(theme_id, resources=None, **manifest):
        path = project_root / "themes" / theme_id
        path.mkdir(parents=True)

        data = {"id": theme_id, "name": theme_id.capitalize(), "version": "1.0.0"}
        data.update(manifest)
        (path / "theme.json").write_text(json.dumps(data))

        for relative, content in (resources or {}).items():
            file_path = path / "resources" / relative
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_text(content)

        return path

    return _make


@pytest.fixture
def make_zip(tmp_path):
    """Factory writing a ZIP archive from a {member name: content} mapping."""
    def _make(files, name="extension.zip"):
        path = tmp_path / name
        with zipfile.ZipFile(path, "w") as zf:
            for member, content in files.items():
                zf.writestr(member, content)
        return path

    return _make
