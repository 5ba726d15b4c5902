"""
Extension manifest parsing.

Plugins ship a plugin.json and themes a theme.json at the root of their
directory. Only the id is mandatory; everything else has a default.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .exceptions import ManifestError

logger = logging.getLogger(__name__)

SLUG_PATTERN = re.compile(r"^[a-z0-9_-]+$")

MANIFEST_FILES = {
    "plugin": "plugin.json",
    "theme": "theme.json",
}


@dataclass
class ExtensionManifest:
    """
    Parsed manifest of a plugin or theme.

    Attributes:
        id: Extension slug (also its directory name once installed)
        name: Display name
        version: Version string
        type: "plugin" or "theme"
        path: Extension directory
        requires: Plugin ids a theme needs enabled
        navigation: Admin navigation entry ('navigation' or legacy 'admin_section')
        settings: Configuration schema, option key -> {type, label, default}
        raw: Raw manifest data
    """

    id: str
    name: str
    version: str
    type: str
    path: Path
    description: str = ""
    author: str = ""
    url: str = ""
    screenshot: Optional[str] = None
    requires: List[str] = field(default_factory=list)
    dependencies: Dict[str, str] = field(default_factory=dict)
    permissions: List[str] = field(default_factory=list)
    navigation: Optional[Dict[str, Any]] = None
    settings: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def migrations_path(self) -> Path:
        return self.path / "database" / "migrations"

    @property
    def has_migrations(self) -> bool:
        return self.migrations_path.is_dir() and any(self.migrations_path.glob("*.sql"))

    @property
    def has_settings(self) -> bool:
        return bool(self.settings)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "version": self.version,
            "type": self.type,
            "description": self.description,
            "author": self.author,
            "url": self.url,
            "screenshot": self.screenshot,
            "requires": self.requires,
            "dependencies": self.dependencies,
            "permissions": self.permissions,
            "path": str(self.path),
        }


def is_valid_slug(value: Any) -> bool:
    """Check an extension id: lowercase letters, digits, dashes and underscores."""
    return isinstance(value, str) and bool(SLUG_PATTERN.match(value))


def manifest_path(directory: Path, kind: str = "plugin") -> Path:
    """Location of the manifest file for an extension directory."""
    if kind not in MANIFEST_FILES:
        raise ManifestError(f"Unknown extension type: {kind}")
    return Path(directory) / MANIFEST_FILES[kind]


def read_manifest(directory: Path, kind: str = "plugin") -> Optional[Dict[str, Any]]:
    """
    Read the raw manifest of an extension.

    Returns:
        Manifest dict, or None if the file is missing or not a JSON object
    """
    path = manifest_path(directory, kind)
    if not path.is_file():
        return None

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning(f"Unreadable manifest {path}: {e}")
        return None

    return data if isinstance(data, dict) else None


def parse_manifest(directory: Path, kind: str = "plugin", require_id: bool = False) -> ExtensionManifest:
    """
    Parse an extension manifest.

    Args:
        directory: Extension directory containing plugin.json/theme.json
        kind: "plugin" or "theme"
        require_id: Refuse manifests without an explicit id (archive uploads)

    Returns:
        ExtensionManifest object

    Raises:
        ManifestError: If the file is missing, unreadable or invalid
    """
    directory = Path(directory)
    path = manifest_path(directory, kind)

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ManifestError(f"Missing {path.name} file") from e
    except json.JSONDecodeError as e:
        raise ManifestError(f"Invalid {path.name}: {e}") from e
    except OSError as e:
        raise ManifestError(f"Failed to read {path.name}: {e}") from e

    if not isinstance(data, dict):
        raise ManifestError(f"Invalid {path.name}: expected a JSON object")

    extension_id = data.get("id") or data.get("plugin_id")
    if not extension_id:
        if require_id:
            raise ManifestError(f"Invalid {path.name}: missing id")
        extension_id = directory.name

    if not is_valid_slug(extension_id):
        raise ManifestError(
            f"Invalid {kind} ID format: {extension_id}. "
            f"Use only lowercase letters, numbers, dashes, and underscores."
        )

    navigation = data.get("navigation")
    if navigation is None and isinstance(data.get("admin_section"), dict):
        navigation = data["admin_section"]

    requires = data.get("requires", [])
    if isinstance(requires, dict):
        requires = list(requires.keys())

    settings = data.get("settings", {})
    if not isinstance(settings, dict):
        raise ManifestError(f"Invalid {path.name}: 'settings' must be an object")

    return ExtensionManifest(
        id=extension_id,
        name=data.get("name") or extension_id,
        version=str(data.get("version") or "1.0.0"),
        type=kind,
        path=directory,
        description=data.get("description", ""),
        author=_author_name(data.get("author", "")),
        url=data.get("url", ""),
        screenshot=data.get("screenshot"),
        requires=list(requires),
        dependencies=data.get("dependencies", {}) or {},
        permissions=data.get("permissions", []) or [],
        navigation=navigation if isinstance(navigation, dict) else None,
        settings=settings,
        raw=data,
    )


def _author_name(author: Any) -> str:
    # Marketplace manifests use {"name": ..., "url": ...}
    if isinstance(author, dict):
        return author.get("name", "")
    return author or ""
