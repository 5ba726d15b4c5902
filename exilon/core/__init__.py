"""Extension lifecycle core: manifests, discovery and versions."""

from .exceptions import (
    ExtensionError,
    ExtensionNotFoundError,
    ManifestError,
    InvalidArchiveError,
    MigrationError,
    ThemeRequirementError,
    MarketplaceError,
    BackupError,
)
from .manifest import ExtensionManifest, parse_manifest, read_manifest, is_valid_slug
from .registry import ExtensionRegistry
from .versions import compare_versions, is_newer, normalize_version

__all__ = [
    "ExtensionError",
    "ExtensionNotFoundError",
    "ManifestError",
    "InvalidArchiveError",
    "MigrationError",
    "ThemeRequirementError",
    "MarketplaceError",
    "BackupError",
    "ExtensionManifest",
    "parse_manifest",
    "read_manifest",
    "is_valid_slug",
    "ExtensionRegistry",
    "compare_versions",
    "is_newer",
    "normalize_version",
]
