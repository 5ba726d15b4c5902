"""Extension registry: discovers plugins and themes from their manifests on disk."""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Any

from exilon.config import get_path
from .exceptions import ExtensionError
from .manifest import ExtensionManifest, manifest_path, parse_manifest

logger = logging.getLogger(__name__)

SKIPPED_DIRECTORIES = {"temp", "__MACOSX"}


class ExtensionRegistry:
    """Registry of the plugins and themes present on disk."""

    def __init__(self, plugins_path: Path = None, themes_path: Path = None):
        """
        Initialize the registry.

        Args:
            plugins_path: Directory holding one sub-directory per plugin
            themes_path: Directory holding one sub-directory per theme
        """
        self.plugins_path = Path(plugins_path) if plugins_path else get_path("plugins")
        self.themes_path = Path(themes_path) if themes_path else get_path("themes")
        self._plugins: Optional[Dict[str, ExtensionManifest]] = None
        self._themes: Optional[Dict[str, ExtensionManifest]] = None

    def path_for(self, kind: str) -> Path:
        """Base directory for an extension type."""
        if kind == "plugin":
            return self.plugins_path
        if kind == "theme":
            return self.themes_path
        raise ExtensionError(f"Unknown extension type: {kind}")

    def discover(self, kind: str) -> Dict[str, ExtensionManifest]:
        """
        Scan the extension directory for a type.

        Args:
            kind: "plugin" or "theme"

        Returns:
            Dict mapping extension id to its manifest
        """
        base = self.path_for(kind)
        found: Dict[str, ExtensionManifest] = {}

        if not base.is_dir():
            logger.debug(f"{kind.capitalize()} directory not found: {base}")
            return found

        for directory in sorted(base.iterdir()):
            if not directory.is_dir():
                continue
            if directory.name.startswith((".", "_")) or directory.name in SKIPPED_DIRECTORIES:
                continue
            if not manifest_path(directory, kind).is_file():
                continue

            try:
                manifest = parse_manifest(directory, kind)
            except ExtensionError as e:
                # Log error but continue discovery
                logger.warning(f"Failed to parse manifest for {directory.name}: {e}")
                continue

            if manifest.id in found:
                logger.warning(f"Duplicate {kind} id '{manifest.id}' in {directory}, ignoring")
                continue

            found[manifest.id] = manifest

        if found:
            logger.info(f"Discovered {len(found)} {kind}(s): {', '.join(found)}")
        return found

    def get_plugins(self) -> Dict[str, ExtensionManifest]:
        """Get all discovered plugins."""
        if self._plugins is None:
            self._plugins = self.discover("plugin")
        return self._plugins

    def get_plugin(self, plugin_id: str) -> Optional[ExtensionManifest]:
        """Get a plugin manifest by id."""
        return self.get_plugins().get(plugin_id)

    def has_plugin(self, plugin_id: str) -> bool:
        return plugin_id in self.get_plugins()

    def plugin_manifest(self, plugin_id: str) -> Optional[Dict[str, Any]]:
        """Raw plugin.json of a plugin, or None."""
        manifest = self.get_plugin(plugin_id)
        return manifest.raw if manifest else None

    def get_themes(self) -> Dict[str, ExtensionManifest]:
        """Get all discovered themes."""
        if self._themes is None:
            self._themes = self.discover("theme")
        return self._themes

    def get_theme(self, theme_id: str) -> Optional[ExtensionManifest]:
        """Get a theme manifest by id."""
        return self.get_themes().get(theme_id)

    def get(self, kind: str, extension_id: str) -> Optional[ExtensionManifest]:
        if kind == "theme":
            return self.get_theme(extension_id)
        return self.get_plugin(extension_id)

    def all(self, kind: str) -> List[ExtensionManifest]:
        if kind == "theme":
            return list(self.get_themes().values())
        return list(self.get_plugins().values())

    def clear_cache(self):
        """Forget discovered extensions so the next lookup rescans the disk."""
        self._plugins = None
        self._themes = None
