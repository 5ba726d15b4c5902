"""Theme activation, asset publishing, configuration and removal."""

import logging
import shutil
from typing import Any, Dict, List

from exilon.config import get, get_path
from exilon.core import (
    ExtensionError,
    ExtensionManifest,
    ExtensionNotFoundError,
    ExtensionRegistry,
    ThemeRequirementError,
)
from exilon.db import get_session, InstalledExtension
from .action_log import ActionLogService
from .backups import backup_directory
from .cache import CacheService
from .settings import SettingsService

logger = logging.getLogger(__name__)

ACTIVE_THEME_SETTING = "themes.active"
DEFAULT_THEME = "default"
PUBLISHED_ASSET_DIRECTORIES = ["css", "js", "images"]


def required_plugins(manifest: ExtensionManifest) -> List[str]:
    """
    Plugin ids a theme needs enabled.

    Entries may be bare ids or "plugin:<id>". Other prefixed entries
    (e.g. "cms:exiloncms") are not plugin requirements.
    """
    plugins = []
    for entry in manifest.requires:
        if entry.startswith("plugin:"):
            plugins.append(entry[len("plugin:"):])
        elif ":" not in entry:
            plugins.append(entry)
    return plugins


class ThemeService:
    """Service for managing installed themes."""

    def __init__(self, registry: ExtensionRegistry = None, settings: SettingsService = None,
                 cache: CacheService = None, action_log: ActionLogService = None):
        self.registry = registry or ExtensionRegistry()
        self.cache = cache or CacheService()
        self.settings = settings or SettingsService(self.cache)
        self.action_log = action_log or ActionLogService()

    def get(self, theme_id: str) -> ExtensionManifest:
        manifest = self.registry.get_theme(theme_id)
        if manifest is None:
            raise ExtensionNotFoundError(theme_id, "theme")
        return manifest

    def get_active_theme_id(self) -> str:
        theme_id = self.settings.get(ACTIVE_THEME_SETTING, DEFAULT_THEME)
        if theme_id != DEFAULT_THEME and self.registry.get_theme(theme_id) is None:
            # Active theme was removed from disk
            return DEFAULT_THEME
        return theme_id

    def get_active_theme(self) -> Dict[str, Any]:
        """The active theme, or a placeholder describing the built-in default."""
        theme_id = self.get_active_theme_id()
        if theme_id == DEFAULT_THEME:
            return {
                "id": DEFAULT_THEME,
                "name": "Default",
                "description": "Default ExilonCMS theme",
                "version": get("app.version", "1.0.0"),
            }
        return self.get(theme_id).to_dict()

    def is_active(self, theme_id: str) -> bool:
        return self.get_active_theme_id() == theme_id

    def list_themes(self) -> List[Dict[str, Any]]:
        active = self.get_active_theme_id()
        enabled = self._enabled_plugins()

        themes = []
        for manifest in self.registry.get_themes().values():
            data = manifest.to_dict()
            data["active"] = manifest.id == active
            data["missing_plugins"] = [p for p in required_plugins(manifest) if p not in enabled]
            themes.append(data)

        return sorted(themes, key=lambda t: t["name"].lower())

    def activate(self, theme_id: str) -> Dict[str, Any]:
        """
        Make a theme the active one.

        Raises:
            ExtensionNotFoundError: If the theme does not exist
            ThemeRequirementError: If a required plugin is not enabled
        """
        manifest = self.get(theme_id)

        enabled = self._enabled_plugins()
        missing = [p for p in required_plugins(manifest) if p not in enabled]
        if missing:
            raise ThemeRequirementError(
                f"Theme {theme_id} requires these plugins to be enabled: {', '.join(missing)}"
            )

        self.settings.set(ACTIVE_THEME_SETTING, theme_id)
        self.cache.clear_extension_caches()
        self.action_log.log("themes.activated", "theme", theme_id)
        logger.info(f"Theme activated: {theme_id}")

        return manifest.to_dict()

    def deactivate(self):
        """Go back to the default theme."""
        previous = self.get_active_theme_id()
        self.settings.set(ACTIVE_THEME_SETTING, DEFAULT_THEME)
        self.cache.clear_extension_caches()
        self.action_log.log("themes.deactivated", "theme", previous)
        logger.info(f"Theme deactivated: {previous}")

    def publish_assets(self, theme_id: str) -> bool:
        """
        Copy resources/{css,js,images} to public/themes/<id>.

        Returns:
            False if the theme has no resources directory
        """
        manifest = self.get(theme_id)
        resources = manifest.path / "resources"
        if not resources.is_dir():
            return False

        target = get_path("public") / "themes" / theme_id
        target.mkdir(parents=True, exist_ok=True)

        for name in PUBLISHED_ASSET_DIRECTORIES:
            source = resources / name
            if source.is_dir():
                shutil.copytree(source, target / name, dirs_exist_ok=True)

        logger.info(f"Published assets of theme {theme_id} to {target}")
        return True

    def get_config(self, theme_id: str) -> Dict[str, Any]:
        """Stored configuration of a theme merged over its schema defaults."""
        manifest = self.get(theme_id)

        values = {
            key: option.get("default")
            for key, option in manifest.settings.items()
            if isinstance(option, dict)
        }
        stored = self.settings.get(f"themes.config.{theme_id}", {})
        if isinstance(stored, dict):
            values.update(stored)

        return {"theme": manifest.to_dict(), "config": manifest.settings, "settings": values}

    def update_config(self, theme_id: str, values: Dict[str, Any]) -> Dict[str, Any]:
        manifest = self.get(theme_id)

        stored = self.settings.get(f"themes.config.{theme_id}", {})
        if not isinstance(stored, dict):
            stored = {}
        saved = {k: v for k, v in values.items() if k in manifest.settings}
        stored.update(saved)

        self.settings.set(f"themes.config.{theme_id}", stored)
        self.action_log.log("themes.configured", "theme", theme_id, {"keys": sorted(saved)})
        return self.get_config(theme_id)

    def uninstall(self, theme_id: str, backup: bool = False) -> Dict[str, Any]:
        """
        Delete a theme directory, its published assets and its record.

        Raises:
            ExtensionError: If the theme is the active one
        """
        manifest = self.get(theme_id)
        if self.is_active(theme_id):
            raise ExtensionError(f"Cannot delete the active theme: {theme_id}")

        backup_path = None
        if backup:
            backup_path = backup_directory(manifest.path, "theme", theme_id, get_path("storage"))

        shutil.rmtree(manifest.path)

        published = get_path("public") / "themes" / theme_id
        if published.is_dir():
            shutil.rmtree(published)

        with get_session() as session:
            session.query(InstalledExtension).filter_by(
                plugin_id=theme_id, type=InstalledExtension.TYPE_THEME
            ).delete()

        self.settings.delete(f"themes.config.{theme_id}")
        self.registry.clear_cache()
        self.cache.clear_extension_caches()
        self.action_log.log("themes.deleted", "theme", theme_id)
        logger.info(f"Theme deleted: {theme_id}")

        return {
            "id": theme_id,
            "name": manifest.name,
            "backup": str(backup_path) if backup_path else None,
        }

    def _enabled_plugins(self) -> List[str]:
        value = self.settings.get("enabled_plugins", [])
        return [p for p in value if isinstance(p, str)] if isinstance(value, list) else []
