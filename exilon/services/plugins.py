"""Plugin lifecycle: enable/disable toggle, configuration and uninstall."""

import json
import logging
import shutil
from typing import Any, Dict, List

from exilon.config import get_path
from exilon.core import ExtensionError, ExtensionManifest, ExtensionNotFoundError, ExtensionRegistry
from exilon.db import get_session, InstalledExtension
from .action_log import ActionLogService
from .backups import backup_directory
from .cache import CacheService
from .migrations import MigrationRunner
from .settings import SettingsService

logger = logging.getLogger(__name__)

ENABLED_PLUGINS_SETTING = "enabled_plugins"

# Option field types from plugin.json "settings"
BOOLEAN_FIELDS = ("checkbox", "boolean", "toggle")
INTEGER_FIELDS = ("number", "integer")
FLOAT_FIELDS = ("float", "decimal")
JSON_FIELDS = ("array", "json", "multiselect", "list")


def cast_option_value(field_type: str, value: Any) -> Any:
    """
    Convert a submitted or stored option value to its field type.

    Raises:
        ValueError: If the value cannot be converted
    """
    if value is None:
        return None

    if field_type in BOOLEAN_FIELDS:
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)

    if field_type in INTEGER_FIELDS:
        if isinstance(value, str) and not value.strip():
            return None
        return int(value)

    if field_type in FLOAT_FIELDS:
        if isinstance(value, str) and not value.strip():
            return None
        return float(value)

    if field_type in JSON_FIELDS and isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            return value

    return value


class PluginService:
    """Service for managing installed plugins."""

    def __init__(self, registry: ExtensionRegistry = None, settings: SettingsService = None,
                 cache: CacheService = None, migrations: MigrationRunner = None,
                 action_log: ActionLogService = None):
        self.registry = registry or ExtensionRegistry()
        self.cache = cache or CacheService()
        self.settings = settings or SettingsService(self.cache)
        self.migrations = migrations or MigrationRunner()
        self.action_log = action_log or ActionLogService()

    def get(self, plugin_id: str) -> ExtensionManifest:
        """
        Get a plugin manifest.

        Raises:
            ExtensionNotFoundError: If no plugin has this id
        """
        manifest = self.registry.get_plugin(plugin_id)
        if manifest is None:
            raise ExtensionNotFoundError(plugin_id, "plugin")
        return manifest

    def list_plugins(self) -> List[Dict[str, Any]]:
        """All plugins on disk with their enabled status, sorted by name."""
        enabled = set(self.get_enabled_plugins())

        plugins = [
            {
                "id": m.id,
                "name": m.name,
                "version": m.version,
                "description": m.description,
                "author": m.author,
                "enabled": m.id in enabled,
                "has_migrations": m.has_migrations,
                "has_settings": m.has_settings,
                "has_navigation": m.navigation is not None,
            }
            for m in self.registry.get_plugins().values()
        ]
        return sorted(plugins, key=lambda p: p["name"].lower())

    def get_enabled_plugins(self) -> List[str]:
        """Ids in the enabled list, ignoring anything that is not a non-empty string."""
        value = self.settings.get(ENABLED_PLUGINS_SETTING, [])
        if not isinstance(value, list):
            return []
        return [p for p in value if isinstance(p, str) and p]

    def save_enabled_plugins(self, plugins: List[str]):
        """Persist the enabled list, de-duplicated in first-seen order."""
        unique = list(dict.fromkeys(plugins))
        self.settings.set(ENABLED_PLUGINS_SETTING, unique)

    def is_enabled(self, plugin_id: str) -> bool:
        return plugin_id in self.get_enabled_plugins()

    def toggle(self, plugin_id: str) -> bool:
        """
        Enable a disabled plugin or disable an enabled one.

        Args:
            plugin_id: Plugin id

        Returns:
            True if the plugin is now enabled

        Raises:
            ExtensionNotFoundError: If the plugin does not exist
            MigrationError: If enabling failed while migrating
        """
        manifest = self.get(plugin_id)

        if plugin_id in self.get_enabled_plugins():
            self._disable(manifest)
            return False

        self._enable(manifest)
        return True

    def enable(self, plugin_id: str) -> bool:
        """Enable a plugin. Returns False if it was already enabled."""
        manifest = self.get(plugin_id)
        if self.is_enabled(plugin_id):
            return False
        self._enable(manifest)
        return True

    def disable(self, plugin_id: str) -> bool:
        """Disable a plugin. Returns False if it was not enabled."""
        manifest = self.get(plugin_id)
        if not self.is_enabled(plugin_id):
            return False
        self._disable(manifest)
        return True

    def _enable(self, manifest: ExtensionManifest):
        # Migrations first: a failed migration leaves the plugin disabled
        applied = self.migrations.run(manifest)

        enabled = self.get_enabled_plugins()
        enabled.append(manifest.id)
        self.save_enabled_plugins(enabled)
        self._sync_record(manifest.id, True)

        self.clear_caches()
        self.action_log.log("plugins.enabled", "plugin", manifest.id, {"migrations": applied})
        logger.info(f"Plugin enabled: {manifest.id}")

    def _disable(self, manifest: ExtensionManifest):
        enabled = [p for p in self.get_enabled_plugins() if p != manifest.id]
        self.save_enabled_plugins(enabled)
        self._sync_record(manifest.id, False)

        self.clear_caches()
        self.action_log.log("plugins.disabled", "plugin", manifest.id)
        logger.info(f"Plugin disabled: {manifest.id}")

    def _sync_record(self, plugin_id: str, enabled: bool):
        """Mirror the enabled flag onto the installed_extensions row, if there is one."""
        with get_session() as session:
            record = (
                session.query(InstalledExtension)
                .filter_by(plugin_id=plugin_id, type=InstalledExtension.TYPE_PLUGIN)
                .first()
            )
            if record:
                record.is_enabled = enabled

    def get_config(self, plugin_id: str) -> Dict[str, Any]:
        """
        Get a plugin's configuration schema and current values.

        Values are stored as settings named "<plugin>.<key>" and fall back
        to the schema defaults. Both are cast to the option's field type.
        """
        manifest = self.get(plugin_id)

        values = {}
        for key, option in manifest.settings.items():
            option = option if isinstance(option, dict) else {}
            default = option.get("default")
            stored = self.settings.get(f"{plugin_id}.{key}")

            try:
                values[key] = cast_option_value(option.get("type"), default if stored is None else stored)
            except (TypeError, ValueError):
                logger.warning(f"Option {key} of plugin {plugin_id} does not match its type")
                values[key] = default

        return {
            "plugin": manifest.to_dict(),
            "config": manifest.settings,
            "settings": values,
        }

    def update_config(self, plugin_id: str, values: Dict[str, Any]) -> Dict[str, Any]:
        """
        Save configuration values, ignoring keys the plugin does not declare.

        Returns:
            The updated configuration (same shape as get_config)

        Raises:
            ExtensionError: If a value cannot be converted to its field type
        """
        manifest = self.get(plugin_id)

        updates = {}
        for key, value in values.items():
            if key not in manifest.settings:
                logger.debug(f"Ignoring unknown option {key} for plugin {plugin_id}")
                continue

            option = manifest.settings[key] if isinstance(manifest.settings[key], dict) else {}
            try:
                updates[f"{plugin_id}.{key}"] = cast_option_value(option.get("type"), value)
            except (TypeError, ValueError) as e:
                raise ExtensionError(f"Invalid value for option {key}: {value!r}") from e

        if updates:
            self.settings.update_settings(updates)
            self.action_log.log("plugins.configured", "plugin", plugin_id, {"keys": sorted(updates)})

        return self.get_config(plugin_id)

    def clear_config(self, plugin_id: str) -> int:
        """
        Delete every stored "<plugin>.*" setting so the defaults apply again.

        Returns:
            Number of settings removed
        """
        self.get(plugin_id)
        return self._delete_settings(plugin_id)

    def _delete_settings(self, plugin_id: str) -> int:
        prefix = f"{plugin_id}."
        names = [name for name in self.settings.all() if name.startswith(prefix)]
        if names:
            self.settings.update_settings({name: None for name in names})
            self.action_log.log("plugins.config_cleared", "plugin", plugin_id, {"keys": sorted(names)})
        return len(names)

    def uninstall(self, plugin_id: str, backup: bool = False) -> Dict[str, Any]:
        """
        Remove a plugin: disable it, optionally back it up, delete its files and record.

        Returns:
            Dict with the removed plugin's name and the backup path (if any)
        """
        manifest = self.get(plugin_id)

        enabled = [p for p in self.get_enabled_plugins() if p != plugin_id]
        self.save_enabled_plugins(enabled)

        backup_path = None
        if backup:
            backup_path = backup_directory(manifest.path, "plugin", plugin_id, get_path("storage"))

        shutil.rmtree(manifest.path)
        self._delete_settings(plugin_id)

        with get_session() as session:
            session.query(InstalledExtension).filter_by(
                plugin_id=plugin_id, type=InstalledExtension.TYPE_PLUGIN
            ).delete()

        self.clear_caches()
        self.action_log.log("plugins.deleted", "plugin", plugin_id,
                            {"backup": str(backup_path) if backup_path else None})
        logger.info(f"Plugin deleted: {plugin_id}")

        return {
            "id": plugin_id,
            "name": manifest.name,
            "backup": str(backup_path) if backup_path else None,
        }

    def clear_caches(self):
        """Force rediscovery and drop every cache that depends on the plugin set."""
        self.registry.clear_cache()
        self.cache.clear_extension_caches()
