"""Admin navigation: core entries merged with those contributed by enabled plugins."""

import copy
import logging
from typing import Any, Dict, List

from exilon.config import get
from exilon.core import ExtensionRegistry
from .cache import CacheService
from .settings import SettingsService

logger = logging.getLogger(__name__)

NAVIGATION_CACHE_KEY = "admin.navigation"
DEFAULT_POSITION = 100

CORE_NAVIGATION = [
    {
        "id": "dashboard",
        "label": "Dashboard",
        "href": "/admin",
        "permission": "admin.dashboard",
        "icon": "BrandTabler",
        "position": 10,
    },
    {
        "id": "users",
        "label": "Users",
        "type": "section",
        "permission": "admin.users",
        "icon": "Users",
        "position": 20,
        "items": [
            {"id": "users.list", "label": "Users", "href": "/admin/users",
             "permission": "admin.users", "icon": "Users", "position": 10},
            {"id": "roles", "label": "Roles", "href": "/admin/roles",
             "permission": "admin.roles", "icon": "Shield", "position": 20},
            {"id": "bans", "label": "Bans", "href": "/admin/bans",
             "permission": "admin.users", "icon": "Ban", "position": 30},
        ],
    },
    {
        "id": "extensions",
        "label": "Extensions",
        "type": "section",
        "permission": "admin.settings",
        "icon": "Plug",
        "position": 30,
        "items": [
            {"id": "plugins", "label": "Plugins", "href": "/admin/plugins",
             "permission": "admin.settings", "icon": "Plug", "position": 10},
            {"id": "themes", "label": "Themes", "href": "/admin/themes",
             "permission": "admin.settings", "icon": "Palette", "position": 20},
        ],
    },
]


def _position(value: Any, default: int = DEFAULT_POSITION) -> int:
    """Numeric sort position; missing or non-numeric values get the default."""
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        try:
            return int(float(value))
        except (TypeError, ValueError, OverflowError):
            return default


def convert_admin_section(plugin_id: str, section: Dict[str, Any]) -> Dict[str, Any]:
    """Turn a legacy plugin.json 'admin_section' into a navigation entry."""
    entry = {
        "id": section.get("id") or plugin_id,
        "label": section.get("label") or plugin_id.capitalize(),
        "type": "section",
        "permission": section.get("permission") or "admin.settings",
        "icon": section.get("icon") or "Plugin",
        "position": _position(section.get("position")),
        "plugin": plugin_id,
        "trans": section.get("trans") or False,
    }

    if isinstance(section.get("items"), list):
        entry["items"] = [
            {
                "id": item.get("id") or f"{plugin_id}.{index}",
                "label": item.get("label"),
                "href": item.get("href"),
                "permission": item.get("permission") or "admin.settings",
                "icon": item.get("icon"),
                "position": _position(item.get("position"), index * 10),
                "trans": item.get("trans") or False,
            }
            for index, item in enumerate(section["items"])
            if isinstance(item, dict)
        ]

    return entry


def merge_navigation(core: List[Dict[str, Any]], plugins: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Concatenate and order by position; entries with equal positions keep their order."""
    return sorted(core + plugins, key=lambda entry: _position(entry.get("position")))


class NavigationService:
    """Builds the admin sidebar."""

    def __init__(self, registry: ExtensionRegistry = None, settings: SettingsService = None,
                 cache: CacheService = None, ttl: int = None):
        self.registry = registry or ExtensionRegistry()
        self.cache = cache or CacheService()
        self.settings = settings or SettingsService(self.cache)
        self.ttl = ttl if ttl is not None else get("navigation.cache_ttl", 3600)

    def build(self) -> List[Dict[str, Any]]:
        """The merged navigation (cached)."""
        return self.cache.remember(NAVIGATION_CACHE_KEY, self.ttl, self._build)

    def _build(self) -> List[Dict[str, Any]]:
        return merge_navigation(copy.deepcopy(CORE_NAVIGATION), self.get_plugin_navigation())

    def get_plugin_navigation(self) -> List[Dict[str, Any]]:
        """Navigation entries of enabled plugins, in enabled-list order."""
        enabled = self.settings.get("enabled_plugins", [])
        if not isinstance(enabled, list):
            return []

        navigation = []
        for plugin_id in enabled:
            if not isinstance(plugin_id, str):
                continue

            manifest = self.registry.plugin_manifest(plugin_id)
            if not manifest:
                continue

            if isinstance(manifest.get("navigation"), dict):
                entry = dict(manifest["navigation"])
                entry["plugin"] = plugin_id
                navigation.append(entry)
            elif isinstance(manifest.get("admin_section"), dict):
                navigation.append(convert_admin_section(plugin_id, manifest["admin_section"]))

        return navigation

    def clear_cache(self):
        self.cache.forget(NAVIGATION_CACHE_KEY)
        logger.info("Navigation cache cleared")
