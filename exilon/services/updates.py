"""Update checks for installed plugins and themes against the marketplace."""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

import requests

from exilon.config import get
from exilon.core import ExtensionRegistry, is_newer, normalize_version
from exilon.db import get_session, InstalledExtension
from .cache import CacheService

logger = logging.getLogger(__name__)

CACHE_PREFIX = "extension_updates_"
DEFAULT_MARKETPLACE_URL = "https://marketplace.exiloncms.fr"


class ExtensionUpdateService:
    """Compares installed extension versions with the marketplace catalog."""

    def __init__(self, marketplace_url: str = None, ttl: int = None,
                 registry: ExtensionRegistry = None, cache: CacheService = None):
        """
        Initialize the update service.

        Args:
            marketplace_url: Marketplace base URL (defaults to marketplace.url)
            ttl: Seconds the aggregated result stays cached (defaults to updates.cache_ttl)
        """
        self.marketplace_url = (marketplace_url or get("marketplace.url", DEFAULT_MARKETPLACE_URL)).rstrip("/")
        self.ttl = ttl if ttl is not None else get("updates.cache_ttl", 3600)
        self.timeout = get("marketplace.timeout", 10)
        self.registry = registry or ExtensionRegistry()
        self.cache = cache or CacheService()

    def check_all_updates(self, force: bool = False) -> Dict[str, Dict[str, Any]]:
        return {
            "plugins": self.check_plugin_updates(force),
            "themes": self.check_theme_updates(force),
        }

    def check_plugin_updates(self, force: bool = False) -> Dict[str, Any]:
        """Available plugin updates keyed by plugin id."""
        return self._check("plugin", force)

    def check_theme_updates(self, force: bool = False) -> Dict[str, Any]:
        """Available theme updates keyed by theme id."""
        return self._check("theme", force)

    def get_updates_count(self, force: bool = False) -> int:
        updates = self.check_all_updates(force)
        return len(updates["plugins"]) + len(updates["themes"])

    def clear_cache(self):
        self.cache.forget(f"{CACHE_PREFIX}plugins", f"{CACHE_PREFIX}themes")

    def _check(self, kind: str, force: bool) -> Dict[str, Any]:
        cache_key = f"{CACHE_PREFIX}{kind}s"

        if not force:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return cached

        try:
            updates = {}
            for manifest in self.registry.all(kind):
                info = self.check_single_update(kind, manifest.id, manifest.version)
                if info:
                    updates[manifest.id] = info

            self.cache.put(cache_key, updates, self.ttl)
            return updates
        except Exception as e:
            logger.error(f"Failed to check {kind} updates: {e}")
            return {}

    def check_single_update(self, kind: str, extension_id: str,
                            current_version: str) -> Optional[Dict[str, Any]]:
        """
        Ask the marketplace for the latest version of one extension.

        Returns:
            Update info if a newer version exists, None otherwise (including on errors)
        """
        url = f"{self.marketplace_url}/api/v1/{kind}s/{extension_id}"

        try:
            response = requests.get(url, timeout=self.timeout)
            if response.status_code != 200:
                return None

            data = response.json()
            if not isinstance(data, dict) or not data.get("version"):
                return None
        except Exception as e:
            logger.warning(f"Failed to check updates for {kind} {extension_id}: {e}")
            return None

        latest = normalize_version(str(data["version"]))
        self._stamp(kind, extension_id, latest)

        if not is_newer(latest, current_version):
            return None

        return {
            "type": kind,
            "id": extension_id,
            "name": data.get("name") or extension_id,
            "current_version": current_version,
            "latest_version": latest,
            "download_url": data.get("download_url"),
            "changelog": data.get("changelog"),
            "released_at": data.get("released_at"),
        }

    def _stamp(self, kind: str, extension_id: str, latest: str):
        """Remember the latest known version on the installed_extensions row."""
        with get_session() as session:
            record = (
                session.query(InstalledExtension)
                .filter_by(plugin_id=extension_id, type=kind)
                .first()
            )
            if record:
                record.latest_version = latest
                record.checked_at = datetime.utcnow()
