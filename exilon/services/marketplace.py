"""Marketplace client: account link, catalog browsing and resource installs."""

import logging
import uuid
from typing import Any, Dict

import requests

from exilon.config import get, get_path
from exilon.core import MarketplaceError
from exilon.db import InstalledExtension
from .cache import CacheService
from .installer import ExtensionInstaller
from .settings import SettingsService

logger = logging.getLogger(__name__)

API_KEY_SETTING = "marketplace.api_key"
USER_ID_SETTING = "marketplace.user_id"
ITEMS_CACHE_PREFIX = "marketplace.items."
ITEMS_CACHE_TTL = 30 * 60


def _empty_page() -> Dict[str, Any]:
    return {"data": [], "meta": {}}


class MarketplaceClient:
    """Talks to the ExilonCMS marketplace REST API."""

    def __init__(self, url: str = None, settings: SettingsService = None,
                 cache: CacheService = None, installer: ExtensionInstaller = None):
        self.url = (url or get("marketplace.url", "https://marketplace.exiloncms.fr")).rstrip("/")
        self.timeout = get("marketplace.timeout", 10)
        self.cache = cache or CacheService()
        self.settings = settings or SettingsService(self.cache)
        self._installer = installer

    @property
    def installer(self) -> ExtensionInstaller:
        if self._installer is None:
            self._installer = ExtensionInstaller(cache=self.cache)
        return self._installer

    def is_connected(self) -> bool:
        return bool(self.settings.get(API_KEY_SETTING))

    def connect(self, api_key: str) -> Dict[str, Any]:
        """
        Link this site to a marketplace account.

        Args:
            api_key: Key generated on the marketplace

        Returns:
            The marketplace user, if it sent one

        Raises:
            MarketplaceError: If the key is rejected or the marketplace is unreachable
        """
        try:
            response = requests.post(
                f"{self.url}/api/v1/sso/verify",
                json={"api_key": api_key, "site_url": get("app.url", "")},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise MarketplaceError(f"Connection failed: {e}") from e

        if response.status_code != 200:
            raise MarketplaceError("Invalid API key. Please check and try again.")

        try:
            data = response.json()
        except ValueError:
            data = {}
        user = data.get("user") if isinstance(data, dict) else None

        values = {API_KEY_SETTING: api_key}
        if isinstance(user, dict) and user.get("id") is not None:
            values[USER_ID_SETTING] = str(user["id"])
        self.settings.update_settings(values)

        logger.info("Connected to marketplace")
        return {"connected": True, "user": user}

    def disconnect(self):
        self.settings.update_settings({API_KEY_SETTING: None, USER_ID_SETTING: None})
        logger.info("Disconnected from marketplace")

    def list_items(self, type: str = "all", search: str = "", page: int = 1) -> Dict[str, Any]:
        """
        One page of the catalog (cached for 30 minutes).

        Returns an empty page when not connected or when the marketplace fails.
        """
        if not self.is_connected():
            return _empty_page()

        cache_key = f"{ITEMS_CACHE_PREFIX}{page}.{type}.{search}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            response = requests.get(
                f"{self.url}/api/v1/items",
                params={"type": type, "search": search, "page": page},
                headers={"Authorization": f"Bearer {self.settings.get(API_KEY_SETTING)}"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except Exception as e:
            logger.warning(f"Failed to fetch marketplace items: {e}")
            return _empty_page()

        items = {
            "data": (data.get("data") or []) if isinstance(data, dict) else [],
            "meta": (data.get("meta") or {}) if isinstance(data, dict) else {},
        }
        self.cache.put(cache_key, items, ITEMS_CACHE_TTL)
        return items

    def get_resource(self, resource_id: str) -> Dict[str, Any]:
        """
        Resource details from the public catalog.

        Raises:
            MarketplaceError: If the resource cannot be fetched
        """
        try:
            response = requests.get(f"{self.url}/api/resources/{resource_id}", timeout=30)
        except requests.RequestException as e:
            raise MarketplaceError(f"Failed to reach marketplace: {e}") from e

        if response.status_code != 200:
            raise MarketplaceError("Resource not found on external server.")

        try:
            resource = response.json().get("data")
        except (ValueError, AttributeError) as e:
            raise MarketplaceError("Invalid resource data received from marketplace.") from e

        if not isinstance(resource, dict):
            raise MarketplaceError("Invalid resource data received from marketplace.")
        return resource

    def install(self, resource_id: str, kind: str = "plugin") -> Dict[str, Any]:
        """
        Download a resource and install it.

        Returns:
            The installer result

        Raises:
            MarketplaceError: If the resource cannot be fetched or downloaded
            InvalidArchiveError: If the downloaded archive is not installable
        """
        resource = self.get_resource(resource_id)
        download_url = resource.get("download_url")
        if not download_url:
            raise MarketplaceError(f"Resource {resource_id} has no download URL")

        try:
            response = requests.get(download_url, timeout=60)
            response.raise_for_status()
        except requests.RequestException as e:
            raise MarketplaceError(f"Failed to download resource: {e}") from e

        temp_path = get_path("storage") / "temp" / f"{uuid.uuid4().hex}.zip"
        temp_path.parent.mkdir(parents=True, exist_ok=True)
        temp_path.write_bytes(response.content)

        try:
            result = self.installer.install_archive(
                temp_path,
                kind=resource["type"] if resource.get("type") in ("plugin", "theme") else kind,
                source=InstalledExtension.SOURCE_MARKETPLACE,
                source_url=download_url,
            )
        finally:
            temp_path.unlink(missing_ok=True)

        logger.info(f"Installed marketplace resource {resource_id}")
        return result

    def sync(self) -> int:
        """Drop cached catalog pages. Returns how many were removed."""
        count = self.cache.forget_prefix(ITEMS_CACHE_PREFIX)
        logger.info(f"Marketplace cache cleared ({count} entries)")
        return count
