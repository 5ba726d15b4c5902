"""CMS self-update checks against GitHub releases."""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests

from exilon.config import get, get_path
from exilon.core import is_newer, normalize_version
from .cache import CacheService

logger = logging.getLogger(__name__)

CACHE_KEY = "cms_updates"
GITHUB_API_URL = "https://api.github.com"
DEFAULT_REPOSITORY = "Exilon-Studios/ExilonCMS"


def select_asset(assets: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Pick the release ZIP to download.

    Update packages are preferred over full packages; installer
    packages are never used.
    """
    zips = [
        a for a in assets
        if a.get("name", "").endswith(".zip") and "installer" not in a.get("name", "")
    ]
    for asset in zips:
        if "update" in asset["name"]:
            return asset
    return zips[0] if zips else None


class CmsUpdateManager:
    """Checks for and downloads new ExilonCMS releases."""

    def __init__(self, repository: str = None, current_version: str = None,
                 token: str = None, ttl: int = None, cache: CacheService = None):
        self.repository = repository or get("github.repository", DEFAULT_REPOSITORY)
        self.current_version = normalize_version(current_version or str(get("app.version", "1.0.0")))
        self.token = token if token is not None else get("github.token")
        self.ttl = ttl if ttl is not None else get("updates.cache_ttl", 3600)
        self.cache = cache or CacheService()

    def check(self, force: bool = False) -> Dict[str, Any]:
        """
        Check the latest GitHub release.

        Successful results are cached; failures are not, so the next
        call retries.

        Returns:
            {success, has_update, current_version, latest_version, update}
        """
        if not force:
            cached = self.cache.get(CACHE_KEY)
            if cached is not None:
                return cached

        result = self._fetch()
        if result["success"]:
            self.cache.put(CACHE_KEY, result, self.ttl)
        return result

    def _fetch(self) -> Dict[str, Any]:
        headers = {"Accept": "application/vnd.github+json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        url = f"{GITHUB_API_URL}/repos/{self.repository}/releases/latest"

        try:
            response = requests.get(url, headers=headers, timeout=10)
            if response.status_code != 200:
                logger.warning(f"Failed to fetch releases from GitHub: HTTP {response.status_code}")
                return {"success": False, "message": "Failed to check for updates", "update": None}

            release = response.json()
            latest = normalize_version(release["tag_name"])
        except Exception as e:
            logger.error(f"Failed to check for updates: {e}")
            return {"success": False, "message": "Unable to check for updates", "update": None}

        has_update = is_newer(latest, self.current_version)

        update = None
        if has_update:
            asset = select_asset(release.get("assets") or []) or {}
            update = {
                "version": latest,
                "tag_name": release["tag_name"],
                "name": release.get("name") or release["tag_name"],
                "body": release.get("body") or "",
                "published_at": release.get("published_at"),
                "html_url": release.get("html_url"),
                "download_url": asset.get("browser_download_url"),
                "size": asset.get("size", 0),
            }

        return {
            "success": True,
            "has_update": has_update,
            "current_version": self.current_version,
            "latest_version": latest,
            "update": update,
        }

    def get_update(self, force: bool = False) -> Optional[Dict[str, Any]]:
        data = self.check(force)
        return data.get("update") if data["success"] else None

    def has_update(self, force: bool = False) -> bool:
        data = self.check(force)
        return bool(data["success"] and data.get("has_update"))

    def clear_cache(self):
        self.cache.forget(CACHE_KEY)

    def download_path(self, version: str) -> Path:
        return get_path("storage") / "updates" / f"exiloncms-{version}.zip"

    def is_last_version_downloaded(self) -> bool:
        update = self.get_update()
        if not update:
            return False
        return self.download_path(update["version"]).is_file()

    def download(self, update: Dict[str, Any]) -> bool:
        """
        Save a release asset to storage/updates/exiloncms-<version>.zip.

        Returns:
            True on success, False if there is nothing to download or the download failed
        """
        download_url = update.get("download_url")
        if not download_url:
            logger.error("No download URL found in update data")
            return False

        save_path = self.download_path(update["version"])

        try:
            response = requests.get(download_url, timeout=120)
            response.raise_for_status()
        except Exception as e:
            logger.error(f"Failed to download update from {download_url}: {e}")
            return False

        save_path.parent.mkdir(parents=True, exist_ok=True)
        save_path.write_bytes(response.content)
        logger.info(f"Update downloaded to {save_path} ({len(response.content)} bytes)")
        return True
