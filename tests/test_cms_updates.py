"""Tests for the GitHub-release based CMS update manager."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from exilon.services import CacheService, CmsUpdateManager
from exilon.services.cms_updates import select_asset

RELEASE = {
    "tag_name": "v1.2.0",
    "name": "ExilonCMS 1.2.0",
    "body": "Bug fixes",
    "published_at": "2026-01-15T10:00:00Z",
    "html_url": "https://github.com/Exilon-Studios/ExilonCMS/releases/tag/v1.2.0",
    "assets": [
        {"name": "exiloncms-installer.zip", "browser_download_url": "https://dl/installer.zip", "size": 10},
        {"name": "exiloncms-1.2.0.zip", "browser_download_url": "https://dl/full.zip", "size": 20},
        {"name": "exiloncms-update-1.2.0.zip", "browser_download_url": "https://dl/update.zip", "size": 30},
    ],
}


def github_response(status_code=200, payload=None):
    response = MagicMock(status_code=status_code)
    response.json.return_value = payload if payload is not None else RELEASE
    return response


@pytest.fixture
def manager(test_db):
    return CmsUpdateManager(current_version="1.0.0", cache=CacheService())


class TestSelectAsset:
    """Test release asset selection."""

    def test_prefers_update_package(self):
        assert select_asset(RELEASE["assets"])["browser_download_url"] == "https://dl/update.zip"

    def test_falls_back_to_first_zip(self):
        assets = [{"name": "notes.txt"}, {"name": "exiloncms.zip"}, {"name": "other.zip"}]
        assert select_asset(assets)["name"] == "exiloncms.zip"

    def test_never_installer(self):
        assert select_asset([{"name": "exiloncms-installer-update.zip"}]) is None

    def test_no_assets(self):
        assert select_asset([]) is None


class TestCheck:
    """Test CmsUpdateManager.check."""

    def test_newer_release(self, manager):
        with patch("exilon.services.cms_updates.requests.get", return_value=github_response()) as mock_get:
            result = manager.check()

        assert result["success"] is True
        assert result["has_update"] is True
        assert result["current_version"] == "1.0.0"
        assert result["latest_version"] == "1.2.0"
        assert result["update"]["tag_name"] == "v1.2.0"
        assert result["update"]["download_url"] == "https://dl/update.zip"
        assert result["update"]["size"] == 30

        url = mock_get.call_args[0][0]
        assert url == "https://api.github.com/repos/Exilon-Studios/ExilonCMS/releases/latest"
        assert "Authorization" not in mock_get.call_args[1]["headers"]

    def test_same_version(self, test_db):
        manager = CmsUpdateManager(current_version="v1.2.0", cache=CacheService())

        with patch("exilon.services.cms_updates.requests.get", return_value=github_response()):
            result = manager.check()

        assert result["success"] is True
        assert result["has_update"] is False
        assert result["update"] is None

    def test_token_sent_as_bearer(self, test_db):
        manager = CmsUpdateManager(current_version="1.0.0", token="secret", cache=CacheService())

        with patch("exilon.services.cms_updates.requests.get", return_value=github_response()) as mock_get:
            manager.check()

        assert mock_get.call_args[1]["headers"]["Authorization"] == "Bearer secret"

    def test_success_is_cached(self, manager):
        with patch("exilon.services.cms_updates.requests.get", return_value=github_response()) as mock_get:
            manager.check()
            manager.check()
            assert mock_get.call_count == 1

            manager.check(force=True)
            assert mock_get.call_count == 2

    def test_http_error_not_cached(self, manager):
        with patch("exilon.services.cms_updates.requests.get",
                   return_value=github_response(status_code=403)) as mock_get:
            first = manager.check()
            manager.check()

        assert first == {"success": False, "message": "Failed to check for updates", "update": None}
        assert mock_get.call_count == 2

    def test_network_error(self, manager):
        with patch("exilon.services.cms_updates.requests.get", side_effect=requests.Timeout("slow")):
            result = manager.check()

        assert result["success"] is False
        assert result["message"] == "Unable to check for updates"
        assert manager.has_update() is False
        assert manager.get_update() is None

    def test_clear_cache(self, manager):
        with patch("exilon.services.cms_updates.requests.get", return_value=github_response()) as mock_get:
            manager.check()
            manager.clear_cache()
            manager.check()

        assert mock_get.call_count == 2


class TestDownload:
    """Test downloading a release."""

    def test_download_writes_archive(self, manager, project_root):
        with patch("exilon.services.cms_updates.requests.get") as mock_get:
            mock_get.side_effect = [github_response(), MagicMock(content=b"PK-zip-bytes")]

            update = manager.get_update()
            assert manager.is_last_version_downloaded() is False
            assert manager.download(update) is True

        path = project_root / "storage" / "updates" / "exiloncms-1.2.0.zip"
        assert path.read_bytes() == b"PK-zip-bytes"
        assert manager.is_last_version_downloaded() is True
        mock_get.assert_called_with("https://dl/update.zip", timeout=120)

    def test_download_without_url(self, manager):
        assert manager.download({"version": "1.2.0", "download_url": None}) is False

    def test_download_failure(self, manager, project_root):
        failing = MagicMock()
        failing.raise_for_status.side_effect = requests.HTTPError("404")

        with patch("exilon.services.cms_updates.requests.get", return_value=failing):
            assert manager.download({"version": "1.2.0", "download_url": "https://dl/update.zip"}) is False

        assert not (project_root / "storage" / "updates" / "exiloncms-1.2.0.zip").exists()
