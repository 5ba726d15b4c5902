"""Discord webhook notifications about available updates."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict

import requests

from exilon.config import get

logger = logging.getLogger(__name__)

COLOR_CMS = 5814783  # Blue
COLOR_PLUGIN = 15158332  # Orange
COLOR_THEME = 3066993  # Green
COLOR_SUMMARY = 15105570  # Red

CHANGELOG_LIMIT = 1000


def _field(name: str, value: str, inline: bool = True) -> Dict[str, Any]:
    return {"name": name, "value": value, "inline": inline}


class DiscordNotificationService:
    """Posts update embeds to a Discord webhook."""

    def __init__(self, webhook_url: str = None, site_name: str = None):
        self.webhook_url = webhook_url if webhook_url is not None else get("discord.webhook_url")
        self.site_name = site_name or get("app.name", "ExilonCMS")

    def is_enabled(self) -> bool:
        return bool(self.webhook_url)

    def notify_cms_update(self, current_version: str, new_version: str, changelog: str = None) -> bool:
        embed = {
            "title": "New ExilonCMS Update Available!",
            "description": f"A new version of ExilonCMS is available for **{self.site_name}**.",
            "color": COLOR_CMS,
            "fields": [
                _field("Current Version", current_version),
                _field("Latest Version", new_version),
            ],
            "footer": {"text": "ExilonCMS Update Notifier"},
        }

        if changelog:
            text = changelog[:CHANGELOG_LIMIT] + ("..." if len(changelog) > CHANGELOG_LIMIT else "")
            embed["fields"].append(_field("What's New", text, inline=False))

        return self.send_embed(embed)

    def notify_plugin_update(self, name: str, plugin_id: str, current_version: str, new_version: str) -> bool:
        return self.send_embed({
            "title": "Plugin Update Available",
            "description": f"An update is available for the **{name}** plugin on **{self.site_name}**.",
            "color": COLOR_PLUGIN,
            "fields": [
                _field("Plugin", f"{name} ({plugin_id})"),
                _field("Current Version", current_version),
                _field("Latest Version", new_version),
            ],
        })

    def notify_theme_update(self, name: str, theme_id: str, current_version: str, new_version: str) -> bool:
        return self.send_embed({
            "title": "Theme Update Available",
            "description": f"An update is available for the **{name}** theme on **{self.site_name}**.",
            "color": COLOR_THEME,
            "fields": [
                _field("Theme", f"{name} ({theme_id})"),
                _field("Current Version", current_version),
                _field("Latest Version", new_version),
            ],
        })

    def notify_multiple_updates(self, cms_count: int, plugin_count: int, theme_count: int) -> bool:
        total = cms_count + plugin_count + theme_count
        lines = [f"There are **{total} update(s)** available for **{self.site_name}**:"]
        if cms_count:
            lines.append(f"- {cms_count} CMS update(s)")
        if plugin_count:
            lines.append(f"- {plugin_count} plugin update(s)")
        if theme_count:
            lines.append(f"- {theme_count} theme update(s)")

        return self.send_embed({
            "title": "Updates Available",
            "description": "\n".join(lines),
            "color": COLOR_SUMMARY,
            "footer": {"text": "Check your admin panel for more details"},
        })

    def send_embed(self, embed: Dict[str, Any]) -> bool:
        """
        Send one embed.

        Returns:
            True if Discord accepted it, False when disabled or on any error
        """
        if not self.is_enabled():
            return False

        embed.setdefault("timestamp", datetime.now(timezone.utc).isoformat())

        try:
            response = requests.post(self.webhook_url, json={"embeds": [embed]}, timeout=10)
        except Exception as e:
            logger.error(f"Error sending Discord notification: {e}")
            return False

        if response.status_code >= 300:
            logger.warning(f"Failed to send Discord notification: HTTP {response.status_code}")
            return False

        logger.info("Discord notification sent")
        return True
