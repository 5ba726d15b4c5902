"""Site settings: a flat key/value store, cached and refreshed on write."""

import json
import logging
from fnmatch import fnmatchcase
from typing import Any, Dict, List, Optional

from exilon.db import get_session, Setting
from .cache import CacheService

logger = logging.getLogger(__name__)

SETTINGS_CACHE_KEY = "settings"
SETTINGS_CACHE_TTL = 86400  # 1 day

# Settings stored as JSON documents
JSON_ENCODED = [
    "enabled_plugins",
    "maintenance.paths",
    "themes.config.*",
]

# Settings cast to booleans on read
BOOLEAN = [
    "maintenance.enabled",
    "register",
    "users.money_transfer",
    "auth_api",
    "captcha.login",
    "user.change_name",
    "user.upload_avatar",
    "user.delete",
    "admin.force_2fa",
]


def _matches(name: str, patterns: List[str]) -> bool:
    return any(fnmatchcase(name, pattern) for pattern in patterns)


class SettingsService:
    """Service for reading and writing site settings."""

    def __init__(self, cache: CacheService = None):
        self.cache = cache or CacheService()

    def all(self) -> Dict[str, Optional[str]]:
        """Raw stored values of every setting (cached)."""
        return self.cache.remember(SETTINGS_CACHE_KEY, SETTINGS_CACHE_TTL, self._load)

    def get(self, name: str, default: Any = None) -> Any:
        """
        Get a setting value.

        Args:
            name: Setting name
            default: Default value if not set

        Returns:
            Decoded value (JSON and boolean settings are parsed)
        """
        raw = self.all().get(name)
        if raw is None:
            return default
        return self.decode(name, raw)

    def set(self, name: str, value: Any) -> Any:
        """Set one setting. Returns the previous value."""
        return self.update_settings({name: value})[name]

    def delete(self, name: str) -> Any:
        """Delete one setting. Returns the previous value."""
        return self.update_settings({name: None})[name]

    def update_settings(self, values: Dict[str, Any]) -> Dict[str, Any]:
        """
        Modify several settings in one transaction.

        Args:
            values: Setting name -> new value (None deletes the setting)

        Returns:
            Previous values of the modified settings
        """
        old = {name: self.get(name) for name in values}

        with get_session() as session:
            for name, value in values.items():
                setting = session.query(Setting).filter_by(name=name).first()

                if value is None:
                    if setting:
                        session.delete(setting)
                    continue

                encoded = self.encode(name, value)
                if setting:
                    setting.value = encoded
                else:
                    session.add(Setting(name=name, value=encoded))

        # Reload everything from the database, not from the cache
        self.cache.put(SETTINGS_CACHE_KEY, self._load(), SETTINGS_CACHE_TTL)
        logger.info(f"Updated settings: {', '.join(values)}")

        return old

    def encode(self, name: str, value: Any) -> str:
        """Serialize a value for storage."""
        if _matches(name, JSON_ENCODED):
            return json.dumps(value)
        if isinstance(value, bool):
            return "1" if value else "0"
        if isinstance(value, (dict, list)):
            return json.dumps(value)
        return str(value)

    def decode(self, name: str, raw: str) -> Any:
        """Parse a stored value according to the setting name."""
        if _matches(name, JSON_ENCODED):
            try:
                return json.loads(raw)
            except ValueError:
                logger.warning(f"Setting {name} does not hold valid JSON")
                return None

        if _matches(name, BOOLEAN):
            return raw.lower() in ("1", "true", "yes", "on")

        return raw

    def _load(self) -> Dict[str, Optional[str]]:
        with get_session() as session:
            return {s.name: s.value for s in session.query(Setting).all()}
