"""Services for the extension lifecycle."""

from .cache import CacheService
from .settings import SettingsService
from .action_log import ActionLogService
from .migrations import MigrationRunner
from .plugins import PluginService
from .themes import ThemeService
from .installer import ExtensionInstaller
from .updates import ExtensionUpdateService
from .cms_updates import CmsUpdateManager
from .marketplace import MarketplaceClient
from .discord import DiscordNotificationService
from .navigation import NavigationService
from .database import DatabaseService

__all__ = ["CacheService", "SettingsService", "ActionLogService", "MigrationRunner", "PluginService", "ThemeService", "ExtensionInstaller", "ExtensionUpdateService", "CmsUpdateManager", "MarketplaceClient", "DiscordNotificationService", "NavigationService", "DatabaseService"]
