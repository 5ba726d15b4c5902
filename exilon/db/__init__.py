"""Database models and session management."""

from .models import Base, Setting, InstalledExtension, PluginMigration, CacheEntry, ActionLog, APIKey
from .session import get_session, init_db, get_db_path, get_engine, dispose_engine

__all__ = [
    "Base",
    "Setting",
    "InstalledExtension",
    "PluginMigration",
    "CacheEntry",
    "ActionLog",
    "APIKey",
    "get_session",
    "init_db",
    "get_db_path",
    "get_engine",
    "dispose_engine",
]
