"""SQLAlchemy database models."""

import json
from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, UniqueConstraint
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class Setting(Base):
    """Key-value settings storage."""
    __tablename__ = "settings"

    name = Column(String(191), primary_key=True)
    value = Column(Text, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Setting(name='{self.name}')>"


class InstalledExtension(Base):
    """Plugins and themes known to the CMS, whatever their origin."""
    __tablename__ = "installed_extensions"
    __table_args__ = (UniqueConstraint("plugin_id", "type", name="uq_extension_type"),)

    TYPE_PLUGIN = "plugin"
    TYPE_THEME = "theme"

    SOURCE_MARKETPLACE = "marketplace"
    SOURCE_UPLOAD = "upload"
    SOURCE_LOCAL = "local"

    id = Column(Integer, primary_key=True)
    plugin_id = Column(String(100), nullable=False)  # Slug, also the directory name
    name = Column(String(200), nullable=False)
    version = Column(String(50), default="1.0.0")
    type = Column(String(20), default=TYPE_PLUGIN)  # plugin, theme
    is_enabled = Column(Boolean, default=False)
    source = Column(String(20), nullable=True)  # marketplace, upload, local
    source_url = Column(String(500), nullable=True)
    latest_version = Column(String(50), nullable=True)  # Set by the update checker
    checked_at = Column(DateTime, nullable=True)
    extra = Column(Text, nullable=True)  # JSON-encoded manifest extras
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<InstalledExtension(plugin_id='{self.plugin_id}', type='{self.type}', enabled={self.is_enabled})>"

    def to_dict(self):
        return {
            "id": self.id,
            "plugin_id": self.plugin_id,
            "name": self.name,
            "version": self.version,
            "type": self.type,
            "is_enabled": self.is_enabled,
            "source": self.source,
            "source_url": self.source_url,
            "latest_version": self.latest_version,
            "checked_at": self.checked_at.isoformat() if self.checked_at else None,
            "extra": json.loads(self.extra) if self.extra else {},
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class PluginMigration(Base):
    """SQL migration files already applied for a plugin."""
    __tablename__ = "plugin_migrations"
    __table_args__ = (UniqueConstraint("plugin_id", "migration", name="uq_plugin_migration"),)

    id = Column(Integer, primary_key=True)
    plugin_id = Column(String(100), nullable=False)
    migration = Column(String(255), nullable=False)  # File name, e.g. 001_create_posts.sql
    applied_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<PluginMigration(plugin_id='{self.plugin_id}', migration='{self.migration}')>"


class CacheEntry(Base):
    """Application cache entries (JSON values with optional expiry)."""
    __tablename__ = "cache_entries"

    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=True)
    expires_at = Column(DateTime, nullable=True)  # None = forever

    def __repr__(self):
        return f"<CacheEntry(key='{self.key}', expires_at={self.expires_at})>"


class ActionLog(Base):
    """Audit trail of administrative actions."""
    __tablename__ = "action_logs"

    id = Column(Integer, primary_key=True)
    action = Column(String(100), nullable=False)  # e.g. plugins.enabled
    target_type = Column(String(50), nullable=True)  # plugin, theme, settings, database
    target_id = Column(String(100), nullable=True)
    actor = Column(String(200), nullable=True)  # API key name or "cli"
    data = Column(Text, nullable=True)  # JSON-encoded details
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<ActionLog(id={self.id}, action='{self.action}', target='{self.target_id}')>"

    def to_dict(self):
        return {
            "id": self.id,
            "action": self.action,
            "target_type": self.target_type,
            "target_id": self.target_id,
            "actor": self.actor,
            "data": json.loads(self.data) if self.data else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class APIKey(Base):
    """API keys for the admin API."""
    __tablename__ = "api_keys"

    id = Column(Integer, primary_key=True)
    key = Column(String(64), unique=True, nullable=False)  # API key (hashed)
    name = Column(String(200), nullable=False)  # Client name/identifier
    description = Column(Text, nullable=True)
    permissions = Column(Text, default="*")  # Comma-separated permissions or "*" for all
    is_active = Column(Boolean, default=True)  # Can be disabled without deleting
    created_at = Column(DateTime, default=datetime.utcnow)
    last_used = Column(DateTime, nullable=True)
    usage_count = Column(Integer, default=0)

    def __repr__(self):
        return f"<APIKey(name='{self.name}', active={self.is_active})>"

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "permissions": self.permissions.split(",") if self.permissions != "*" else ["*"],
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "last_used": self.last_used.isoformat() if self.last_used else None,
            "usage_count": self.usage_count,
        }
