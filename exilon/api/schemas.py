"""Pydantic models for API requests and responses."""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


# Request models
class ConfigUpdateRequest(BaseModel):
    """New values for a plugin's or theme's configuration options."""
    values: Dict[str, Any] = Field(..., description="Option key -> value; unknown keys are ignored")


class SettingsUpdateRequest(BaseModel):
    """Batch update of site settings."""
    settings: Dict[str, Any] = Field(..., description="Setting name -> value (null deletes the setting)")


class MarketplaceConnectRequest(BaseModel):
    """Link the site to a marketplace account."""
    api_key: str = Field(..., min_length=1, description="API key generated on the marketplace")


class MarketplaceInstallRequest(BaseModel):
    """Install a marketplace resource."""
    type: str = Field("plugin", description="plugin or theme, used when the marketplace does not say")


class DatabaseBackupRequest(BaseModel):
    """Create a database backup."""
    name: Optional[str] = Field(None, max_length=255, description="Backup name (defaults to backup-<timestamp>)")


class DatabaseRestoreRequest(BaseModel):
    """Restore a database backup."""
    backup: str = Field(..., description="Backup file name")


# Response models
class MessageResponse(BaseModel):
    """Generic result of an action."""
    success: bool
    message: Optional[str] = None


class PluginResponse(BaseModel):
    """Plugin information."""
    id: str
    name: str
    version: str
    description: str = ""
    author: str = ""
    enabled: bool
    has_migrations: bool
    has_settings: bool
    has_navigation: bool


class ToggleResponse(BaseModel):
    """Result of enabling or disabling a plugin."""
    success: bool
    id: str
    enabled: bool
    message: str


class InstallResponse(BaseModel):
    """Result of installing an archive."""
    success: bool
    extension: Dict[str, Any]
    enabled: bool
    backup: Optional[str] = None


class UninstallResponse(BaseModel):
    """Result of deleting an extension."""
    success: bool
    id: str
    name: str
    backup: Optional[str] = None


class UpdatesResponse(BaseModel):
    """Available extension updates."""
    plugins: Dict[str, Any]
    themes: Dict[str, Any]
    count: int


class CmsUpdateResponse(BaseModel):
    """Result of a CMS update check."""
    success: bool
    has_update: bool = False
    current_version: Optional[str] = None
    latest_version: Optional[str] = None
    update: Optional[Dict[str, Any]] = None
    message: Optional[str] = None
    downloaded: bool = False


class NotifyResponse(BaseModel):
    """Result of sending update notifications."""
    sent: bool
    cms: int
    plugins: int
    themes: int


class BackupResponse(BaseModel):
    """A file backup."""
    name: str
    size: int
    created: float
    path: Optional[str] = None


class ActionLogResponse(BaseModel):
    """Action log entry."""
    id: int
    action: str
    target_type: Optional[str]
    target_id: Optional[str]
    actor: Optional[str]
    data: Optional[Any] = None
    created_at: Optional[str]


class MarketplaceItemsResponse(BaseModel):
    """One page of the marketplace catalog."""
    data: List[Dict[str, Any]]
    meta: Dict[str, Any]
    connected: bool
