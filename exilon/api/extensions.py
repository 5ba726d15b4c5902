"""Plugin and theme management endpoints."""

import logging
import shutil
import uuid
from pathlib import Path
from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from exilon.config import get_path
from exilon.core import ExtensionError
from exilon.db import APIKey
from exilon.services import ActionLogService, ExtensionInstaller, PluginService, ThemeService
from .auth import verify_api_key, require_permission
from .schemas import (
    BackupResponse,
    ConfigUpdateRequest,
    InstallResponse,
    MessageResponse,
    PluginResponse,
    ToggleResponse,
    UninstallResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["extensions"])


def save_upload(upload: UploadFile) -> Path:
    """Write an uploaded file to storage/temp and return its path."""
    temp_dir = get_path("storage") / "temp"
    temp_dir.mkdir(parents=True, exist_ok=True)
    path = temp_dir / f"upload-{uuid.uuid4().hex}.zip"
    with open(path, "wb") as f:
        shutil.copyfileobj(upload.file, f)
    return path


def _install_upload(upload: UploadFile, kind: str, api_key: APIKey) -> InstallResponse:
    path = save_upload(upload)
    try:
        action_log = ActionLogService(actor=api_key.name)
        installer = ExtensionInstaller(action_log=action_log)
        result = installer.install_archive(path, kind=kind, source="upload")
    finally:
        path.unlink(missing_ok=True)

    logger.info(f"Agent '{api_key.name}' uploaded {kind} {result['extension']['id']}")
    return InstallResponse(success=True, **result)


# Plugins

@router.get("/plugins", response_model=List[PluginResponse])
async def list_plugins(api_key: APIKey = Depends(verify_api_key)):
    """
    List plugins found on disk.

    Requires permission: `extensions:read`
    """
    require_permission(api_key, "extensions:read", "read plugins")

    try:
        return [PluginResponse(**p) for p in PluginService().list_plugins()]
    except (HTTPException, ExtensionError):
        raise
    except Exception as e:
        logger.error(f"Error listing plugins: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to list plugins: {str(e)}"
        )


@router.post("/plugins/upload", response_model=InstallResponse)
async def upload_plugin(file: UploadFile = File(...), api_key: APIKey = Depends(verify_api_key)):
    """
    Install a plugin from a ZIP archive.

    Requires permission: `extensions:manage`
    """
    require_permission(api_key, "extensions:manage", "install plugins")

    try:
        return _install_upload(file, "plugin", api_key)
    except (HTTPException, ExtensionError):
        raise
    except Exception as e:
        logger.error(f"Error installing plugin: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to install plugin: {str(e)}"
        )


@router.get("/plugins/backups", response_model=List[BackupResponse])
async def list_plugin_backups(api_key: APIKey = Depends(verify_api_key)):
    """Requires permission: `extensions:read`"""
    require_permission(api_key, "extensions:read", "read plugin backups")
    return [BackupResponse(**b) for b in ExtensionInstaller().list_backups("plugin")]


@router.post("/plugins/{plugin_id}/toggle", response_model=ToggleResponse)
async def toggle_plugin(plugin_id: str, api_key: APIKey = Depends(verify_api_key)):
    """
    Enable a disabled plugin or disable an enabled one.

    Requires permission: `extensions:manage`
    """
    require_permission(api_key, "extensions:manage", "toggle plugins")

    try:
        service = PluginService(action_log=ActionLogService(actor=api_key.name))
        enabled = service.toggle(plugin_id)
        name = service.get(plugin_id).name

        logger.info(f"Agent '{api_key.name}' {'enabled' if enabled else 'disabled'} plugin {plugin_id}")

        return ToggleResponse(
            success=True,
            id=plugin_id,
            enabled=enabled,
            message=f"Plugin {name} {'enabled' if enabled else 'disabled'} successfully.",
        )
    except (HTTPException, ExtensionError):
        raise
    except Exception as e:
        logger.error(f"Error toggling plugin {plugin_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to toggle plugin: {str(e)}"
        )


@router.get("/plugins/{plugin_id}/config", response_model=dict)
async def get_plugin_config(plugin_id: str, api_key: APIKey = Depends(verify_api_key)):
    """Requires permission: `extensions:read`"""
    require_permission(api_key, "extensions:read", "read plugin configuration")
    return PluginService().get_config(plugin_id)


@router.put("/plugins/{plugin_id}/config", response_model=dict)
async def update_plugin_config(plugin_id: str, request: ConfigUpdateRequest,
                               api_key: APIKey = Depends(verify_api_key)):
    """Requires permission: `extensions:manage`"""
    require_permission(api_key, "extensions:manage", "configure plugins")

    try:
        service = PluginService(action_log=ActionLogService(actor=api_key.name))
        return service.update_config(plugin_id, request.values)
    except (HTTPException, ExtensionError):
        raise
    except Exception as e:
        logger.error(f"Error configuring plugin {plugin_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update plugin configuration: {str(e)}"
        )


@router.delete("/plugins/{plugin_id}/config", response_model=dict)
async def clear_plugin_config(plugin_id: str, api_key: APIKey = Depends(verify_api_key)):
    """
    Reset a plugin's configuration to its defaults.

    Requires permission: `extensions:manage`
    """
    require_permission(api_key, "extensions:manage", "configure plugins")

    service = PluginService(action_log=ActionLogService(actor=api_key.name))
    removed = service.clear_config(plugin_id)
    return {"success": True, "removed": removed, **service.get_config(plugin_id)}


@router.delete("/plugins/{plugin_id}", response_model=UninstallResponse)
async def delete_plugin(plugin_id: str, backup: bool = False, api_key: APIKey = Depends(verify_api_key)):
    """
    Delete a plugin, optionally keeping a backup copy.

    Requires permission: `extensions:manage`
    """
    require_permission(api_key, "extensions:manage", "delete plugins")

    try:
        service = PluginService(action_log=ActionLogService(actor=api_key.name))
        return UninstallResponse(success=True, **service.uninstall(plugin_id, backup=backup))
    except (HTTPException, ExtensionError):
        raise
    except Exception as e:
        logger.error(f"Error deleting plugin {plugin_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to delete plugin: {str(e)}"
        )


# Themes

@router.get("/themes", response_model=dict)
async def list_themes(api_key: APIKey = Depends(verify_api_key)):
    """
    List themes found on disk and the active one.

    Requires permission: `extensions:read`
    """
    require_permission(api_key, "extensions:read", "read themes")

    service = ThemeService()
    return {"themes": service.list_themes(), "active": service.get_active_theme()}


@router.post("/themes/upload", response_model=InstallResponse)
async def upload_theme(file: UploadFile = File(...), api_key: APIKey = Depends(verify_api_key)):
    """Requires permission: `extensions:manage`"""
    require_permission(api_key, "extensions:manage", "install themes")

    try:
        return _install_upload(file, "theme", api_key)
    except (HTTPException, ExtensionError):
        raise
    except Exception as e:
        logger.error(f"Error installing theme: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to install theme: {str(e)}"
        )


@router.post("/themes/deactivate", response_model=MessageResponse)
async def deactivate_theme(api_key: APIKey = Depends(verify_api_key)):
    """Requires permission: `extensions:manage`"""
    require_permission(api_key, "extensions:manage", "change the theme")

    ThemeService(action_log=ActionLogService(actor=api_key.name)).deactivate()
    return MessageResponse(success=True, message="Theme deactivated. Default theme restored.")


@router.post("/themes/{theme_id}/activate", response_model=MessageResponse)
async def activate_theme(theme_id: str, api_key: APIKey = Depends(verify_api_key)):
    """
    Make a theme the active one. Its required plugins must be enabled.

    Requires permission: `extensions:manage`
    """
    require_permission(api_key, "extensions:manage", "change the theme")

    try:
        theme = ThemeService(action_log=ActionLogService(actor=api_key.name)).activate(theme_id)
        return MessageResponse(success=True, message=f"Theme {theme['name']} activated.")
    except (HTTPException, ExtensionError):
        raise
    except Exception as e:
        logger.error(f"Error activating theme {theme_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to activate theme: {str(e)}"
        )


@router.post("/themes/{theme_id}/publish", response_model=MessageResponse)
async def publish_theme_assets(theme_id: str, api_key: APIKey = Depends(verify_api_key)):
    """Requires permission: `extensions:manage`"""
    require_permission(api_key, "extensions:manage", "publish theme assets")

    published = ThemeService().publish_assets(theme_id)
    if not published:
        return MessageResponse(success=False, message=f"Theme {theme_id} has no resources to publish.")
    return MessageResponse(success=True, message="Theme assets published.")


@router.delete("/themes/{theme_id}", response_model=UninstallResponse)
async def delete_theme(theme_id: str, backup: bool = False, api_key: APIKey = Depends(verify_api_key)):
    """Requires permission: `extensions:manage`"""
    require_permission(api_key, "extensions:manage", "delete themes")

    try:
        service = ThemeService(action_log=ActionLogService(actor=api_key.name))
        return UninstallResponse(success=True, **service.uninstall(theme_id, backup=backup))
    except (HTTPException, ExtensionError):
        raise
    except Exception as e:
        logger.error(f"Error deleting theme {theme_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to delete theme: {str(e)}"
        )


@router.get("/themes/{theme_id}/config", response_model=dict)
async def get_theme_config(theme_id: str, api_key: APIKey = Depends(verify_api_key)):
    """Requires permission: `extensions:read`"""
    require_permission(api_key, "extensions:read", "read theme configuration")
    return ThemeService().get_config(theme_id)


@router.put("/themes/{theme_id}/config", response_model=dict)
async def update_theme_config(theme_id: str, request: ConfigUpdateRequest,
                              api_key: APIKey = Depends(verify_api_key)):
    """Requires permission: `extensions:manage`"""
    require_permission(api_key, "extensions:manage", "configure themes")
    service = ThemeService(action_log=ActionLogService(actor=api_key.name))
    return service.update_config(theme_id, request.values)
