"""Navigation, settings, database and action log endpoints."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.responses import FileResponse

from exilon.core import ExtensionError
from exilon.db import APIKey
from exilon.services import ActionLogService, DatabaseService, NavigationService, SettingsService
from .auth import verify_api_key, require_permission
from .schemas import (
    ActionLogResponse,
    BackupResponse,
    DatabaseBackupRequest,
    DatabaseRestoreRequest,
    MessageResponse,
    SettingsUpdateRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

# Never returned by GET /admin/settings
HIDDEN_SETTINGS = {"marketplace.api_key"}


# Navigation

@router.get("/navigation", response_model=dict)
async def get_navigation(api_key: APIKey = Depends(verify_api_key)):
    """Requires permission: `extensions:read`"""
    require_permission(api_key, "extensions:read", "read the navigation")
    return {"navigation": NavigationService().build()}


@router.post("/navigation/clear-cache", response_model=MessageResponse)
async def clear_navigation_cache(api_key: APIKey = Depends(verify_api_key)):
    """Requires permission: `extensions:manage`"""
    require_permission(api_key, "extensions:manage", "clear the navigation cache")
    NavigationService().clear_cache()
    return MessageResponse(success=True, message="Navigation cache cleared successfully.")


# Settings

@router.get("/settings", response_model=dict)
async def get_settings(api_key: APIKey = Depends(verify_api_key)):
    """Requires permission: `settings:read`"""
    require_permission(api_key, "settings:read", "read settings")

    service = SettingsService()
    return {
        name: service.decode(name, value)
        for name, value in service.all().items()
        if name not in HIDDEN_SETTINGS and value is not None
    }


@router.put("/settings", response_model=dict)
async def update_settings(request: SettingsUpdateRequest, api_key: APIKey = Depends(verify_api_key)):
    """
    Update several settings at once. A null value deletes the setting.

    Requires permission: `settings:manage`
    """
    require_permission(api_key, "settings:manage", "update settings")

    try:
        SettingsService().update_settings(request.settings)
        ActionLogService(actor=api_key.name).log(
            "settings.updated", "settings", None, {"keys": sorted(request.settings)}
        )
        return {"success": True, "updated": sorted(request.settings)}
    except (HTTPException, ExtensionError):
        raise
    except Exception as e:
        logger.error(f"Error updating settings: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update settings: {str(e)}"
        )


# Database

@router.get("/database/backups", response_model=dict)
async def list_database_backups(api_key: APIKey = Depends(verify_api_key)):
    """Requires permission: `database:manage`"""
    require_permission(api_key, "database:manage", "manage the database")

    service = DatabaseService()
    return {"info": service.info(), "backups": service.list_backups()}


@router.post("/database/backups", response_model=BackupResponse)
async def create_database_backup(request: DatabaseBackupRequest = None,
                                 api_key: APIKey = Depends(verify_api_key)):
    """Requires permission: `database:manage`"""
    require_permission(api_key, "database:manage", "manage the database")

    backup = DatabaseService().backup(request.name if request else None)
    ActionLogService(actor=api_key.name).log("database.backup", "database", backup["name"])
    return BackupResponse(**backup)


@router.delete("/database/backups/{name}", response_model=MessageResponse)
async def delete_database_backup(name: str, api_key: APIKey = Depends(verify_api_key)):
    """Requires permission: `database:manage`"""
    require_permission(api_key, "database:manage", "manage the database")

    DatabaseService().delete_backup(name)
    return MessageResponse(success=True, message="Backup deleted successfully!")


@router.post("/database/restore", response_model=dict)
async def restore_database(request: DatabaseRestoreRequest, api_key: APIKey = Depends(verify_api_key)):
    """
    Replace the database with a backup. The current state is saved first.

    Requires permission: `database:manage`
    """
    require_permission(api_key, "database:manage", "manage the database")

    result = DatabaseService().restore(request.backup)
    ActionLogService(actor=api_key.name).log("database.restored", "database", request.backup, result)
    return {"success": True, **result}


@router.post("/database/optimize", response_model=MessageResponse)
async def optimize_database(api_key: APIKey = Depends(verify_api_key)):
    """Requires permission: `database:manage`"""
    require_permission(api_key, "database:manage", "manage the database")

    try:
        DatabaseService().optimize()
        return MessageResponse(success=True, message="Database optimized successfully!")
    except Exception as e:
        logger.error(f"Error optimizing database: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to optimize database: {str(e)}"
        )


@router.post("/database/export")
async def export_database(api_key: APIKey = Depends(verify_api_key)):
    """
    Download an SQL dump of the database.

    Requires permission: `database:manage`
    """
    require_permission(api_key, "database:manage", "manage the database")

    path = DatabaseService().export_sql()
    return FileResponse(path, media_type="text/sql", filename=path.name)


@router.post("/database/import", response_model=dict)
async def import_database(sql_file: UploadFile = File(...), api_key: APIKey = Depends(verify_api_key)):
    """
    Run an uploaded SQL file in one transaction.

    Requires permission: `database:manage`
    """
    require_permission(api_key, "database:manage", "manage the database")

    content = (await sql_file.read()).decode("utf-8", errors="replace")
    count = DatabaseService().import_sql(content)
    ActionLogService(actor=api_key.name).log("database.imported", "database", sql_file.filename,
                                             {"statements": count})
    return {"success": True, "statements": count}


# Action log

@router.get("/logs", response_model=List[ActionLogResponse])
async def list_action_logs(limit: int = 50, action: Optional[str] = None, target_id: Optional[str] = None,
                           api_key: APIKey = Depends(verify_api_key)):
    """Requires permission: `logs:read`"""
    require_permission(api_key, "logs:read", "read the action log")

    entries = ActionLogService().list(limit=min(limit, 500), action=action, target_id=target_id)
    return [ActionLogResponse(**e) for e in entries]
