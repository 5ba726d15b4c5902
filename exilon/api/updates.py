"""Update checks, CMS update download and marketplace endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from exilon.core import ExtensionError
from exilon.db import APIKey
from exilon.services import (
    ActionLogService,
    CmsUpdateManager,
    DiscordNotificationService,
    ExtensionInstaller,
    ExtensionUpdateService,
    MarketplaceClient,
)
from .auth import verify_api_key, require_permission
from .schemas import (
    CmsUpdateResponse,
    InstallResponse,
    MarketplaceConnectRequest,
    MarketplaceInstallRequest,
    MarketplaceItemsResponse,
    MessageResponse,
    NotifyResponse,
    UpdatesResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["updates"])


@router.get("/extensions/updates", response_model=UpdatesResponse)
async def check_extension_updates(force: bool = False, api_key: APIKey = Depends(verify_api_key)):
    """
    Available plugin and theme updates. Cached unless `force` is set.

    Requires permission: `extensions:read`
    """
    require_permission(api_key, "extensions:read", "check for updates")

    updates = ExtensionUpdateService().check_all_updates(force)
    return UpdatesResponse(
        plugins=updates["plugins"],
        themes=updates["themes"],
        count=len(updates["plugins"]) + len(updates["themes"]),
    )


@router.post("/extensions/updates/notify", response_model=NotifyResponse)
async def notify_updates(api_key: APIKey = Depends(verify_api_key)):
    """
    Post a summary of available updates to the Discord webhook.

    Requires permission: `extensions:manage`
    """
    require_permission(api_key, "extensions:manage", "send update notifications")

    updates = ExtensionUpdateService().check_all_updates()
    cms = 1 if CmsUpdateManager().has_update() else 0
    plugins = len(updates["plugins"])
    themes = len(updates["themes"])

    sent = False
    if cms + plugins + themes:
        sent = DiscordNotificationService().notify_multiple_updates(cms, plugins, themes)

    return NotifyResponse(sent=sent, cms=cms, plugins=plugins, themes=themes)


@router.get("/updates/cms", response_model=CmsUpdateResponse)
async def check_cms_update(force: bool = False, api_key: APIKey = Depends(verify_api_key)):
    """Requires permission: `extensions:read`"""
    require_permission(api_key, "extensions:read", "check for updates")

    manager = CmsUpdateManager()
    result = manager.check(force)
    return CmsUpdateResponse(**result, downloaded=result["success"] and manager.is_last_version_downloaded())


@router.post("/updates/cms/download", response_model=MessageResponse)
async def download_cms_update(api_key: APIKey = Depends(verify_api_key)):
    """Requires permission: `extensions:manage`"""
    require_permission(api_key, "extensions:manage", "download updates")

    manager = CmsUpdateManager()
    update = manager.get_update()
    if not update:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No update available"
        )

    if not manager.download(update):
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to download update"
        )

    ActionLogService(actor=api_key.name).log("updates.downloaded", "cms", update["version"])
    return MessageResponse(success=True, message=f"ExilonCMS {update['version']} downloaded.")


# Marketplace

@router.get("/marketplace", response_model=MarketplaceItemsResponse)
async def list_marketplace(type: str = "all", search: str = "", page: int = 1,
                           api_key: APIKey = Depends(verify_api_key)):
    """Requires permission: `extensions:read`"""
    require_permission(api_key, "extensions:read", "browse the marketplace")

    client = MarketplaceClient()
    items = client.list_items(type=type, search=search, page=page)
    return MarketplaceItemsResponse(**items, connected=client.is_connected())


@router.post("/marketplace/connect", response_model=dict)
async def connect_marketplace(request: MarketplaceConnectRequest, api_key: APIKey = Depends(verify_api_key)):
    """Requires permission: `extensions:manage`"""
    require_permission(api_key, "extensions:manage", "connect the marketplace")

    result = MarketplaceClient().connect(request.api_key)
    ActionLogService(actor=api_key.name).log("marketplace.connected", "marketplace")
    return result


@router.post("/marketplace/disconnect", response_model=MessageResponse)
async def disconnect_marketplace(api_key: APIKey = Depends(verify_api_key)):
    """Requires permission: `extensions:manage`"""
    require_permission(api_key, "extensions:manage", "disconnect the marketplace")

    MarketplaceClient().disconnect()
    ActionLogService(actor=api_key.name).log("marketplace.disconnected", "marketplace")
    return MessageResponse(success=True, message="Disconnected from marketplace.")


@router.post("/marketplace/sync", response_model=MessageResponse)
async def sync_marketplace(api_key: APIKey = Depends(verify_api_key)):
    """Requires permission: `extensions:manage`"""
    require_permission(api_key, "extensions:manage", "sync the marketplace")

    MarketplaceClient().sync()
    return MessageResponse(success=True, message="Marketplace cache cleared.")


@router.post("/marketplace/{resource_id}/install", response_model=InstallResponse)
async def install_marketplace_resource(resource_id: str, request: MarketplaceInstallRequest = None,
                                       api_key: APIKey = Depends(verify_api_key)):
    """
    Download a marketplace resource and install it.

    Requires permission: `extensions:manage`
    """
    require_permission(api_key, "extensions:manage", "install extensions")

    kind = request.type if request else "plugin"

    try:
        installer = ExtensionInstaller(action_log=ActionLogService(actor=api_key.name))
        result = MarketplaceClient(installer=installer).install(resource_id, kind)
        return InstallResponse(success=True, **result)
    except (HTTPException, ExtensionError):
        raise
    except Exception as e:
        logger.error(f"Error installing marketplace resource {resource_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to install resource: {str(e)}"
        )
