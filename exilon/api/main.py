"""Main FastAPI application for the ExilonCMS extension admin API."""

import logging
from fastapi import FastAPI, status
from fastapi.responses import JSONResponse

from exilon.config import get
from exilon.core import ExtensionError, ExtensionNotFoundError
from .admin import router as admin_router
from .extensions import router as extensions_router
from .updates import router as updates_router

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="ExilonCMS Extension API",
    description="Admin API for installing, enabling and updating ExilonCMS plugins and themes",
    version="1.0.0",
    docs_url="/docs",  # Swagger UI
    redoc_url="/redoc",  # ReDoc
)

app.include_router(extensions_router)
app.include_router(updates_router)
app.include_router(admin_router)


@app.get("/", tags=["general"])
async def root():
    """Root endpoint - API information."""
    return {
        "name": "ExilonCMS Extension API",
        "version": "1.0.0",
        "cms_version": get("app.version", "1.0.0"),
        "status": "online",
        "docs": "/docs",
        "endpoints": {
            "plugins": "GET /admin/plugins - List plugins",
            "toggle": "POST /admin/plugins/{id}/toggle - Enable or disable a plugin",
            "upload": "POST /admin/plugins/upload - Install a plugin archive",
            "themes": "GET /admin/themes - List themes",
            "updates": "GET /admin/extensions/updates - Check extension updates",
            "cms": "GET /admin/updates/cms - Check for a new ExilonCMS release",
            "navigation": "GET /admin/navigation - Admin navigation",
        }
    }


@app.get("/health", tags=["general"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.exception_handler(ExtensionNotFoundError)
async def not_found_handler(request, exc):
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": str(exc)}
    )


@app.exception_handler(ExtensionError)
async def extension_error_handler(request, exc):
    logger.warning(f"{request.method} {request.url.path} rejected: {exc}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": str(exc)}
    )


# Error handler
@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler."""
    logger.error(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"}
    )
