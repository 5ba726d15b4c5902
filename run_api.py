#!/usr/bin/env python3
"""Run the ExilonCMS extension API server."""

import logging
import sys
from pathlib import Path

# Add project to path
sys.path.insert(0, str(Path(__file__).parent))

from exilon.config import get
from exilon.db import init_db


def setup_logging():
    """Console logging, plus a log file when logging.file is set."""
    handlers = [logging.StreamHandler()]

    log_file = get("logging.file")
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, str(get("logging.level", "INFO")).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


logger = logging.getLogger(__name__)


def main():
    """Run the API server."""
    setup_logging()

    # Initialize database
    db_path = get("database.path")
    init_db(db_path)

    # Get API configuration
    host = get("api.host", "127.0.0.1")
    port = get("api.port", 8000)

    logger.info(f"Starting ExilonCMS extension API on {host}:{port}")
    logger.info("API documentation available at:")
    logger.info(f"  - Swagger UI: http://{host}:{port}/docs")
    logger.info(f"  - ReDoc: http://{host}:{port}/redoc")

    # Import here to avoid circular imports
    import uvicorn
    from exilon.api import app

    # Run server
    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level="info",
        access_log=True,
    )


if __name__ == "__main__":
    main()
