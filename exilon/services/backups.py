"""Directory backups taken before an extension is replaced or deleted."""

import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List

from exilon.config import get_path

logger = logging.getLogger(__name__)


def backups_dir(kind: str, storage_path: Path = None) -> Path:
    """storage/backups/plugins or storage/backups/themes."""
    storage = Path(storage_path) if storage_path else get_path("storage")
    return storage / "backups" / f"{kind}s"


def backup_directory(source: Path, kind: str, extension_id: str, storage_path: Path = None) -> Path:
    """
    Copy an extension directory aside.

    Returns:
        Path of the backup, e.g. storage/backups/plugins/blog_2026-01-31_142501
    """
    target = backups_dir(kind, storage_path) / f"{extension_id}_{datetime.now().strftime('%Y-%m-%d_%H%M%S')}"
    target.parent.mkdir(parents=True, exist_ok=True)

    suffix = 1
    base = target
    while target.exists():
        target = base.with_name(f"{base.name}_{suffix}")
        suffix += 1

    shutil.copytree(source, target)
    logger.info(f"{kind.capitalize()} {extension_id} backed up to: {target}")
    return target


def directory_size(path: Path) -> int:
    return sum(f.stat().st_size for f in Path(path).rglob("*") if f.is_file())


def list_backups(kind: str, storage_path: Path = None) -> List[Dict[str, Any]]:
    """Available backups of one extension type, newest first."""
    base = backups_dir(kind, storage_path)
    if not base.is_dir():
        return []

    backups = [
        {
            "name": path.name,
            "path": str(path),
            "size": directory_size(path),
            "created": path.stat().st_mtime,
        }
        for path in base.iterdir()
        if path.is_dir()
    ]
    return sorted(backups, key=lambda b: b["created"], reverse=True)
