"""Install plugins and themes from ZIP archives."""

import logging
import shutil
import uuid
import zipfile
from pathlib import Path, PurePosixPath
from typing import Any, Dict, List

from exilon.config import get, get_path
from exilon.core import (
    ExtensionManifest,
    ExtensionRegistry,
    InvalidArchiveError,
    ManifestError,
    parse_manifest,
)
from exilon.core.manifest import MANIFEST_FILES
from exilon.db import get_session, InstalledExtension
from .action_log import ActionLogService
from .backups import backup_directory, list_backups
from .cache import CacheService
from .plugins import PluginService

logger = logging.getLogger(__name__)

DEFAULT_MAX_UPLOAD_SIZE = 10 * 1024 * 1024
IGNORED_ARCHIVE_ENTRIES = {"__MACOSX"}


class ExtensionInstaller:
    """Extracts, validates and moves extension archives into place."""

    def __init__(self, registry: ExtensionRegistry = None, cache: CacheService = None,
                 plugins: PluginService = None, action_log: ActionLogService = None):
        self.registry = registry or ExtensionRegistry()
        self.cache = cache or CacheService()
        self.action_log = action_log or ActionLogService()
        self.plugins = plugins or PluginService(
            registry=self.registry, cache=self.cache, action_log=self.action_log
        )
        self.max_upload_size = get("installer.max_upload_size", DEFAULT_MAX_UPLOAD_SIZE)

    def install_archive(self, archive: Path, kind: str = "plugin", source: str = "upload",
                        source_url: str = None, auto_enable: bool = True) -> Dict[str, Any]:
        """
        Install a plugin or theme from a ZIP file.

        Args:
            archive: Path of the uploaded/downloaded ZIP
            kind: "plugin" or "theme"
            source: upload, marketplace or local
            source_url: Where the archive came from, if remote
            auto_enable: Enable a plugin right after installing it

        Returns:
            Dict with the installed manifest, the enabled flag and the backup path

        Raises:
            InvalidArchiveError: If the archive or its manifest is not acceptable
        """
        archive = Path(archive)
        manifest_file = MANIFEST_FILES.get(kind)
        if manifest_file is None:
            raise InvalidArchiveError(f"Unknown extension type: {kind}")

        self._check_archive(archive)

        temp_dir = get_path("storage") / "temp" / uuid.uuid4().hex
        try:
            self._extract(archive, temp_dir)
            root = self._find_root(temp_dir, manifest_file)

            try:
                manifest = parse_manifest(root, kind, require_id=True)
            except ManifestError as e:
                raise InvalidArchiveError(str(e)) from e

            destination = self.registry.path_for(kind) / manifest.id
            backup_path = None
            if destination.exists():
                backup_path = backup_directory(destination, kind, manifest.id, get_path("storage"))
                shutil.rmtree(destination)

            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(root), str(destination))
        finally:
            if temp_dir.exists():
                shutil.rmtree(temp_dir, ignore_errors=True)

        manifest = parse_manifest(destination, kind)
        self._record(manifest, source, source_url)

        self.registry.clear_cache()
        self.cache.clear_extension_caches()
        self.action_log.log(f"{kind}s.installed", kind, manifest.id,
                            {"version": manifest.version, "source": source})
        logger.info(f"{kind.capitalize()} installed: {manifest.id} {manifest.version} ({source})")

        enabled = False
        if kind == "plugin":
            enabled = self.plugins.is_enabled(manifest.id)
            if enabled:
                # Updated in place: apply migrations shipped with the new version
                self.plugins.migrations.run(manifest)
            elif auto_enable:
                self.plugins.enable(manifest.id)
                enabled = True

        return {
            "extension": manifest.to_dict(),
            "enabled": enabled,
            "backup": str(backup_path) if backup_path else None,
        }

    def list_backups(self, kind: str = "plugin") -> List[Dict[str, Any]]:
        return list_backups(kind, get_path("storage"))

    def _check_archive(self, archive: Path):
        if not archive.is_file():
            raise InvalidArchiveError(f"Archive not found: {archive}")

        size = archive.stat().st_size
        if size > self.max_upload_size:
            raise InvalidArchiveError(
                f"Archive is too large ({size} bytes, maximum {self.max_upload_size})"
            )

        if not zipfile.is_zipfile(archive):
            raise InvalidArchiveError("Uploaded file is not a valid ZIP archive")

    def _extract(self, archive: Path, target: Path):
        target.mkdir(parents=True, exist_ok=True)

        try:
            with zipfile.ZipFile(archive) as zf:
                for name in zf.namelist():
                    member = PurePosixPath(name.replace("\\", "/"))
                    if member.is_absolute() or ".." in member.parts:
                        raise InvalidArchiveError(f"Unsafe path in archive: {name}")
                zf.extractall(target)
        except zipfile.BadZipFile as e:
            raise InvalidArchiveError(f"Failed to extract ZIP file: {e}") from e

    def _find_root(self, extracted: Path, manifest_file: str) -> Path:
        """
        Directory holding the manifest: the archive root or its single top-level folder.

        Raises:
            InvalidArchiveError: If no manifest is found
        """
        if (extracted / manifest_file).is_file():
            return extracted

        entries = [
            p for p in extracted.iterdir()
            if p.name not in IGNORED_ARCHIVE_ENTRIES and not p.name.startswith(".")
        ]
        if len(entries) == 1 and entries[0].is_dir() and (entries[0] / manifest_file).is_file():
            return entries[0]

        raise InvalidArchiveError(f"Missing {manifest_file} file")

    def _record(self, manifest: ExtensionManifest, source: str, source_url: str = None):
        """Create or update the installed_extensions row."""
        enabled = manifest.type == InstalledExtension.TYPE_PLUGIN and self.plugins.is_enabled(manifest.id)

        with get_session() as session:
            record = (
                session.query(InstalledExtension)
                .filter_by(plugin_id=manifest.id, type=manifest.type)
                .first()
            )
            if record is None:
                record = InstalledExtension(plugin_id=manifest.id, type=manifest.type)
                session.add(record)

            record.name = manifest.name
            record.version = manifest.version
            record.source = source
            record.source_url = source_url
            record.is_enabled = enabled
