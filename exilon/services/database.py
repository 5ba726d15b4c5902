"""SQLite database maintenance: file backups, restore, optimize, SQL export and import."""

import logging
import re
import shutil
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List

from sqlalchemy import text

from exilon.config import get_path
from exilon.core import BackupError, ExtensionNotFoundError
from exilon.db import dispose_engine, get_db_path, get_engine, get_session
from .migrations import split_statements

logger = logging.getLogger(__name__)

SAFE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")
BACKUP_EXTENSION = ".sqlite"


def _timestamp() -> str:
    return datetime.now().strftime("%Y-%m-%d-%H%M%S")


def _sql_literal(value: Any) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, bytes):
        return f"X'{value.hex()}'"
    return "'" + str(value).replace("'", "''") + "'"


class DatabaseService:
    """Maintenance operations on the SQLite file behind the session."""

    def __init__(self, storage_path: Path = None):
        storage = Path(storage_path) if storage_path else get_path("storage")
        self.backups_path = storage / "backups" / "database"
        self.exports_path = storage / "exports"

    @property
    def db_path(self) -> Path:
        return Path(get_db_path())

    def info(self) -> Dict[str, Any]:
        """File size, table count and SQLite version."""
        with get_session() as session:
            tables = session.execute(text(
                "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
            )).fetchall()
            version = session.execute(text("SELECT sqlite_version()")).scalar()

        return {
            "driver": "sqlite",
            "database": str(self.db_path),
            "size": self.db_path.stat().st_size if self.db_path.exists() else 0,
            "table_count": len(tables),
            "version": version,
        }

    def _backup_file(self, name: str) -> Path:
        if not name.endswith(BACKUP_EXTENSION):
            name = f"{name}{BACKUP_EXTENSION}"
        if not SAFE_NAME_PATTERN.match(name):
            raise BackupError(f"Invalid backup name: {name}")
        return self.backups_path / name

    def backup(self, name: str = None) -> Dict[str, Any]:
        """
        Copy the database file to storage/backups/database/<name>.sqlite.

        Args:
            name: Backup name, defaults to backup-<timestamp>

        Raises:
            BackupError: If the name is not a safe file name or the database file is missing
        """
        target = self._backup_file(name or f"backup-{_timestamp()}")
        if not self.db_path.exists():
            raise BackupError("Database file not found.")

        self.backups_path.mkdir(parents=True, exist_ok=True)
        shutil.copy2(self.db_path, target)
        logger.info(f"Database backed up to {target}")
        return self._describe(target)

    def list_backups(self) -> List[Dict[str, Any]]:
        """Available backups, newest first."""
        if not self.backups_path.is_dir():
            return []
        backups = [self._describe(p) for p in self.backups_path.glob(f"*{BACKUP_EXTENSION}") if p.is_file()]
        return sorted(backups, key=lambda b: b["created"], reverse=True)

    def delete_backup(self, name: str):
        path = self._backup_file(name)
        if not path.is_file():
            raise ExtensionNotFoundError(name, "backup")
        path.unlink()
        logger.info(f"Deleted database backup {path.name}")

    def restore(self, name: str) -> Dict[str, Any]:
        """
        Replace the database with a backup.

        The current file is first saved as pre-restore-<timestamp>.sqlite.

        Returns:
            Dict with the restored backup and the pre-restore copy
        """
        source = self._backup_file(name)
        if not source.is_file():
            raise ExtensionNotFoundError(name, "backup")

        self.backups_path.mkdir(parents=True, exist_ok=True)
        safety = None
        if self.db_path.exists():
            safety = self.backups_path / f"pre-restore-{_timestamp()}{BACKUP_EXTENSION}"
            shutil.copy2(self.db_path, safety)

        # Pooled connections still point at the old file
        dispose_engine()
        shutil.copy2(source, self.db_path)

        logger.info(f"Database restored from {source.name}")
        return {"restored": source.name, "pre_restore_backup": safety.name if safety else None}

    def optimize(self):
        """Run VACUUM and ANALYZE."""
        with get_engine().connect().execution_options(isolation_level="AUTOCOMMIT") as conn:
            conn.execute(text("VACUUM"))
            conn.execute(text("ANALYZE"))
        logger.info("Database optimized")

    def export_sql(self) -> Path:
        """
        Dump every table (schema and rows) to storage/exports/exiloncms-export-<timestamp>.sql.

        Returns:
            Path of the written file
        """
        lines = [
            "-- ExilonCMS Database Export",
            f"-- Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
            f"-- Database: {self.db_path.name}",
            "",
        ]

        with get_session() as session:
            tables = session.execute(text(
                "SELECT name, sql FROM sqlite_master "
                "WHERE type='table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
            )).fetchall()

            for table_name, create_sql in tables:
                lines.append(f"-- Table: {table_name}")
                lines.append(f"{create_sql};")

                result = session.execute(text(f'SELECT * FROM "{table_name}"'))
                columns = ", ".join(f'"{c}"' for c in result.keys())
                for row in result:
                    values = ", ".join(_sql_literal(v) for v in row)
                    lines.append(f'INSERT INTO "{table_name}" ({columns}) VALUES ({values});')
                lines.append("")

        self.exports_path.mkdir(parents=True, exist_ok=True)
        path = self.exports_path / f"exiloncms-export-{_timestamp()}.sql"
        path.write_text("\n".join(lines), encoding="utf-8")
        logger.info(f"Database exported to {path}")
        return path

    def import_sql(self, sql: str) -> int:
        """
        Run an SQL script in a single transaction.

        Returns:
            Number of statements executed

        Raises:
            BackupError: If any statement fails (nothing is applied)
        """
        statements = split_statements(sql)

        try:
            with get_session() as session:
                for statement in statements:
                    session.execute(text(statement))
        except Exception as e:
            logger.error(f"SQL import failed: {e}")
            raise BackupError(f"Failed to import SQL file: {e}") from e

        logger.info(f"Imported {len(statements)} SQL statement(s)")
        return len(statements)

    def _describe(self, path: Path) -> Dict[str, Any]:
        stat = path.stat()
        return {"name": path.name, "size": stat.st_size, "created": stat.st_mtime}
