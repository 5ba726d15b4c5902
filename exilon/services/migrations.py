"""Runs the SQL migrations shipped in plugins' database/migrations directories."""

import logging
from typing import List

from sqlalchemy import text

from exilon.core import ExtensionManifest, MigrationError
from exilon.db import get_session, PluginMigration

logger = logging.getLogger(__name__)


def split_statements(sql: str) -> List[str]:
    """Split an SQL script on ';', dropping blanks and comment-only chunks."""
    statements = []
    for chunk in sql.split(";"):
        lines = [line for line in chunk.splitlines() if not line.strip().startswith("--")]
        statement = "\n".join(lines).strip()
        if statement:
            statements.append(statement)
    return statements


class MigrationRunner:
    """Applies plugin migrations once each, in file name order."""

    def applied(self, plugin_id: str) -> List[str]:
        """Names of the migrations already applied for a plugin."""
        with get_session() as session:
            rows = session.query(PluginMigration).filter_by(plugin_id=plugin_id).all()
            return [row.migration for row in rows]

    def pending(self, manifest: ExtensionManifest) -> List[str]:
        """Migration file names not applied yet, sorted."""
        if not manifest.has_migrations:
            return []

        done = set(self.applied(manifest.id))
        files = sorted(p.name for p in manifest.migrations_path.glob("*.sql"))
        return [name for name in files if name not in done]

    def run(self, manifest: ExtensionManifest) -> List[str]:
        """
        Apply every pending migration of a plugin.

        Each file runs in its own session and is recorded only if all of
        its statements succeed.

        Returns:
            Names of the migrations applied

        Raises:
            MigrationError: If a statement fails
        """
        applied = []
        for name in self.pending(manifest):
            sql = (manifest.migrations_path / name).read_text(encoding="utf-8")

            try:
                with get_session() as session:
                    for statement in split_statements(sql):
                        session.execute(text(statement))
                    session.add(PluginMigration(plugin_id=manifest.id, migration=name))
            except Exception as e:
                logger.error(f"Migration {name} failed for plugin {manifest.id}: {e}")
                raise MigrationError(f"Migration {name} failed for plugin {manifest.id}: {e}") from e

            logger.info(f"Migrated {manifest.id}: {name}")
            applied.append(name)

        return applied
