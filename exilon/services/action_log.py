"""Audit log of administrative actions."""

import json
import logging
from typing import Any, Dict, List, Optional

from exilon.db import get_session, ActionLog

logger = logging.getLogger(__name__)


class ActionLogService:
    """Records who did what to which extension or setting."""

    def __init__(self, actor: str = None):
        self.actor = actor

    def log(self, action: str, target_type: str = None, target_id: str = None,
            data: Dict[str, Any] = None) -> Dict[str, Any]:
        """
        Record an action.

        Args:
            action: Dotted action name, e.g. "plugins.enabled"
            target_type: plugin, theme, settings, database
            target_id: Identifier of the target
            data: Extra JSON-serializable details

        Returns:
            The stored log entry
        """
        with get_session() as session:
            entry = ActionLog(
                action=action,
                target_type=target_type,
                target_id=target_id,
                actor=self.actor,
                data=json.dumps(data) if data is not None else None,
            )
            session.add(entry)
            session.flush()
            return entry.to_dict()

    def list(self, limit: int = 50, action: Optional[str] = None,
             target_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Most recent entries first."""
        with get_session() as session:
            query = session.query(ActionLog)
            if action:
                query = query.filter(ActionLog.action == action)
            if target_id:
                query = query.filter(ActionLog.target_id == target_id)

            entries = query.order_by(ActionLog.id.desc()).limit(limit).all()
            return [e.to_dict() for e in entries]
