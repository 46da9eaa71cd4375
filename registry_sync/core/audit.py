"""Audit log entries: immutable, newest first, capped at LOG_CAP."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from .config import LOG_CAP
from .identity import new_id, now_iso
from .schema import AuditAction, AuditTarget

SYSTEM_ACTOR_ID = "setup"
SYSTEM_ACTOR_NAME = "System"


def make_log_entry(action: AuditAction, target_type: AuditTarget, target_name: str,
                   actor: Optional[Dict[str, Any]] = None, now: datetime = None) -> Dict[str, Any]:
    """Build one audit entry; a missing actor is recorded as the system."""
    actor = actor or {}
    return {
        "id": new_id(),
        "agentId": actor.get("id") or SYSTEM_ACTOR_ID,
        "agentName": actor.get("name") or SYSTEM_ACTOR_NAME,
        "action": AuditAction(action).value,
        "targetType": AuditTarget(target_type).value,
        "targetName": target_name,
        "timestamp": now_iso(now),
    }


def prepend_log(logs: List[Dict[str, Any]], entry: Dict[str, Any]) -> List[Dict[str, Any]]:
    """New list with entry first; the oldest entries beyond LOG_CAP are dropped."""
    return ([entry] + list(logs or []))[:LOG_CAP]
