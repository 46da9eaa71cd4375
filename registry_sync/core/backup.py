"""
Full backups and restores of the local registry state.

A backup is the sanitized bundle of the whole state. A restore sanitizes the
incoming bundle and replaces every local collection with it; nothing of the
previous state survives except the audit entry recording the restore.
Both operate on state mappings and return new ones, leaving persistence to
the caller.
"""

import copy
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Tuple, Union

from .audit import make_log_entry, prepend_log
from .bundle_io import backup_filename, parse_bundle
from .config import PLACEHOLDER_CPF
from .identity import now_iso, parse_iso
from .sanitizer import sanitize
from .schema import AuditAction, AuditTarget, BackupFrequency, STATE_KEYS
from ..util.logging import audit_event, logger

DEFAULT_BACKUP_CONFIG = {
    "autoBackupEnabled": True,
    "frequency": BackupFrequency.DAILY.value,
    "remindMe": True,
}

FREQUENCY_INTERVALS = {
    BackupFrequency.DAILY.value: timedelta(days=1),
    BackupFrequency.WEEKLY.value: timedelta(days=7),
    BackupFrequency.MONTHLY.value: timedelta(days=30),
}


@dataclass
class BackupResult:
    """A produced backup bundle, its suggested filename and the updated state."""
    bundle: Dict[str, Any]
    filename: str
    state: Dict[str, Any]


def state_to_bundle(state: Dict[str, Any]) -> Dict[str, Any]:
    """Bundle-shaped view of a state mapping (not yet sanitized)."""
    return {key: state[key] for key in STATE_KEYS if key in state and state[key] is not None}


def bundle_to_state(bundle: Dict[str, Any]) -> Dict[str, Any]:
    """State mapping carried by a sanitized bundle."""
    state = {key: copy.deepcopy(bundle[key]) for key in STATE_KEYS if key in bundle}
    state.setdefault("config", dict(DEFAULT_BACKUP_CONFIG))
    return state


def create_backup(state: Dict[str, Any], actor: Dict[str, Any] = None, now: datetime = None) -> BackupResult:
    """
    Produce a full backup bundle of the registry state.

    The returned state records the backup date in its config block and
    carries one BACKUP audit entry.
    """
    now = now or datetime.now(timezone.utc)

    config = dict(DEFAULT_BACKUP_CONFIG)
    if isinstance(state.get("config"), dict):
        config.update(state["config"])

    bundle = sanitize({**state_to_bundle(state), "config": config}, now=now)
    filename = backup_filename(now)

    new_state = bundle_to_state(bundle)
    new_state["config"] = {**config, "lastBackupDate": now_iso(now)}
    new_state["logs"] = prepend_log(
        new_state.get("logs"),
        make_log_entry(AuditAction.BACKUP, AuditTarget.SYSTEM, "Manual security export", actor, now),
    )

    audit_event(
        event_type="backup_created",
        identifiers={"filename": filename},
        payload={
            "residents": len(bundle["residents"]),
            "territories": len(bundle["territories"]),
            "agents": len(bundle["agents"]),
            "logs": len(bundle["logs"]),
        },
    )

    return BackupResult(bundle=bundle, filename=filename, state=new_state)


def restore_backup(state: Dict[str, Any], raw: Union[str, bytes, Dict[str, Any]],
                   actor: Dict[str, Any] = None, now: datetime = None) -> Dict[str, Any]:
    """
    Replace the whole registry state with a sanitized backup bundle.

    Args:
        state: Current state (only read, never modified)
        raw: Serialized bundle content or an already parsed bundle
        actor: Agent performing the restore, for the audit entry

    Returns:
        New state mapping

    Raises:
        ParseError: If raw content is not valid JSON
    """
    parsed = parse_bundle(raw) if isinstance(raw, (str, bytes)) else raw
    bundle = sanitize(parsed, now=now)

    new_state = bundle_to_state(bundle)
    if "config" not in bundle and isinstance(state.get("config"), dict):
        # Backup preferences are device-local; keep them when the file has none
        new_state["config"] = copy.deepcopy(state["config"])

    new_state["logs"] = prepend_log(
        new_state.get("logs"),
        make_log_entry(AuditAction.BACKUP, AuditTarget.SYSTEM, "Full restore applied", actor, now),
    )

    audit_event(
        event_type="backup_restored",
        identifiers={"version": bundle["version"], "timestamp": bundle["timestamp"]},
        payload={
            "residents": len(bundle["residents"]),
            "territories": len(bundle["territories"]),
            "agents": len(bundle["agents"]),
        },
    )

    return new_state


def is_backup_due(config: Dict[str, Any], now: datetime = None) -> bool:
    """Whether the configured backup reminder should fire.

    Never due when automatic backups or reminders are off; always due when no
    backup has been recorded yet.
    """
    config = config if isinstance(config, dict) else DEFAULT_BACKUP_CONFIG
    if not config.get("autoBackupEnabled") or not config.get("remindMe"):
        return False

    last = parse_iso(config.get("lastBackupDate"))
    if last is None:
        return True

    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    interval = FREQUENCY_INTERVALS.get(config.get("frequency"), FREQUENCY_INTERVALS[BackupFrequency.DAILY.value])
    return now - last >= interval


def assess_health(residents: List[Dict[str, Any]]) -> Tuple[str, str]:
    """Grade the resident base by national ID coverage.

    Residents holding only the placeholder national ID count as lacking one.
    """
    if not residents:
        return "--", "Empty Base"

    missing = sum(
        1 for r in residents
        if not isinstance(r, dict) or not r.get("cpf") or r.get("cpf") == PLACEHOLDER_CPF
    )
    if missing:
        logger.debug(f"{missing} residents without a national ID")
        return "B", "Needs Attention"

    return "A+", "Excellent"
