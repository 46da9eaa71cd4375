"""
Station -> server synchronization flows.

A station exports its institution, residents and territories as a sanitized
package file. A server reads such a package, checks it carries a residents
list, re-sanitizes it (files may have been edited by hand in transit) and
merges it into its own collections. Every flow returns a new state; a
failure at any step leaves the caller's state untouched.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Union

from .audit import make_log_entry, prepend_log
from .bundle_io import parse_bundle, station_package_filename
from .config import PLACEHOLDER_CPF
from .errors import FormatError, SyncModeError
from .lifecycle import BundleLifecycle, BundleState
from .merger import MergeResult, merge
from .sanitizer import sanitize, sanitize_institution
from .identity import now_iso
from .schema import AuditAction, AuditTarget, SystemMode
from ..util.logging import audit_event, logger


@dataclass
class ExportResult:
    bundle: Dict[str, Any]
    filename: str
    state: Dict[str, Any]
    lifecycle: BundleLifecycle


@dataclass
class ImportResult:
    state: Dict[str, Any]
    merge: MergeResult
    source_name: str
    lifecycle: BundleLifecycle

    def message(self) -> str:
        """Operator-facing success summary."""
        return (
            f"Synchronization complete! {self.merge.new_count} new records and "
            f"{self.merge.updated_count} updates applied."
        )


def system_mode(state: Dict[str, Any]) -> SystemMode:
    """Operating mode of the local device; anything but station mode counts as server."""
    mode = sanitize_institution(state.get("institution")).get("systemMode")
    return SystemMode.STATION if mode == SystemMode.STATION.value else SystemMode.SERVER


def export_station_package(state: Dict[str, Any], actor: Dict[str, Any] = None,
                           now: datetime = None) -> ExportResult:
    """
    Package the local residents and territories for delivery to the server.

    Returns:
        ExportResult with the sanitized bundle, its filename and the new state
        (one SYNC audit entry added)
    """
    now = now or datetime.now(timezone.utc)
    lifecycle = BundleLifecycle(system_mode(state).value)

    bundle = sanitize({
        "institution": state.get("institution"),
        "residents": state.get("residents"),
        "territories": state.get("territories"),
        "timestamp": now_iso(now),
    }, now=now)
    lifecycle.advance(BundleState.EXPORTED)

    filename = station_package_filename(bundle["institution"]["city"], now)

    new_state = dict(state)
    new_state["logs"] = prepend_log(
        state.get("logs"),
        make_log_entry(AuditAction.SYNC, AuditTarget.SYSTEM, "Collection package generated for server", actor, now),
    )

    logger.log_flow("station_export", "success", {
        "filename": filename,
        "residents": len(bundle["residents"]),
        "territories": len(bundle["territories"]),
    })

    return ExportResult(bundle=bundle, filename=filename, state=new_state, lifecycle=lifecycle)


def import_station_package(state: Dict[str, Any], raw: Union[str, bytes, Dict[str, Any]],
                           source_name: str = "package", actor: Dict[str, Any] = None,
                           now: datetime = None) -> ImportResult:
    """
    Merge a station package into the local collections.

    Args:
        state: Current server state (only read, never modified)
        raw: Package file content, or an already parsed bundle
        source_name: File name shown in the audit entry

    Returns:
        ImportResult with the new state and the merge counts

    Raises:
        SyncModeError: If the local device is a collection station
        ParseError: If the content is not valid JSON
        FormatError: If the package has no residents list
    """
    mode = system_mode(state)
    if mode == SystemMode.STATION:
        raise SyncModeError("Only a central server can consolidate station packages")

    lifecycle = BundleLifecycle(mode.value)
    parsed = parse_bundle(raw) if isinstance(raw, (str, bytes)) else raw

    # Checked before sanitizing, which would default a missing list to []
    if not isinstance(parsed, dict) or not isinstance(parsed.get("residents"), list):
        logger.log_flow("station_import", "rejected", {"source": source_name})
        raise FormatError("Incompatible data format: bundle has no residents list")

    lifecycle.advance(BundleState.IMPORTED)
    incoming = sanitize(parsed, now=now)

    result = merge(state.get("residents") or [], state.get("territories") or [], incoming)
    lifecycle.advance(BundleState.MERGED)

    new_state = dict(state)
    new_state["residents"] = result.residents
    new_state["territories"] = result.territories
    new_state["logs"] = prepend_log(
        state.get("logs"),
        make_log_entry(AuditAction.SYNC, AuditTarget.SYSTEM, f"Package {source_name} processed", actor, now),
    )
    lifecycle.advance(BundleState.COLLECTED)

    payload = result.summary()
    if result.placeholder_matches:
        # Records that may have collapsed into one local resident
        payload["placeholder_records"] = [
            r for r in incoming["residents"] if r.get("cpf") == PLACEHOLDER_CPF
        ]

    audit_event(
        event_type="sync_merged",
        identifiers={"source": source_name},
        payload=payload,
    )

    return ImportResult(state=new_state, merge=result, source_name=source_name, lifecycle=lifecycle)
