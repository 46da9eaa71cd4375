"""
Local HTTP API over the registry state.

Bundle uploads are read as the raw request body so that parse failures are
reported with the registry's own operator message. Every mutating endpoint
loads the state, runs one flow and saves the result only if the flow
succeeded.
"""

from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from pydantic import ValidationError

from .schemas import (
    BundleFileResponse,
    BundleModel,
    BundleValidationResponse,
    HealthResponse,
    LogListResponse,
    MergeSummaryResponse,
    RestoreResponse,
    StateSummaryResponse,
    ValidationFieldError,
)
from ..core.backup import assess_health, create_backup, is_backup_due, restore_backup
from ..core.bundle_io import parse_bundle
from ..core.config import VERSION, SYNC_API_ENABLED, debug_enabled, validate_config
from ..core.dao import get_counts, load_state, save_state
from ..core.db import health_check
from ..core.errors import BundleIOError, FormatError, ParseError, SyncModeError
from ..core.sanitizer import sanitize
from ..core.sync import export_station_package, import_station_package, system_mode
from ..util.logging import logger

app = FastAPI(
    title="Resident Registry Sync API",
    version=VERSION,
    description="Bundle sanitization, station sync and backup for the municipal resident registry",
    docs_url="/docs" if debug_enabled() else None,
    redoc_url="/redoc" if debug_enabled() else None
)


def _resolve_actor(state: Dict[str, Any], agent_id: Optional[str]) -> Optional[Dict[str, Any]]:
    """Find the acting agent by id; unknown or missing ids act as the system."""
    if not agent_id:
        return None
    for agent in state.get("agents") or []:
        if isinstance(agent, dict) and agent.get("id") == agent_id:
            return agent
    return None


def _require_sync_api():
    if not SYNC_API_ENABLED:
        raise HTTPException(status_code=403, detail="Sync API is disabled. Enable with SYNC_API_ENABLED=true")


def _raise_for(error: Exception):
    """Map registry errors to HTTP responses; the stored state is untouched."""
    if isinstance(error, (FormatError, ParseError)):
        raise HTTPException(status_code=400, detail=str(error))
    if isinstance(error, SyncModeError):
        raise HTTPException(status_code=409, detail=str(error))
    if isinstance(error, BundleIOError):
        raise HTTPException(status_code=500, detail=str(error))
    raise error


@app.get("/health", response_model=HealthResponse)
def health_check_endpoint():
    """Check system health."""
    db_health = health_check()
    counts = get_counts() if db_health else {}
    state = load_state() if db_health else {}

    issues = validate_config()
    for issue in issues:
        logger.warning(f"Configuration issue: {issue}")

    return HealthResponse(
        status="healthy" if db_health and not issues else "unhealthy",
        version=VERSION,
        db_health=db_health,
        system_mode=system_mode(state).value,
        residents=counts.get("residents", 0),
        territories=counts.get("territories", 0)
    )


@app.get("/state/summary", response_model=StateSummaryResponse)
def state_summary_endpoint():
    """Record counts, data health grade and backup reminder status."""
    state = load_state()
    grade, label = assess_health(state.get("residents") or [])
    config = state.get("config") if isinstance(state.get("config"), dict) else None

    return StateSummaryResponse(
        counts=get_counts(),
        health_grade=grade,
        health_label=label,
        backup_due=is_backup_due(config),
        last_backup_date=(config or {}).get("lastBackupDate")
    )


@app.post("/sync/export", response_model=BundleFileResponse)
def export_package_endpoint(agent_id: Optional[str] = None):
    """Build the station package for the central server."""
    _require_sync_api()
    state = load_state()

    result = export_station_package(state, actor=_resolve_actor(state, agent_id))
    save_state(result.state, keys=["logs"])

    return BundleFileResponse(filename=result.filename, bundle=result.bundle)


@app.post("/sync/import", response_model=MergeSummaryResponse)
async def import_package_endpoint(request: Request, source_name: str = "package", agent_id: Optional[str] = None):
    """Merge an uploaded station package into the local state."""
    _require_sync_api()
    state = load_state()
    body = await request.body()

    try:
        result = import_station_package(
            state, body, source_name=source_name, actor=_resolve_actor(state, agent_id)
        )
    except (FormatError, ParseError, SyncModeError, BundleIOError) as e:
        logger.warning(f"Station package {source_name} rejected: {e}")
        _raise_for(e)

    save_state(result.state, keys=["residents", "territories", "logs"])
    summary = result.merge.summary()

    return MergeSummaryResponse(
        success=True,
        message=result.message(),
        source_name=source_name,
        new=summary["new"],
        updated=summary["updated"],
        skipped_territories=summary["skipped_territories"],
        placeholder_matches=summary["placeholder_matches"]
    )


@app.post("/backup", response_model=BundleFileResponse)
def create_backup_endpoint(agent_id: Optional[str] = None):
    """Produce a full backup bundle and record the backup date."""
    state = load_state()

    result = create_backup(state, actor=_resolve_actor(state, agent_id))
    save_state(result.state, keys=["config", "logs"])

    return BundleFileResponse(filename=result.filename, bundle=result.bundle)


@app.post("/backup/restore", response_model=RestoreResponse)
async def restore_backup_endpoint(request: Request, agent_id: Optional[str] = None):
    """Replace the whole local state with an uploaded backup bundle."""
    state = load_state()
    body = await request.body()

    try:
        new_state = restore_backup(state, body, actor=_resolve_actor(state, agent_id))
    except (ParseError, BundleIOError) as e:
        logger.warning(f"Backup restore rejected: {e}")
        _raise_for(e)

    save_state(new_state)

    return RestoreResponse(
        success=True,
        residents=len(new_state["residents"]),
        territories=len(new_state["territories"]),
        agents=len(new_state["agents"])
    )


@app.post("/bundle/validate", response_model=BundleValidationResponse)
async def validate_bundle_endpoint(request: Request):
    """Sanitize an uploaded bundle and check the result against the record models."""
    body = await request.body()

    try:
        bundle = sanitize(parse_bundle(body))
    except ParseError as e:
        _raise_for(e)

    try:
        BundleModel.model_validate(bundle)
    except ValidationError as e:
        errors = [
            ValidationFieldError(
                field=".".join(str(part) for part in err["loc"]),
                message=err["msg"]
            )
            for err in e.errors()
        ]
        return BundleValidationResponse(valid=False, errors=errors)

    return BundleValidationResponse(valid=True, errors=[])


@app.get("/logs", response_model=LogListResponse)
def list_logs_endpoint(limit: int = Query(50, description="Maximum number of entries to return", ge=1, le=1000)):
    """Most recent audit entries, newest first."""
    logs = load_state().get("logs") or []
    return LogListResponse(logs=[entry for entry in logs if isinstance(entry, dict)][:limit])
