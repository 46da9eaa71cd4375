"""
Bundle sanitizer - defensive normalization of registry snapshots.

Any JSON-shaped value is accepted and a fully populated bundle is returned:
every required field is filled with a deterministic default, and every
record carries an identifier. The pass is pure (input is never mutated),
total (never raises) and idempotent: identifiers are only generated for
records that lack one.
"""

import copy
from datetime import datetime
from typing import Any, Dict, List

from .config import (
    SCHEMA_VERSION,
    LOG_CAP,
    PLACEHOLDER_CNPJ,
    PLACEHOLDER_CPF,
    PLACEHOLDER_LOGO_URL,
    PLACEHOLDER_INSTITUTION_NAME,
    PLACEHOLDER_INSTITUTION_CITY,
    DEFAULT_CITY,
    DEFAULT_AGENT_NAME,
    DEFAULT_RESIDENT_NAME,
    DEFAULT_RESIDENT_NEIGHBORHOOD,
    DEFAULT_TERRITORY_NEIGHBORHOOD,
)
from .identity import new_id, new_username, now_iso, today_iso
from .schema import AgentRole, RelationshipType, SystemMode
from ..util.logging import logger


def _absent(value: Any) -> bool:
    """Missing, null, false, zero and empty-string values count as absent.

    Empty lists and objects are present values.
    """
    if value is None or value is False:
        return True
    if isinstance(value, (int, float)):
        return value == 0 or value != value
    return value == ""


def _blank_name(value: Any) -> bool:
    """Identifiers and names must be non-blank strings."""
    return not isinstance(value, str) or not value.strip()


def _as_record(value: Any) -> Dict[str, Any]:
    return copy.deepcopy(value) if isinstance(value, dict) else {}


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


class _IdCounter:
    """Counts identifiers minted during one pass (for the log line)."""

    def __init__(self):
        self.generated = 0

    def __call__(self) -> str:
        self.generated += 1
        return new_id()


def placeholder_institution() -> Dict[str, Any]:
    """Generic institution used when a bundle carries none."""
    return {
        "name": PLACEHOLDER_INSTITUTION_NAME,
        "logoUrl": PLACEHOLDER_LOGO_URL,
        "cnpj": PLACEHOLDER_CNPJ,
        "city": PLACEHOLDER_INSTITUTION_CITY,
        "systemMode": SystemMode.SERVER.value,
    }


def sanitize_institution(institution: Any) -> Dict[str, Any]:
    if not isinstance(institution, dict):
        return placeholder_institution()

    fixed = _as_record(institution)
    if _absent(fixed.get("city")):
        fixed["city"] = DEFAULT_CITY
    if _absent(fixed.get("systemMode")):
        fixed["systemMode"] = SystemMode.SERVER.value
    if _absent(fixed.get("cnpj")):
        fixed["cnpj"] = PLACEHOLDER_CNPJ
    return fixed


def sanitize_agent(agent: Any, mint_id=new_id) -> Dict[str, Any]:
    fixed = _as_record(agent)
    if _blank_name(fixed.get("id")):
        fixed["id"] = mint_id()
    if _absent(fixed.get("role")):
        fixed["role"] = AgentRole.OPERATOR.value
    if _blank_name(fixed.get("name")):
        fixed["name"] = DEFAULT_AGENT_NAME
    if _blank_name(fixed.get("username")):
        fixed["username"] = new_username()
    return fixed


def sanitize_resident(resident: Any, mint_id=new_id, today: str = None) -> Dict[str, Any]:
    fixed = _as_record(resident)
    if _blank_name(fixed.get("id")):
        fixed["id"] = mint_id()
    if _blank_name(fixed.get("name")):
        fixed["name"] = DEFAULT_RESIDENT_NAME
    if _absent(fixed.get("relationship")):
        fixed["relationship"] = RelationshipType.OTHER.value
    if _absent(fixed.get("cpf")):
        fixed["cpf"] = PLACEHOLDER_CPF
    if _absent(fixed.get("rg")):
        fixed["rg"] = ""
    if _absent(fixed.get("neighborhood")):
        fixed["neighborhood"] = DEFAULT_RESIDENT_NEIGHBORHOOD
    if _absent(fixed.get("birthDate")):
        fixed["birthDate"] = today or today_iso()
    if _absent(fixed.get("education")):
        fixed["education"] = {"isStudying": False, "schoolName": "", "grade": ""}
    return fixed


def sanitize_territory(territory: Any, mint_id=new_id) -> Dict[str, Any]:
    fixed = _as_record(territory)
    if _blank_name(fixed.get("id")):
        fixed["id"] = mint_id()
    if _absent(fixed.get("neighborhood")):
        fixed["neighborhood"] = DEFAULT_TERRITORY_NEIGHBORHOOD
    return fixed


def sanitize(bundle: Any, now: datetime = None) -> Dict[str, Any]:
    """
    Produce a schema-complete bundle from a possibly partial or malformed one.

    Args:
        bundle: Any JSON-shaped value; non-dicts are treated as an empty bundle
        now: Clock override for the timestamp and birthDate defaults

    Returns:
        Dict with version, timestamp, institution, agents, residents, logs,
        territories and (when the input had one) config
    """
    source = bundle if isinstance(bundle, dict) else {}
    mint_id = _IdCounter()
    today = today_iso(now)

    timestamp = source.get("timestamp")
    if _absent(timestamp):
        timestamp = now_iso(now)

    raw_logs = _as_list(source.get("logs"))

    fixed = {
        "version": SCHEMA_VERSION,
        "timestamp": timestamp,
        "institution": sanitize_institution(source.get("institution")),
        "agents": [sanitize_agent(a, mint_id) for a in _as_list(source.get("agents"))],
        "residents": [
            sanitize_resident(r, mint_id, today) for r in _as_list(source.get("residents"))
        ],
        # Newest-first order is the caller's responsibility
        "logs": copy.deepcopy(raw_logs[:LOG_CAP]),
        "territories": [
            sanitize_territory(t, mint_id) for t in _as_list(source.get("territories"))
        ],
    }

    if not _absent(source.get("config")):
        fixed["config"] = copy.deepcopy(source["config"])

    logger.log_sanitize(
        {
            "agents": len(fixed["agents"]),
            "residents": len(fixed["residents"]),
            "territories": len(fixed["territories"]),
            "logs": len(fixed["logs"]),
        },
        generated_ids=mint_id.generated,
        logs_dropped=max(len(raw_logs) - LOG_CAP, 0),
    )

    return fixed
