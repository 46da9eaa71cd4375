"""
Reconciliation merger - pairwise union of local and incoming collections.

The merger implements an "incoming-wins" policy for residents, keyed on the
national ID (cpf): a matching local record is overlaid field by field with
the incoming one, unmatched incoming records are appended. Territories are
append-only reference data keyed on (street, number); the first-seen record
is kept.

Both sides are expected to be sanitized already. The only precondition
checked here is that the incoming bundle carries a residents list.
"""

import copy
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from .config import PLACEHOLDER_CPF
from .errors import FormatError
from ..util.logging import logger


@dataclass
class MergeResult:
    """Merged collections plus counts for operator feedback."""
    residents: List[Dict[str, Any]]
    territories: List[Dict[str, Any]]
    new_count: int = 0
    updated_count: int = 0
    skipped_territories: int = 0
    placeholder_matches: int = 0

    def summary(self) -> Dict[str, int]:
        return {
            "new": self.new_count,
            "updated": self.updated_count,
            "skipped_territories": self.skipped_territories,
            "placeholder_matches": self.placeholder_matches,
        }


def _identity(value: Any) -> Any:
    """Dict key for a JSON value under strict equality.

    Scalars match on type and value (true never matches 1). Lists and objects
    never match anything, so each one gets a fresh key.
    """
    if isinstance(value, bool):
        return ("bool", value)
    if isinstance(value, (int, float)):
        return ("number", value)
    if value is None or isinstance(value, str):
        return value
    return object()


def resident_key(resident: Dict[str, Any]) -> Any:
    """Merge identity of a resident: the national ID."""
    return _identity(resident.get("cpf"))


def territory_key(territory: Dict[str, Any]) -> Tuple[Any, Any]:
    """Merge identity of a territory: the (street, number) pair."""
    return (_identity(territory.get("street")), _identity(territory.get("number")))


def merge_residents(local: List[Dict[str, Any]], incoming: List[Any]) -> Tuple[List[Dict[str, Any]], int, int, int]:
    """Merge incoming residents into a copy of local.

    Returns (merged, new_count, updated_count, placeholder_matches).
    """
    merged = [copy.deepcopy(r) for r in local if isinstance(r, dict)]

    # First index per identity, mirroring a front-to-back scan
    index: Dict[Any, int] = {}
    for i, resident in enumerate(merged):
        index.setdefault(resident_key(resident), i)

    new_count = 0
    updated_count = 0
    placeholder_matches = 0

    for resident in incoming:
        if not isinstance(resident, dict):
            logger.warning(f"Skipping non-record resident entry of type {type(resident).__name__}")
            continue

        key = resident_key(resident)
        existing_idx = index.get(key)
        if existing_idx is not None:
            merged[existing_idx] = {**merged[existing_idx], **copy.deepcopy(resident)}
            updated_count += 1
            if resident.get("cpf") == PLACEHOLDER_CPF:
                placeholder_matches += 1
        else:
            merged.append(copy.deepcopy(resident))
            index[key] = len(merged) - 1
            new_count += 1

    return merged, new_count, updated_count, placeholder_matches


def merge_territories(local: List[Dict[str, Any]], incoming: Any) -> Tuple[List[Dict[str, Any]], int]:
    """Append incoming territories whose (street, number) is not yet known.

    Returns (merged, skipped_count).
    """
    merged = [copy.deepcopy(t) for t in local if isinstance(t, dict)]
    if not isinstance(incoming, list):
        return merged, 0

    seen = {territory_key(t) for t in merged}
    skipped = 0

    for territory in incoming:
        if not isinstance(territory, dict):
            continue

        key = territory_key(territory)
        if key in seen:
            skipped += 1
            continue

        merged.append(copy.deepcopy(territory))
        seen.add(key)

    return merged, skipped


def merge(local_residents: List[Dict[str, Any]], local_territories: List[Dict[str, Any]], incoming_bundle: Dict[str, Any]) -> MergeResult:
    """
    Reconcile an incoming bundle with the local collections.

    Args:
        local_residents: Current resident collection (not mutated)
        local_territories: Current territory collection (not mutated)
        incoming_bundle: Sanitized bundle from another station or a restore

    Returns:
        MergeResult with the merged collections and new/updated counts

    Raises:
        FormatError: If incoming_bundle has no residents list
    """
    if not isinstance(incoming_bundle, dict) or not isinstance(incoming_bundle.get("residents"), list):
        logger.log_merge(0, 0, 0, status="rejected")
        raise FormatError("Incompatible data format: bundle has no residents list")

    residents, new_count, updated_count, placeholder_matches = merge_residents(
        local_residents or [], incoming_bundle["residents"]
    )
    territories, skipped = merge_territories(
        local_territories or [], incoming_bundle.get("territories")
    )

    if placeholder_matches:
        logger.warning(
            f"{placeholder_matches} incoming residents matched on the placeholder national ID "
            f"{PLACEHOLDER_CPF} and were merged into one record"
        )

    logger.log_merge(new_count, updated_count, skipped, placeholder_matches)

    return MergeResult(
        residents=residents,
        territories=territories,
        new_count=new_count,
        updated_count=updated_count,
        skipped_territories=skipped,
        placeholder_matches=placeholder_matches,
    )
