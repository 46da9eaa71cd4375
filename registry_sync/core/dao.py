"""
Data access for the local registry state.

The application owns persistence: flows compute a new state mapping and
`save_state` writes it back in a single transaction, so a failed flow never
leaves a half-written state behind.
"""

import json
from typing import Any, Dict, Iterable, Optional

from .db import get_db, init_db
from .schema import STATE_KEYS
from ..util.logging import logger

EMPTY_STATE = {
    "institution": None,
    "agents": [],
    "residents": [],
    "logs": [],
    "territories": [],
    "config": None,
}


def get_value(key: str, db_path: str = None) -> Optional[Any]:
    """Get one state value by key, or None when unset."""
    init_db(db_path)
    with get_db(db_path) as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT value FROM state WHERE key = ?", (key,))
        row = cursor.fetchone()

    if row is None:
        return None

    try:
        return json.loads(row[0])
    except json.JSONDecodeError:
        logger.warning(f"Stored value for '{key}' is not valid JSON; treating as unset")
        return None


def set_value(key: str, value: Any, db_path: str = None) -> None:
    """Set one state value."""
    save_state({key: value}, keys=[key], db_path=db_path)


def load_state(db_path: str = None) -> Dict[str, Any]:
    """Load the full registry state; unset keys get empty defaults."""
    init_db(db_path)
    state = {key: (list(v) if isinstance(v, list) else v) for key, v in EMPTY_STATE.items()}

    with get_db(db_path) as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT key, value FROM state")
        rows = cursor.fetchall()

    for key, raw in rows:
        if key not in STATE_KEYS:
            continue
        try:
            state[key] = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Stored value for '{key}' is not valid JSON; using default")

    return state


def save_state(state: Dict[str, Any], keys: Iterable[str] = STATE_KEYS, db_path: str = None) -> None:
    """Write the given state keys in one transaction."""
    init_db(db_path)
    rows = [(key, json.dumps(state.get(key), ensure_ascii=False)) for key in keys if key in state]

    with get_db(db_path) as conn:
        cursor = conn.cursor()
        cursor.executemany(
            """
            INSERT INTO state (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = CURRENT_TIMESTAMP
            """,
            rows
        )
        conn.commit()

    logger.log_operation("state.save", "success", {"keys": [key for key, _ in rows]})


def get_counts(db_path: str = None) -> Dict[str, int]:
    """Record counts per collection."""
    state = load_state(db_path)
    return {
        key: len(state[key]) if isinstance(state.get(key), list) else 0
        for key in ("agents", "residents", "territories", "logs")
    }
