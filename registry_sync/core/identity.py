"""Identifier and wall-clock helpers shared by the sanitizer and the flows."""

import re
import uuid
from datetime import datetime, timezone


def new_id() -> str:
    """Fresh 128-bit random identifier, hex encoded (URL-safe)."""
    return uuid.uuid4().hex


def new_username(prefix: str = "agent") -> str:
    """Generated login name for an agent record without one."""
    return f"{prefix}.{uuid.uuid4().hex[:6]}"


def now_iso(now: datetime = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def today_iso(now: datetime = None) -> str:
    """Date portion of `now_iso`."""
    return now_iso(now).split("T")[0]


def parse_iso(value: str):
    """Parse an ISO-8601 timestamp written by `now_iso` (or any fromisoformat input).

    Returns None for missing or unparseable values.
    """
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def city_slug(city: str) -> str:
    """Collapse whitespace runs in a city name to underscores for filenames."""
    return re.sub(r"\s+", "_", str(city or ""))
