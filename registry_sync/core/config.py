"""
Registry configuration read from the environment.

Values are module constants resolved once at import time; `get_db_path()`
re-reads DB_PATH on each call so tests and scripts can redirect the store.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Local state store
DB_PATH = os.getenv("DB_PATH", "./data/registry.db")

DEBUG = os.getenv("DEBUG", "false").lower() == "true"

# Bundle schema
SCHEMA_VERSION = os.getenv("SCHEMA_VERSION", "2.5")
LOG_CAP = int(os.getenv("LOG_CAP", "1000"))

# Where CLI tools write exported bundles
EXPORT_DIR = os.getenv("EXPORT_DIR", "./exports")

SYNC_API_ENABLED = os.getenv("SYNC_API_ENABLED", "true").lower() == "true"

# Version string
VERSION = "2.5.0"

# Placeholder values written by the sanitizer
PLACEHOLDER_CNPJ = "00.000.000/0001-00"
PLACEHOLDER_CPF = "000.000.000-00"
PLACEHOLDER_LOGO_URL = "https://placehold.co/100x100/2563eb/white?text=LOGO"
PLACEHOLDER_INSTITUTION_NAME = "Municipal Government"
PLACEHOLDER_INSTITUTION_CITY = "Central"
DEFAULT_CITY = "Not Informed"
DEFAULT_AGENT_NAME = "Operational Agent"
DEFAULT_RESIDENT_NAME = "Unidentified Resident"
DEFAULT_RESIDENT_NEIGHBORHOOD = "Neighborhood Not Informed"
DEFAULT_TERRITORY_NEIGHBORHOOD = "General"


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "false").lower() == "true"


def get_db_path() -> str:
    """Current state store path (DB_PATH env var, falling back to the import-time value)."""
    return os.getenv("DB_PATH", DB_PATH)


def ensure_db_directory(db_path: str = None):
    """Ensure the database directory exists."""
    Path(db_path or get_db_path()).parent.mkdir(parents=True, exist_ok=True)


def ensure_export_directory() -> Path:
    """Ensure the export directory exists and return it."""
    export_dir = Path(os.getenv("EXPORT_DIR", EXPORT_DIR))
    export_dir.mkdir(parents=True, exist_ok=True)
    return export_dir


def validate_config():
    """Validate configuration and return any issues."""
    issues = []

    if LOG_CAP <= 0:
        issues.append("LOG_CAP must be a positive integer")

    if not SCHEMA_VERSION.strip():
        issues.append("SCHEMA_VERSION cannot be empty")

    return issues
