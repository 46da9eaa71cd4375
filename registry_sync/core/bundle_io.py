"""
Bundle file reading, parsing and writing.

Bundles are UTF-8 JSON documents written with a two-space indent. Reading
distinguishes two failures: the file cannot be read at all (BundleIOError,
OS message surfaced verbatim) and the bytes are not valid JSON (ParseError).
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Union

from .errors import BundleIOError, ParseError
from .identity import city_slug, now_iso, today_iso
from ..util.logging import logger

PARSE_ERROR_MESSAGE = (
    "Invalid or corrupted bundle file. Make sure it is a valid JSON export from this system."
)


def parse_bundle(content: Union[str, bytes]) -> Any:
    """Parse serialized bundle content without validating its shape.

    Raises:
        ParseError: If content is not valid UTF-8 JSON or nests too deeply to decode
    """
    try:
        if isinstance(content, bytes):
            content = content.decode("utf-8-sig")
        return json.loads(content)
    except (ValueError, RecursionError) as e:
        raise ParseError(PARSE_ERROR_MESSAGE) from e


def read_bundle_bytes(path: Union[str, Path]) -> bytes:
    """Read a bundle file's raw bytes.

    Raises:
        BundleIOError: If the file cannot be read
    """
    try:
        with open(path, 'rb') as f:
            data = f.read()
    except OSError as e:
        logger.log_bundle_io("read", str(path), status="failed", details={"error": str(e)})
        raise BundleIOError(str(e)) from e

    logger.log_bundle_io("read", str(path), details={"bytes": len(data)})
    return data


def read_bundle_file(path: Union[str, Path]) -> Any:
    """Read and parse a bundle file (shape is not validated here)."""
    return parse_bundle(read_bundle_bytes(path))


def serialize_bundle(bundle: Dict[str, Any]) -> str:
    return json.dumps(bundle, indent=2, ensure_ascii=False)


def write_bundle_file(bundle: Dict[str, Any], path: Union[str, Path]) -> Path:
    """Write a bundle as UTF-8 JSON, creating parent directories.

    Raises:
        BundleIOError: If the file cannot be written
    """
    path = Path(path)
    data = serialize_bundle(bundle).encode('utf-8')

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'wb') as f:
            f.write(data)
    except OSError as e:
        logger.log_bundle_io("write", str(path), status="failed", details={"error": str(e)})
        raise BundleIOError(str(e)) from e

    logger.log_bundle_io("write", str(path), details={"bytes": len(data)})
    return path


def station_package_filename(city: str, now: datetime = None) -> str:
    """Name of a station export, e.g. station_package_Sao_Paulo_2025-01-31.json."""
    return f"station_package_{city_slug(city)}_{today_iso(now)}.json"


def backup_filename(now: datetime = None) -> str:
    """Name of a full backup, with ':' and '.' of the timestamp replaced by '-'."""
    stamp = now_iso(now).replace(":", "-").replace(".", "-")
    return f"registry_backup_{stamp}.json"
