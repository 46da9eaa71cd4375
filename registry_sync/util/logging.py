"""Structured logging utility for registry sanitization, sync and backup operations."""

import logging
from typing import Any, Dict, List

# Record fields whose values never reach a log line
SENSITIVE_FIELDS = ['password', 'cpf', 'rg', 'email', 'phone']
MAX_LOGGED_STRING = 100


class StructuredLogger:
    """Structured logger for registry operations."""

    def __init__(self, name: str = "registry_sync"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        self.logger.info(message)

    def log_sanitize(self, counts: Dict[str, int], generated_ids: int, logs_dropped: int = 0):
        """Log a sanitization pass with per-collection counts."""
        details = dict(counts)
        details["generated_ids"] = generated_ids
        if logs_dropped:
            details["logs_dropped"] = logs_dropped

        self.log_operation("bundle.sanitize", "success", details)

    def log_merge(self, new_count: int, updated_count: int, skipped_territories: int,
                  placeholder_matches: int = 0, status: str = "success"):
        """Log a reconciliation merge result."""
        details = {
            "new": new_count,
            "updated": updated_count,
            "skipped_territories": skipped_territories,
        }
        if placeholder_matches:
            details["placeholder_matches"] = placeholder_matches

        self.log_operation("bundle.merge", status, details)

    def log_bundle_io(self, operation: str, path: str, status: str = "success", details: Dict[str, Any] = None):
        """Log a bundle file read or write."""
        log_details = {"path": path}
        if details:
            log_details.update(details)

        self.log_operation(f"bundle_io.{operation}", status, log_details)

    def log_flow(self, flow: str, status: str, details: Dict[str, Any] = None):
        """Log a sync/backup flow step."""
        self.log_operation(f"flow.{flow}", status, details)

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)

# Global logger instance
logger = StructuredLogger()


def audit_event(event_type: str, identifiers: Dict[str, Any], payload: Dict[str, Any] = None, sensitive_fields: List[str] = None):
    """General audit event logging with privacy controls."""
    if sensitive_fields is None:
        sensitive_fields = SENSITIVE_FIELDS

    log_details = identifiers.copy() if identifiers else {}

    if payload:
        log_details["payload"] = sanitize_payload(payload, sensitive_fields=sensitive_fields)

    # Determine operation type from event_type
    if event_type.startswith("sync"):
        operation = "sync"
    elif event_type.startswith("backup"):
        operation = "backup"
    else:
        operation = event_type.replace(".", "_")

    logger.log_operation(operation, "audit", log_details)


def sanitize_payload(payload: Any, reveal_sensitive: bool = False, sensitive_fields: List[str] = None) -> Any:
    """Copy of a payload that is safe to log.

    Sensitive record fields are masked at any depth and long strings are cut
    to MAX_LOGGED_STRING characters.
    """
    fields = SENSITIVE_FIELDS if sensitive_fields is None else sensitive_fields

    if isinstance(payload, dict):
        return {
            key: "[REDACTED]" if key in fields and not reveal_sensitive
            else sanitize_payload(value, reveal_sensitive, fields)
            for key, value in payload.items()
        }
    if isinstance(payload, (list, tuple)):
        return [sanitize_payload(item, reveal_sensitive, fields) for item in payload]
    if isinstance(payload, str) and len(payload) > MAX_LOGGED_STRING:
        return payload[:MAX_LOGGED_STRING] + "..."
    return payload
