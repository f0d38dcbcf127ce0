"""
Custom exceptions for the catalog tree domain.

These exceptions represent domain-level errors and are independent
of infrastructure concerns (HTTP, framework, etc.).
"""

from typing import Any, Optional


class CatalogTreeException(Exception):
    """Base exception for all catalog tree errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class CatalogFetchError(CatalogTreeException):
    """Raised when a list query against the catalog backend fails."""

    def __init__(
        self,
        level: Optional[str],
        parent_id: Optional[str] = None,
        reason: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        target = level or "root"
        message = f"Failed to load children of {target}"
        if parent_id is not None:
            message += f" '{parent_id}'"
        if reason:
            message += f": {reason}"
        self.level = level
        self.parent_id = parent_id
        self.reason = reason
        self.status_code = status_code
        super().__init__(
            message=message,
            details={
                "level": level,
                "parent_id": parent_id,
                "reason": reason,
                "status_code": status_code,
            },
        )


class RecordValidationError(CatalogTreeException):
    """Raised when a catalog record payload is malformed."""

    def __init__(self, record_type: str, reason: str, payload: Any = None):
        message = f"Invalid {record_type} record: {reason}"
        super().__init__(
            message=message,
            details={"record_type": record_type, "reason": reason, "payload": payload},
        )


class UnknownLevelError(CatalogTreeException):
    """Raised when a level name does not match any catalog level."""

    def __init__(self, value: str):
        super().__init__(
            message=f"Unknown catalog level: {value}", details={"level": value}
        )
