"""
Domain layer for the catalog tree service.

Contains the catalog record types and domain exceptions.
"""

from .entities import (
    RECORD_TYPES,
    CatalogRecord,
    Domain,
    Lesson,
    Level,
    Technology,
    Tutorial,
    record_from_payload,
)
from .exceptions import (
    CatalogFetchError,
    CatalogTreeException,
    RecordValidationError,
    UnknownLevelError,
)

__all__ = [
    # Entities
    "CatalogRecord",
    "Domain",
    "Lesson",
    "Level",
    "RECORD_TYPES",
    "Technology",
    "Tutorial",
    "record_from_payload",
    # Exceptions
    "CatalogFetchError",
    "CatalogTreeException",
    "RecordValidationError",
    "UnknownLevelError",
]
