"""
Domain entities for the content catalog.

Read-only value objects for the four catalog levels
(domain -> technology -> tutorial -> lesson). These entities are
framework-agnostic and are built from the backend's JSON payloads.
"""

import math
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

from .exceptions import RecordValidationError, UnknownLevelError


class Level(str, Enum):
    """Catalog levels, ordered from the root down."""

    DOMAIN = "domain"
    TECHNOLOGY = "technology"
    TUTORIAL = "tutorial"
    LESSON = "lesson"

    @property
    def child_level(self) -> Optional["Level"]:
        """Level of this level's children, None for lessons."""
        return _CHILD_LEVELS[self]

    @property
    def is_leaf(self) -> bool:
        return self.child_level is None

    @classmethod
    def parse(cls, value: Union[str, "Level"]) -> "Level":
        """
        Resolve a level from its name.

        Accepts singular and plural spellings in any case
        (``"Technologies"`` resolves to ``Level.TECHNOLOGY``).

        Raises:
            UnknownLevelError: If the name matches no level
        """
        if isinstance(value, Level):
            return value
        normalized = str(value).strip().lower()
        for level in cls:
            if normalized in (level.value, _PLURALS[level]):
                return level
        raise UnknownLevelError(str(value))


_CHILD_LEVELS = {
    Level.DOMAIN: Level.TECHNOLOGY,
    Level.TECHNOLOGY: Level.TUTORIAL,
    Level.TUTORIAL: Level.LESSON,
    Level.LESSON: None,
}

_PLURALS = {
    Level.DOMAIN: "domains",
    Level.TECHNOLOGY: "technologies",
    Level.TUTORIAL: "tutorials",
    Level.LESSON: "lessons",
}


def _record_id(record_type: str, payload: Mapping[str, Any]) -> str:
    raw = payload.get("_id", payload.get("id"))
    if raw is None or str(raw) == "":
        raise RecordValidationError(record_type, "missing id", payload=dict(payload))
    return str(raw)


def _reference_id(value: Any) -> Optional[str]:
    """Parent references arrive either as a bare id or as a populated object."""
    if value is None:
        return None
    if isinstance(value, Mapping):
        nested = value.get("_id", value.get("id"))
        return str(nested) if nested is not None else None
    return str(value)


def _optional_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def _lesson_order(raw: Any) -> Union[int, float]:
    """
    Parse a lesson position.

    Numbers and numeric strings are accepted; fractional positions are kept
    so they sort between their neighbours. Missing means 0.
    """
    if raw is None:
        return 0
    if isinstance(raw, bool):
        raise RecordValidationError("lesson", f"order must be a number, got {raw!r}")
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise RecordValidationError("lesson", f"order must be a number, got {raw!r}")
    if not math.isfinite(value):
        raise RecordValidationError("lesson", f"order must be a number, got {raw!r}")
    return int(value) if value.is_integer() else value


def _ensure_mapping(record_type: str, payload: Any) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise RecordValidationError(
            record_type, f"expected an object, got {type(payload).__name__}"
        )
    return payload


@dataclass(frozen=True)
class Domain:
    """Top-level subject area, e.g. "Web Development"."""

    id: str
    name: str
    icon: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None

    level = Level.DOMAIN

    @property
    def label(self) -> str:
        return self.name

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Domain":
        payload = _ensure_mapping("domain", payload)
        return cls(
            id=_record_id("domain", payload),
            name=str(payload.get("name") or ""),
            icon=_optional_str(payload.get("icon")),
            slug=_optional_str(payload.get("slug")),
            description=_optional_str(payload.get("description")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Technology:
    """A technology taught within a domain, e.g. "HTML"."""

    id: str
    name: str
    slug: Optional[str] = None
    domain_id: Optional[str] = None

    level = Level.TECHNOLOGY

    @property
    def label(self) -> str:
        return self.name

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Technology":
        payload = _ensure_mapping("technology", payload)
        return cls(
            id=_record_id("technology", payload),
            name=str(payload.get("name") or ""),
            slug=_optional_str(payload.get("slug")),
            domain_id=_reference_id(payload.get("domain")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Tutorial:
    """An ordered course of lessons for one technology."""

    id: str
    title: str
    slug: Optional[str] = None
    technology_id: Optional[str] = None

    level = Level.TUTORIAL

    @property
    def label(self) -> str:
        return self.title

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Tutorial":
        payload = _ensure_mapping("tutorial", payload)
        return cls(
            id=_record_id("tutorial", payload),
            title=str(payload.get("title") or ""),
            slug=_optional_str(payload.get("slug")),
            technology_id=_reference_id(payload.get("technology")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Lesson:
    """A single lesson. Lessons are the leaves of the catalog."""

    id: str
    title: str
    order: Union[int, float] = 0
    slug: Optional[str] = None
    duration: Optional[int] = None
    completed: bool = False
    tutorial_id: Optional[str] = None

    level = Level.LESSON

    @property
    def label(self) -> str:
        return self.title

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Lesson":
        payload = _ensure_mapping("lesson", payload)
        order = _lesson_order(payload.get("order"))

        raw_duration = payload.get("duration")
        try:
            duration = int(raw_duration) if raw_duration is not None else None
        except (TypeError, ValueError):
            duration = None

        return cls(
            id=_record_id("lesson", payload),
            title=str(payload.get("title") or ""),
            order=order,
            slug=_optional_str(payload.get("slug")),
            duration=duration,
            completed=bool(payload.get("completed", payload.get("isCompleted", False))),
            tutorial_id=_reference_id(payload.get("tutorial")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


CatalogRecord = Union[Domain, Technology, Tutorial, Lesson]

RECORD_TYPES = {
    Level.DOMAIN: Domain,
    Level.TECHNOLOGY: Technology,
    Level.TUTORIAL: Tutorial,
    Level.LESSON: Lesson,
}


def record_from_payload(level: Level, payload: Mapping[str, Any]) -> CatalogRecord:
    """Build the record type matching ``level`` from a JSON payload."""
    return RECORD_TYPES[level].from_payload(payload)
