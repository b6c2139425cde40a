"""
Domain: Validation findings.

Contract excerpts implemented here:
- A ValidationError is {field, message, path}. Its identity for
  deduplication is the pair (field, message); the path and level do not
  take part.
- A ValidationResult is valid iff its error list is empty. Validity is
  derived, never set.
- Deduplication keeps the first occurrence and preserves order.
"""

from __future__ import annotations

from dataclasses import dataclass, field as dataclass_field
from typing import Dict, Iterable, List, Sequence, Tuple

GENERAL_SECTION = "general"


class ErrorLevel:
    ERROR = "error"
    FATAL = "fatal"


@dataclass(frozen=True, slots=True)
class ValidationError:
    field: str
    message: str
    path: Tuple[str, ...] = ()
    level: str = ErrorLevel.ERROR

    def __post_init__(self) -> None:
        # Accept any sequence of segments but store an immutable tuple.
        object.__setattr__(self, "path", tuple(str(p) for p in self.path))

    @property
    def key(self) -> Tuple[str, str]:
        return (self.field, self.message)

    @property
    def section(self) -> str:
        return self.path[0] if self.path else GENERAL_SECTION

    def to_dict(self) -> Dict[str, object]:
        return {
            "field": self.field,
            "message": self.message,
            "path": list(self.path),
            "level": self.level,
        }


def dedupe_errors(errors: Iterable[ValidationError]) -> List[ValidationError]:
    seen = set()
    unique: List[ValidationError] = []
    for error in errors:
        if error.key in seen:
            continue
        seen.add(error.key)
        unique.append(error)
    return unique


def group_errors_by_section(errors: Iterable[ValidationError]) -> Dict[str, List[ValidationError]]:
    """Group errors by the root of their path; errors without a path go under 'general'."""

    grouped: Dict[str, List[ValidationError]] = {}
    for error in errors:
        grouped.setdefault(error.section, []).append(error)
    return grouped


@dataclass(frozen=True, slots=True)
class ValidationResult:
    errors: Tuple[ValidationError, ...] = dataclass_field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "errors", tuple(dedupe_errors(self.errors)))

    @classmethod
    def from_errors(cls, errors: Sequence[ValidationError]) -> "ValidationResult":
        return cls(errors=tuple(errors))

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def fatal_errors(self) -> List[ValidationError]:
        return [e for e in self.errors if e.level == ErrorLevel.FATAL]

    def by_section(self) -> Dict[str, List[ValidationError]]:
        return group_errors_by_section(self.errors)

    def to_dict(self) -> Dict[str, object]:
        return {
            "is_valid": self.is_valid,
            "errors": [e.to_dict() for e in self.errors],
        }


__all__ = [
    "GENERAL_SECTION",
    "ErrorLevel",
    "ValidationError",
    "ValidationResult",
    "dedupe_errors",
    "group_errors_by_section",
]
