"""
Domain: Typed errors for generation and naming misuse.

Validation findings are never raised; they are collected into a
ValidationResult. The errors here signal that a caller handed the generator
or the naming service something it should have validated first.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class GenerationError(Exception):
    """Raised when the generator refuses to encode a value."""

    def __init__(
        self,
        message: str,
        section: str,
        field: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.section = section
        self.field = field
        self.cause = cause

    def __str__(self) -> str:
        location = f"{self.section}.{self.field}" if self.field else self.section
        return f"{self.message} ({location})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": type(self).__name__,
            "message": self.message,
            "section": self.section,
            "field": self.field,
            "cause": str(self.cause) if self.cause is not None else None,
        }


class BatchGenerationError(Exception):
    """Raised when one offer of a batch fails; carries the offer's key and position."""

    def __init__(self, offer_code: str, index: int, cause: BaseException) -> None:
        super().__init__(f"Failed to generate offer {offer_code} (index {index}): {cause}")
        self.offer_code = offer_code
        self.index = index
        self.cause = cause


class FileNameError(Exception):
    """Raised when a file name cannot be derived from its parts."""

    def __init__(
        self,
        message: str,
        identity_code: Optional[str] = None,
        description: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.identity_code = identity_code
        self.description = description


__all__ = ["GenerationError", "BatchGenerationError", "FileNameError"]
