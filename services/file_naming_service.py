"""
File naming service.

Derives and parses the canonical output file name:

    {identity code}_{INSERIMENTO|AGGIORNAMENTO}_{description}.XML

- The identity code is 16 alphanumeric characters. Its case is left as
  given; checking that it is upper-case is a validation concern.
- The description is upper-cased, reduced to A-Z and 0-9 and truncated to
  25 characters. A description that cleans down to nothing is an error.
- The unique variant inserts a millisecond timestamp before the extension.
- parse_file_name recovers the parts (the cleaned description, not the
  original text) and tolerates the timestamp suffix.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass
from typing import Optional, Union

from domain.errors import FileNameError
from domain.formatting import clean_description, is_valid_identity_code
from domain.offer import Action

FILE_EXTENSION = ".XML"

_FILE_NAME_RE = re.compile(
    r"(?P<identity>[A-Za-z0-9]{16})_"
    r"(?P<action>INSERIMENTO|AGGIORNAMENTO)_"
    r"(?P<description>[A-Z0-9]{1,25})"
    r"(?:_(?P<suffix>\d+))?"
    r"\.XML"
)


@dataclass(frozen=True, slots=True)
class FileNameParts:
    identity_code: str
    action: Action
    description: str


@dataclass(frozen=True, slots=True)
class ParsedFileName:
    identity_code: str
    action: Action
    description_prefix: str
    disambiguator: Optional[int] = None


def generate_file_name(
    identity_code: str,
    action: Union[str, Action],
    description: str,
) -> str:
    """
    Build the canonical file name.

    Args:
        identity_code: 16 alphanumeric characters
        action: INSERIMENTO/AGGIORNAMENTO (insert/update accepted)
        description: Free text; cleaned before use

    Returns:
        File name such as "ABCDEFGH12345678_INSERIMENTO_WINTEROFFER2024.XML"

    Raises:
        FileNameError: If the identity code is malformed, the action is not
            one of the two tokens, or the description cleans to nothing
    """
    if not is_valid_identity_code(identity_code):
        raise FileNameError(
            f"Invalid identity code {identity_code!r}: expected 16 alphanumeric characters",
            identity_code=identity_code,
            description=description,
        )

    try:
        token = Action.parse(action)
    except ValueError as exc:
        raise FileNameError(str(exc), identity_code=identity_code, description=description) from exc

    cleaned = clean_description(description or "")
    if not cleaned:
        raise FileNameError(
            "Description must contain at least one alphanumeric character",
            identity_code=identity_code,
            description=description,
        )

    return f"{identity_code}_{token.value}_{cleaned}{FILE_EXTENSION}"


def generate_file_name_from_parts(parts: FileNameParts) -> str:
    return generate_file_name(parts.identity_code, parts.action, parts.description)


def generate_unique_file_name(
    identity_code: str,
    action: Union[str, Action],
    description: str,
    timestamp_ms: Optional[int] = None,
) -> str:
    """Canonical name with a millisecond timestamp inserted before the extension."""

    name = generate_file_name(identity_code, action, description)
    if timestamp_ms is None:
        timestamp_ms = time.time_ns() // 1_000_000
    stem = name[: -len(FILE_EXTENSION)]
    return f"{stem}_{timestamp_ms}{FILE_EXTENSION}"


def parse_file_name(file_name: str) -> Optional[ParsedFileName]:
    """Parts of a well-formed file name, or None if the name does not match."""

    match = _FILE_NAME_RE.fullmatch(file_name)
    if match is None:
        return None
    suffix = match.group("suffix")
    return ParsedFileName(
        identity_code=match.group("identity"),
        action=Action(match.group("action")),
        description_prefix=match.group("description"),
        disambiguator=int(suffix) if suffix is not None else None,
    )


__all__ = [
    "FILE_EXTENSION",
    "FileNameParts",
    "ParsedFileName",
    "generate_file_name",
    "generate_file_name_from_parts",
    "generate_unique_file_name",
    "parse_file_name",
]
