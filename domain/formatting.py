"""
Domain: Formatting utilities (pure).

Fixed-precision decimals, the timestamp and month/year text patterns, XML
text escaping and identifier cleaning. Nothing here holds state.

Contract excerpts implemented here:
- Numeric fields are rendered fixed-point, never in scientific notation,
  rounded half-up and padded with trailing zeros to their contracted places.
- Each numeric element has exactly one precision:
  POTENZA_MIN/POTENZA_MAX 1 place, PREZZO/VALORE_DISP 6 places,
  consumption bounds and durations are whole numbers.
- Timestamps use DD/MM/YYYY_HH:MM:SS; month/year fields use MM/YYYY.
- A file name description keeps only A-Z and 0-9, upper-cased, at most
  25 characters.
"""

from __future__ import annotations

import math
import re
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Dict, Tuple, Union

Number = Union[int, float, Decimal, str]

TIMESTAMP_FORMAT = "%d/%m/%Y_%H:%M:%S"
TIMESTAMP_PATTERN = "DD/MM/YYYY_HH:MM:SS"
MONTH_YEAR_PATTERN = "MM/YYYY"

_TIMESTAMP_RE = re.compile(r"\d{2}/\d{2}/\d{4}_\d{2}:\d{2}:\d{2}")
_MONTH_YEAR_RE = re.compile(r"(\d{2})/(\d{4})")
_IDENTITY_CODE_RE = re.compile(r"[A-Za-z0-9]{16}")
_XML_INVALID_CHAR_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")
_NON_ALNUM_RE = re.compile(r"[^A-Z0-9]")

DESCRIPTION_MAX_LENGTH = 25

DECIMAL_PLACES: Dict[str, int] = {
    "POTENZA_MIN": 1,
    "POTENZA_MAX": 1,
    "PREZZO": 6,
    "VALORE_DISP": 6,
    "CONSUMO_MIN": 0,
    "CONSUMO_MAX": 0,
    "CONSUMO_DA": 0,
    "CONSUMO_A": 0,
    "DURATA": 0,
    "VALIDO_DA": 0,
}


def to_decimal(value: Number) -> Decimal:
    """
    Convert a numeric input to Decimal without binary float artefacts.

    Floats go through their shortest repr so 0.1 becomes Decimal("0.1").

    Raises:
        ValueError: If the value is not a finite number
    """

    if isinstance(value, bool):
        raise ValueError(f"Not a number: {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"Not a finite number: {value!r}")
        result = Decimal(repr(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation as exc:
            raise ValueError(f"Not a number: {value!r}") from exc
    else:
        raise ValueError(f"Not a number: {value!r}")

    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result


def format_decimal(value: Number, places: int) -> str:
    """
    Render a number fixed-point with exactly `places` decimals.

    Example:
        format_decimal(3.0, 1)   # "3.0"
        format_decimal(0.1, 6)   # "0.100000"
        format_decimal(2.25, 1)  # "2.3"
    """

    if places < 0:
        raise ValueError("places must be >= 0")

    quantum = Decimal(1).scaleb(-places)
    rounded = to_decimal(value).quantize(quantum, rounding=ROUND_HALF_UP)
    if rounded.is_zero():
        rounded = rounded.copy_abs()
    return f"{rounded:f}"


def format_integer(value: Number) -> str:
    return format_decimal(value, 0)


def decimal_places_of(value: Number) -> int:
    """Number of significant decimal places in a value (trailing zeros ignored)."""

    dec = to_decimal(value)
    if dec.is_zero():
        return 0
    exponent = dec.normalize().as_tuple().exponent
    return max(0, -int(exponent))


def format_timestamp(value: datetime) -> str:
    return value.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(text: str) -> datetime:
    """
    Parse a DD/MM/YYYY_HH:MM:SS timestamp.

    Raises:
        ValueError: If the text does not match the pattern or is not a real date
    """

    if not isinstance(text, str) or not _TIMESTAMP_RE.fullmatch(text):
        raise ValueError(f"Expected timestamp in format {TIMESTAMP_PATTERN}: {text!r}")
    return datetime.strptime(text, TIMESTAMP_FORMAT)


def is_timestamp(text: object) -> bool:
    if not isinstance(text, str):
        return False
    try:
        parse_timestamp(text)
    except ValueError:
        return False
    return True


def format_month_year(month: int, year: int) -> str:
    if not 1 <= month <= 12:
        raise ValueError("month must be between 1 and 12")
    if not 1000 <= year <= 9999:
        raise ValueError("year must have four digits")
    return f"{month:02d}/{year:04d}"


def parse_month_year(text: str) -> Tuple[int, int]:
    """
    Parse a MM/YYYY value into (month, year).

    Raises:
        ValueError: If the text does not match the pattern or the month is out of range
    """

    match = _MONTH_YEAR_RE.fullmatch(text) if isinstance(text, str) else None
    if match is None:
        raise ValueError(f"Expected month/year in format {MONTH_YEAR_PATTERN}: {text!r}")
    month, year = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise ValueError(f"Month out of range: {text!r}")
    return month, year


def is_month_year(text: object) -> bool:
    try:
        parse_month_year(text)  # type: ignore[arg-type]
    except ValueError:
        return False
    return True


def escape_xml(text: str, quote: bool = False) -> str:
    """Escape text for element content, or for an attribute value when `quote` is set."""

    text = text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
    if quote:
        text = text.replace('"', "&quot;").replace("'", "&apos;")
    return text


def has_invalid_xml_chars(text: str) -> bool:
    """True if the text holds characters XML 1.0 cannot carry (most C0 controls, lone surrogates)."""

    return _XML_INVALID_CHAR_RE.search(text) is not None


def clean_description(description: str) -> str:
    """
    Reduce a free-text description to its file-name form.

    Upper-cases, drops everything outside A-Z and 0-9 and truncates to
    25 characters. May return an empty string; callers decide whether
    that is an error.
    """

    return _NON_ALNUM_RE.sub("", description.upper())[:DESCRIPTION_MAX_LENGTH]


def is_valid_identity_code(code: object, require_upper: bool = False) -> bool:
    """16 alphanumeric characters; upper-case only when `require_upper` is set."""

    if not isinstance(code, str) or not _IDENTITY_CODE_RE.fullmatch(code):
        return False
    return not require_upper or code == code.upper()


__all__ = [
    "TIMESTAMP_FORMAT",
    "TIMESTAMP_PATTERN",
    "MONTH_YEAR_PATTERN",
    "DESCRIPTION_MAX_LENGTH",
    "DECIMAL_PLACES",
    "to_decimal",
    "format_decimal",
    "format_integer",
    "decimal_places_of",
    "format_timestamp",
    "parse_timestamp",
    "is_timestamp",
    "format_month_year",
    "parse_month_year",
    "is_month_year",
    "escape_xml",
    "has_invalid_xml_chars",
    "clean_description",
    "is_valid_identity_code",
]
