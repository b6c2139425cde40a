"""
Structural validator for offer XML.

Re-parses an offer document and re-checks it against the format contract,
independently of how it was produced. It is used as a self-check on
generator output and on third-party files alike.

Steps:
1. Well-formedness. Unparseable text yields one fatal error and stops.
2. Required sections, by dotted path.
3. Field constraints (required, max length, numeric min/max).
4. Enumerations: every occurrence of an enumerated element, indexed when
   repeated, must belong to its closed value set.
5. Date formats of the validity dates (and month/year fields).

A wrong root element is reported first and steps 2 to 5 still run against
the root that was found, so a misnamed but otherwise complete offer reports
only the root. Defects are collected, never raised. Findings use the same
ValidationError/ValidationResult shapes as the validation runner.

A dotted path segment may match an element literally named with a dot
(the generator emits "DettaglioOfferta.ModalitaAttivazione" as one element)
or a nested element chain; the longest literal match wins.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from domain.enumerations import allowed_values
from domain.formatting import (
    MONTH_YEAR_PATTERN,
    TIMESTAMP_PATTERN,
    is_month_year,
    is_timestamp,
    to_decimal,
)
from domain.validation import ErrorLevel, ValidationError, ValidationResult
from repositories.offer_files import read_text
from services.xml_generator import ROOT_ELEMENT, WEEKDAY_FIELDS

logger = logging.getLogger(__name__)

REQUIRED_SECTIONS: Tuple[str, ...] = (
    "IdentificativiOfferta",
    "DettaglioOfferta",
    "DettaglioOfferta.ModalitaAttivazione",
    "DettaglioOfferta.Contatti",
    "ValiditaOfferta",
    "MetodoPagamento",
)


@dataclass(frozen=True, slots=True)
class FieldConstraint:
    required: bool = False
    max_length: Optional[int] = None
    minimum: Optional[int] = None
    maximum: Optional[int] = None


FIELD_CONSTRAINTS: Dict[str, FieldConstraint] = {
    "IdentificativiOfferta.PIVA_UTENTE": FieldConstraint(required=True, max_length=16),
    "IdentificativiOfferta.COD_OFFERTA": FieldConstraint(required=True, max_length=32),
    "DettaglioOfferta.NOME_OFFERTA": FieldConstraint(required=True, max_length=255),
    "DettaglioOfferta.DESCRIZIONE": FieldConstraint(required=True, max_length=3000),
    "DettaglioOfferta.DURATA": FieldConstraint(required=True, minimum=-1, maximum=99),
    "DettaglioOfferta.GARANZIE": FieldConstraint(required=True, max_length=3000),
    "DettaglioOfferta.ModalitaAttivazione.DESCRIZIONE": FieldConstraint(max_length=2000),
    "DettaglioOfferta.Contatti.TELEFONO": FieldConstraint(required=True, max_length=15),
    "DettaglioOfferta.Contatti.URL_SITO_VENDITORE": FieldConstraint(max_length=100),
    "DettaglioOfferta.Contatti.URL_OFFERTA": FieldConstraint(max_length=100),
    "MetodoPagamento.DESCRIZIONE": FieldConstraint(max_length=25),
    "RiferimentiPrezzoEnergia.ALTRO": FieldConstraint(max_length=3000),
    "Dispacciamento.NOME": FieldConstraint(required=True, max_length=25),
    "Dispacciamento.DESCRIZIONE": FieldConstraint(max_length=255),
    "ComponenteImpresa.NOME": FieldConstraint(required=True, max_length=255),
    "ComponenteImpresa.DESCRIZIONE": FieldConstraint(required=True, max_length=255),
    "CondizioniContrattuali.ALTRO": FieldConstraint(max_length=20),
    "CondizioniContrattuali.DESCRIZIONE": FieldConstraint(required=True, max_length=3000),
    "Sconto.NOME": FieldConstraint(required=True, max_length=255),
    "Sconto.DESCRIZIONE": FieldConstraint(required=True, max_length=3000),
    "ProdottiServiziAggiuntivi.NOME": FieldConstraint(required=True, max_length=255),
    "ProdottiServiziAggiuntivi.DETTAGLIO": FieldConstraint(required=True, max_length=3000),
    "ProdottiServiziAggiuntivi.DETTAGLI_MACROAREA": FieldConstraint(max_length=100),
}
FIELD_CONSTRAINTS.update(
    {f"FasceOrarieSettimanale.{day}": FieldConstraint(max_length=49) for day in WEEKDAY_FIELDS}
)

DATE_FIELDS: Tuple[str, ...] = ("ValiditaOfferta.DATA_INIZIO", "ValiditaOfferta.DATA_FINE")

MONTH_YEAR_FIELDS: Tuple[str, ...] = (
    "ComponenteImpresa.IntervalloPrezzi.PeriodoValidita.VALIDO_FINO",
    "Sconto.PeriodoValidita.VALIDO_FINO",
)


@dataclass(frozen=True, slots=True)
class _Located:
    """An element plus its display path ("A.B[1].C") and segment path."""

    element: ET.Element
    labels: Tuple[str, ...]
    segments: Tuple[str, ...]

    @property
    def field(self) -> str:
        return ".".join(self.labels)


def _error(located_field: str, segments: Tuple[str, ...], message: str) -> ValidationError:
    return ValidationError(field=located_field, message=message, path=segments)


def _children(element: ET.Element, tag: str, base: "_Located") -> List["_Located"]:
    matches = [child for child in element if child.tag == tag]
    repeated = len(matches) > 1
    located = []
    for i, child in enumerate(matches):
        label = f"{tag}[{i}]" if repeated else tag
        segments = base.segments + ((tag, str(i)) if repeated else (tag,))
        located.append(_Located(child, base.labels + (label,), segments))
    return located


def _resolve(base: _Located, segments: List[str]) -> List[_Located]:
    """All elements under `base` matching a dotted path, longest literal tag first."""

    if not segments:
        return [base]
    for take in range(len(segments), 0, -1):
        tag = ".".join(segments[:take])
        matches = _children(base.element, tag, base)
        if matches:
            results: List[_Located] = []
            for match in matches:
                results.extend(_resolve(match, segments[take:]))
            return results
    return []


def _walk(base: _Located) -> Iterator[Tuple[_Located, ET.Element]]:
    """Every descendant with its parent element, repeated siblings indexed."""

    counts = Counter(child.tag for child in base.element)
    seen: Counter = Counter()
    for child in base.element:
        i = seen[child.tag]
        seen[child.tag] += 1
        repeated = counts[child.tag] > 1
        label = f"{child.tag}[{i}]" if repeated else child.tag
        segments = base.segments + ((child.tag, str(i)) if repeated else (child.tag,))
        located = _Located(child, base.labels + (label,), segments)
        yield located, base.element
        yield from _walk(located)


class StructuralValidator:
    """Stateless; one instance can check any number of documents."""

    def __init__(self, xsd_path: Optional[Union[str, Path]] = None) -> None:
        self.xsd_path = Path(xsd_path) if xsd_path is not None else None

    def schema_info(self) -> Dict[str, Any]:
        return {
            "root_element": ROOT_ELEMENT,
            "required_sections": list(REQUIRED_SECTIONS),
            "field_constraints": sorted(FIELD_CONSTRAINTS),
            "xsd_path": str(self.xsd_path) if self.xsd_path is not None else None,
        }

    def validate(self, text: Union[str, bytes]) -> ValidationResult:
        try:
            root = ET.fromstring(text)
        except ET.ParseError as exc:
            logger.warning(f"Rejected malformed XML: {exc}", extra={"parse_error": str(exc)})
            return ValidationResult.from_errors([
                ValidationError(
                    field="xml",
                    message=f"XML is not well-formed: {exc}",
                    path=("xml",),
                    level=ErrorLevel.FATAL,
                )
            ])

        base = _Located(root, (root.tag,), (root.tag,))
        errors: List[ValidationError] = []
        if root.tag != ROOT_ELEMENT:
            errors.append(
                _error(root.tag, base.segments, f"Root element must be '{ROOT_ELEMENT}', found '{root.tag}'")
            )

        errors.extend(self._check_required_sections(base))
        errors.extend(self._check_field_constraints(base))
        errors.extend(self._check_enumerations(base))
        errors.extend(self._check_dates(base))
        return ValidationResult.from_errors(errors)

    def validate_file(self, path: Union[str, Path]) -> ValidationResult:
        """Validate a file; read failures become a single fatal error."""

        try:
            text = read_text(path)
        except (OSError, UnicodeDecodeError) as exc:
            return ValidationResult.from_errors([
                ValidationError(
                    field="file",
                    message=f"Failed to read file: {exc}",
                    path=("file",),
                    level=ErrorLevel.FATAL,
                )
            ])
        return self.validate(text)

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def _check_required_sections(self, base: _Located) -> List[ValidationError]:
        errors = []
        for section in REQUIRED_SECTIONS:
            if not _resolve(base, section.split(".")):
                field = f"{ROOT_ELEMENT}.{section}"
                errors.append(
                    _error(field, (ROOT_ELEMENT,) + tuple(section.split(".")), f"Required section '{section}' is missing")
                )
        return errors

    def _check_field_constraints(self, base: _Located) -> List[ValidationError]:
        errors: List[ValidationError] = []
        for path, constraint in FIELD_CONSTRAINTS.items():
            parent_path, _, name = path.rpartition(".")
            for parent in _resolve(base, parent_path.split(".")):
                occurrences = _children(parent.element, name, parent)
                if not occurrences and constraint.required:
                    field = f"{parent.field}.{name}"
                    errors.append(
                        _error(field, parent.segments + (name,), f"Required field '{field}' is missing or empty")
                    )
                for located in occurrences:
                    errors.extend(self._check_value(located, constraint))
        return errors

    def _check_value(self, located: _Located, constraint: FieldConstraint) -> List[ValidationError]:
        field = located.field
        text = located.element.text or ""
        if not text.strip():
            if constraint.required:
                return [_error(field, located.segments, f"Required field '{field}' is missing or empty")]
            return []

        errors = []
        if constraint.max_length is not None and len(text) > constraint.max_length:
            errors.append(
                _error(field, located.segments, f"Field '{field}' exceeds maximum length of {constraint.max_length}")
            )

        if constraint.minimum is not None or constraint.maximum is not None:
            try:
                value = to_decimal(text)
            except ValueError:
                return errors + [_error(field, located.segments, f"Field '{field}' value '{text}' is not a number")]
            if constraint.minimum is not None and value < constraint.minimum:
                errors.append(
                    _error(
                        field,
                        located.segments,
                        f"Field '{field}' value {text} is less than minimum {constraint.minimum}",
                    )
                )
            if constraint.maximum is not None and value > constraint.maximum:
                errors.append(
                    _error(
                        field,
                        located.segments,
                        f"Field '{field}' value {text} exceeds maximum {constraint.maximum}",
                    )
                )
        return errors

    def _check_enumerations(self, base: _Located) -> List[ValidationError]:
        errors = []
        for located, parent in _walk(base):
            element = located.element
            if len(element):
                continue
            allowed = allowed_values(element.tag, parent.tag)
            if allowed is None:
                continue
            value = element.text or ""
            if value not in allowed:
                errors.append(
                    _error(
                        located.field,
                        located.segments,
                        f"Invalid value '{value}' for field '{located.field}'. "
                        f"Allowed values: {', '.join(allowed)}",
                    )
                )
        return errors

    def _check_dates(self, base: _Located) -> List[ValidationError]:
        errors = []
        for path in DATE_FIELDS:
            for located in _resolve(base, path.split(".")):
                if not is_timestamp(located.element.text):
                    errors.append(
                        _error(
                            located.field,
                            located.segments,
                            f"Invalid date format for '{located.field}'. Expected format: {TIMESTAMP_PATTERN}",
                        )
                    )
        for path in MONTH_YEAR_FIELDS:
            for located in _resolve(base, path.split(".")):
                if not is_month_year(located.element.text):
                    errors.append(
                        _error(
                            located.field,
                            located.segments,
                            f"Invalid month/year format for '{located.field}'. "
                            f"Expected format: {MONTH_YEAR_PATTERN}",
                        )
                    )
        return errors


def validate_offer_xml(text: Union[str, bytes]) -> ValidationResult:
    return StructuralValidator().validate(text)


__all__ = [
    "REQUIRED_SECTIONS",
    "FieldConstraint",
    "FIELD_CONSTRAINTS",
    "DATE_FIELDS",
    "MONTH_YEAR_FIELDS",
    "StructuralValidator",
    "validate_offer_xml",
]
