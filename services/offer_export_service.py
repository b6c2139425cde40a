"""
Offer export pipeline.

Ties the pieces together for one offer:

    validate (optional) -> generate -> optimize (optional) -> name -> self-check

Contract excerpts:
- export_offer never validates business rules; it trusts its input the way
  the generator does, and raises GenerationError / FileNameError on misuse.
- prepare_submission runs the validation runner first and exports only a
  valid document. An invalid document yields a result with no export.
- The structural self-check is reported, never raised.
- The file name uses the offer's identity code and, unless a description is
  given, the offer name (falling back to the offer code).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from domain.offer import Action, OfferDocument, Section
from domain.validation import ValidationResult
from repositories.offer_files import write_text_atomic
from services.file_naming_service import generate_file_name, generate_unique_file_name
from services.rule_registry import RuleRegistry
from services.structural_validator import StructuralValidator
from services.validation_runner import ValidationRunner
from services.xml_generator import OfferXmlGenerator
from services.xml_optimizer import XmlStats, collect_stats, optimize_xml

logger = logging.getLogger(__name__)

DocumentInput = Union[OfferDocument, Mapping[str, Any]]


@dataclass(frozen=True, slots=True)
class OfferExport:
    xml: str
    file_name: str
    stats: XmlStats
    validation: Optional[ValidationResult] = None

    @property
    def is_structurally_valid(self) -> Optional[bool]:
        return None if self.validation is None else self.validation.is_valid

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_name": self.file_name,
            "xml": self.xml,
            "stats": {
                "original_size": self.stats.original_size,
                "minified_size": self.stats.minified_size,
                "element_count": self.stats.element_count,
                "compression_ratio": self.stats.compression_ratio,
            },
            "validation": self.validation.to_dict() if self.validation is not None else None,
        }


@dataclass(frozen=True, slots=True)
class SubmissionResult:
    validation: ValidationResult
    export: Optional[OfferExport] = None

    @property
    def accepted(self) -> bool:
        return self.export is not None


def default_description(document: OfferDocument) -> str:
    name = document.value(Section.OFFER_DETAILS, "NOME_OFFERTA")
    if isinstance(name, str) and name.strip():
        return name
    return document.offer_code or ""


def export_offer(
    document: DocumentInput,
    action: Union[str, Action] = Action.INSERT,
    description: Optional[str] = None,
    optimize: bool = False,
    minify: bool = False,
    self_check: bool = True,
    unique: bool = False,
    generator: Optional[OfferXmlGenerator] = None,
    validator: Optional[StructuralValidator] = None,
) -> OfferExport:
    """
    Generate the XML and file name for one offer.

    Args:
        document: Offer document (mapping of section key to data)
        action: INSERIMENTO/AGGIORNAMENTO (or insert/update)
        description: File name description; defaults to the offer name
        optimize: Strip empty elements after generation
        minify: Render without layout whitespace (implies optimize)
        self_check: Re-parse the output with the structural validator
        unique: Add a millisecond timestamp to the file name

    Returns:
        OfferExport with the text, file name, size statistics and the
        self-check result (None when self_check is off)

    Raises:
        GenerationError: If the document cannot be rendered
        FileNameError: If the identity code or description is unusable
    """
    doc = OfferDocument.from_mapping(document)
    generator = generator or OfferXmlGenerator()

    xml = generator.generate(doc)
    if optimize or minify:
        xml = optimize_xml(xml, minify=minify)

    identity_code = doc.value(Section.IDENTIFICATION, "PIVA_UTENTE")
    text = description if description is not None else default_description(doc)
    if unique:
        file_name = generate_unique_file_name(identity_code, action, text)
    else:
        file_name = generate_file_name(identity_code, action, text)

    validation = None
    if self_check:
        validation = (validator or StructuralValidator()).validate(xml)
        if not validation.is_valid:
            logger.warning(
                f"Generated XML for {file_name} failed the structural check "
                f"with {len(validation.errors)} error(s)",
                extra={"file_name": file_name, "offer_code": doc.offer_code},
            )

    return OfferExport(xml=xml, file_name=file_name, stats=collect_stats(xml), validation=validation)


def write_offer(export: OfferExport, output_dir: Union[str, Path]) -> Path:
    """Write an export into `output_dir` under its file name, atomically."""

    return write_text_atomic(Path(output_dir) / export.file_name, export.xml)


async def prepare_submission(
    document: DocumentInput,
    action: Union[str, Action] = Action.INSERT,
    description: Optional[str] = None,
    optimize: bool = False,
    minify: bool = False,
    unique: bool = False,
    registry: Optional[RuleRegistry] = None,
) -> SubmissionResult:
    """
    Validate an offer and, only if it is valid, export it.

    Raises:
        GenerationError: If a valid document still cannot be rendered
        FileNameError: If the file name cannot be derived
    """
    doc = OfferDocument.from_mapping(document)
    validation = await ValidationRunner(registry).run_validation(doc, action)
    if not validation.is_valid:
        logger.info(
            f"Offer {doc.offer_code} rejected with {len(validation.errors)} validation error(s)",
            extra={"offer_code": doc.offer_code, "error_count": len(validation.errors)},
        )
        return SubmissionResult(validation=validation)

    export = export_offer(
        doc,
        action=action,
        description=description,
        optimize=optimize,
        minify=minify,
        unique=unique,
    )
    logger.info(
        f"Offer {doc.offer_code} exported as {export.file_name}",
        extra={"offer_code": doc.offer_code, "file_name": export.file_name},
    )
    return SubmissionResult(validation=validation, export=export)


__all__ = [
    "OfferExport",
    "SubmissionResult",
    "default_description",
    "export_offer",
    "write_offer",
    "prepare_submission",
]
