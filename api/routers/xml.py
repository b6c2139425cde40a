"""
XML API Endpoints.

Endpoints for generating offer XML, validating XML structure and working
with offer file names.
"""

from fastapi import APIRouter, HTTPException

from api.models import (
    FileNameRequest,
    FileNameResponse,
    GenerateXmlRequest,
    GenerateXmlResponse,
    ValidationResponse,
    XmlStatsResponse,
    XmlValidationRequest,
)
from api.routers.validation import parse_action, validation_response
from domain.errors import FileNameError, GenerationError
from services.file_naming_service import (
    generate_file_name,
    generate_unique_file_name,
    parse_file_name,
)
from services.offer_export_service import OfferExport, export_offer, prepare_submission
from services.structural_validator import StructuralValidator

router = APIRouter()


def _export_response(export: OfferExport) -> GenerateXmlResponse:
    return GenerateXmlResponse(
        file_name=export.file_name,
        xml=export.xml,
        stats=XmlStatsResponse(
            original_size=export.stats.original_size,
            minified_size=export.stats.minified_size,
            element_count=export.stats.element_count,
            compression_ratio=export.stats.compression_ratio,
        ),
        structural_validation=(
            validation_response(export.validation) if export.validation is not None else None
        ),
    )


@router.post(
    "/xml/generate",
    response_model=GenerateXmlResponse,
    summary="Generate Offer XML",
    description="Generate the XML file content and file name of an offer."
)
async def generate_xml(request: GenerateXmlRequest):
    """
    Generate the XML of an offer.

    **How it works:**
    1. Validates the document (unless `validate_first` is false)
    2. Generates the XML in the fixed element order
    3. Optionally strips empty elements and minifies
    4. Derives the file name and re-checks the output structurally

    Returns 422 when the document fails validation or cannot be rendered.
    """
    try:
        action = parse_action(request.action)

        if request.validate_first:
            submission = await prepare_submission(
                request.document,
                action=action,
                description=request.description,
                optimize=request.optimize,
                minify=request.minify,
                unique=request.unique,
            )
            if submission.export is None:
                raise HTTPException(
                    status_code=422,
                    detail={
                        "message": "Offer failed validation",
                        "validation": validation_response(submission.validation).model_dump(),
                    }
                )
            return _export_response(submission.export)

        export = export_offer(
            request.document,
            action=action,
            description=request.description,
            optimize=request.optimize,
            minify=request.minify,
            unique=request.unique,
        )
        return _export_response(export)

    except HTTPException:
        raise
    except (GenerationError, FileNameError) as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to generate XML: {str(e)}"
        )


@router.post(
    "/xml/validate",
    response_model=ValidationResponse,
    summary="Validate Offer XML",
    description="Check an offer XML document against the structural contract."
)
def validate_xml(request: XmlValidationRequest):
    """
    Structurally validate offer XML.

    Malformed XML is reported as a single fatal error, not as a failed request.
    """
    try:
        result = StructuralValidator().validate(request.xml)
        return validation_response(result)

    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to validate XML: {str(e)}"
        )


@router.post(
    "/xml/file-names",
    response_model=FileNameResponse,
    summary="Generate File Name",
    description="Derive the canonical file name for an offer."
)
def create_file_name(request: FileNameRequest):
    """
    Derive a file name such as `ABCDEFGH12345678_INSERIMENTO_WINTEROFFER2024.XML`.

    Returns 422 when the identity code, action or description is unusable.
    """
    try:
        if request.unique:
            file_name = generate_unique_file_name(request.identity_code, request.action, request.description)
        else:
            file_name = generate_file_name(request.identity_code, request.action, request.description)
        return _file_name_response(file_name)

    except FileNameError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to generate file name: {str(e)}"
        )


@router.get(
    "/xml/file-names/{file_name}",
    response_model=FileNameResponse,
    summary="Parse File Name",
    description="Split a file name into its parts; `valid` is false if it does not follow the convention."
)
def read_file_name(file_name: str):
    return _file_name_response(file_name)


def _file_name_response(file_name: str) -> FileNameResponse:
    parsed = parse_file_name(file_name)
    if parsed is None:
        return FileNameResponse(file_name=file_name, valid=False)
    return FileNameResponse(
        file_name=file_name,
        valid=True,
        identity_code=parsed.identity_code,
        action=parsed.action.value,
        description_prefix=parsed.description_prefix,
        disambiguator=parsed.disambiguator,
    )
