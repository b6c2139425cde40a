"""
Validation API Endpoints.

Endpoints for running business validation over offer documents.
"""

from fastapi import APIRouter, HTTPException

from api.models import (
    SectionValidationRequest,
    ValidationErrorItem,
    ValidationRequest,
    ValidationResponse,
)
from domain.offer import Action
from domain.validation import ValidationResult
from services.validation_runner import ValidationRunner

router = APIRouter()


def validation_response(result: ValidationResult) -> ValidationResponse:
    """Convert a ValidationResult into its API shape."""
    return ValidationResponse(
        is_valid=result.is_valid,
        error_count=len(result.errors),
        errors=[ValidationErrorItem(**e.to_dict()) for e in result.errors],
        errors_by_section={
            section: [ValidationErrorItem(**e.to_dict()) for e in errors]
            for section, errors in result.by_section().items()
        },
    )


def parse_action(value: str) -> Action:
    try:
        return Action.parse(value)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post(
    "/validation",
    response_model=ValidationResponse,
    summary="Validate Offer",
    description="Run schema checks and business rules over a whole offer document."
)
async def validate_offer(request: ValidationRequest):
    """
    Validate an offer document.

    **How it works:**
    1. Checks every present section against its schema (concurrently)
    2. Runs field, cross-field, section and global business rules
    3. Returns deduplicated errors, also grouped by section

    Validation findings are returned with status 200; only malformed
    requests fail.
    """
    try:
        action = parse_action(request.action)
        result = await ValidationRunner().run_validation(request.document, action)
        return validation_response(result)

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to validate offer: {str(e)}"
        )


@router.post(
    "/validation/sections/{section}",
    response_model=ValidationResponse,
    summary="Validate Section",
    description="Validate one section against the rest of the offer document."
)
async def validate_offer_section(section: str, request: SectionValidationRequest):
    """
    Validate a single section, as a form would while it is being edited.

    Runs the section schema, the section's business rule and the cross-field
    rules reporting on that section.
    """
    try:
        action = parse_action(request.action)
        result = await ValidationRunner().validate_section(
            section,
            request.data,
            request.document,
            schema_name=request.schema_name,
            action=action,
        )
        return validation_response(result)

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to validate section: {str(e)}"
        )
