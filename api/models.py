"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
Offer documents travel as plain JSON objects keyed by section; their content
is checked by the validation runner, not by these models.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


# ============================================================================
# Validation Models
# ============================================================================

class ValidationErrorItem(BaseModel):
    """Single validation finding."""
    field: str
    message: str
    path: List[str]
    level: str = "error"  # "error" or "fatal"


class ValidationResponse(BaseModel):
    """Outcome of a validation run."""
    is_valid: bool
    error_count: int
    errors: List[ValidationErrorItem]
    errors_by_section: Dict[str, List[ValidationErrorItem]]

    class Config:
        json_schema_extra = {
            "example": {
                "is_valid": False,
                "error_count": 1,
                "errors": [
                    {
                        "field": "company_components.0.IntervalloPrezzi",
                        "message": "Must have 3 price intervals matching time bands (3 required, found 2)",
                        "path": ["company_components", "0", "IntervalloPrezzi"],
                        "level": "error"
                    }
                ],
                "errors_by_section": {}
            }
        }


class ValidationRequest(BaseModel):
    """Request to validate a whole offer document."""
    document: Dict[str, Any] = Field(
        ...,
        description="Offer document: section key to section data"
    )
    action: str = Field(
        "INSERIMENTO",
        description="INSERIMENTO or AGGIORNAMENTO (insert/update accepted)"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "document": {
                    "identification": {
                        "PIVA_UTENTE": "ABCDEFGH12345678",
                        "COD_OFFERTA": "OFFER2025"
                    }
                },
                "action": "INSERIMENTO"
            }
        }


class SectionValidationRequest(BaseModel):
    """Request to validate one section in the context of a document."""
    data: Any = Field(..., description="Data of the section being edited")
    document: Dict[str, Any] = Field(
        default_factory=dict,
        description="Rest of the offer document"
    )
    schema_name: Optional[str] = Field(
        None,
        description="Schema to check the section against (defaults to the section key)"
    )
    action: str = "INSERIMENTO"


# ============================================================================
# XML Models
# ============================================================================

class GenerateXmlRequest(BaseModel):
    """Request to generate the XML file of an offer."""
    document: Dict[str, Any]
    action: str = "INSERIMENTO"
    description: Optional[str] = Field(
        None,
        description="File name description (defaults to the offer name)"
    )
    optimize: bool = False
    minify: bool = False
    unique: bool = Field(False, description="Add a millisecond timestamp to the file name")
    validate_first: bool = Field(
        True,
        description="Run business validation and refuse invalid documents"
    )


class XmlStatsResponse(BaseModel):
    """Size statistics of generated XML."""
    original_size: int
    minified_size: int
    element_count: int
    compression_ratio: float


class GenerateXmlResponse(BaseModel):
    """Generated XML with its file name."""
    file_name: str
    xml: str
    stats: XmlStatsResponse
    structural_validation: Optional[ValidationResponse] = None

    class Config:
        json_schema_extra = {
            "example": {
                "file_name": "ABCDEFGH12345678_INSERIMENTO_WINTEROFFER2024.XML",
                "xml": "<?xml version=\"1.0\" encoding=\"UTF-8\"?>\n<Offerta>...</Offerta>",
                "stats": {
                    "original_size": 4210,
                    "minified_size": 2874,
                    "element_count": 96,
                    "compression_ratio": 0.3173
                },
                "structural_validation": None
            }
        }


class XmlValidationRequest(BaseModel):
    """Request to structurally validate an XML document."""
    xml: str = Field(..., description="Offer XML text")


class FileNameRequest(BaseModel):
    """Request to derive a file name."""
    identity_code: str
    action: str = "INSERIMENTO"
    description: str
    unique: bool = False

    class Config:
        json_schema_extra = {
            "example": {
                "identity_code": "ABCDEFGH12345678",
                "action": "INSERIMENTO",
                "description": "Winter Offer 2024!!",
                "unique": False
            }
        }


class FileNameResponse(BaseModel):
    """File name and its parts."""
    file_name: str
    valid: bool
    identity_code: Optional[str] = None
    action: Optional[str] = None
    description_prefix: Optional[str] = None
    disambiguator: Optional[int] = None


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: Optional[str] = None
    status_code: int

    class Config:
        json_schema_extra = {
            "example": {
                "error": "Invalid request",
                "detail": "Required section is missing (section: identification)",
                "status_code": 422
            }
        }
