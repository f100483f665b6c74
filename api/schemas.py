"""Pydantic request/response schemas for API endpoints."""

import re
from typing import Any, Literal, Optional

from accountform.lookup.models import SearchResult
from accountform.validation.rules import EMAIL_PATTERN
from accountform.validation.sanitize import sanitize_input
from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProblemDetail(BaseModel):
    """RFC 7807 Problem Details for HTTP APIs.

    See: https://www.rfc-editor.org/rfc/rfc7807
    """

    type: str = Field(..., description="URI reference identifying the problem type")
    title: str = Field(..., description="Short, human-readable summary of the problem")
    status: int = Field(..., description="HTTP status code for this problem")
    detail: Optional[str] = Field(
        None, description="Human-readable explanation specific to this occurrence"
    )
    instance: Optional[str] = Field(
        None, description="URI reference identifying this specific occurrence"
    )

    # Extension members (allowed by RFC 7807)
    code: str = Field(..., description="Application-specific error code")
    category: str = Field(
        ..., description="Error category (client_error, server_error, etc.)"
    )
    retryable: bool = Field(
        default=False, description="Whether the request can be retried"
    )
    trace_id: Optional[str] = Field(
        None, description="Distributed tracing ID for correlation across services"
    )
    field_errors: Optional[dict[str, str]] = Field(
        None, description="Per-field messages for form validation failures"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "type": "/errors/INSEE_TIMEOUT",
                "title": "insee service timeout",
                "status": 504,
                "instance": "/search",
                "code": "INSEE_TIMEOUT",
                "category": "server_error",
                "retryable": True,
                "trace_id": "a1b2c3d4-e5f6-7890-abcd-ef1234567890",
            }
        }
    )


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    insee_configured: bool
    email_configured: bool
    pdf_rendering: bool


class SearchResponse(BaseModel):
    results: list[SearchResult]


# =============================================================================
# /send
# =============================================================================


class CompanyInfo(BaseModel):
    siren: str = ""
    siret: str = ""
    nafApe: str = ""
    tvaIntracom: str = ""
    address: str = ""
    postalCode: str = ""
    city: str = ""
    deliveryAddress: str = ""
    deliveryPostalCode: str = ""
    deliveryCity: str = ""


class SendRequest(BaseModel):
    """Body of ``POST /send``; binaries are base64, optionally gzip-compressed."""

    companyName: str = Field(..., min_length=2, max_length=100)
    responsableAchatEmail: str
    responsableAchatPhone: str = ""
    serviceComptaEmail: str
    serviceComptaPhone: str = ""
    kbisFile: Optional[str] = None
    kbisFileName: Optional[str] = None
    pdfFile: str = Field(..., min_length=1)
    pdfFileName: str = Field(..., min_length=1, max_length=255)
    signature: Optional[str] = None
    companyInfo: CompanyInfo = Field(default_factory=CompanyInfo)

    @field_validator("responsableAchatEmail", "serviceComptaEmail")
    @classmethod
    def validate_email(cls, value: str) -> str:
        value = value.strip()
        if not EMAIL_PATTERN.match(value):
            raise ValueError("L'adresse email n'est pas valide")
        return value

    @field_validator("companyName")
    @classmethod
    def clean_company_name(cls, value: str) -> str:
        return sanitize_input(value)


class SendResponse(BaseModel):
    success: bool
    message: str
    team_email_id: Optional[str] = None
    client_email_id: Optional[str] = None
    recipients: dict[str, str]


# =============================================================================
# Security endpoints
# =============================================================================

_NAF_APE = re.compile(r"^[0-9]{2}\.[0-9]{2}[A-Z]$")
_TVA = re.compile(r"^[A-Z]{2}[0-9]{2}[0-9A-Z]{8,12}$")
_COMPANY_NAME = re.compile(r"^[\w\s\-'&.,()]+$")
_CITY = re.compile(r"^[^\W\d_]+(?:[\s\-'.][^\W\d_]+)*$")


class SecureCompanyRequest(BaseModel):
    """Company record accepted by ``POST /secure/company``."""

    siren: str = Field(..., pattern=r"^\d{9}$")
    siret: str = Field(..., pattern=r"^\d{14}$")
    nafApe: str
    tvaIntracom: Optional[str] = None
    companyName: str = Field(..., min_length=2, max_length=1000)
    address: str = Field(..., min_length=5, max_length=1000)
    postalCode: str = Field(..., pattern=r"^\d{5}$")
    city: str = Field(..., min_length=2, max_length=100)

    @field_validator("nafApe")
    @classmethod
    def validate_naf_ape(cls, value: str) -> str:
        if not _NAF_APE.match(value):
            raise ValueError("Format NAF/APE invalide")
        return value

    @field_validator("tvaIntracom")
    @classmethod
    def validate_tva(cls, value: Optional[str]) -> Optional[str]:
        if value and not _TVA.match(value):
            raise ValueError("Format TVA intracommunautaire invalide")
        return value or None

    @field_validator("companyName")
    @classmethod
    def validate_company_name(cls, value: str) -> str:
        if not _COMPANY_NAME.match(value):
            raise ValueError("Caractères non autorisés dans le nom d'entreprise")
        return value

    @field_validator("city")
    @classmethod
    def validate_city(cls, value: str) -> str:
        if not _CITY.match(value.strip()):
            raise ValueError("Caractères non autorisés dans le nom de ville")
        return value


class SecureCompanyResponse(BaseModel):
    id: str
    companyName: str
    city: str
    encrypted_fields: list[str]
    created_at: str


class SecurityCheckRequest(BaseModel):
    checkType: Literal["basic", "full"] = "basic"


class CsrfTokenResponse(BaseModel):
    token: str
    header_name: str
    expires_in: int


# =============================================================================
# Form sessions
# =============================================================================


class FieldsUpdateRequest(BaseModel):
    fields: dict[str, Any] = Field(..., description="Field values to merge")


class CompanySearchRequest(BaseModel):
    name: str
    postalCode: Optional[str] = None
    immediate: bool = Field(
        default=False, description="Skip the debounce window and wait for results"
    )


class SearchKeyRequest(BaseModel):
    key: Literal["ArrowDown", "ArrowUp", "Enter", "Escape"]
