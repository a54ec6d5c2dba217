"""Pydantic request/response schemas for API endpoints."""

import re
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from docverify.core.config import NAME_MAX_LENGTH

T = TypeVar("T")

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


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
        None,
        description="URI reference identifying this specific occurrence (e.g., request path)",
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
    verification_id: Optional[str] = Field(
        None, description="ERROR record written for the failed verification attempt"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "type": "/errors/UNRECOGNIZED_DOCUMENT_TYPE",
                "title": "Unrecognized document type",
                "status": 422,
                "detail": "Unrecognized document type: Driver's License",
                "instance": "/api/verification/verify/ocr",
                "code": "UNRECOGNIZED_DOCUMENT_TYPE",
                "category": "client_error",
                "retryable": False,
                "trace_id": "a1b2c3d4-e5f6-7890-abcd-ef1234567890",
                "verification_id": "0b6f7a8e-3a43-4d1e-9d53-1f0c2a7b9e11",
            }
        }
    )


class Envelope(BaseModel, Generic[T]):
    """Standard success envelope: ``{success, data, message?, cached?}``."""

    success: bool = True
    data: T
    message: Optional[str] = None
    cached: Optional[bool] = None


class PsaVerifyBody(BaseModel):
    """PhilSys form fields.

    Fields are optional at the schema level: a missing field is part of the
    verification attempt and is recorded as an ERROR verification.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: str = Field(..., min_length=1, description="Owner of the verification")
    d: Optional[str] = Field(None, description="Date issued (YYYY-MM-DD)")
    dob: Optional[str] = Field(None, description="Date of birth (YYYY-MM-DD)")
    pcn: Optional[str] = Field(None, description="16-digit PhilSys card number")
    pob: Optional[str] = Field(None, description="Place of birth")
    fn: Optional[str] = Field(None, max_length=NAME_MAX_LENGTH)
    ln: Optional[str] = Field(None, max_length=NAME_MAX_LENGTH)
    mn: Optional[str] = Field(None, max_length=NAME_MAX_LENGTH)
    s: Optional[str] = Field(None, description="Sex (Male|Female)")
    sf: Optional[str] = Field(None, description="Suffix")

    def verification_fields(self) -> dict[str, Any]:
        return self.model_dump(exclude={"user_id"})


class UserUpdateBody(BaseModel):
    name: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH)
    email: str = Field(..., min_length=3, max_length=254)

    @field_validator("name")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        value = re.sub(r"\s+", " ", value.strip())
        if not value:
            raise ValueError("name must not be blank")
        return value

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        value = value.strip()
        if not EMAIL_PATTERN.match(value):
            raise ValueError("email must be a valid address")
        return value


class HealthResponse(BaseModel):
    status: str
    database: dict[str, Any]
    caches: dict[str, int]
