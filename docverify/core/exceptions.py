"""Custom exception hierarchy for the document verification service.

All exceptions inherit from BaseError and carry structured error information
compatible with RFC 7807 Problem Details for HTTP APIs.
"""

from enum import Enum
from typing import Any, Optional


class ErrorCategory(str, Enum):
    """Error categories for classification and monitoring."""

    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"
    EXTERNAL_SERVICE = "external_service"
    VALIDATION = "validation"
    BUSINESS_LOGIC = "business_logic"


class BaseError(Exception):
    """Base exception for all service errors.

    Attributes:
        message: Human-readable error message
        error_code: Application-specific error code
        category: Error category for classification
        http_status: HTTP status code to return
        details: Additional context (dict)
        retryable: Whether the operation can be retried
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        category: ErrorCategory,
        http_status: int,
        details: Optional[dict[str, Any]] = None,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.category = category
        self.http_status = http_status
        self.details = details or {}
        self.retryable = retryable

    def to_dict(self) -> dict[str, Any]:
        """Convert to RFC 7807 Problem Details format."""
        return {
            "type": f"/errors/{self.error_code}",
            "title": self.message,
            "status": self.http_status,
            "code": self.error_code,
            "detail": self.details.get("detail"),
            "category": self.category.value,
            "retryable": self.retryable,
            "verification_id": self.details.get("verification_id"),
        }


class ClientError(BaseError):
    """Base for client errors (4xx). Not retryable."""

    def __init__(self, message: str, error_code: str, **kwargs):
        super().__init__(
            message=message,
            error_code=error_code,
            category=ErrorCategory.CLIENT_ERROR,
            http_status=kwargs.pop("http_status", 400),
            retryable=False,
            **kwargs,
        )


class ValidationError(ClientError):
    """Input validation failed (422 Unprocessable Entity).

    Args:
        message: Validation error description
        field: Name of the field that failed validation
        details: Additional validation context
    """

    def __init__(self, message: str, field: str, **kwargs):
        additional_details = kwargs.pop("details", {})
        additional_details["field"] = field
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            http_status=422,
            details=additional_details,
            **kwargs,
        )


class ResourceNotFoundError(ClientError):
    """Resource not found (404).

    Args:
        resource_type: Type of resource (e.g., "User", "Verification")
        resource_id: Identifier of the missing resource
    """

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            message=f"{resource_type} not found",
            error_code="RESOURCE_NOT_FOUND",
            http_status=404,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class PayloadTooLargeError(ClientError):
    """Uploaded image exceeds the size limit (413)."""

    def __init__(self, max_size_mb: int, actual_size_mb: float):
        super().__init__(
            message=f"File too large: {actual_size_mb:.2f}MB (max: {max_size_mb}MB)",
            error_code="PAYLOAD_TOO_LARGE",
            http_status=413,
            details={"max_size_mb": max_size_mb, "actual_size_mb": actual_size_mb},
        )


class DuplicateUser(ClientError):
    """Unique constraint violation on user update, shown to the user as-is."""

    def __init__(self, email: str | None = None):
        super().__init__(
            message="User already exists",
            error_code="DUPLICATE_USER",
            http_status=400,
            details={"detail": "A user with this email already exists", "email": email},
        )


class UnrecognizedDocumentType(ClientError):
    """Extraction succeeded but the document type is not one we verify (422)."""

    def __init__(self, document_type: str):
        super().__init__(
            message="Unrecognized document type",
            error_code="UNRECOGNIZED_DOCUMENT_TYPE",
            http_status=422,
            details={
                "detail": f"Unrecognized document type: {document_type or '<empty>'}",
                "document_type": document_type,
            },
        )


class ServerError(BaseError):
    """Base for server errors (5xx)."""

    def __init__(self, message: str, error_code: str, **kwargs):
        super().__init__(
            message=message,
            error_code=error_code,
            category=ErrorCategory.SERVER_ERROR,
            http_status=kwargs.pop("http_status", 500),
            retryable=kwargs.pop("retryable", False),
            **kwargs,
        )


class ExternalServiceError(ServerError):
    """External service failure (502 Bad Gateway / 503 / 504 Gateway Timeout).

    Args:
        service_name: Name of the external service
        error_type: Type of error ("timeout", "unavailable", "error", "rate_limit", ...)
        details: Additional error context
    """

    def __init__(self, service_name: str, error_type: str, **kwargs):
        if error_type == "timeout":
            http_status = 504
        elif error_type == "unavailable":
            http_status = 503
        else:
            http_status = 502

        additional_details = kwargs.pop("details", {})
        additional_details.update(
            {
                "service": service_name,
                "error_type": error_type,
            }
        )

        super().__init__(
            message=kwargs.pop("message", f"{service_name} service {error_type}"),
            error_code=f"{service_name.upper()}_{error_type.upper()}",
            http_status=kwargs.pop("http_status", http_status),
            retryable=kwargs.pop("retryable", True),
            details=additional_details,
            **kwargs,
        )
        self.service_name = service_name
        self.error_type = error_type


# -----------------------------------------------------------------------------
# Extraction provider failures
# -----------------------------------------------------------------------------


class ProviderError(ExternalServiceError):
    """Typed failure returned by the extraction provider for one call."""

    error_type = "error"

    def __init__(self, model: str, reason: str, **kwargs):
        details = kwargs.pop("details", {})
        details.update({"model": model, "detail": reason})
        super().__init__(
            service_name="GEMINI",
            error_type=self.error_type,
            details=details,
            retryable=False,
            **kwargs,
        )
        self.model = model
        self.reason = reason


class ProviderBlocked(ProviderError):
    """Response blocked by the provider's safety policy. Never retried."""

    error_type = "blocked"


class ProviderTruncated(ProviderError):
    """No parseable JSON because the output hit the token cap."""

    error_type = "truncated"


class ProviderMalformedOutput(ProviderError):
    """Provider answered but the output holds no usable JSON object."""

    error_type = "malformed_output"


class ModelUnavailable(ProviderError):
    """Model not found / unsupported for this key or region."""

    error_type = "model_unavailable"


class ExtractionFailed(ServerError):
    """Provider returned unusable output after every retry."""

    def __init__(self, reason: str, **kwargs):
        details = kwargs.pop("details", {})
        details["detail"] = reason
        super().__init__(
            message="Document extraction failed",
            error_code="EXTRACTION_FAILED",
            http_status=502,
            retryable=True,
            details=details,
            **kwargs,
        )


class NoModelAvailable(ServerError):
    """Every configured model was rejected as unavailable."""

    def __init__(self, models: list[str]):
        super().__init__(
            message="No supported extraction model available for this API key/region",
            error_code="NO_MODEL_AVAILABLE",
            http_status=503,
            retryable=False,
            details={"models": models},
        )


class VerifierUnavailable(ExternalServiceError):
    """Network/timeout failure talking to the remote verifier or cookie issuer."""

    def __init__(self, error_type: str, reason: str, **kwargs):
        details = kwargs.pop("details", {})
        details["detail"] = reason
        super().__init__(
            service_name="VERIFIER",
            error_type=error_type,
            details=details,
            **kwargs,
        )
        self.reason = reason


class VerificationFailed(ServerError):
    """Unexpected failure inside a verification attempt (already recorded as ERROR)."""

    def __init__(self, reason: str, verification_id: Any = None):
        super().__init__(
            message="Verification error",
            error_code="VERIFICATION_FAILED",
            http_status=500,
            details={
                "detail": "The verification attempt failed and was recorded as ERROR",
                "verification_id": verification_id,
            },
        )
        self.reason = reason
