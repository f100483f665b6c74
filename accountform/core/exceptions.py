"""Exception hierarchy for the account form service.

Every application error inherits from BaseError and carries enough structure
to be rendered as RFC 7807 Problem Details by the API layer.
"""

from enum import Enum
from typing import Any, Optional


class ErrorCategory(str, Enum):
    """Error categories for classification and monitoring."""

    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"
    EXTERNAL_SERVICE = "external_service"
    VALIDATION = "validation"


class BaseError(Exception):
    """Base exception for all account form errors.

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
        }


class ClientError(BaseError):
    """Base for client errors (4xx). Never retryable."""

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


class FormIncompleteError(ClientError):
    """The form record is not ready for submission (422).

    Args:
        field_errors: Mapping of field name to user-facing message
    """

    def __init__(self, field_errors: dict[str, str]):
        fields = sorted(field_errors)
        super().__init__(
            message="Le formulaire contient des champs invalides",
            error_code="FORM_INCOMPLETE",
            http_status=422,
            details={
                "detail": ", ".join(fields),
                "field_errors": dict(field_errors),
            },
        )
        self.field_errors = dict(field_errors)


class ResourceNotFoundError(ClientError):
    """Resource not found (404).

    Args:
        resource_type: Type of resource (e.g., "Form session", "Company record")
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
    """Payload too large (413).

    Raised when a document, an attachment or the encoded submission
    exceeds its ceiling.

    Args:
        max_size_mb: Maximum allowed size in MB
        actual_size_mb: Actual size in MB
        subject: What was measured ("document", "attachment", "payload")
        message: Optional user-facing message overriding the default
    """

    def __init__(
        self,
        max_size_mb: int,
        actual_size_mb: float,
        subject: str = "file",
        message: Optional[str] = None,
    ):
        super().__init__(
            message=message
            or f"File too large: {actual_size_mb:.2f}MB (max: {max_size_mb}MB)",
            error_code="PAYLOAD_TOO_LARGE",
            http_status=413,
            details={
                "subject": subject,
                "max_size_mb": max_size_mb,
                "actual_size_mb": round(actual_size_mb, 2),
            },
        )


class RateLimitError(ClientError):
    """Rate limit exceeded (429).

    Args:
        retry_after: Seconds to wait before retrying
    """

    def __init__(self, retry_after: int = 60):
        super().__init__(
            message="Rate limit exceeded",
            error_code="RATE_LIMIT_EXCEEDED",
            http_status=429,
            details={"retry_after": retry_after},
        )
        self.retryable = True


class CsrfError(ClientError):
    """Missing, expired or mismatched anti-forgery token (403)."""

    def __init__(self, reason: str):
        super().__init__(
            message="CSRF validation failed",
            error_code="CSRF_INVALID",
            http_status=403,
            details={"detail": reason},
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


class RendererUnavailableError(ServerError):
    """Document rendering is not available in this runtime (503)."""

    def __init__(self, reason: str = "PDF rendering is disabled"):
        super().__init__(
            message="Document renderer unavailable",
            error_code="RENDERER_UNAVAILABLE",
            http_status=503,
            details={"detail": reason},
        )


class ExternalServiceError(ServerError):
    """External service failure (502 / 503 / 504).

    Raised when INSEE or the email provider fails.

    Args:
        service_name: Name of the external service
        error_type: One of "auth", "rate_limited", "timeout", "network", "error"
        details: Additional error context
    """

    STATUS_BY_TYPE = {
        "timeout": 504,
        "network": 503,
        "rate_limited": 429,
    }

    def __init__(self, service_name: str, error_type: str, **kwargs):
        http_status = self.STATUS_BY_TYPE.get(error_type, 502)

        additional_details = kwargs.pop("details", {})
        additional_details.update(
            {
                "service": service_name,
                "error_type": error_type,
            }
        )

        super().__init__(
            message=f"{service_name} service {error_type}",
            error_code=f"{service_name.upper()}_{error_type.upper()}",
            http_status=http_status,
            retryable=error_type in ("timeout", "network", "rate_limited"),
            details=additional_details,
            **kwargs,
        )
        self.service_name = service_name
        self.error_type = error_type
