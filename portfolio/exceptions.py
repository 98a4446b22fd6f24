"""
Centralized exception hierarchy for Portfolio Hub.

Provides specific exception types for the failure classes the service
reports: authorization, validation, domain rules, upstream failures and
storage errors.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

logger = logging.getLogger(__name__)


# =============================================================================
# Base Exception
# =============================================================================


class PortfolioError(RuntimeError):
    """
    Base exception for all Portfolio Hub errors.

    Attributes:
        message: Human-readable error message.
        detail: Additional error details (optional).
        error_code: Machine-readable error code.
        request_id: Unique identifier for the request (optional).
    """

    def __init__(
        self,
        message: str,
        *,
        detail: str | None = None,
        error_code: str | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail
        self.error_code = error_code or self._default_error_code()
        self.request_id = request_id or self._generate_request_id()

    def _default_error_code(self) -> str:
        """Generate default error code from class name."""
        return f"portfolio_{self.__class__.__name__.lower()}"

    def _generate_request_id(self) -> str:
        return str(uuid.uuid4())

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response format."""
        result = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.detail:
            result["detail"] = self.detail
        if self.request_id:
            result["request_id"] = self.request_id
        return result

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message}: {self.detail}"
        return self.message

    def log(self, level: int = logging.ERROR) -> None:
        """Log the exception with structured data."""
        logger.log(
            level,
            self.message,
            extra={
                "error_code": self.error_code,
                "detail": self.detail,
                "request_id": self.request_id,
                "exception_type": self.__class__.__name__,
            },
        )


# =============================================================================
# Input Validation Errors
# =============================================================================


class ValidationError(PortfolioError):
    """
    Raised when input validation fails.

    HTTP Status: 400 Bad Request
    """

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        detail: str | None = None,
        request_id: str | None = None,
    ) -> None:
        self.field = field
        full_message = f"{field}: {message}" if field else message
        super().__init__(
            full_message,
            detail=detail,
            error_code="validation_error",
            request_id=request_id,
        )


class FileValidationError(ValidationError):
    """Raised when a single uploaded file fails the image/size rule."""

    def __init__(
        self,
        filename: str,
        reason: str,
        *,
        request_id: str | None = None,
    ) -> None:
        self.filename = filename
        self.reason = reason
        super().__init__(f"{filename} {reason}", request_id=request_id)
        self.error_code = "invalid_file"


class MissingRequiredFieldError(ValidationError):
    """Raised when a required field is missing."""

    def __init__(
        self,
        field_name: str,
        *,
        request_id: str | None = None,
    ) -> None:
        super().__init__(
            message="Missing required field",
            field=field_name,
            detail=f"Field '{field_name}' is required",
            request_id=request_id,
        )


# =============================================================================
# Authorization Errors
# =============================================================================


class AuthenticationError(PortfolioError):
    """
    Raised when the caller has no valid identity.

    HTTP Status: 401 Unauthorized
    """

    def __init__(
        self,
        message: str = "Unauthorized",
        *,
        detail: str | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(
            message,
            detail=detail,
            error_code="unauthorized",
            request_id=request_id,
        )


class InvalidCredentialsError(AuthenticationError):
    """Raised when an allow-listed email presents the wrong password."""

    def __init__(self, *, request_id: str | None = None) -> None:
        super().__init__("Authentication failed", request_id=request_id)
        self.error_code = "authentication_failed"


class ForbiddenError(PortfolioError):
    """
    Raised when the caller is known but not permitted.

    HTTP Status: 403 Forbidden
    """

    def __init__(
        self,
        message: str = "Forbidden: Admin access required",
        *,
        detail: str | None = None,
        error_code: str = "forbidden",
        request_id: str | None = None,
    ) -> None:
        super().__init__(
            message,
            detail=detail,
            error_code=error_code,
            request_id=request_id,
        )


class EmailNotAllowedError(ForbiddenError):
    """Raised when an email is not on the admin allow-list."""

    def __init__(self, email: str, *, request_id: str | None = None) -> None:
        super().__init__(
            "Access denied. This email is not authorized for admin access.",
            detail=f"email={email!r}",
            error_code="email_not_allowed",
            request_id=request_id,
        )
        self.email = email


class InvalidAccessCodeError(ForbiddenError):
    """Raised when a submitted access code does not match."""

    def __init__(self, *, request_id: str | None = None) -> None:
        super().__init__(
            "Invalid access code",
            error_code="invalid_access_code",
            request_id=request_id,
        )


# =============================================================================
# Not Found / Domain Rule Errors
# =============================================================================


class NotFoundError(PortfolioError):
    """
    Raised when a requested resource is not found.

    HTTP Status: 404 Not Found
    """

    def __init__(
        self,
        message: str,
        *,
        resource_type: str | None = None,
        resource_id: str | None = None,
        request_id: str | None = None,
    ) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        detail = f"{resource_type}: {resource_id}" if resource_type and resource_id else None
        super().__init__(
            message,
            detail=detail,
            error_code="not_found",
            request_id=request_id,
        )


class ProjectNotFoundError(NotFoundError):
    def __init__(self, project_id: str, *, request_id: str | None = None) -> None:
        super().__init__(
            "Project not found",
            resource_type="project",
            resource_id=project_id,
            request_id=request_id,
        )
        self.project_id = project_id


class ActivityNotFoundError(NotFoundError):
    def __init__(self, activity_id: str, *, request_id: str | None = None) -> None:
        super().__init__(
            "Activity not found",
            resource_type="activity",
            resource_id=activity_id,
            request_id=request_id,
        )
        self.activity_id = activity_id


class FeaturedLimitError(PortfolioError):
    """
    Raised when featuring one more project would exceed the cap.

    HTTP Status: 400 Bad Request
    """

    def __init__(self, limit: int, *, request_id: str | None = None) -> None:
        self.limit = limit
        super().__init__(
            f"Maximum {limit} featured projects allowed",
            error_code="featured_limit_reached",
            request_id=request_id,
        )


# =============================================================================
# Rate Limiting / Quota Errors
# =============================================================================


class RateLimitError(PortfolioError):
    """
    Raised when the caller or the upstream model is rate limited.

    HTTP Status: 429 Too Many Requests
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded. Please try again in a moment.",
        *,
        retry_after: int | None = None,
        request_id: str | None = None,
    ) -> None:
        self.retry_after = retry_after
        detail = f"Retry after {retry_after} seconds" if retry_after else None
        super().__init__(
            message,
            detail=detail,
            error_code="rate_limit_exceeded",
            request_id=request_id,
        )


class QuotaExceededError(PortfolioError):
    """
    Raised when the daily AI spend budget is exhausted.

    HTTP Status: 402 Payment Required
    """

    def __init__(
        self,
        *,
        budget_usd: float | None = None,
        request_id: str | None = None,
    ) -> None:
        self.budget_usd = budget_usd
        detail = f"Daily budget: ${budget_usd:.2f}" if budget_usd is not None else None
        super().__init__(
            "AI credits exhausted. Please add credits to continue.",
            detail=detail,
            error_code="quota_exceeded",
            request_id=request_id,
        )


# =============================================================================
# External API Errors
# =============================================================================


class ExternalAPIError(PortfolioError):
    """
    Raised when an external API call fails.

    HTTP Status: 502 Bad Gateway
    """

    def __init__(
        self,
        message: str,
        *,
        service: str,
        status_code: int | None = None,
        detail: str | None = None,
        request_id: str | None = None,
    ) -> None:
        self.service = service
        self.status_code = status_code
        super().__init__(
            message,
            detail=detail,
            error_code=f"{service}_api_error",
            request_id=request_id,
        )


class AnthropicAPIError(ExternalAPIError):
    """Raised when the Anthropic API call fails."""

    def __init__(
        self,
        message: str = "Anthropic API error",
        *,
        status_code: int | None = None,
        detail: str | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(
            message,
            service="anthropic",
            status_code=status_code,
            detail=detail,
            request_id=request_id,
        )


class ExtractionError(PortfolioError):
    """
    Raised when model output cannot be turned into entries.

    HTTP Status: 500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "Failed to parse AI response",
        *,
        detail: str | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(
            message,
            detail=detail,
            error_code="extraction_error",
            request_id=request_id,
        )


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(PortfolioError):
    """
    Raised when configuration is invalid or missing.

    HTTP Status: 500 Internal Server Error
    """

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        request_id: str | None = None,
    ) -> None:
        self.config_key = config_key
        detail = f"Configuration key: {config_key}" if config_key else None
        super().__init__(
            message,
            detail=detail,
            error_code="configuration_error",
            request_id=request_id,
        )


class MissingAPIKeyError(ConfigurationError):
    """Raised when required API key is not configured."""

    def __init__(
        self,
        service: str,
        *,
        env_var: str | None = None,
        request_id: str | None = None,
    ) -> None:
        self.service = service
        self.env_var = env_var or f"{service.upper()}_API_KEY"
        super().__init__(
            f"{service} API key not configured",
            config_key=self.env_var,
            request_id=request_id,
        )


# =============================================================================
# Data Store Errors
# =============================================================================


class DataStoreError(PortfolioError):
    """
    Raised when persistence operations fail.

    HTTP Status: 500 Internal Server Error
    """

    def __init__(
        self,
        message: str,
        *,
        store_type: str | None = None,
        operation: str | None = None,
        request_id: str | None = None,
    ) -> None:
        self.store_type = store_type
        self.operation = operation
        detail_parts = []
        if store_type:
            detail_parts.append(f"Store: {store_type}")
        if operation:
            detail_parts.append(f"Operation: {operation}")
        detail = "; ".join(detail_parts) if detail_parts else None
        super().__init__(
            message,
            detail=detail,
            error_code="data_store_error",
            request_id=request_id,
        )


class DatabaseError(DataStoreError):
    """Raised when a SQLite statement fails (constraint, missing column...)."""

    def __init__(
        self,
        message: str = "Operation failed",
        *,
        query: str | None = None,
        operation: str | None = None,
        request_id: str | None = None,
    ) -> None:
        self.query = query
        super().__init__(
            message,
            store_type="database",
            operation=operation,
            request_id=request_id,
        )


class StorageError(DataStoreError):
    """Raised when an object storage write or read fails."""

    def __init__(
        self,
        message: str = "Upload failed",
        *,
        path: str | None = None,
        request_id: str | None = None,
    ) -> None:
        self.path = path
        super().__init__(
            message,
            store_type="object_storage",
            operation=f"write {path}" if path else None,
            request_id=request_id,
        )


# =============================================================================
# HTTP Exception Helpers
# =============================================================================


def exception_to_http_status(exc: PortfolioError) -> int:
    """
    Map exception to appropriate HTTP status code.

    Args:
        exc: The exception to map.

    Returns:
        HTTP status code.
    """
    status_map = {
        ValidationError: 400,
        FeaturedLimitError: 400,
        AuthenticationError: 401,
        QuotaExceededError: 402,
        ForbiddenError: 403,
        NotFoundError: 404,
        RateLimitError: 429,
        ExternalAPIError: 502,
        ExtractionError: 500,
        ConfigurationError: 500,
        DataStoreError: 500,
    }

    for exc_class, status in status_map.items():
        if isinstance(exc, exc_class):
            return status
    return 500


# =============================================================================
# Exception Handler for FastAPI
# =============================================================================


def handle_exception(exc: Exception, request_id: str | None = None) -> dict[str, Any]:
    """
    Convert any exception to standardized error response.

    Args:
        exc: The exception to handle.
        request_id: Request ID for tracing.

    Returns:
        Dictionary with error details.
    """
    if isinstance(exc, PortfolioError):
        exc.request_id = request_id or exc.request_id
        return exc.to_dict()

    # Handle standard library exceptions
    if isinstance(exc, ValueError):
        return ValidationError(str(exc), request_id=request_id).to_dict()
    if isinstance(exc, KeyError):
        return MissingRequiredFieldError(str(exc), request_id=request_id).to_dict()
    if isinstance(exc, FileNotFoundError):
        return NotFoundError("Resource not found", request_id=request_id).to_dict()
    if isinstance(exc, PermissionError):
        return ForbiddenError(
            "Permission denied",
            detail=str(exc),
            error_code="permission_error",
            request_id=request_id,
        ).to_dict()

    # Generic error
    logger.error(
        "Unhandled exception",
        extra={
            "exception_type": type(exc).__name__,
            "exception_message": str(exc),
            "request_id": request_id,
        },
        exc_info=True,
    )
    return PortfolioError(
        "An unexpected error occurred",
        detail=str(exc) if __debug__ else None,
        request_id=request_id,
    ).to_dict()
