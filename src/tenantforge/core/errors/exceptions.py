"""Domain exceptions for the application.

These exceptions represent business-logic errors and are automatically
converted to RFC 7807 Problem Details responses by the exception handlers.
"""

from typing import Any


class AppException(Exception):
    """Base exception for all application errors.

    All domain exceptions should inherit from this class.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code for clients
        status_code: HTTP status code for the response
        details: Additional error details
    """

    message: str = "An unexpected error occurred"
    error_code: str = "internal_error"
    status_code: int = 500

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.message
        self.error_code = error_code or self.error_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(AppException):
    """Raised when a requested resource is not found.

    Example:
        raise NotFoundError("Tenant not found", resource="tenant", resource_id=slug)
    """

    message = "Resource not found"
    error_code = "not_found"
    status_code = 404

    def __init__(
        self,
        message: str | None = None,
        resource: str | None = None,
        resource_id: str | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        if resource:
            details["resource"] = resource
        if resource_id:
            details["resource_id"] = resource_id
        super().__init__(message=message, details=details, **kwargs)


class ConflictError(AppException):
    """Raised when there's a conflict with existing data.

    Example:
        raise ConflictError("Slug is already taken", error_code="slug_taken")
    """

    message = "Resource conflict"
    error_code = "conflict"
    status_code = 409


class InvalidTransitionError(ConflictError):
    """Raised when a tenant cannot move from its current status to the target."""

    message = "Invalid tenant status transition"
    error_code = "invalid_transition"

    def __init__(self, current: str, target: str, **kwargs: Any) -> None:
        details = kwargs.pop("details", {})
        details.update({"current_status": current, "target_status": target})
        super().__init__(
            message=kwargs.pop("message", None)
            or f"Cannot transition tenant from {current} to {target}",
            details=details,
            **kwargs,
        )


class ValidationError(AppException):
    """Raised when request data fails validation.

    Example:
        raise ValidationError(
            "Invalid slug",
            error_code="invalid_slug",
            errors=[{"field": "slug", "message": "Slug is reserved"}]
        )
    """

    message = "Validation error"
    error_code = "validation_error"
    status_code = 422

    def __init__(
        self,
        message: str | None = None,
        errors: list[dict[str, Any]] | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        if errors:
            details["errors"] = errors
        super().__init__(message=message, details=details, **kwargs)


class UnauthorizedError(AppException):
    """Raised when authentication is required but not provided or invalid."""

    message = "Authentication required"
    error_code = "unauthorized"
    status_code = 401


class ForbiddenError(AppException):
    """Raised when the caller lacks permission to perform an action."""

    message = "Access forbidden"
    error_code = "forbidden"
    status_code = 403


class RateLimitError(AppException):
    """Raised when rate limit is exceeded.

    Example:
        raise RateLimitError(window="hour", retry_after=1200)
    """

    message = "Rate limit exceeded"
    error_code = "rate_limit_exceeded"
    status_code = 429

    def __init__(
        self,
        message: str | None = None,
        window: str | None = None,
        retry_after: int | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        if window:
            details["window"] = window
        if retry_after is not None:
            details["retry_after"] = retry_after
        self.window = window
        self.retry_after = retry_after
        super().__init__(message=message, details=details, **kwargs)


class ProvisioningStepError(AppException):
    """Raised when a provisioning step fails and the tenant was rolled back.

    The public message stays generic. The failing step and the underlying
    cause are kept on the exception for logging only.

    Example:
        raise ProvisioningStepError(step="schema", cause=exc)
    """

    message = "Tenant provisioning failed"
    error_code = "provisioning_failed"
    status_code = 500

    STEP_CODES = {
        "storage": "storage_failure",
        "config": "config_failure",
        "schema": "schema_failure",
        "seed": "seed_failure",
        "activate": "activation_failure",
        "timeout": "timeout",
    }

    def __init__(self, step: str, cause: BaseException | None = None) -> None:
        self.step = step
        self.cause = cause
        self.failure_code = self.STEP_CODES.get(step, "provisioning_failure")
        super().__init__(details={"failure": self.failure_code})


class ExternalCollaboratorError(AppException):
    """Raised by payment, notification, proxy or archive adapters.

    Callers treat these as best-effort side effects: they are logged and
    never abort the owning operation.
    """

    message = "External collaborator failed"
    error_code = "external_collaborator_error"
    status_code = 502

    def __init__(self, collaborator: str, message: str | None = None) -> None:
        self.collaborator = collaborator
        super().__init__(message=message, details={"collaborator": collaborator})


class BackupError(AppException):
    """Raised when a backup archive or database dump could not be produced."""

    message = "Backup failed"
    error_code = "backup_failed"
    status_code = 500


class JobExecutionError(AppException):
    """Raised when a scheduled job exhausted its retries."""

    message = "Background job failed"
    error_code = "job_failed"
    status_code = 500

    def __init__(self, job: str, tries: int, message: str | None = None) -> None:
        self.job = job
        self.tries = tries
        super().__init__(message=message, details={"job": job, "tries": tries})


class ServiceUnavailableError(AppException):
    """Raised when a required service is unavailable."""

    message = "Service temporarily unavailable"
    error_code = "service_unavailable"
    status_code = 503
