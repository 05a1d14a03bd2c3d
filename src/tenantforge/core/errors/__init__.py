"""Error handling module with RFC 7807 Problem Details."""

from tenantforge.core.errors.exceptions import (
    AppException,
    BackupError,
    ConflictError,
    ExternalCollaboratorError,
    ForbiddenError,
    InvalidTransitionError,
    JobExecutionError,
    NotFoundError,
    ProvisioningStepError,
    RateLimitError,
    ServiceUnavailableError,
    UnauthorizedError,
    ValidationError,
)
from tenantforge.core.errors.handlers import (
    FieldError,
    ProblemDetail,
    error_type_uri,
    register_exception_handlers,
)


__all__ = [
    "AppException",
    "BackupError",
    "ConflictError",
    "ExternalCollaboratorError",
    "FieldError",
    "ForbiddenError",
    "InvalidTransitionError",
    "JobExecutionError",
    "NotFoundError",
    "ProblemDetail",
    "ProvisioningStepError",
    "RateLimitError",
    "ServiceUnavailableError",
    "UnauthorizedError",
    "ValidationError",
    "error_type_uri",
    "register_exception_handlers",
]
