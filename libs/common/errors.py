"""Domain error hierarchy shared by all services.

Service functions raise these; `libs.common.error_handler` renders them as
`{"error": {"code": ..., "message": ...}}` with the matching HTTP status.
"""

from typing import Optional


class ServiceError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 400
    code: str = "service_error"
    default_message: str = "Request could not be processed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": {"code": self.code, "message": self.message}}


class NotFoundError(ServiceError):
    status_code = 404
    code = "not_found"
    default_message = "Resource not found"


class AccessDeniedError(ServiceError):
    status_code = 403
    code = "access_denied"
    default_message = "You do not have access to this resource"


class InvalidStateError(ServiceError):
    status_code = 400
    code = "invalid_state"
    default_message = "Resource is not in a valid state for this operation"


class InvalidTransitionError(ServiceError):
    status_code = 400
    code = "invalid_transition"

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Invalid status transition from {current} to {target}")


class PreconditionFailedError(ServiceError):
    status_code = 400
    code = "precondition_failed"
    default_message = "Precondition failed"


class DuplicateResourceError(ServiceError):
    status_code = 409
    code = "duplicate_resource"
    default_message = "Resource already exists"


class ValidationError(ServiceError):
    status_code = 400
    code = "validation_error"
    default_message = "Invalid request"


class CodeGenerationFailedError(DuplicateResourceError):
    code = "code_generation_failed"
    default_message = "Failed to generate a unique referral code"


class InvalidReferralCodeError(ValidationError):
    code = "invalid_referral_code"
    default_message = "Invalid or expired referral code"
