"""
Error taxonomy for the validation service.
Every error carries the HTTP status the API layer reports it with.
"""


class ValidationServiceError(Exception):
    """Base class for errors raised by the validation service."""
    status_code = 500
    error_type = "SERVICE_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(ValidationServiceError):
    """A required field is missing or malformed."""
    status_code = 400
    error_type = "INVALID_INPUT"


class NotFound(ValidationServiceError):
    """No record matches the given identifier."""
    status_code = 400
    error_type = "NOT_FOUND"


class Unauthorized(ValidationServiceError):
    """Administrative operation attempted without valid credentials."""
    status_code = 403
    error_type = "UNAUTHORIZED"


class DuplicateOrUnknownRequest(ValidationServiceError):
    """Callback for a request id that is unknown or already fulfilled."""
    status_code = 409
    error_type = "DUPLICATE_OR_UNKNOWN_REQUEST"


class MalformedPayload(ValidationServiceError):
    """Callback payload could not be decoded as an ABI-encoded bool."""
    status_code = 400
    error_type = "MALFORMED_PAYLOAD"


class StorageFailure(ValidationServiceError):
    """Unexpected persistence error; the in-flight operation was rolled back."""
    status_code = 500
    error_type = "STORAGE_FAILURE"
