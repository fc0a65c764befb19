from typing import Optional, Any

class GatewayError(Exception):
    """
    Base exception for the verification gateway.
    """
    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500, details: Optional[Any] = None):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)

class NotFoundError(GatewayError):
    """
    Raised when an identifier or order does not exist on the backend.
    """
    def __init__(self, message: str = "Resource not found", details: Optional[Any] = None):
        super().__init__(message, code="NOT_FOUND", status_code=404, details=details)

class RemoteFailureError(GatewayError):
    """
    Raised when a backend call fails: network error, timeout,
    non-zero error_code or a malformed payload.
    """
    def __init__(self, message: str = "Remote service error", details: Optional[Any] = None):
        super().__init__(message, code="REMOTE_FAILURE", status_code=502, details=details)

class InvalidInputError(GatewayError):
    """
    Raised when command arguments are malformed.
    """
    def __init__(self, message: str = "Invalid input", details: Optional[Any] = None):
        super().__init__(message, code="VALIDATION_ERROR", status_code=422, details=details)

class ExpiredStateError(GatewayError):
    """
    Raised when a verification code is submitted after it expired.
    """
    def __init__(self, message: str = "Verification code expired", details: Optional[Any] = None):
        super().__init__(message, code="EXPIRED_STATE", status_code=410, details=details)

class NoActiveSessionError(GatewayError):
    """
    Raised when a code is submitted while nothing is pending for the phone.
    """
    def __init__(self, message: str = "No active verification request", details: Optional[Any] = None):
        super().__init__(message, code="NO_ACTIVE_SESSION", status_code=409, details=details)

class AuthenticationError(GatewayError):
    """
    Raised when a webhook caller fails authentication.
    """
    def __init__(self, message: str = "Authentication failed", details: Optional[Any] = None):
        super().__init__(message, code="AUTHENTICATION_FAILED", status_code=401, details=details)
