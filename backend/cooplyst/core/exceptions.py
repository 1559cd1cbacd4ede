"""
Error types raised by the service layer
"""


class CoopLystError(Exception):
    """Base error; carries the HTTP status the API layer should answer with"""
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(CoopLystError):
    """Rejected input or an operation not allowed in the current state"""
    status_code = 400


class AuthenticationError(CoopLystError):
    status_code = 401

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class PermissionDeniedError(CoopLystError):
    status_code = 403

    def __init__(self, message: str = "Admin access required"):
        super().__init__(message)


class NotFoundError(CoopLystError):
    status_code = 404


class ConflictError(CoopLystError):
    status_code = 409


class ProviderError(CoopLystError):
    """A metadata provider could not answer (config, HTTP or payload problem)"""
    status_code = 502
