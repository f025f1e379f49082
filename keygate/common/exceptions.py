"""Custom exceptions for the application."""


class AppException(Exception):
    """Base application exception."""
    error = "server_error"

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class InvalidInputException(AppException):
    """Raised when a request carries a missing or malformed token."""
    error = "invalid_input"

    def __init__(self, message: str = "Invalid input"):
        super().__init__(message, status_code=400)


class NotFoundException(AppException):
    """Raised when resource is not found."""
    error = "not_found"

    def __init__(self, message: str = "Not Found"):
        super().__init__(message, status_code=404)


class ServiceUnavailableException(AppException):
    """Raised when service is temporarily unavailable (e.g., database connection failure)."""
    error = "service_unavailable"

    def __init__(self, message: str = "Service temporarily unavailable"):
        super().__init__(message, status_code=503)


class InternalServerException(AppException):
    """Raised when an internal server error occurs."""

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message, status_code=500)
