"""Repository layer exceptions.

These exceptions are raised by repositories when database operations fail.
They should be caught and translated to AppExceptions by the usecase layer.
"""


class StoreException(Exception):
    """Base exception for token store errors."""
    def __init__(self, message: str = "Token store error", detail: str | None = None):
        self.message = message
        self.detail = detail
        super().__init__(self.message)


class DuplicateTokenException(StoreException):
    """Raised when a generated key value already exists (unique constraint violation)."""
    def __init__(self, message: str = "Token value already exists", detail: str | None = None):
        super().__init__(message, detail)


class DatabaseConnectionException(StoreException):
    """Raised when database connection fails."""
    def __init__(self, message: str = "Database connection error", detail: str | None = None):
        super().__init__(message, detail)


class DatabaseOperationException(StoreException):
    """Raised when a database operation fails."""
    def __init__(self, message: str = "Database operation failed", detail: str | None = None):
        super().__init__(message, detail)
