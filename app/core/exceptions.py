"""Custom application exceptions."""

from collections.abc import Iterable


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code."""
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class BadRequestException(AppException):
    """Bad request exception."""

    def __init__(self, message: str = "Bad request"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class MissingFieldException(BadRequestException):
    """One or more required input fields are absent."""

    def __init__(self, fields: Iterable[str]):
        """Initialize with the names of the missing fields."""
        self.fields = list(fields)
        super().__init__(f"Missing required fields: {', '.join(self.fields)}")


class InvalidStateException(BadRequestException):
    """Operation is not legal for the resource's current status."""

    def __init__(self, message: str = "Invalid state for this operation"):
        """Initialize with 400 status code."""
        super().__init__(message)


class ConfigurationException(BadRequestException):
    """Required configuration (pricing rule, sequence category) is missing."""

    def __init__(self, message: str = "Configuration error"):
        """Initialize with 400 status code."""
        super().__init__(message)


class ConflictException(AppException):
    """Conflict exception."""

    def __init__(self, message: str = "Conflict"):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409)


class OperationFailedException(AppException):
    """Unexpected infrastructure failure, detail withheld from the caller."""

    def __init__(self, message: str = "Operation failed"):
        """Initialize with 500 status code."""
        super().__init__(message, status_code=500)
