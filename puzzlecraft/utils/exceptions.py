"""
Custom exceptions for Puzzle Craft business logic.

Each exception carries a machine-readable code and maps to one HTTP status
in the app-level error handlers (see register_error_handlers).
"""
from .errors import ErrorCode


class PuzzleCraftError(Exception):
    """Base exception for all Puzzle Craft business logic errors."""

    status_code = 500

    def __init__(self, message: str, code: str = "PUZZLECRAFT_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(PuzzleCraftError):
    """Resource not found."""

    status_code = 404

    def __init__(self, resource: str, identifier=None):
        message = f"{resource} not found"
        if identifier:
            message = f"{resource} with ID {identifier} not found"
        super().__init__(message, f"{resource.upper().replace(' ', '_')}_NOT_FOUND")


class ValidationError(PuzzleCraftError):
    """Invalid input data."""

    status_code = 400

    def __init__(self, message: str, field: str = None):
        self.field = field
        code = f"INVALID_{field.upper()}" if field else ErrorCode.VALIDATION_ERROR.value
        super().__init__(message, code)


class DuplicateError(PuzzleCraftError):
    """Resource already exists."""

    status_code = 409

    def __init__(self, resource: str, identifier=None):
        message = f"{resource} already exists"
        if identifier:
            message = f"{resource} with {identifier} already exists"
        super().__init__(message, ErrorCode.DUPLICATE_ENTRY.value)


class ExternalServiceError(PuzzleCraftError):
    """A call to Shopify or the storage provider failed."""

    status_code = 502
    public_message = "A connected service is unavailable, please try again"

    def __init__(self, message: str, service: str = "external", details=None):
        self.service = service
        self.details = details
        super().__init__(message, ErrorCode.EXTERNAL_SERVICE_ERROR.value)


class StorageError(PuzzleCraftError):
    """The database could not complete the operation."""

    status_code = 503
    public_message = "Unable to save your changes right now, please try again"

    def __init__(self, message: str, original_error: Exception = None):
        self.original_error = original_error
        super().__init__(message, ErrorCode.DATABASE_ERROR.value)


class ShopifyError(PuzzleCraftError):
    """Error communicating with Shopify API."""

    status_code = 502

    def __init__(self, message: str, errors: list = None, original_error: Exception = None):
        self.errors = errors or []
        self.original_error = original_error
        super().__init__(message, ErrorCode.SHOPIFY_ERROR.value)


class ConfigurationError(PuzzleCraftError):
    """Application configuration error."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR.value)
