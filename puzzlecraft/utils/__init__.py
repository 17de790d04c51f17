"""
Utility modules for Puzzle Craft.
"""
from .logging_config import setup_logging, get_logger
from .errors import (
    ErrorCode,
    error_response,
    bad_request,
    unauthorized,
    forbidden,
    not_found,
    internal_error,
    exception_response,
    storefront_error,
)
from .exceptions import (
    PuzzleCraftError,
    NotFoundError,
    ValidationError,
    DuplicateError,
    ExternalServiceError,
    StorageError,
    ShopifyError,
    ConfigurationError,
)

__all__ = [
    'setup_logging',
    'get_logger',
    'ErrorCode',
    'error_response',
    'bad_request',
    'unauthorized',
    'forbidden',
    'not_found',
    'internal_error',
    'exception_response',
    'storefront_error',
    'PuzzleCraftError',
    'NotFoundError',
    'ValidationError',
    'DuplicateError',
    'ExternalServiceError',
    'StorageError',
    'ShopifyError',
    'ConfigurationError',
]
