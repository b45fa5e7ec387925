"""
Utilities module: Exceptions, validators, schemas.
"""

from shared.utils.exceptions import (
    NotFoundError,
    AuthorizationError,
    ValidationError,
    ConflictError,
    ExternalServiceError,
)
from shared.utils.validators import (
    escape_like_pattern,
    sanitize_text,
)
from shared.utils.schemas import ErrorResponse

__all__ = [
    # exceptions
    "NotFoundError",
    "AuthorizationError",
    "ValidationError",
    "ConflictError",
    "ExternalServiceError",
    # validators
    "escape_like_pattern",
    "sanitize_text",
    # schemas
    "ErrorResponse",
]
