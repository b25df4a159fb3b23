"""Utility functions for the API.

Only model-free helpers are re-exported here; modules that touch models
(auth, notifications, issue_workflow) are imported directly.
"""

from .validators import (
    validate_email,
    validate_password,
    validate_name,
    validate_zone,
    sanitize_string,
    json_body,
    FieldErrors,
)

from .security import (
    safe_error_response,
    api_error_response,
    error_429,
    APIError,
    ValidationError,
    AuthorizationError,
    NotFoundError,
    InvalidStateError,
    StoreError,
)

__all__ = [
    # Validators
    'validate_email',
    'validate_password',
    'validate_name',
    'validate_zone',
    'sanitize_string',
    'json_body',
    'FieldErrors',
    # Errors / responses
    'safe_error_response',
    'api_error_response',
    'error_429',
    'APIError',
    'ValidationError',
    'AuthorizationError',
    'NotFoundError',
    'InvalidStateError',
    'StoreError',
]
