"""Error taxonomy and JSON error rendering.

Every domain failure is an APIError subclass; the app-level handler turns
it into ``{"error": ..., "code": ...}`` and logs it with secrets redacted.
"""
import logging
import re
from typing import Optional, Dict, List, Set
from flask import jsonify, current_app, has_app_context


# =============================================================================
# Error Taxonomy
# =============================================================================

class APIError(Exception):
    """Base of all domain errors. ``message`` is safe to show to clients."""

    def __init__(self, message: str, code: str = None, status_code: int = 500, details: str = None):
        super().__init__(message)
        self.message = message
        self.code = code or 'ERROR'
        self.status_code = status_code
        # internals, surfaced only in DEBUG
        self.details = details

    def to_payload(self) -> Dict:
        return {'error': self.message, 'code': self.code}


class ValidationError(APIError):
    """Malformed or out-of-range input.

    Carries one entry per offending field so clients can highlight them.
    Accepts either a single ``field``/``message`` pair or a list of
    ``{'field': ..., 'message': ...}`` dicts.
    """

    def __init__(self, message: str = 'Validation failed', field: str = None, errors: List[Dict] = None):
        if errors is None:
            errors = [{'field': field, 'message': message}] if field else []
        super().__init__(message, code='VALIDATION_ERROR', status_code=400)
        self.field = field
        self.errors = errors

    def to_payload(self) -> Dict:
        payload = super().to_payload()
        if self.errors:
            payload['errors'] = self.errors
        return payload


class AuthorizationError(APIError):
    """Role or ownership mismatch (403), or bad credentials (401)."""

    def __init__(self, message: str = 'Access denied', status_code: int = 403):
        code = 'UNAUTHORIZED' if status_code == 401 else 'FORBIDDEN'
        super().__init__(message, code=code, status_code=status_code)


class NotFoundError(APIError):
    def __init__(self, message: str = 'Not found'):
        super().__init__(message, code='NOT_FOUND', status_code=404)


class InvalidStateError(APIError):
    """Operation is not valid for the entity's current status."""

    def __init__(self, message: str):
        super().__init__(message, code='INVALID_STATE', status_code=400)


class StoreError(APIError):
    """Persistence failure. The client only ever sees the generic message."""

    def __init__(self, message: str = 'Internal server error', details: str = None):
        super().__init__(message, code='STORE_ERROR', status_code=500, details=details)


# =============================================================================
# JSON error responses
# =============================================================================

SENSITIVE_LOG_FIELDS = {'password', 'token', 'secret', 'api_key', 'authorization'}


def safe_error_response(
    message: str,
    exception: Optional[Exception] = None,
    status_code: int = 500,
    code: str = None,
    log_level: str = 'error',
    extra: Optional[Dict] = None,
) -> tuple:
    """
    Log an error and build its JSON response.

    Args:
        message: Client-facing text
        exception: Underlying exception, logged and (in DEBUG only) echoed
        status_code: HTTP status
        code: Machine-readable error code
        log_level: Logger method name
        extra: Additional body keys such as field errors

    Returns:
        (response, status_code)
    """
    body = {'error': message}
    if code:
        body['code'] = code
    if extra:
        body.update(extra)

    logger = current_app.logger if has_app_context() else logging.getLogger(__name__)
    logged = sanitize_log_message(message)
    if exception is not None:
        logged = f"{logged}: {type(exception).__name__}: {sanitize_log_message(str(exception))}"
    getattr(logger, log_level, logger.error)(logged)

    if exception is not None and has_app_context() and current_app.config.get('DEBUG'):
        body['details'] = getattr(exception, 'details', None) or str(exception)
        body['exception_type'] = type(exception).__name__

    return jsonify(body), status_code


def api_error_response(error: APIError) -> tuple:
    """Render any APIError through safe_error_response."""
    payload = error.to_payload()
    message = payload.pop('error')
    code = payload.pop('code', None)
    if error.status_code >= 500:
        log_level = 'error'
    elif error.status_code == 404:
        log_level = 'info'
    else:
        log_level = 'warning'
    exception = error if error.details else None
    return safe_error_response(message, exception, error.status_code, code, log_level, extra=payload)


def error_429(message: str = 'Too many requests'):
    return safe_error_response(message, status_code=429, code='RATE_LIMITED', log_level='warning')


# =============================================================================
# Log redaction
# =============================================================================

def sanitize_log_message(message: str, sensitive_fields: Set[str] = None) -> str:
    """Mask values following ``password=``, ``"token": ...`` and similar keys."""
    sanitized = message
    for field in sensitive_fields or SENSITIVE_LOG_FIELDS:
        pattern = rf"({field}['\"]?\s*[:=]\s*['\"]?)([^'\",\s}}]+)"
        sanitized = re.sub(pattern, r'\1[REDACTED]', sanitized, flags=re.IGNORECASE)
    return sanitized
