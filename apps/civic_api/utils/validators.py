"""Input validators.

Single-field validators raise ValidationError immediately. Form-level
checks collect every offending field through FieldErrors and raise once,
so clients get the whole list in one response.
"""
import re
from typing import Any, Dict, List, Optional

from flask import request

from apps.civic_api.utils.constants import (
    ISSUE_CATEGORIES,
    ISSUE_PRIORITIES,
    ISSUE_STATUSES,
    DEFAULT_PRIORITY,
)
from apps.civic_api.utils.security import ValidationError

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')

MIN_DESCRIPTION_LENGTH = 10
MIN_PASSWORD_LENGTH = 6
# bcrypt only hashes the first 72 bytes
MAX_PASSWORD_BYTES = 72


class FieldErrors:
    """Accumulates field-level validation failures."""

    def __init__(self):
        self.errors: List[Dict[str, str]] = []

    def add(self, field: str, message: str):
        self.errors.append({'field': field, 'message': message})

    def check(self, func, *args, **kwargs):
        """Run a single-field validator, recording its failure instead of raising."""
        try:
            return func(*args, **kwargs)
        except ValidationError as e:
            self.errors.extend(e.errors or [{'field': e.field, 'message': e.message}])
            return None

    def raise_if_any(self, message: str = 'Validation failed'):
        if self.errors:
            raise ValidationError(message, errors=list(self.errors))


def json_body() -> Dict[str, Any]:
    """Parsed JSON request body; an empty or missing body is {}."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def sanitize_string(value: Any, max_length: Optional[int] = None) -> str:
    """Trim and coerce to str; None becomes ''."""
    if value is None:
        return ''
    text = str(value).strip()
    if max_length is not None:
        text = text[:max_length]
    return text


def validate_name(name: Any) -> str:
    name = sanitize_string(name)
    if not 2 <= len(name) <= 100:
        raise ValidationError('Name must be 2-100 characters', field='name')
    return name


def validate_email(email: Any) -> str:
    """Return the normalized (lower-cased) email."""
    email = sanitize_string(email).lower()
    if not email or len(email) > 120 or not EMAIL_PATTERN.match(email):
        raise ValidationError('Valid email required', field='email')
    return email


def validate_password(password: Any) -> str:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f'Password must be at least {MIN_PASSWORD_LENGTH} characters',
            field='password',
        )
    if len(password.encode('utf-8')) > MAX_PASSWORD_BYTES:
        raise ValidationError(
            f'Password must be at most {MAX_PASSWORD_BYTES} bytes',
            field='password',
        )
    return password


def validate_zone(zone: Any) -> str:
    zone = sanitize_string(zone)
    if not 1 <= len(zone) <= 100:
        raise ValidationError('Zone required (max 100 characters)', field='zone')
    return zone


def validate_category(category: Any) -> str:
    category = sanitize_string(category)
    if category not in ISSUE_CATEGORIES:
        raise ValidationError('Valid category required', field='category')
    return category


def validate_status(status: Any) -> str:
    status = sanitize_string(status)
    if status not in ISSUE_STATUSES:
        raise ValidationError('Valid status required', field='status')
    return status


def validate_priority(priority: Any) -> str:
    priority = sanitize_string(priority) or DEFAULT_PRIORITY
    if priority not in ISSUE_PRIORITIES:
        raise ValidationError('Valid priority required', field='priority')
    return priority


def validate_description(description: Any) -> str:
    description = sanitize_string(description)
    if len(description) < MIN_DESCRIPTION_LENGTH:
        raise ValidationError(
            f'Description must be at least {MIN_DESCRIPTION_LENGTH} characters',
            field='description',
        )
    return description


def _coerce_float(value: Any, field: str) -> float:
    if isinstance(value, bool):
        raise ValidationError(f'Valid {field} required', field=field)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f'Valid {field} required', field=field)
    if number != number or number in (float('inf'), float('-inf')):
        raise ValidationError(f'Valid {field} required', field=field)
    return number


def validate_latitude(value: Any) -> float:
    lat = _coerce_float(value, 'latitude')
    if not -90 <= lat <= 90:
        raise ValidationError('Valid latitude required', field='latitude')
    return lat


def validate_longitude(value: Any) -> float:
    lng = _coerce_float(value, 'longitude')
    if not -180 <= lng <= 180:
        raise ValidationError('Valid longitude required', field='longitude')
    return lng


def parse_location_filter(raw: str, default_radius_km: float = 10.0):
    """Parse a ``"lat,lng[,radiusKm]"`` query value.

    Returns:
        Tuple of (latitude, longitude, radius_km)
    """
    parts = [p.strip() for p in (raw or '').split(',')]
    if len(parts) not in (2, 3) or not all(parts):
        raise ValidationError('location must be "lat,lng" or "lat,lng,radiusKm"', field='location')
    try:
        lat = validate_latitude(parts[0])
        lng = validate_longitude(parts[1])
        radius = _coerce_float(parts[2], 'radius') if len(parts) == 3 else float(default_radius_km)
    except ValidationError as e:
        raise ValidationError(f'Invalid location filter: {e.message}', field='location')
    if radius <= 0:
        raise ValidationError('Invalid location filter: radius must be positive', field='location')
    return lat, lng, radius


def validate_pagination(page: Any, limit: Any, default_limit: int = 20, max_limit: int = 100):
    """Return (page, limit) as positive ints, clamping limit to max_limit."""
    try:
        page = int(page) if page not in (None, '') else 1
        limit = int(limit) if limit not in (None, '') else default_limit
    except (TypeError, ValueError):
        raise ValidationError('page and limit must be integers', field='page')
    if page < 1:
        raise ValidationError('page must be >= 1', field='page')
    if limit < 1:
        raise ValidationError('limit must be >= 1', field='limit')
    return page, min(limit, max_limit)


def validate_file_extension(filename: str, allowed_extensions: set) -> str:
    ext = filename.rsplit('.', 1)[-1].lower() if '.' in filename else ''
    if ext not in allowed_extensions:
        raise ValidationError(
            f"File type not allowed. Allowed: {', '.join(sorted(allowed_extensions))}",
            field='photo',
        )
    return ext


def validate_file_size(size_bytes: int, max_size_mb: int):
    if size_bytes <= 0:
        raise ValidationError('Uploaded file is empty', field='photo')
    if size_bytes > max_size_mb * 1024 * 1024:
        raise ValidationError(f'File too large (max {max_size_mb}MB)', field='photo')
