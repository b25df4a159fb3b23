"""Authentication and role helpers.

Tokens are issued and verified by Flask-JWT-Extended; these helpers turn a
verified identity into a User / ActorContext and enforce role gates.
"""
from functools import wraps

import bcrypt
from flask_jwt_extended import create_access_token, get_jwt_identity, verify_jwt_in_request
from werkzeug.security import check_password_hash

from apps.civic_api import db
from apps.civic_api.models.user import User
from apps.civic_api.utils.security import AuthorizationError


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Verify password against hash, supporting both bcrypt and Werkzeug formats."""
    if not password_hash or not password:
        return False

    if password_hash.startswith(('scrypt:', 'pbkdf2:', 'sha256:', 'sha512:')):
        return check_password_hash(password_hash, password)

    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def issue_access_token(user: User) -> str:
    """Bearer credential for a user (subject must be a string)."""
    return create_access_token(identity=str(user.id), additional_claims={'role': user.role})


class ActorContext:
    """Who is acting and what they may see.

    Passed into listing and workflow operations instead of consulting
    globals, so zone scoping is explicit at every call site.
    """

    def __init__(self, user: User):
        self.user = user
        self.user_id = user.id
        self.role = user.role
        self.zone = user.zone

    @property
    def is_admin(self) -> bool:
        return self.user.is_admin

    @property
    def visible_zone(self):
        """Zone the actor is restricted to, or None for unrestricted."""
        if self.user.is_zone_admin and self.zone:
            return self.zone
        return None

    def can_see_zone(self, zone: str) -> bool:
        return self.visible_zone is None or self.visible_zone == zone

    def __repr__(self):
        return f'<ActorContext user={self.user_id} role={self.role} zone={self.zone}>'


def get_current_user() -> User:
    """Load the User behind the verified JWT."""
    verify_jwt_in_request()
    identity = get_jwt_identity()
    try:
        user_id = int(identity)
    except (TypeError, ValueError):
        raise AuthorizationError('Invalid token', status_code=401)

    user = db.session.get(User, user_id)
    if not user:
        raise AuthorizationError('User not found', status_code=401)
    if not user.is_active:
        raise AuthorizationError('Account is deactivated')

    return user


def get_actor_context() -> ActorContext:
    return ActorContext(get_current_user())


def roles_required(*roles):
    """Require an authenticated user whose role is one of ``roles``."""
    def decorator(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            user = get_current_user()
            if user.role not in roles:
                raise AuthorizationError('Access denied')
            return f(*args, **kwargs)
        return wrapper
    return decorator
