"""API Routes - Import all blueprints here."""

from .auth import auth_bp
from .issues import issues_bp
from .notifications import notifications_bp

__all__ = [
    'auth_bp',
    'issues_bp',
    'notifications_bp',
]
