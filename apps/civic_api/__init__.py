"""
CivicReport API package.

Extension singletons live here so models and blueprints can import them
without importing the app factory.
"""
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

__version__ = '1.0.0'

db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()

# Per-route limits (login/register) are added with limiter.limit in routes.auth
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["1000 per day", "200 per hour"],
    storage_uri="memory://",
    strategy="fixed-window",
)

__all__ = ['db', 'migrate', 'jwt', 'limiter', '__version__']
