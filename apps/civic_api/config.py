"""
CivicReport - Configuration
Environment-driven settings for the API and its extensions.
"""
import os
import logging
import tempfile
from datetime import timedelta
from pathlib import Path
from urllib.parse import urlsplit, urlunsplit, parse_qsl, urlencode

# <repo>/apps/civic_api/config.py -> BASE_DIR=<repo>
PACKAGE_DIR = Path(__file__).parent.resolve()
BASE_DIR = PACKAGE_DIR.parent.parent.resolve()

DEV_SECRET_KEY = 'civic-report-dev-secret'
DEV_JWT_SECRET_KEY = 'civic-report-dev-jwt-secret'


def _is_production() -> bool:
    return os.getenv('FLASK_ENV', 'development') == 'production'


def _require_env(name: str, dev_default: str) -> str:
    """
    Read a secret from the environment.

    Outside production ``dev_default`` is used when the variable is unset;
    in production a missing secret stops the process at import time.
    """
    value = os.getenv(name)
    if value:
        return value
    if _is_production():
        raise RuntimeError(
            f"{name} must be set when FLASK_ENV=production"
        )
    logging.debug("%s not set; using development default", name)
    return dev_default


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw in (None, ''):
        return default
    try:
        return int(raw)
    except ValueError:
        logging.warning("Invalid integer for %s=%r; using default %s", name, raw, default)
        return default


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


def _with_sslmode(url: str) -> str:
    """Append sslmode=require to a PostgreSQL URL unless it already sets one."""
    try:
        parts = urlsplit(url)
        params = dict(parse_qsl(parts.query))
        params.setdefault('sslmode', 'require')
        return urlunsplit(parts._replace(query=urlencode(params)))
    except ValueError as e:
        # Unescaped characters in the password defeat urlsplit
        logging.warning("DATABASE_URL could not be parsed (%s); appending sslmode textually", e)
        if 'sslmode=' in url:
            return url
        return f"{url}{'&' if '?' in url else '?'}sslmode=require"


def get_database_url() -> str:
    """
    Resolve the SQLAlchemy URL.

    DATABASE_URL unset -> local SQLite file in the repo root.
    ``postgres://`` is rewritten to ``postgresql://`` for SQLAlchemy.
    """
    url = os.getenv('DATABASE_URL')
    if not url:
        fallback = f"sqlite:///{BASE_DIR / 'civic_report.db'}"
        logging.warning("DATABASE_URL not set; using %s", fallback)
        return fallback

    if url.startswith('postgres://'):
        url = 'postgresql://' + url[len('postgres://'):]
    if url.startswith('postgresql://'):
        url = _with_sslmode(url)
    return url


def get_engine_options(db_url: str = None) -> dict:
    """Pool settings per backend."""
    db_url = db_url or get_database_url()

    if db_url.startswith('sqlite://'):
        from sqlalchemy.pool import NullPool
        return {'poolclass': NullPool}

    options = {'pool_pre_ping': True}
    if db_url.startswith('postgresql://'):
        options.update({
            'pool_recycle': 300,
            'pool_size': 5,
            'max_overflow': 5,
            'pool_timeout': 20,
            'connect_args': {'connect_timeout': 20},
        })
    return options


class Config:
    """Base configuration"""

    SECRET_KEY = _require_env('SECRET_KEY', DEV_SECRET_KEY)
    DEBUG = _bool_env('DEBUG', False)
    FLASK_ENV = os.getenv('FLASK_ENV', 'development')

    # Database
    SQLALCHEMY_DATABASE_URI = get_database_url()
    SQLALCHEMY_ENGINE_OPTIONS = get_engine_options(SQLALCHEMY_DATABASE_URI)
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Tokens
    JWT_SECRET_KEY = _require_env('JWT_SECRET_KEY', DEV_JWT_SECRET_KEY)
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(seconds=_int_env('JWT_ACCESS_TOKEN_EXPIRES', 7 * 24 * 3600))
    JWT_TOKEN_LOCATION = ['headers']

    # Flask-Limiter
    RATELIMIT_ENABLED = _bool_env('RATELIMIT_ENABLED', True)
    RATELIMIT_STORAGE_URI = os.getenv('RATELIMIT_STORAGE_URI', 'memory://')
    RATELIMIT_HEADERS_ENABLED = True

    # Photo uploads
    MAX_CONTENT_LENGTH = _int_env('MAX_CONTENT_LENGTH', 10 * 1024 * 1024)
    MAX_PHOTO_SIZE_MB = _int_env('MAX_PHOTO_SIZE_MB', 5)
    UPLOAD_FOLDER = BASE_DIR / os.getenv('UPLOAD_FOLDER', 'uploads')

    # Listings
    DEFAULT_PAGE_SIZE = _int_env('DEFAULT_PAGE_SIZE', 20)
    MAX_PAGE_SIZE = _int_env('MAX_PAGE_SIZE', 100)
    DEFAULT_SEARCH_RADIUS_KM = float(os.getenv('DEFAULT_SEARCH_RADIUS_KM', 10))

    # Supervisor progress view (utils.issue_workflow.get_admin_progress)
    PROGRESS_UPDATE_SCAN_LIMIT = _int_env('PROGRESS_UPDATE_SCAN_LIMIT', 50)
    PROGRESS_RECENT_ISSUES_LIMIT = _int_env('PROGRESS_RECENT_ISSUES_LIMIT', 5)

    APP_NAME = os.getenv('APP_NAME', 'CivicReport')
    WEB_URL = os.getenv('WEB_URL', 'http://localhost:5173')

    @staticmethod
    def init_app(app):
        """Create the photo directory, falling back to the temp dir if read-only."""
        upload_dir = Path(app.config.get('UPLOAD_FOLDER') or Config.UPLOAD_FOLDER)
        try:
            (upload_dir / 'issues').mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            fallback = Path(tempfile.gettempdir()) / 'civic_report_uploads'
            (fallback / 'issues').mkdir(parents=True, exist_ok=True)
            app.logger.warning("Upload folder %s unusable (%s); using %s", upload_dir, exc, fallback)
            upload_dir = fallback
        app.config['UPLOAD_FOLDER'] = upload_dir


class DevelopmentConfig(Config):
    DEBUG = True
    SQLALCHEMY_ECHO = _bool_env('SQLALCHEMY_ECHO', False)


class ProductionConfig(Config):
    DEBUG = False


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    RATELIMIT_ENABLED = False
    UPLOAD_FOLDER = Path(tempfile.gettempdir()) / 'civic_report_test_uploads'


config_by_name = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': Config,
}
