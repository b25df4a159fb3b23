"""
CivicReport - Flask API Application

``create_app`` wires the extensions, blueprints and JSON error handling.
Run directly for a development server, or point ``FLASK_APP`` at
``apps.civic_api.app:create_app`` for the ``flask db`` commands.
"""
import sys
import os
import json
import time
from pathlib import Path
from dotenv import load_dotenv

PACKAGE_DIR = Path(__file__).parent.resolve()
REPO_ROOT = PACKAGE_DIR.parent.parent.resolve()

# .env lives at the repo root
if (REPO_ROOT / '.env').exists():
    load_dotenv(REPO_ROOT / '.env')

# Allow `python apps/civic_api/app.py` without installing the package
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from flask import Flask, jsonify, send_from_directory
from flask_cors import CORS
from flask_limiter.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from apps.civic_api.config import Config, config_by_name
from apps.civic_api import db, migrate, jwt, limiter, __version__
from apps.civic_api.utils.security import APIError, api_error_response, error_429

SERVICE_NAME = 'CivicReport API'

LOCAL_DEV_ORIGINS = (
    'http://localhost:3000',
    'http://localhost:5173',
    'http://127.0.0.1:3000',
    'http://127.0.0.1:5173',
)

PUBLIC_UPLOAD_PREFIX = 'issues/'


def _apply_security_headers(app):
    csp = '; '.join([
        "default-src 'self'",
        "img-src 'self' data: blob: https:",
        "frame-ancestors 'none'",
        "base-uri 'self'",
    ])

    @app.after_request
    def add_security_headers(response):
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
        response.headers['Permissions-Policy'] = 'microphone=(), camera=()'
        response.headers['Content-Security-Policy'] = csp

        if app.config.get('DEBUG'):
            return response

        response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
        # Error bodies never carry exception internals outside DEBUG
        if response.status_code >= 400 and response.is_json:
            payload = response.get_json(silent=True)
            if isinstance(payload, dict) and ({'details', 'exception_type'} & payload.keys()):
                payload.pop('details', None)
                payload.pop('exception_type', None)
                response.set_data(json.dumps(payload))
        return response


def _configure_cors(app):
    """Explicit allowlist; credentials rule out a wildcard origin."""
    origins = [(app.config.get('WEB_URL') or '').strip()]
    origins += [o.strip() for o in (os.getenv('CORS_ALLOWED_ORIGINS') or '').split(',')]

    is_production = app.config.get('FLASK_ENV') == 'production' and not app.config.get('DEBUG')
    if not is_production:
        origins += LOCAL_DEV_ORIGINS

    origins = [o for o in dict.fromkeys(origins) if o]
    if is_production and not origins:
        raise RuntimeError("Set WEB_URL or CORS_ALLOWED_ORIGINS for production CORS.")

    CORS(app,
         origins=origins,
         methods=['GET', 'POST', 'PATCH', 'OPTIONS'],
         allow_headers=['Content-Type', 'Authorization', 'X-Requested-With'],
         expose_headers=['Content-Type', 'Authorization'],
         supports_credentials=True)


def _register_jwt_callbacks(app):
    from apps.civic_api.models.token_blacklist import TokenBlacklist

    @jwt.token_in_blocklist_loader
    def check_if_token_revoked(jwt_header, jwt_payload):
        return TokenBlacklist.is_token_revoked(jwt_payload['jti'])

    @jwt.unauthorized_loader
    def missing_token(reason):
        return jsonify({'error': 'Authentication required', 'code': 'UNAUTHORIZED'}), 401

    @jwt.invalid_token_loader
    def invalid_token(reason):
        app.logger.warning("Rejected invalid token: %s", reason)
        return jsonify({'error': 'Invalid token', 'code': 'UNAUTHORIZED'}), 401

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return jsonify({'error': 'Token has expired', 'code': 'UNAUTHORIZED'}), 401

    @jwt.revoked_token_loader
    def revoked_token(jwt_header, jwt_payload):
        return jsonify({'error': 'Token has been revoked', 'code': 'UNAUTHORIZED'}), 401


def _register_error_handlers(app):
    @app.errorhandler(APIError)
    def handle_api_error(error):
        if error.status_code >= 500:
            db.session.rollback()
        return api_error_response(error)

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'Resource not found', 'code': 'NOT_FOUND'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'error': 'Method not allowed'}), 405

    @app.errorhandler(413)
    def payload_too_large(error):
        return jsonify({'error': 'Upload too large', 'code': 'VALIDATION_ERROR'}), 413

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return jsonify({'error': 'Internal server error'}), 500

    @app.errorhandler(RateLimitExceeded)
    def ratelimit_handler(error):
        resp, status = error_429('Rate limit exceeded')
        resp.status_code = status
        for name, value in error.get_headers() or []:
            if name.lower() != 'content-type':
                resp.headers[name] = value
        return resp


def _register_service_routes(app):
    @app.route('/', methods=['GET'])
    def root():
        return jsonify({'message': SERVICE_NAME, 'version': __version__}), 200

    @app.route('/health', methods=['GET'])
    @app.route('/api/health', methods=['GET'])
    def health_check():
        """Liveness probe."""
        return jsonify({'status': 'ok', 'service': SERVICE_NAME, 'version': __version__}), 200

    @app.route('/health/db', methods=['GET'])
    def db_health_check():
        """Readiness probe: round-trips a trivial query."""
        started = time.perf_counter()
        try:
            db.session.execute(text('SELECT 1')).scalar()
            db.session.rollback()
        except SQLAlchemyError as e:
            app.logger.error("Database health check failed: %s", e)
            status, code = {'status': 'unhealthy', 'database': 'disconnected'}, 503
        else:
            status, code = {'status': 'healthy', 'database': 'connected'}, 200
        status['latency_ms'] = round((time.perf_counter() - started) * 1000, 2)
        return jsonify(status), code

    @app.route('/uploads/<path:filename>')
    def serve_uploaded_file(filename):
        """Issue photos are the only publicly served uploads."""
        relative = str(filename or '').replace('\\', '/').lstrip('/')
        if not relative or '..' in relative.split('/'):
            return jsonify({'error': 'Invalid file path'}), 400
        if not relative.startswith(PUBLIC_UPLOAD_PREFIX):
            return jsonify({'error': 'Forbidden'}), 403
        return send_from_directory(str(app.config['UPLOAD_FOLDER']), relative)


def create_app(config_class=Config):
    """Build a configured Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_class)
    config_class.init_app(app)

    backend = app.config.get('SQLALCHEMY_DATABASE_URI', '').split(':', 1)[0]
    app.logger.info("Database backend: %s", backend)

    db.init_app(app)
    migrate.init_app(app, db, directory=str(PACKAGE_DIR / 'migrations'))
    jwt.init_app(app)
    limiter.init_app(app)  # reads RATELIMIT_ENABLED itself
    if not app.config.get('RATELIMIT_ENABLED', True):
        app.logger.warning("Rate limiting is disabled")

    # Register models with the metadata before blueprints use them
    from apps.civic_api import models  # noqa: F401
    from apps.civic_api.routes import auth_bp, issues_bp, notifications_bp

    _apply_security_headers(app)
    _configure_cors(app)
    _register_jwt_callbacks(app)

    for blueprint in (auth_bp, issues_bp, notifications_bp):
        app.register_blueprint(blueprint)

    _register_service_routes(app)
    _register_error_handlers(app)
    return app


if __name__ == '__main__':
    app = create_app(config_by_name.get(os.getenv('FLASK_ENV', 'default'), Config))
    app.run(host='0.0.0.0', port=int(os.getenv('PORT', 5000)), debug=app.config['DEBUG'])
