"""
CivicReport - Authentication Routes
Registration, login, current user, admin accounts and zones.

Login and registration carry per-route rate limits.
"""
from datetime import datetime, timezone

from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt

from apps.civic_api import db, limiter
from apps.civic_api.models.user import User
from apps.civic_api.models.token_blacklist import TokenBlacklist
from apps.civic_api.utils import (
    validate_email,
    validate_password,
    validate_name,
    validate_zone,
    json_body,
    FieldErrors,
    AuthorizationError,
    ValidationError,
)
from apps.civic_api.utils.auth import (
    get_current_user,
    hash_password,
    issue_access_token,
    roles_required,
    verify_password,
)
from apps.civic_api.utils.constants import (
    ADMIN_ROLES,
    ROLE_CITIZEN,
    ROLE_SUPERVISOR,
    ROLE_ZONE_ADMIN,
)
from apps.civic_api.utils.persistence import commit_session
from apps.civic_api.utils.time import utc_now

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


def _validate_account_fields(data, require_zone=False):
    errors = FieldErrors()
    name = errors.check(validate_name, data.get('name'))
    email = errors.check(validate_email, data.get('email'))
    password = errors.check(validate_password, data.get('password'))
    zone = errors.check(validate_zone, data.get('zone')) if require_zone else None
    errors.raise_if_any()

    if User.query.filter_by(email=email).first():
        raise ValidationError('User already exists with this email', field='email')
    return name, email, password, zone


@auth_bp.route('/register', methods=['POST'])
@limiter.limit("5 per minute")
def register():
    """Register a citizen account and return a bearer token."""
    data = json_body()

    role = str(data.get('role') or ROLE_CITIZEN).strip()
    if role != ROLE_CITIZEN:
        raise ValidationError('Only citizen accounts can be self-registered', field='role')

    name, email, password, _ = _validate_account_fields(data)

    user = User(
        name=name,
        email=email,
        password_hash=hash_password(password),
        role=ROLE_CITIZEN,
    )
    db.session.add(user)
    commit_session('register user')

    current_app.logger.info(f"Registered citizen account {user.id}")
    return jsonify({
        'message': 'User registered successfully',
        'access_token': issue_access_token(user),
        'user': user.to_dict(),
    }), 201


@auth_bp.route('/login', methods=['POST'])
@limiter.limit("10 per minute")
def login():
    """Exchange email and password for a bearer token."""
    data = json_body()
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''

    if not email or not password:
        raise ValidationError(
            'Email and password are required',
            errors=[
                {'field': f, 'message': f'{f} is required'}
                for f, v in (('email', email), ('password', password)) if not v
            ],
        )

    user = User.query.filter_by(email=email).first()
    if not user or not verify_password(password, user.password_hash):
        current_app.logger.warning("Failed login attempt for %s", email)
        raise AuthorizationError('Invalid credentials', status_code=401)

    if not user.is_active:
        raise AuthorizationError('Account is deactivated')

    user.last_login = utc_now()
    commit_session('record login')

    return jsonify({
        'message': 'Login successful',
        'access_token': issue_access_token(user),
        'user': user.to_dict(),
    }), 200


@auth_bp.route('/logout', methods=['POST'])
@jwt_required()
def logout():
    """Revoke the presented token."""
    user = get_current_user()
    jwt_data = get_jwt()
    expires_at = None
    if jwt_data.get('exp'):
        expires_at = datetime.fromtimestamp(jwt_data['exp'], tz=timezone.utc).replace(tzinfo=None)

    TokenBlacklist.add_token_to_blacklist(
        jwt_data['jti'],
        jwt_data.get('type', 'access'),
        user.id,
        expires_at,
    )
    commit_session('revoke token')
    return jsonify({'message': 'Logout successful'}), 200


@auth_bp.route('/me', methods=['GET'])
@jwt_required()
def me():
    """Current user profile."""
    return jsonify({'user': get_current_user().to_dict()}), 200


@auth_bp.route('/admins', methods=['GET'])
@jwt_required()
@roles_required(ROLE_SUPERVISOR)
def list_admins():
    """List admin accounts of one role (default admin1)."""
    role = request.args.get('role', ROLE_ZONE_ADMIN)
    if role not in ADMIN_ROLES:
        raise ValidationError('role must be admin1 or admin2', field='role')

    admins = User.query.filter_by(role=role).order_by(User.name.asc()).all()
    return jsonify({
        'admins': [
            {'id': a.id, 'name': a.name, 'email': a.email, 'role': a.role, 'zone': a.zone}
            for a in admins
        ],
        'count': len(admins),
    }), 200


@auth_bp.route('/admins', methods=['POST'])
@jwt_required()
@roles_required(ROLE_SUPERVISOR)
def create_admin():
    """Create a zone admin (admin1). Supervisors cannot create other roles here."""
    data = json_body()

    requested_role = data.get('role')
    if requested_role and requested_role != ROLE_ZONE_ADMIN:
        raise ValidationError('Role must be admin1', field='role')

    name, email, password, zone = _validate_account_fields(data, require_zone=True)

    admin = User(
        name=name,
        email=email,
        password_hash=hash_password(password),
        role=ROLE_ZONE_ADMIN,
        zone=zone,
    )
    db.session.add(admin)
    commit_session('create admin')

    current_app.logger.info(
        "Supervisor %s created admin1 %s for zone '%s'", get_current_user().id, admin.id, zone
    )
    return jsonify({
        'message': 'Admin created',
        'admin': {'id': admin.id, 'name': admin.name, 'email': admin.email, 'role': admin.role, 'zone': admin.zone},
    }), 201


@auth_bp.route('/zones', methods=['GET'])
@jwt_required()
def list_zones():
    """Zones derived from zone admins."""
    get_current_user()
    admins = (
        User.query.filter(User.role == ROLE_ZONE_ADMIN, User.zone.isnot(None))
        .order_by(User.zone.asc())
        .all()
    )
    zones = [{'zone': a.zone, 'admin_id': a.id, 'admin_name': a.name} for a in admins]
    return jsonify({'zones': zones}), 200
