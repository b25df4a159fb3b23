"""
Account tests: citizen registration, login, logout revocation and the
supervisor-only admin management endpoints.
"""
from apps.civic_api.app import create_app
from apps.civic_api.config import Config
from apps.civic_api import db
from apps.civic_api.models import User
from apps.civic_api.utils.auth import hash_password, verify_password
from flask_jwt_extended import create_access_token
from werkzeug.security import generate_password_hash


class AuthTestConfig(Config):
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    TESTING = True
    JWT_SECRET_KEY = 'test-secret'
    RATELIMIT_ENABLED = False


def _setup():
    app = create_app(AuthTestConfig)
    client = app.test_client()
    with app.app_context():
        db.create_all()
        supervisor = User(
            name='Sam Super',
            email='sam@example.com',
            password_hash=hash_password('supersecret'),
            role='admin2',
        )
        db.session.add(supervisor)
        db.session.commit()
        token = create_access_token(identity=str(supervisor.id), additional_claims={'role': 'admin2'})
    return app, client, {'Authorization': f'Bearer {token}'}


def _register(client, **overrides):
    payload = {'name': 'Cora Citizen', 'email': 'Cora@Example.com', 'password': 'secret1'}
    payload.update(overrides)
    return client.post('/api/auth/register', json=payload)


def test_register_citizen_returns_token_and_normalized_email():
    _, client, _ = _setup()

    resp = _register(client)
    assert resp.status_code == 201
    body = resp.get_json()
    assert body['access_token']
    assert body['user']['email'] == 'cora@example.com'
    assert body['user']['role'] == 'citizen'
    assert 'password_hash' not in body['user']

    me = client.get('/api/auth/me', headers={'Authorization': f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    assert me.get_json()['user']['name'] == 'Cora Citizen'


def test_register_rejects_duplicates_and_admin_roles():
    _, client, _ = _setup()
    assert _register(client).status_code == 201

    dup = _register(client, email='cora@example.com')
    assert dup.status_code == 400
    assert dup.get_json()['errors'][0]['field'] == 'email'

    admin = _register(client, email='other@example.com', role='admin2')
    assert admin.status_code == 400


def test_register_rejects_password_longer_than_bcrypt_limit():
    _, client, _ = _setup()

    resp = _register(client, password='a' * 73)
    assert resp.status_code == 400
    assert resp.get_json()['errors'] == [
        {'field': 'password', 'message': 'Password must be at most 72 bytes'},
    ]
    assert _register(client, password='a' * 72).status_code == 201


def test_account_endpoints_reject_non_object_json():
    _, client, supervisor = _setup()

    for resp in (
        client.post('/api/auth/register', json=['x']),
        client.post('/api/auth/login', json='cora@example.com'),
        client.post('/api/auth/admins', json=[1, 2], headers=supervisor),
    ):
        assert resp.status_code == 400
        assert resp.get_json()['code'] == 'VALIDATION_ERROR'
        assert resp.get_json()['error'] == 'Request body must be a JSON object'


def test_register_reports_each_invalid_field():
    _, client, _ = _setup()

    resp = _register(client, name='C', email='not-an-email', password='123')
    assert resp.status_code == 400
    assert {e['field'] for e in resp.get_json()['errors']} == {'name', 'email', 'password'}


def test_login_and_bad_credentials():
    _, client, _ = _setup()
    _register(client)

    ok = client.post('/api/auth/login', json={'email': 'CORA@example.com', 'password': 'secret1'})
    assert ok.status_code == 200
    assert ok.get_json()['user']['last_login'] is not None

    bad = client.post('/api/auth/login', json={'email': 'cora@example.com', 'password': 'wrong-pass'})
    assert bad.status_code == 401
    assert bad.get_json()['error'] == 'Invalid credentials'

    missing = client.post('/api/auth/login', json={'email': 'cora@example.com'})
    assert missing.status_code == 400


def test_deactivated_account_cannot_log_in():
    app, client, _ = _setup()
    _register(client)
    with app.app_context():
        user = User.query.filter_by(email='cora@example.com').first()
        user.is_active = False
        db.session.commit()

    resp = client.post('/api/auth/login', json={'email': 'cora@example.com', 'password': 'secret1'})
    assert resp.status_code == 403


def test_logout_revokes_token():
    _, client, _ = _setup()
    token = _register(client).get_json()['access_token']
    headers = {'Authorization': f'Bearer {token}'}

    assert client.post('/api/auth/logout', headers=headers).status_code == 200

    resp = client.get('/api/auth/me', headers=headers)
    assert resp.status_code == 401
    assert resp.get_json()['error'] == 'Token has been revoked'


def test_supervisor_creates_and_lists_zone_admins():
    _, client, supervisor = _setup()

    resp = client.post('/api/auth/admins', json={
        'name': 'Zed Zone',
        'email': 'zed@example.com',
        'password': 'zonepass',
        'zone': 'Downtown',
    }, headers=supervisor)
    assert resp.status_code == 201
    admin = resp.get_json()['admin']
    assert admin['role'] == 'admin1'
    assert admin['zone'] == 'Downtown'

    listed = client.get('/api/auth/admins', headers=supervisor).get_json()
    assert listed['count'] == 1
    assert listed['admins'][0]['email'] == 'zed@example.com'

    supervisors = client.get('/api/auth/admins', query_string={'role': 'admin2'}, headers=supervisor).get_json()
    assert [a['email'] for a in supervisors['admins']] == ['sam@example.com']

    zones = client.get('/api/auth/zones', headers=supervisor).get_json()
    assert zones['zones'] == [{'zone': 'Downtown', 'admin_id': admin['id'], 'admin_name': 'Zed Zone'}]


def test_zone_admin_requires_zone_and_supervisor():
    _, client, supervisor = _setup()

    no_zone = client.post('/api/auth/admins', json={
        'name': 'Zed Zone', 'email': 'zed@example.com', 'password': 'zonepass',
    }, headers=supervisor)
    assert no_zone.status_code == 400
    assert no_zone.get_json()['errors'][0]['field'] == 'zone'

    token = _register(client).get_json()['access_token']
    citizen = {'Authorization': f'Bearer {token}'}
    assert client.get('/api/auth/admins', headers=citizen).status_code == 403
    assert client.post('/api/auth/admins', json={
        'name': 'Zed Zone', 'email': 'zed@example.com', 'password': 'zonepass', 'zone': 'Downtown',
    }, headers=citizen).status_code == 403


def test_verify_password_accepts_bcrypt_and_werkzeug_hashes():
    assert verify_password('secret1', hash_password('secret1'))
    assert verify_password('secret1', generate_password_hash('secret1'))
    assert not verify_password('secret1', hash_password('other'))
    assert not verify_password('', hash_password('secret1'))


def test_health_endpoints():
    _, client, _ = _setup()

    assert client.get('/health').get_json()['status'] == 'ok'
    assert client.get('/api/health').get_json()['status'] == 'ok'
    assert client.get('/health/db').get_json()['database'] == 'connected'
