"""
Supervisor progress view for zone admins: assigned counts, the fallback to
authored updates, and access rules.
"""
from apps.civic_api.app import create_app
from apps.civic_api.config import Config
from apps.civic_api import db
from apps.civic_api.models import Issue, IssueUpdate, User
from flask_jwt_extended import create_access_token


class ProgressTestConfig(Config):
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    TESTING = True
    JWT_SECRET_KEY = 'test-secret'
    RATELIMIT_ENABLED = False


def _auth(user):
    token = create_access_token(identity=str(user.id), additional_claims={'role': user.role})
    return {'Authorization': f'Bearer {token}'}


def _new_issue(citizen, status='pending', assigned_to=None):
    return Issue(
        citizen_id=citizen.id,
        category='Infrastructure',
        zone='Downtown',
        description='Cracked sidewalk near the library',
        latitude=40.0,
        longitude=-73.0,
        status=status,
        assigned_to_id=assigned_to.id if assigned_to else None,
    )


def _setup():
    app = create_app(ProgressTestConfig)
    client = app.test_client()
    with app.app_context():
        db.create_all()
        citizen = User(name='Cora Citizen', email='cora@example.com', password_hash='x', role='citizen')
        admin1 = User(name='Zed Zone', email='zed@example.com', password_hash='x', role='admin1', zone='Downtown')
        supervisor = User(name='Sam Super', email='sam@example.com', password_hash='x', role='admin2')
        db.session.add_all([citizen, admin1, supervisor])
        db.session.commit()
        headers = {'citizen': _auth(citizen), 'admin1': _auth(admin1), 'supervisor': _auth(supervisor)}
        ids = {'citizen': citizen.id, 'admin1': admin1.id, 'supervisor': supervisor.id}
    return app, client, headers, ids


def test_progress_falls_back_to_distinct_updated_issues():
    app, client, headers, ids = _setup()
    with app.app_context():
        citizen = db.session.get(User, ids['citizen'])
        first = _new_issue(citizen, status='in_progress')
        second = _new_issue(citizen, status='acknowledged')
        untouched = _new_issue(citizen)
        db.session.add_all([first, second, untouched])
        db.session.flush()
        db.session.add_all([
            IssueUpdate(issue_id=first.id, updated_by_id=ids['admin1'], status='acknowledged'),
            IssueUpdate(issue_id=first.id, updated_by_id=ids['admin1'], status='in_progress'),
            IssueUpdate(issue_id=second.id, updated_by_id=ids['admin1'], status='acknowledged'),
        ])
        db.session.commit()
        expected_ids = {first.id, second.id}

    resp = client.get(f"/api/issues/admin/{ids['admin1']}/progress", headers=headers['supervisor'])
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['source'] == 'updates'
    assert body['counts']['total'] == 2
    assert body['counts']['in_progress'] == 1
    assert body['counts']['acknowledged'] == 1
    assert body['counts']['pending'] == 0
    assert len(body['recent_issues']) <= 2
    assert {i['id'] for i in body['recent_issues']} == expected_ids
    # Most recently touched issue comes first
    assert body['recent_issues'][0]['id'] == max(expected_ids)


def test_progress_counts_assigned_issues():
    app, client, headers, ids = _setup()
    with app.app_context():
        citizen = db.session.get(User, ids['citizen'])
        admin1 = db.session.get(User, ids['admin1'])
        db.session.add_all([
            _new_issue(citizen, status='pending', assigned_to=admin1),
            _new_issue(citizen, status='resolved', assigned_to=admin1),
            _new_issue(citizen, status='resolved', assigned_to=admin1),
            _new_issue(citizen, status='pending'),
        ])
        db.session.commit()

    body = client.get(f"/api/issues/admin/{ids['admin1']}/progress", headers=headers['supervisor']).get_json()
    assert body['source'] == 'assigned'
    assert body['admin'] == {'id': ids['admin1'], 'name': 'Zed Zone', 'email': 'zed@example.com', 'zone': 'Downtown'}
    assert body['counts'] == {
        'total': 3,
        'pending': 1,
        'acknowledged': 0,
        'in_progress': 0,
        'awaiting_confirmation': 0,
        'resolved': 2,
    }
    assert len(body['recent_issues']) == 3


def test_recent_issues_respect_configured_limit():
    app, client, headers, ids = _setup()
    app.config['PROGRESS_RECENT_ISSUES_LIMIT'] = 2
    with app.app_context():
        citizen = db.session.get(User, ids['citizen'])
        admin1 = db.session.get(User, ids['admin1'])
        db.session.add_all([_new_issue(citizen, assigned_to=admin1) for _ in range(4)])
        db.session.commit()

    body = client.get(f"/api/issues/admin/{ids['admin1']}/progress", headers=headers['supervisor']).get_json()
    assert body['counts']['total'] == 4
    assert len(body['recent_issues']) == 2


def test_progress_for_idle_admin_is_empty():
    _, client, headers, ids = _setup()

    body = client.get(f"/api/issues/admin/{ids['admin1']}/progress", headers=headers['supervisor']).get_json()
    assert body['counts']['total'] == 0
    assert body['recent_issues'] == []


def test_progress_requires_supervisor_and_zone_admin_target():
    _, client, headers, ids = _setup()

    resp = client.get(f"/api/issues/admin/{ids['admin1']}/progress", headers=headers['admin1'])
    assert resp.status_code == 403

    resp = client.get(f"/api/issues/admin/{ids['citizen']}/progress", headers=headers['supervisor'])
    assert resp.status_code == 404
    assert resp.get_json()['error'] == 'Admin1 not found'

    resp = client.get('/api/issues/admin/999/progress', headers=headers['supervisor'])
    assert resp.status_code == 404
