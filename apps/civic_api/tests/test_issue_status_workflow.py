"""
Issue lifecycle tests: admin status changes, transition rules, zone scoping
of updates, citizen resolve and confirm.
"""
from apps.civic_api.app import create_app
from apps.civic_api.config import Config
from apps.civic_api import db
from apps.civic_api.models import Issue, IssueUpdate, Notification, User
from apps.civic_api.utils.issue_workflow import check_transition
from apps.civic_api.utils.security import InvalidStateError
from flask_jwt_extended import create_access_token

import pytest


class WorkflowTestConfig(Config):
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    TESTING = True
    JWT_SECRET_KEY = 'test-secret'
    RATELIMIT_ENABLED = False


def _token(user):
    return create_access_token(identity=str(user.id), additional_claims={'role': user.role})


def _auth(token):
    return {'Authorization': f'Bearer {token}'}


def _setup():
    app = create_app(WorkflowTestConfig)
    client = app.test_client()
    with app.app_context():
        db.create_all()
        citizen = User(name='Cora Citizen', email='cora@example.com', password_hash='x', role='citizen')
        other = User(name='Olly Other', email='olly@example.com', password_hash='x', role='citizen')
        admin1 = User(name='Zed Zone', email='zed@example.com', password_hash='x', role='admin1', zone='Downtown')
        far_admin = User(name='Nia North', email='nia@example.com', password_hash='x', role='admin1', zone='North')
        admin2 = User(name='Sam Super', email='sam@example.com', password_hash='x', role='admin2')
        db.session.add_all([citizen, other, admin1, far_admin, admin2])
        db.session.commit()
        tokens = {
            'citizen': _token(citizen),
            'other': _token(other),
            'admin1': _token(admin1),
            'far_admin': _token(far_admin),
            'admin2': _token(admin2),
        }
        ids = {'citizen': citizen.id, 'admin1': admin1.id, 'admin2': admin2.id}
    return app, client, tokens, ids


def _submit(client, token, **overrides):
    payload = {
        'category': 'Safety',
        'zone': 'Downtown',
        'description': 'Broken streetlight on Oak',
        'latitude': 40.0,
        'longitude': -73.0,
        'priority': 'high',
    }
    payload.update(overrides)
    resp = client.post('/api/issues', json=payload, headers=_auth(token))
    assert resp.status_code == 201
    return resp.get_json()['issue']['id']


def _set_status(client, token, issue_id, status, comment=None):
    body = {'status': status}
    if comment is not None:
        body['comment'] = comment
    return client.patch(f'/api/issues/{issue_id}/status', json=body, headers=_auth(token))


def test_confirmation_round_trip_from_submission_to_resolved():
    app, client, tokens, ids = _setup()
    issue_id = _submit(client, tokens['citizen'])

    resp = _set_status(client, tokens['admin1'], issue_id, 'awaiting_confirmation', 'Bulb replaced')
    assert resp.status_code == 200
    assert resp.get_json()['issue']['status'] == 'awaiting_confirmation'

    inbox = client.get('/api/notifications', headers=_auth(tokens['citizen'])).get_json()
    messages = [n['message'] for n in inbox['notifications']]
    assert 'Issue work completed. Please confirm if the issue is truly solved.' in messages

    resp = client.patch(f'/api/issues/{issue_id}/confirm-resolution', headers=_auth(tokens['citizen']))
    assert resp.status_code == 200
    state = resp.get_json()['issue']
    assert state['status'] == 'resolved'
    assert state['resolution_confirmed'] is True

    with app.app_context():
        updates = IssueUpdate.query.filter_by(issue_id=issue_id).order_by(IssueUpdate.id).all()
        assert [u.status for u in updates] == ['pending', 'awaiting_confirmation', 'resolved']
        assert updates[1].comment == 'Bulb replaced'
        assert updates[1].updated_by_id == ids['admin1']
        assert updates[2].comment == 'Resolution confirmed by citizen'


def test_issue_detail_lists_updates_newest_first():
    app, client, tokens, _ = _setup()
    issue_id = _submit(client, tokens['citizen'])
    _set_status(client, tokens['admin1'], issue_id, 'acknowledged')
    _set_status(client, tokens['admin1'], issue_id, 'in_progress', 'Crew scheduled')

    body = client.get(f'/api/issues/{issue_id}', headers=_auth(tokens['citizen'])).get_json()
    assert body['issue']['status'] == 'in_progress'
    assert [u['status'] for u in body['updates']] == ['in_progress', 'acknowledged', 'pending']
    assert body['updates'][0]['updated_by']['role'] == 'admin1'

    with app.app_context():
        issue = db.session.get(Issue, issue_id)
        assert issue.latest_update().status == issue.status
        assert issue.latest_update().comment == 'Crew scheduled'


def test_status_change_notifies_citizen_with_readable_status():
    app, client, tokens, ids = _setup()
    issue_id = _submit(client, tokens['citizen'])

    _set_status(client, tokens['admin1'], issue_id, 'in_progress')

    with app.app_context():
        latest = (
            Notification.query.filter_by(user_id=ids['citizen'])
            .order_by(Notification.id.desc())
            .first()
        )
        assert latest.message == 'Your safety issue status has been updated to in progress.'


def test_admin_status_change_clears_confirmation_unless_resolved():
    app, client, tokens, _ = _setup()
    issue_id = _submit(client, tokens['citizen'])
    client.patch(f'/api/issues/{issue_id}/resolve', headers=_auth(tokens['citizen']))

    resp = _set_status(client, tokens['admin1'], issue_id, 'in_progress', 'Reopened after inspection')
    assert resp.status_code == 200
    assert resp.get_json()['issue']['resolution_confirmed'] is False

    with app.app_context():
        assert db.session.get(Issue, issue_id).status == 'in_progress'


def test_unknown_status_is_a_validation_error():
    _, client, tokens, _ = _setup()
    issue_id = _submit(client, tokens['citizen'])

    resp = _set_status(client, tokens['admin1'], issue_id, 'closed')
    assert resp.status_code == 400
    assert resp.get_json()['code'] == 'VALIDATION_ERROR'


def test_zone_admin_cannot_reopen_resolved_issue_to_pending():
    app, client, tokens, _ = _setup()
    issue_id = _submit(client, tokens['citizen'])
    _set_status(client, tokens['admin1'], issue_id, 'resolved')

    resp = _set_status(client, tokens['admin1'], issue_id, 'pending')
    assert resp.status_code == 400
    body = resp.get_json()
    assert body['code'] == 'INVALID_STATE'
    assert body['error'] == 'Invalid transition from resolved to pending'

    with app.app_context():
        assert db.session.get(Issue, issue_id).status == 'resolved'
        assert IssueUpdate.query.filter_by(issue_id=issue_id).count() == 2

    # Supervisors may reopen all the way back
    resp = _set_status(client, tokens['admin2'], issue_id, 'pending')
    assert resp.status_code == 200


def test_reposting_current_status_adds_comment_only_update():
    app, client, tokens, _ = _setup()
    issue_id = _submit(client, tokens['citizen'])

    resp = _set_status(client, tokens['admin1'], issue_id, 'pending', 'Waiting on parts')
    assert resp.status_code == 200

    with app.app_context():
        assert IssueUpdate.query.filter_by(issue_id=issue_id, status='pending').count() == 2


def test_transition_table_per_role():
    check_transition('admin1', 'pending', 'resolved')
    check_transition('admin1', 'awaiting_confirmation', 'in_progress')
    check_transition('admin2', 'in_progress', 'pending')
    with pytest.raises(InvalidStateError):
        check_transition('admin1', 'in_progress', 'pending')
    with pytest.raises(InvalidStateError):
        check_transition('admin1', 'awaiting_confirmation', 'pending')
    with pytest.raises(InvalidStateError):
        check_transition('citizen', 'pending', 'acknowledged')


def test_zone_admin_cannot_update_other_zone_issue():
    _, client, tokens, _ = _setup()
    issue_id = _submit(client, tokens['citizen'])

    resp = _set_status(client, tokens['far_admin'], issue_id, 'acknowledged')
    assert resp.status_code == 403
    assert resp.get_json()['error'] == 'Issue is not in your zone'


def test_citizen_cannot_change_status():
    _, client, tokens, _ = _setup()
    issue_id = _submit(client, tokens['citizen'])

    resp = _set_status(client, tokens['citizen'], issue_id, 'resolved')
    assert resp.status_code == 403


def test_status_update_on_missing_issue_is_404():
    _, client, tokens, _ = _setup()

    resp = _set_status(client, tokens['admin2'], 999, 'acknowledged')
    assert resp.status_code == 404


def test_resolve_own_issue_is_idempotent():
    app, client, tokens, ids = _setup()
    issue_id = _submit(client, tokens['citizen'])

    first = client.patch(f'/api/issues/{issue_id}/resolve', headers=_auth(tokens['citizen']))
    assert first.status_code == 200
    assert first.get_json()['message'] == 'Issue marked as resolved'
    assert first.get_json()['issue']['resolution_confirmed'] is True

    second = client.patch(f'/api/issues/{issue_id}/resolve', headers=_auth(tokens['citizen']))
    assert second.status_code == 200
    assert second.get_json()['message'] == 'Issue already resolved'

    with app.app_context():
        assert IssueUpdate.query.filter_by(issue_id=issue_id).count() == 2
        messages = [n.message for n in Notification.query.filter_by(user_id=ids['citizen']).all()]
        assert messages.count('You confirmed the issue as resolved. Thank you!') == 1


def test_only_reporter_can_resolve_or_confirm():
    _, client, tokens, _ = _setup()
    issue_id = _submit(client, tokens['citizen'])
    _set_status(client, tokens['admin1'], issue_id, 'awaiting_confirmation')

    resp = client.patch(f'/api/issues/{issue_id}/resolve', headers=_auth(tokens['other']))
    assert resp.status_code == 403
    resp = client.patch(f'/api/issues/{issue_id}/confirm-resolution', headers=_auth(tokens['other']))
    assert resp.status_code == 403
    resp = client.patch(f'/api/issues/{issue_id}/resolve', headers=_auth(tokens['admin1']))
    assert resp.status_code == 403


@pytest.mark.parametrize('status', ['pending', 'acknowledged', 'in_progress'])
def test_confirm_requires_awaiting_confirmation_or_resolved(status):
    app, client, tokens, _ = _setup()
    issue_id = _submit(client, tokens['citizen'])
    if status != 'pending':
        assert _set_status(client, tokens['admin1'], issue_id, status).status_code == 200

    resp = client.patch(f'/api/issues/{issue_id}/confirm-resolution', headers=_auth(tokens['citizen']))
    assert resp.status_code == 400
    assert resp.get_json()['error'] == 'Issue is not awaiting confirmation'

    with app.app_context():
        issue = db.session.get(Issue, issue_id)
        assert issue.status == status
        assert issue.resolution_confirmed is False


def test_supervisor_assigns_issue_to_zone_admin():
    app, client, tokens, ids = _setup()
    issue_id = _submit(client, tokens['citizen'])

    resp = client.patch(
        f'/api/issues/{issue_id}/assign',
        json={'admin_id': ids['admin1']},
        headers=_auth(tokens['admin2']),
    )
    assert resp.status_code == 200
    issue = resp.get_json()['issue']
    assert issue['assigned_to']['id'] == ids['admin1']
    assert issue['status'] == 'pending'

    with app.app_context():
        latest = IssueUpdate.query.filter_by(issue_id=issue_id).order_by(IssueUpdate.id.desc()).first()
        assert latest.comment == 'Assigned to Zed Zone'
        assert Notification.query.filter_by(issue_id=issue_id, type='assignment').count() == 1


def test_assignment_rejects_non_admin_target_and_non_supervisor_actor():
    _, client, tokens, ids = _setup()
    issue_id = _submit(client, tokens['citizen'])

    resp = client.patch(
        f'/api/issues/{issue_id}/assign',
        json={'admin_id': ids['citizen']},
        headers=_auth(tokens['admin2']),
    )
    assert resp.status_code == 400

    resp = client.patch(
        f'/api/issues/{issue_id}/assign',
        json={'admin_id': ids['admin1']},
        headers=_auth(tokens['admin1']),
    )
    assert resp.status_code == 403


def test_status_update_rejects_non_object_body():
    _, client, tokens, _ = _setup()
    issue_id = _submit(client, tokens['citizen'])

    resp = client.patch(f'/api/issues/{issue_id}/status', json=['resolved'], headers=_auth(tokens['admin1']))
    assert resp.status_code == 400
    assert resp.get_json()['error'] == 'Request body must be a JSON object'
