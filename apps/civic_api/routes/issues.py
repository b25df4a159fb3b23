"""Issue reporting and lifecycle routes.

Zone admins (admin1) only ever list issues from their own zone; the
restriction travels in the ActorContext built for each request.
"""
from flask import Blueprint, jsonify, request, current_app
from flask_jwt_extended import jwt_required

from apps.civic_api.utils.auth import get_actor_context, roles_required
from apps.civic_api.utils.constants import (
    ADMIN_ROLES,
    ISSUE_CATEGORIES,
    ISSUE_PRIORITIES,
    ISSUE_STATUSES,
    ROLE_CITIZEN,
    ROLE_SUPERVISOR,
)
from apps.civic_api.utils import issue_workflow
from apps.civic_api.utils.validators import json_body, validate_pagination

issues_bp = Blueprint('issues', __name__, url_prefix='/api/issues')


def _issue_state(issue):
    return {
        'id': issue.id,
        'status': issue.status,
        'resolution_confirmed': issue.resolution_confirmed,
    }


@issues_bp.route('/meta', methods=['GET'])
def issue_meta():
    """Closed value sets used by submission and filter forms."""
    return jsonify({
        'categories': list(ISSUE_CATEGORIES),
        'statuses': list(ISSUE_STATUSES),
        'priorities': list(ISSUE_PRIORITIES),
    }), 200


@issues_bp.route('', methods=['POST'])
@jwt_required()
@roles_required(ROLE_CITIZEN)
def create_issue():
    """Submit a new issue (JSON, or multipart with an optional ``photo``)."""
    if request.mimetype and request.mimetype.startswith('multipart/'):
        data = request.form.to_dict()
    else:
        data = json_body() or request.form.to_dict()

    photo = request.files.get('photo')
    if photo is not None and not photo.filename:
        photo = None

    issue = issue_workflow.submit_issue(get_actor_context(), data, photo=photo)
    return jsonify({
        'message': 'Issue submitted successfully',
        'issue': issue.to_dict(),
    }), 201


@issues_bp.route('', methods=['GET'])
@jwt_required()
def list_issues():
    """List issues with filters.

    Query params:
      - category, status: exact match against the closed sets
      - assignedTo: admin user id
      - location: "lat,lng[,radiusKm]" bounding-box filter
      - page (default 1), limit (default DEFAULT_PAGE_SIZE)
    """
    ctx = get_actor_context()
    page, limit = validate_pagination(
        request.args.get('page'),
        request.args.get('limit'),
        default_limit=current_app.config.get('DEFAULT_PAGE_SIZE', 20),
        max_limit=current_app.config.get('MAX_PAGE_SIZE', 100),
    )
    filters = {
        'category': request.args.get('category'),
        'status': request.args.get('status'),
        'assigned_to': request.args.get('assignedTo') or request.args.get('assigned_to'),
        'location': request.args.get('location'),
    }
    return jsonify(issue_workflow.list_issues(ctx, filters, page=page, limit=limit)), 200


@issues_bp.route('/<int:issue_id>', methods=['GET'])
@jwt_required()
def get_issue(issue_id: int):
    """Issue detail with its update history (newest first)."""
    get_actor_context()
    issue, updates = issue_workflow.get_issue(issue_id)
    return jsonify({
        'issue': issue.to_dict(),
        'updates': [u.to_dict() for u in updates],
    }), 200


@issues_bp.route('/user/<int:user_id>', methods=['GET'])
@jwt_required()
def user_issues(user_id: int):
    """Issues reported by one user (self or admin only)."""
    issues = issue_workflow.get_user_issues(get_actor_context(), user_id)
    return jsonify({'issues': [i.to_dict() for i in issues], 'count': len(issues)}), 200


@issues_bp.route('/<int:issue_id>/status', methods=['PATCH'])
@jwt_required()
@roles_required(*ADMIN_ROLES)
def update_issue_status(issue_id: int):
    data = json_body()
    issue = issue_workflow.update_status(
        get_actor_context(),
        issue_id,
        data.get('status'),
        data.get('comment'),
    )
    return jsonify({
        'message': 'Issue status updated successfully',
        'issue': _issue_state(issue),
    }), 200


@issues_bp.route('/<int:issue_id>/assign', methods=['PATCH'])
@jwt_required()
@roles_required(ROLE_SUPERVISOR)
def assign_issue(issue_id: int):
    data = json_body()
    issue = issue_workflow.assign_issue(get_actor_context(), issue_id, data.get('admin_id'))
    return jsonify({
        'message': 'Issue assigned',
        'issue': issue.to_dict(),
    }), 200


@issues_bp.route('/<int:issue_id>/resolve', methods=['PATCH'])
@jwt_required()
@roles_required(ROLE_CITIZEN)
def resolve_issue(issue_id: int):
    """Reporter marks their own issue resolved (idempotent)."""
    issue, changed = issue_workflow.resolve_own_issue(get_actor_context(), issue_id)
    message = 'Issue marked as resolved' if changed else 'Issue already resolved'
    return jsonify({'message': message, 'issue': _issue_state(issue)}), 200


@issues_bp.route('/<int:issue_id>/confirm-resolution', methods=['PATCH'])
@jwt_required()
@roles_required(ROLE_CITIZEN)
def confirm_resolution(issue_id: int):
    issue = issue_workflow.confirm_resolution(get_actor_context(), issue_id)
    return jsonify({'message': 'Resolution confirmed', 'issue': _issue_state(issue)}), 200


@issues_bp.route('/admin/<int:admin_id>/progress', methods=['GET'])
@jwt_required()
@roles_required(ROLE_SUPERVISOR)
def admin_progress(admin_id: int):
    """Supervisor view of one zone admin's workload."""
    return jsonify(issue_workflow.get_admin_progress(get_actor_context(), admin_id)), 200
