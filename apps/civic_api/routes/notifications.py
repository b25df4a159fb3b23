"""Notification inbox routes (always scoped to the caller)."""
from flask import Blueprint, jsonify, request, current_app
from flask_jwt_extended import jwt_required

from apps.civic_api.utils.auth import get_current_user
from apps.civic_api.utils import notifications as notification_utils
from apps.civic_api.utils.validators import validate_pagination

notifications_bp = Blueprint('notifications', __name__, url_prefix='/api/notifications')


@notifications_bp.route('', methods=['GET'])
@jwt_required()
def list_notifications():
    """Own notifications, newest first.

    Query params:
      - unreadOnly: "true" to hide read notifications
      - page, limit
    """
    user = get_current_user()
    page, limit = validate_pagination(
        request.args.get('page'),
        request.args.get('limit'),
        default_limit=current_app.config.get('DEFAULT_PAGE_SIZE', 20),
        max_limit=current_app.config.get('MAX_PAGE_SIZE', 100),
    )
    unread_only = (request.args.get('unreadOnly') or request.args.get('unread_only') or '').lower() == 'true'
    return jsonify(notification_utils.list_notifications(user, unread_only, page, limit)), 200


@notifications_bp.route('/<int:notification_id>/read', methods=['PATCH'])
@jwt_required()
def mark_notification_read(notification_id: int):
    notification = notification_utils.mark_read(get_current_user(), notification_id)
    return jsonify({'message': 'Notification marked as read', 'notification': notification.to_dict()}), 200


@notifications_bp.route('/read-all', methods=['PATCH'])
@jwt_required()
def mark_all_notifications_read():
    updated = notification_utils.mark_all_read(get_current_user())
    return jsonify({'message': 'All notifications marked as read', 'updated': updated}), 200
