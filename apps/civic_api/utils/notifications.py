"""In-app notification helpers: append on issue events, list, mark read."""
from __future__ import annotations

from typing import Any, Dict

from apps.civic_api import db
from apps.civic_api.models.issue import Issue
from apps.civic_api.models.notification import Notification
from apps.civic_api.models.user import User
from apps.civic_api.utils.constants import NOTIFICATION_STATUS_UPDATE
from apps.civic_api.utils.persistence import commit_session
from apps.civic_api.utils.security import NotFoundError


def create_notification(user: User, issue: Issue, message: str, type: str = NOTIFICATION_STATUS_UPDATE) -> Notification:
    """Append a notification to the current session (caller commits).

    The issue must already have an id (flushed).
    """
    notification = Notification(
        user_id=user.id,
        issue_id=issue.id,
        message=message,
        type=type,
        is_read=False,
    )
    db.session.add(notification)
    return notification


def status_change_message(issue: Issue, new_status: str) -> str:
    """Citizen-facing message for an admin status change."""
    if new_status == 'awaiting_confirmation':
        return 'Issue work completed. Please confirm if the issue is truly solved.'
    label = new_status.replace('_', ' ')
    return f"Your {issue.category.lower()} issue status has been updated to {label}."


def list_notifications(user: User, unread_only: bool = False, page: int = 1, limit: int = 20) -> Dict[str, Any]:
    """Page through the user's own notifications, newest first.

    ``unread_count`` ignores both the unread filter and the page window.
    """
    query = Notification.query.filter(Notification.user_id == user.id)
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))

    total = query.count()
    items = (
        query.order_by(Notification.created_at.desc(), Notification.id.desc())
             .limit(limit)
             .offset((page - 1) * limit)
             .all()
    )
    unread_count = Notification.query.filter(
        Notification.user_id == user.id,
        Notification.is_read.is_(False),
    ).count()

    return {
        'notifications': [n.to_dict() for n in items],
        'pagination': {
            'page': page,
            'limit': limit,
            'total': total,
            'pages': (total + limit - 1) // limit if limit else 1,
        },
        'unread_count': unread_count,
    }


def mark_read(user: User, notification_id: int) -> Notification:
    """Flip one notification to read. Other users' notifications are 404."""
    notification = Notification.query.filter_by(id=notification_id, user_id=user.id).first()
    if not notification:
        raise NotFoundError('Notification not found')
    if notification.is_read:
        return notification

    notification.is_read = True
    commit_session('mark notification read')
    return notification


def mark_all_read(user: User) -> int:
    """Flip every unread notification of the user; returns how many changed."""
    updated = (
        Notification.query
        .filter(Notification.user_id == user.id, Notification.is_read.is_(False))
        .update({Notification.is_read: True}, synchronize_session=False)
    )
    commit_session('mark all notifications read')
    return updated

