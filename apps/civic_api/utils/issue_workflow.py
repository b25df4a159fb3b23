"""
Issue lifecycle operations.

Every operation runs its domain checks before touching the session, then
adds the issue change, its IssueUpdate and the citizen Notification to a
single unit of work that is committed once.

Status flow (by convention):
    pending -> acknowledged -> in_progress -> awaiting_confirmation -> resolved
Admin moves are checked against STATUS_TRANSITIONS for the acting role.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from flask import current_app
from sqlalchemy import func, select

from apps.civic_api import db
from apps.civic_api.models.issue import Issue, IssueUpdate
from apps.civic_api.models.user import User
from apps.civic_api.utils.auth import ActorContext
from apps.civic_api.utils.constants import (
    ADMIN_ROLES,
    ISSUE_STATUSES,
    NOTIFICATION_ASSIGNMENT,
    ROLE_CITIZEN,
    ROLE_SUPERVISOR,
    ROLE_ZONE_ADMIN,
    STATUS_AWAITING_CONFIRMATION,
    STATUS_PENDING,
    STATUS_RESOLVED,
    STATUS_TRANSITIONS,
)
from apps.civic_api.utils.notifications import create_notification, status_change_message
from apps.civic_api.utils.persistence import commit_session, flush_session
from apps.civic_api.utils.security import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from apps.civic_api.utils.storage_handler import (
    delete_issue_photo,
    get_file_url,
    save_issue_photo,
    validate_issue_photo,
)
from apps.civic_api.utils.validators import (
    FieldErrors,
    parse_location_filter,
    sanitize_string,
    validate_category,
    validate_description,
    validate_latitude,
    validate_longitude,
    validate_priority,
    validate_status,
    validate_zone,
)

KM_PER_DEGREE = 111.0

COMMENT_SUBMITTED = 'Issue submitted'
COMMENT_REPORTER_RESOLVED = 'Marked resolved by reporter'
COMMENT_CITIZEN_CONFIRMED = 'Resolution confirmed by citizen'

CONFIRMABLE_STATUSES = (STATUS_AWAITING_CONFIRMATION, STATUS_RESOLVED)


def _get_issue_or_404(issue_id: int) -> Issue:
    issue = db.session.get(Issue, issue_id)
    if not issue:
        raise NotFoundError('Issue not found')
    return issue


def _append_update(issue: Issue, actor: User, status: str, comment: str = '') -> IssueUpdate:
    update = IssueUpdate(
        issue_id=issue.id,
        updated_by_id=actor.id,
        status=status,
        comment=comment or '',
    )
    db.session.add(update)
    return update


def _require_owner(ctx: ActorContext, issue: Issue, message: str):
    if ctx.role != ROLE_CITIZEN or issue.citizen_id != ctx.user_id:
        raise AuthorizationError(message)


# =============================================================================
# Submission
# =============================================================================

def submit_issue(ctx: ActorContext, data: Dict[str, Any], photo=None) -> Issue:
    """Create a pending issue with its first update and a notification.

    Args:
        ctx: Acting citizen
        data: category, zone, description, latitude, longitude,
            optional address and priority
        photo: Optional uploaded file

    Raises:
        AuthorizationError: If the actor is not a citizen
        ValidationError: Listing every offending field
    """
    if ctx.role != ROLE_CITIZEN:
        raise AuthorizationError('Only citizens can submit issues')

    errors = FieldErrors()
    category = errors.check(validate_category, data.get('category'))
    zone = errors.check(validate_zone, data.get('zone'))
    description = errors.check(validate_description, data.get('description'))
    latitude = errors.check(validate_latitude, data.get('latitude'))
    longitude = errors.check(validate_longitude, data.get('longitude'))
    priority = errors.check(validate_priority, data.get('priority'))
    address = sanitize_string(data.get('address'), max_length=255)
    photo_name = errors.check(validate_issue_photo, photo) if photo else None
    errors.raise_if_any()

    photo_path = save_issue_photo(photo, photo_name) if photo else None

    issue = Issue(
        citizen_id=ctx.user_id,
        category=category,
        zone=zone,
        description=description,
        latitude=latitude,
        longitude=longitude,
        address=address,
        priority=priority,
        photo_url=get_file_url(photo_path),
        status=STATUS_PENDING,
        resolution_confirmed=False,
    )
    db.session.add(issue)
    try:
        flush_session('create issue')
        _append_update(issue, ctx.user, STATUS_PENDING, COMMENT_SUBMITTED)
        create_notification(
            ctx.user,
            issue,
            f"Your {category.lower()} issue has been submitted successfully.",
        )
        commit_session('submit issue')
    except Exception:
        delete_issue_photo(photo_path)
        raise

    current_app.logger.info(
        "Issue %s submitted by user %s in zone '%s' (%s)", issue.id, ctx.user_id, zone, category
    )
    return issue


# =============================================================================
# Reads
# =============================================================================

def _parse_id(value: Any, field: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be a numeric id', field=field)


def list_issues(ctx: ActorContext, filters: Dict[str, Any], page: int = 1, limit: int = 20) -> Dict[str, Any]:
    """Page of issues newest-first, narrowed to the actor's visible zone."""
    query = Issue.query

    visible_zone = ctx.visible_zone
    if visible_zone is not None:
        query = query.filter(Issue.zone == visible_zone)

    if filters.get('category'):
        query = query.filter(Issue.category == validate_category(filters['category']))
    if filters.get('status'):
        query = query.filter(Issue.status == validate_status(filters['status']))
    if filters.get('assigned_to'):
        query = query.filter(Issue.assigned_to_id == _parse_id(filters['assigned_to'], 'assigned_to'))
    if filters.get('location'):
        lat, lng, radius_km = parse_location_filter(
            filters['location'],
            current_app.config.get('DEFAULT_SEARCH_RADIUS_KM', 10.0),
        )
        # Bounding box, 1 degree ~= 111 km (not geodesic)
        delta = radius_km / KM_PER_DEGREE
        query = query.filter(
            Issue.latitude >= lat - delta,
            Issue.latitude <= lat + delta,
            Issue.longitude >= lng - delta,
            Issue.longitude <= lng + delta,
        )

    total = query.count()
    items = (
        query.order_by(Issue.created_at.desc(), Issue.id.desc())
             .limit(limit)
             .offset((page - 1) * limit)
             .all()
    )
    return {
        'issues': [i.to_dict() for i in items],
        'pagination': {
            'page': page,
            'limit': limit,
            'total': total,
            'pages': (total + limit - 1) // limit if limit else 1,
        },
    }


def get_issue(issue_id: int) -> Tuple[Issue, List[IssueUpdate]]:
    """Issue plus its full update history, newest first."""
    issue = _get_issue_or_404(issue_id)
    updates = (
        IssueUpdate.query.filter_by(issue_id=issue.id)
        .order_by(IssueUpdate.created_at.desc(), IssueUpdate.id.desc())
        .all()
    )
    return issue, updates


def get_user_issues(ctx: ActorContext, user_id: int) -> List[Issue]:
    if user_id != ctx.user_id and not ctx.is_admin:
        raise AuthorizationError('Access denied')
    return (
        Issue.query.filter(Issue.citizen_id == user_id)
        .order_by(Issue.created_at.desc(), Issue.id.desc())
        .all()
    )


# =============================================================================
# Admin transitions
# =============================================================================

def check_transition(role: str, current: str, new_status: str):
    """Raise InvalidStateError unless ``role`` may move current -> new_status."""
    if current == new_status:
        return
    allowed = STATUS_TRANSITIONS.get(role, {}).get(current, set())
    if new_status not in allowed:
        raise InvalidStateError(f'Invalid transition from {current} to {new_status}')


def update_status(ctx: ActorContext, issue_id: int, new_status: Any, comment: Optional[str] = None) -> Issue:
    """Admin status change; any status other than resolved clears the confirmation."""
    if not ctx.is_admin:
        raise AuthorizationError('Admin access required')
    new_status = validate_status(new_status)
    comment = sanitize_string(comment)

    issue = _get_issue_or_404(issue_id)
    if not ctx.can_see_zone(issue.zone):
        raise AuthorizationError('Issue is not in your zone')
    check_transition(ctx.role, issue.status, new_status)

    previous = issue.status
    issue.status = new_status
    if new_status != STATUS_RESOLVED:
        issue.resolution_confirmed = False

    _append_update(issue, ctx.user, new_status, comment)
    create_notification(issue.citizen, issue, status_change_message(issue, new_status))
    commit_session('update issue status')

    current_app.logger.info(
        "Issue %s status %s -> %s by %s %s", issue.id, previous, new_status, ctx.role, ctx.user_id
    )
    return issue


def assign_issue(ctx: ActorContext, issue_id: int, admin_id: Any) -> Issue:
    """Supervisor assigns an issue to an admin account."""
    if ctx.role != ROLE_SUPERVISOR:
        raise AuthorizationError('Only supervisors can assign issues')
    admin_id = _parse_id(admin_id, 'admin_id')

    issue = _get_issue_or_404(issue_id)
    admin = db.session.get(User, admin_id)
    if not admin:
        raise NotFoundError('Admin not found')
    if admin.role not in ADMIN_ROLES or not admin.is_active:
        raise ValidationError('Issues can only be assigned to active admins', field='admin_id')

    issue.assigned_to_id = admin.id
    _append_update(issue, ctx.user, issue.status, f'Assigned to {admin.name}')
    create_notification(
        issue.citizen,
        issue,
        f"Your {issue.category.lower()} issue has been assigned to {admin.name}.",
        type=NOTIFICATION_ASSIGNMENT,
    )
    commit_session('assign issue')

    current_app.logger.info("Issue %s assigned to admin %s by %s", issue.id, admin.id, ctx.user_id)
    return issue


# =============================================================================
# Citizen resolution
# =============================================================================

def resolve_own_issue(ctx: ActorContext, issue_id: int) -> Tuple[Issue, bool]:
    """Reporter closes their own issue.

    Returns:
        Tuple of (issue, changed); ``changed`` is False when it was already
        resolved and nothing was written.
    """
    issue = _get_issue_or_404(issue_id)
    _require_owner(ctx, issue, 'You can only resolve your own issues')

    if issue.status == STATUS_RESOLVED:
        return issue, False

    issue.status = STATUS_RESOLVED
    issue.resolution_confirmed = True
    _append_update(issue, ctx.user, STATUS_RESOLVED, COMMENT_REPORTER_RESOLVED)
    create_notification(ctx.user, issue, 'You confirmed the issue as resolved. Thank you!')
    commit_session('resolve own issue')

    current_app.logger.info("Issue %s marked resolved by reporter %s", issue.id, ctx.user_id)
    return issue, True


def confirm_resolution(ctx: ActorContext, issue_id: int) -> Issue:
    """Reporter confirms work an admin reported as complete."""
    issue = _get_issue_or_404(issue_id)
    _require_owner(ctx, issue, 'You can only confirm your own issues')

    if issue.status not in CONFIRMABLE_STATUSES:
        raise InvalidStateError('Issue is not awaiting confirmation')

    issue.resolution_confirmed = True
    issue.status = STATUS_RESOLVED
    _append_update(issue, ctx.user, STATUS_RESOLVED, COMMENT_CITIZEN_CONFIRMED)
    create_notification(ctx.user, issue, 'Thanks for confirming the resolution.')
    commit_session('confirm resolution')

    current_app.logger.info("Issue %s resolution confirmed by reporter %s", issue.id, ctx.user_id)
    return issue


# =============================================================================
# Supervisor progress view
# =============================================================================

def _status_counts(criterion) -> Dict[str, int]:
    counts = {'total': 0}
    for status in ISSUE_STATUSES:
        counts[status] = 0
    rows = (
        db.session.query(Issue.status, func.count(Issue.id))
        .filter(criterion)
        .group_by(Issue.status)
        .all()
    )
    for status, count in rows:
        counts['total'] += count
        if status in counts:
            counts[status] = count
    return counts


def _recently_handled_issues(admin_id: int, scan_limit: int, recent_limit: int) -> List[Issue]:
    """Distinct issues from the admin's latest updates, most recent first."""
    recent_updates = (
        IssueUpdate.query.filter(IssueUpdate.updated_by_id == admin_id)
        .order_by(IssueUpdate.created_at.desc(), IssueUpdate.id.desc())
        .limit(scan_limit)
        .all()
    )
    ordered_ids = []
    seen = set()
    for update in recent_updates:
        if update.issue_id not in seen:
            seen.add(update.issue_id)
            ordered_ids.append(update.issue_id)
        if len(ordered_ids) >= recent_limit:
            break
    if not ordered_ids:
        return []

    by_id = {i.id: i for i in Issue.query.filter(Issue.id.in_(ordered_ids)).all()}
    return [by_id[i] for i in ordered_ids if i in by_id]


def get_admin_progress(ctx: ActorContext, admin_id: int) -> Dict[str, Any]:
    """Status counts and recent issues for one zone admin.

    Counts cover issues assigned to the admin. Issues are not always
    formally assigned, so when none are, counts fall back to every issue
    the admin has written an update for, and recent issues come from the
    latest PROGRESS_UPDATE_SCAN_LIMIT updates they authored.
    """
    if ctx.role != ROLE_SUPERVISOR:
        raise AuthorizationError('Only supervisors can view admin progress')

    admin = db.session.get(User, admin_id)
    if not admin or admin.role != ROLE_ZONE_ADMIN:
        raise NotFoundError('Admin1 not found')

    scan_limit = current_app.config.get('PROGRESS_UPDATE_SCAN_LIMIT', 50)
    recent_limit = current_app.config.get('PROGRESS_RECENT_ISSUES_LIMIT', 5)

    source = 'assigned'
    counts = _status_counts(Issue.assigned_to_id == admin.id)
    if counts['total'] == 0:
        handled = select(IssueUpdate.issue_id).where(IssueUpdate.updated_by_id == admin.id).distinct()
        counts = _status_counts(Issue.id.in_(handled))
        source = 'updates'

    recent = (
        Issue.query.filter(Issue.assigned_to_id == admin.id)
        .order_by(Issue.updated_at.desc(), Issue.id.desc())
        .limit(recent_limit)
        .all()
    )
    if not recent:
        recent = _recently_handled_issues(admin.id, scan_limit, recent_limit)

    return {
        'admin': {'id': admin.id, 'name': admin.name, 'email': admin.email, 'zone': admin.zone},
        'counts': counts,
        'source': source,
        'recent_issues': [i.to_dict() for i in recent],
    }
