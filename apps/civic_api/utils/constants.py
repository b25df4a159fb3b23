"""Closed value sets shared by models, validators and routes."""

ROLE_CITIZEN = 'citizen'
ROLE_ZONE_ADMIN = 'admin1'
ROLE_SUPERVISOR = 'admin2'

USER_ROLES = (ROLE_CITIZEN, ROLE_ZONE_ADMIN, ROLE_SUPERVISOR)
ADMIN_ROLES = (ROLE_ZONE_ADMIN, ROLE_SUPERVISOR)

ISSUE_CATEGORIES = (
    'Infrastructure',
    'Environment',
    'Safety',
    'Transportation',
    'Utilities',
    'Other',
)

STATUS_PENDING = 'pending'
STATUS_ACKNOWLEDGED = 'acknowledged'
STATUS_IN_PROGRESS = 'in_progress'
STATUS_AWAITING_CONFIRMATION = 'awaiting_confirmation'
STATUS_RESOLVED = 'resolved'

# Conventional lifecycle order
ISSUE_STATUSES = (
    STATUS_PENDING,
    STATUS_ACKNOWLEDGED,
    STATUS_IN_PROGRESS,
    STATUS_AWAITING_CONFIRMATION,
    STATUS_RESOLVED,
)

ISSUE_PRIORITIES = ('low', 'medium', 'high', 'urgent')
DEFAULT_PRIORITY = 'medium'

NOTIFICATION_STATUS_UPDATE = 'status_update'
NOTIFICATION_ASSIGNMENT = 'assignment'

# Admin status changes allowed per role. Re-posting the current status
# (comment only) is always permitted and is not listed here.
STATUS_TRANSITIONS = {
    ROLE_ZONE_ADMIN: {
        STATUS_PENDING: {STATUS_ACKNOWLEDGED, STATUS_IN_PROGRESS, STATUS_AWAITING_CONFIRMATION, STATUS_RESOLVED},
        STATUS_ACKNOWLEDGED: {STATUS_PENDING, STATUS_IN_PROGRESS, STATUS_AWAITING_CONFIRMATION, STATUS_RESOLVED},
        STATUS_IN_PROGRESS: {STATUS_ACKNOWLEDGED, STATUS_AWAITING_CONFIRMATION, STATUS_RESOLVED},
        STATUS_AWAITING_CONFIRMATION: {STATUS_IN_PROGRESS, STATUS_RESOLVED},
        STATUS_RESOLVED: {STATUS_IN_PROGRESS},
    },
    # Supervisors may also reopen a resolved issue all the way back.
    ROLE_SUPERVISOR: {
        STATUS_PENDING: {STATUS_ACKNOWLEDGED, STATUS_IN_PROGRESS, STATUS_AWAITING_CONFIRMATION, STATUS_RESOLVED},
        STATUS_ACKNOWLEDGED: {STATUS_PENDING, STATUS_IN_PROGRESS, STATUS_AWAITING_CONFIRMATION, STATUS_RESOLVED},
        STATUS_IN_PROGRESS: {STATUS_PENDING, STATUS_ACKNOWLEDGED, STATUS_AWAITING_CONFIRMATION, STATUS_RESOLVED},
        STATUS_AWAITING_CONFIRMATION: {STATUS_IN_PROGRESS, STATUS_RESOLVED},
        STATUS_RESOLVED: {STATUS_PENDING, STATUS_ACKNOWLEDGED, STATUS_IN_PROGRESS},
    },
}

ALLOWED_PHOTO_EXTENSIONS = {'jpg', 'jpeg', 'png', 'gif', 'webp', 'heic'}
