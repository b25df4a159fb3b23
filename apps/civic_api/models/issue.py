"""Issue and IssueUpdate models.

Issue.status is a cached projection of the newest IssueUpdate row; the
update log is append-only and holds the authoritative history.
"""
from apps.civic_api import db
from apps.civic_api.utils.time import utc_now
from apps.civic_api.utils.constants import DEFAULT_PRIORITY, STATUS_PENDING

from sqlalchemy import Index


class Issue(db.Model):
    __tablename__ = 'issues'

    id = db.Column(db.Integer, primary_key=True)

    # Reporter (immutable)
    citizen_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)

    # Classification
    category = db.Column(db.String(50), nullable=False)
    zone = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=False)
    priority = db.Column(db.String(20), nullable=False, default=DEFAULT_PRIORITY)

    # Public path, e.g. /uploads/issues/<name>
    photo_url = db.Column(db.String(255), nullable=True)

    # Geolocation
    latitude = db.Column(db.Float, nullable=False)
    longitude = db.Column(db.Float, nullable=False)
    address = db.Column(db.String(255), nullable=False, default='')

    # Workflow
    status = db.Column(db.String(30), nullable=False, default=STATUS_PENDING)
    assigned_to_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    resolution_confirmed = db.Column(db.Boolean, nullable=False, default=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    # Relationships
    citizen = db.relationship('User', foreign_keys=[citizen_id], back_populates='issues')
    assigned_to = db.relationship('User', foreign_keys=[assigned_to_id])
    updates = db.relationship(
        'IssueUpdate',
        back_populates='issue',
        lazy='dynamic',
        order_by='IssueUpdate.created_at',
    )

    __table_args__ = (
        Index('idx_issue_zone', 'zone'),
        Index('idx_issue_status', 'status'),
        Index('idx_issue_citizen', 'citizen_id'),
        Index('idx_issue_assigned', 'assigned_to_id'),
        Index('idx_issue_location', 'latitude', 'longitude'),
        Index('idx_issue_created_at', 'created_at'),
    )

    def __repr__(self):
        return f'<Issue {self.id} {self.category} [{self.status}]>'

    def latest_update(self):
        """Newest log entry; the source of truth for the current status."""
        return self.updates.order_by(None).order_by(
            IssueUpdate.created_at.desc(), IssueUpdate.id.desc()
        ).first()

    def to_summary(self):
        """Partial view embedded in notifications."""
        return {
            'id': self.id,
            'category': self.category,
            'description': self.description,
            'status': self.status,
            'resolution_confirmed': self.resolution_confirmed,
        }

    def to_dict(self, include_people=True):
        """Convert issue to dictionary."""
        data = {
            'id': self.id,
            'citizen_id': self.citizen_id,
            'category': self.category,
            'zone': self.zone,
            'description': self.description,
            'photo_url': self.photo_url,
            'location': {
                'latitude': self.latitude,
                'longitude': self.longitude,
                'address': self.address or '',
            },
            'status': self.status,
            'priority': self.priority,
            'assigned_to_id': self.assigned_to_id,
            'resolution_confirmed': self.resolution_confirmed,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_people:
            data['citizen'] = self.citizen.to_summary() if self.citizen else None
            data['assigned_to'] = self.assigned_to.to_summary(include_email=False) if self.assigned_to else None
        return data


class IssueUpdate(db.Model):
    """Append-only status history entry."""
    __tablename__ = 'issue_updates'

    id = db.Column(db.Integer, primary_key=True)
    issue_id = db.Column(db.Integer, db.ForeignKey('issues.id'), nullable=False)
    updated_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    status = db.Column(db.String(30), nullable=False)
    comment = db.Column(db.Text, nullable=False, default='')
    is_public = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    issue = db.relationship('Issue', back_populates='updates')
    updated_by = db.relationship('User')

    __table_args__ = (
        Index('idx_issue_update_issue', 'issue_id', 'created_at'),
        Index('idx_issue_update_author', 'updated_by_id', 'created_at'),
    )

    def __repr__(self):
        return f'<IssueUpdate {self.issue_id} -> {self.status}>'

    def to_dict(self):
        updater = None
        if self.updated_by:
            updater = {'id': self.updated_by.id, 'name': self.updated_by.name, 'role': self.updated_by.role}
        return {
            'id': self.id,
            'issue_id': self.issue_id,
            'updated_by': updater,
            'status': self.status,
            'comment': self.comment or '',
            'is_public': self.is_public,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
