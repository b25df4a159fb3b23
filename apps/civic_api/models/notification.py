"""In-app notification model (one row per addressed user and event)."""
from apps.civic_api import db
from apps.civic_api.utils.time import utc_now
from apps.civic_api.utils.constants import NOTIFICATION_STATUS_UPDATE


class Notification(db.Model):
    __tablename__ = 'notifications'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    issue_id = db.Column(db.Integer, db.ForeignKey('issues.id'), nullable=False)
    message = db.Column(db.Text, nullable=False)
    type = db.Column(db.String(50), nullable=False, default=NOTIFICATION_STATUS_UPDATE)
    is_read = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    user = db.relationship('User', back_populates='notifications')
    issue = db.relationship('Issue')

    __table_args__ = (
        db.Index('ix_notifications_user_read', 'user_id', 'is_read'),
        db.Index('ix_notifications_user_created', 'user_id', 'created_at'),
    )

    def to_dict(self):
        """Serialize notification with a partial issue summary."""
        return {
            'id': self.id,
            'user_id': self.user_id,
            'issue_id': self.issue_id,
            'issue': self.issue.to_summary() if self.issue else None,
            'message': self.message,
            'type': self.type,
            'is_read': self.is_read,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
