"""User model for citizens, zone admins (admin1) and supervisors (admin2)."""
from apps.civic_api import db
from apps.civic_api.utils.time import utc_now
from apps.civic_api.utils.constants import ADMIN_ROLES, ROLE_CITIZEN, ROLE_ZONE_ADMIN


class User(db.Model):
    __tablename__ = 'users'

    # Primary Key
    id = db.Column(db.Integer, primary_key=True)

    # Identity
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)  # stored lower-cased
    password_hash = db.Column(db.String(255), nullable=False)

    # Role: citizen | admin1 | admin2
    role = db.Column(db.String(20), nullable=False, default=ROLE_CITIZEN)
    # Catchment zone, only meaningful for admin1
    zone = db.Column(db.String(100), nullable=True, index=True)

    # Status
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    last_login = db.Column(db.DateTime, nullable=True)

    # Timestamps
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    # Relationships
    issues = db.relationship(
        'Issue',
        foreign_keys='Issue.citizen_id',
        back_populates='citizen',
        lazy='dynamic',
    )
    notifications = db.relationship('Notification', back_populates='user', lazy='dynamic')

    def __repr__(self):
        return f'<User {self.email} ({self.role})>'

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    @property
    def is_zone_admin(self) -> bool:
        return self.role == ROLE_ZONE_ADMIN

    def to_summary(self, include_email=True):
        """Compact identity used when joining users into other payloads."""
        data = {'id': self.id, 'name': self.name}
        if include_email:
            data['email'] = self.email
        return data

    def to_dict(self):
        """Convert user to dictionary (never includes the password hash)."""
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'role': self.role,
            'zone': self.zone,
            'is_active': self.is_active,
            'last_login': self.last_login.isoformat() if self.last_login else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
