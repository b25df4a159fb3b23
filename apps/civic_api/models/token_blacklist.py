"""Revoked JWT ids, checked by the JWT blocklist loader."""
from apps.civic_api import db
from apps.civic_api.utils.time import utc_now


class TokenBlacklist(db.Model):
    __tablename__ = 'token_blacklist'

    id = db.Column(db.Integer, primary_key=True)
    jti = db.Column(db.String(36), unique=True, nullable=False, index=True)
    token_type = db.Column(db.String(10), nullable=False, default='access')
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    revoked_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=True)

    @classmethod
    def add_token_to_blacklist(cls, jti, token_type, user_id, expires_at=None):
        entry = cls(jti=jti, token_type=token_type, user_id=user_id, expires_at=expires_at)
        db.session.add(entry)
        return entry

    @classmethod
    def is_token_revoked(cls, jti) -> bool:
        return db.session.query(cls.id).filter_by(jti=jti).first() is not None
