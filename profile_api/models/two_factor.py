"""TOTP two-factor settings per user."""

from datetime import datetime
from profile_api import db


class TwoFactorSetting(db.Model):
    __tablename__ = 'two_factor_settings'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), unique=True, nullable=False)
    secret_key = db.Column(db.String(64), nullable=False)
    enabled = db.Column(db.Boolean, default=False, nullable=False)
    # TOTP counter of the last accepted code; codes at or before it are replays
    last_used_step = db.Column(db.BigInteger, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f'<TwoFactorSetting user_id={self.user_id} enabled={self.enabled}>'
