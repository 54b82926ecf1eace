"""Verification challenge rows backing the challenge artifact store."""

from datetime import datetime
from profile_api import db


class VerificationChallenge(db.Model):
    """One issued verification challenge.

    Stores only the keyed hash of the code. A row is inert once
    ``consumed_at`` is set, either by a successful verification or because a
    newer challenge for the same user and purpose superseded it.
    """

    __tablename__ = 'verification_challenges'

    id = db.Column(db.String(32), primary_key=True)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)
    purpose = db.Column(db.String(32), nullable=False)
    secret_hash = db.Column(db.String(64), nullable=False)
    pending_value = db.Column(db.String(254), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=True)
    consumed_at = db.Column(db.DateTime, nullable=True)

    __table_args__ = (
        db.Index('ix_verification_challenges_user_purpose', 'user_id', 'purpose'),
    )

    # Relationship
    user = db.relationship('User', backref=db.backref('verification_challenges', lazy=True))

    def __repr__(self):
        return f'<VerificationChallenge user_id={self.user_id} purpose={self.purpose} expires_at={self.expires_at}>'
