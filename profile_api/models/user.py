"""User model for authentication and profile management."""

import uuid
from datetime import datetime
from werkzeug.security import generate_password_hash, check_password_hash
from profile_api import db


def _new_user_id():
    return str(uuid.uuid4())


class User(db.Model):
    """Account holder. Phone and email are the verified contact channels."""

    __tablename__ = 'users'

    id = db.Column(db.String(36), primary_key=True, default=_new_user_id)
    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    phone = db.Column(db.String(20), unique=True, nullable=True, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    first_name = db.Column(db.String(80), nullable=True)
    last_name = db.Column(db.String(80), nullable=True)
    country = db.Column(db.String(80), nullable=True)
    locale = db.Column(db.String(10), nullable=True)
    birthday = db.Column(db.Date, nullable=True)
    subscribed_to_announcement = db.Column(db.Boolean, default=False, nullable=False)
    phone_verified = db.Column(db.Boolean, default=False, nullable=False)
    email_verified = db.Column(db.Boolean, default=False, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    two_factor = db.relationship('TwoFactorSetting', backref='user', uselist=False, lazy=True)

    def set_password(self, password):
        """Hash and set the user password."""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """Check if the provided password matches the hash."""
        return check_password_hash(self.password_hash, password)

    @property
    def two_factor_enabled(self):
        return bool(self.two_factor and self.two_factor.enabled)

    def to_dict(self):
        """Convert user to dictionary."""
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'phone': self.phone,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'country': self.country,
            'locale': self.locale,
            'birthday': self.birthday.strftime('%d-%m-%Y') if self.birthday else None,
            'subscribed_to_announcement': self.subscribed_to_announcement,
            'phone_verified': self.phone_verified,
            'email_verified': self.email_verified,
            'two_factor_enabled': self.two_factor_enabled,
            'is_active': self.is_active,
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat()
        }

    def __repr__(self):
        return f'<User {self.username}>'
