"""Purposes, per-purpose policies and the value types passed between the
challenge core and its collaborators."""

import enum
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from profile_api.challenges.errors import MalformedInput
from profile_api.utils.validators import (
    normalize_phone_number, normalize_email, is_valid_phone, is_valid_email,
    password_error
)

KIND_CODE = 'code'
KIND_TOTP = 'totp'

CHANNEL_SMS = 'sms'
CHANNEL_EMAIL = 'email'

CODE_TTL = timedelta(minutes=10)
TWO_FACTOR_LOGIN_TTL = timedelta(minutes=5)


class Purpose(str, enum.Enum):
    PHONE_CHANGE = 'phone_change'
    EMAIL_CHANGE = 'email_change'
    PASSWORD_RESET = 'password_reset'
    TWO_FACTOR_ENROLLMENT = 'two_factor_enrollment'
    TWO_FACTOR_LOGIN = 'two_factor_login'


@dataclass(frozen=True)
class ChallengePolicy:
    """How one purpose generates, delivers and commits its challenge.

    ``value_at_issue`` purposes carry the pending value from issue to
    verification (phone/email change). ``value_at_verify`` purposes receive
    the value to commit together with the code (password reset).
    """

    purpose: Purpose
    kind: str
    channel: Optional[str]
    ttl: Optional[timedelta]
    value_format: Optional[str] = None
    value_at_issue: bool = False
    value_at_verify: bool = False
    unique_value: bool = False
    commits: bool = False
    echo_value: bool = False
    code_length: int = 6

    def normalize_value(self, value):
        """Normalize a phone/email/password for this purpose.

        Raises MalformedInput when the value is missing or badly formatted.
        """
        if self.value_format is None:
            if value is not None:
                raise MalformedInput(f'{self.purpose.value} does not take a value')
            return None

        if self.value_format == 'phone':
            phone = normalize_phone_number(value)
            if not is_valid_phone(phone):
                raise MalformedInput('Invalid phone number format')
            return phone

        if self.value_format == 'email':
            email = normalize_email(value)
            if not is_valid_email(email):
                raise MalformedInput('Invalid email format')
            return email

        if self.value_format == 'password':
            error = password_error(value)
            if error:
                raise MalformedInput(error)
            return value

        raise MalformedInput(f'Unsupported value format: {self.value_format}')


def build_policies(code_ttl=CODE_TTL, login_ttl=TWO_FACTOR_LOGIN_TTL):
    """Return the policy table keyed by purpose."""
    policies = [
        ChallengePolicy(
            purpose=Purpose.PHONE_CHANGE, kind=KIND_CODE, channel=CHANNEL_SMS,
            ttl=code_ttl, value_format='phone', value_at_issue=True,
            unique_value=True, commits=True, echo_value=True,
        ),
        ChallengePolicy(
            purpose=Purpose.EMAIL_CHANGE, kind=KIND_CODE, channel=CHANNEL_EMAIL,
            ttl=code_ttl, value_format='email', value_at_issue=True,
            unique_value=True, commits=True, echo_value=True,
        ),
        ChallengePolicy(
            purpose=Purpose.PASSWORD_RESET, kind=KIND_CODE, channel=CHANNEL_SMS,
            ttl=code_ttl, value_format='password', value_at_verify=True,
            commits=True,
        ),
        # Enrollment secrets never expire; re-enrolling supersedes them.
        ChallengePolicy(
            purpose=Purpose.TWO_FACTOR_ENROLLMENT, kind=KIND_TOTP, channel=None,
            ttl=None, commits=True,
        ),
        ChallengePolicy(
            purpose=Purpose.TWO_FACTOR_LOGIN, kind=KIND_TOTP, channel=None,
            ttl=login_ttl,
        ),
    ]
    return {policy.purpose: policy for policy in policies}


DEFAULT_POLICIES = build_policies()


def resolve_purpose(purpose):
    try:
        return Purpose(purpose)
    except ValueError:
        raise MalformedInput(f'Unknown purpose: {purpose}')


def mask_destination(destination):
    """Hide most of a phone number or email address for display."""
    if not destination:
        return None
    if '@' in destination:
        local, _, domain = destination.partition('@')
        return f'{local[:1]}***@{domain}'
    return f'{"*" * max(len(destination) - 4, 0)}{destination[-4:]}'


@dataclass
class ChallengeArtifact:
    id: str
    subject_id: str
    purpose: Purpose
    secret_hash: str = field(repr=False)
    pending_value: Optional[str] = None
    created_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    consumed_at: Optional[datetime] = None

    def is_expired(self, now):
        return self.expires_at is not None and now > self.expires_at

    def is_active(self, now):
        return self.consumed_at is None and not self.is_expired(now)


@dataclass
class TwoFactorSecret:
    subject_id: str
    secret_key: str = field(repr=False)
    enabled: bool = False
    last_used_step: Optional[int] = None


@dataclass(frozen=True)
class IssuedChallenge:
    """Confirmation handed back to the caller. Holds no secret material."""

    challenge_id: str
    purpose: Purpose
    channel: Optional[str]
    destination: Optional[str]
    expires_at: Optional[datetime]

    def to_dict(self):
        return {
            'challenge_id': self.challenge_id,
            'purpose': self.purpose.value,
            'channel': self.channel,
            'destination': self.destination,
            'expires_at': self.expires_at.isoformat() if self.expires_at else None,
        }


@dataclass(frozen=True)
class VerificationResult:
    purpose: Purpose
    committed_value: Optional[str] = None
    success: bool = True

    def to_dict(self):
        return {
            'success': self.success,
            'purpose': self.purpose.value,
            'committed_value': self.committed_value,
        }
