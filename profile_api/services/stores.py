"""SQLAlchemy-backed collaborators for the challenge core."""

from collections import namedtuple
from contextlib import contextmanager
from datetime import timedelta

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from profile_api import db
from profile_api.challenges import (
    ChallengeIssuer, ChallengeVerifier, TwoFactorService, ChallengeArtifact,
    TwoFactorSecret, PendingValueConflict, Purpose, build_policies
)
from profile_api.models import User, VerificationChallenge, TwoFactorSetting

ChallengeServices = namedtuple('ChallengeServices', ['issuer', 'verifier', 'two_factor'])


class SqlAccountStore:
    """Reads and commits account fields on the users table."""

    def _get_user(self, subject_id):
        return User.query.filter_by(id=subject_id).first()

    def exists(self, subject_id):
        user = self._get_user(subject_id)
        return user is not None and user.is_active

    def is_value_taken(self, purpose, value):
        if purpose == Purpose.PHONE_CHANGE:
            return User.query.filter_by(phone=value).first() is not None
        if purpose == Purpose.EMAIL_CHANGE:
            return User.query.filter_by(email=value).first() is not None
        return False

    def get_contact(self, subject_id, channel):
        user = self._get_user(subject_id)
        if not user:
            return None
        if channel == 'sms':
            return user.phone
        if channel == 'email':
            return user.email
        return None

    def commit_pending_value(self, subject_id, purpose, value):
        """Apply a verified value. Runs inside the caller's unit of work."""
        user = self._get_user(subject_id)
        if user is None:
            raise LookupError(f'User {subject_id} disappeared during verification')

        if purpose == Purpose.PHONE_CHANGE:
            user.phone = value
            user.phone_verified = True
        elif purpose == Purpose.EMAIL_CHANGE:
            user.email = value
            user.email_verified = True
        elif purpose == Purpose.PASSWORD_RESET:
            user.set_password(value)
        elif purpose == Purpose.TWO_FACTOR_ENROLLMENT:
            setting = TwoFactorSetting.query.filter_by(user_id=subject_id).first()
            if setting is None:
                raise LookupError(f'No two-factor secret for user {subject_id}')
            setting.enabled = True
        else:
            raise ValueError(f'Nothing to commit for {purpose.value}')

        try:
            db.session.flush()
        except IntegrityError:
            # Another account claimed the value after the code was issued.
            raise PendingValueConflict()


class SessionUnitOfWork:
    @contextmanager
    def atomic(self):
        """Commit everything done in the block, or roll all of it back."""
        try:
            yield
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise


class SqlArtifactStore(SessionUnitOfWork):
    """Challenge artifacts on the verification_challenges table."""

    def upsert(self, artifact):
        row = VerificationChallenge.query.filter_by(id=artifact.id).first()
        if row is None:
            row = VerificationChallenge(id=artifact.id)
            db.session.add(row)

        row.user_id = artifact.subject_id
        row.purpose = artifact.purpose.value
        row.secret_hash = artifact.secret_hash
        row.pending_value = artifact.pending_value
        row.created_at = artifact.created_at
        row.expires_at = artifact.expires_at
        row.consumed_at = artifact.consumed_at
        db.session.flush()

    def load_active(self, subject_id, purpose):
        row = VerificationChallenge.query.filter_by(
            user_id=subject_id, purpose=purpose.value, consumed_at=None
        ).order_by(VerificationChallenge.created_at.desc()).first()

        if row is None:
            return None

        return ChallengeArtifact(
            id=row.id,
            subject_id=row.user_id,
            purpose=Purpose(row.purpose),
            secret_hash=row.secret_hash,
            pending_value=row.pending_value,
            created_at=row.created_at,
            expires_at=row.expires_at,
            consumed_at=row.consumed_at,
        )

    def try_consume(self, artifact_id, at):
        """Mark the artifact consumed if nobody else has. Returns True if applied."""
        result = db.session.execute(
            update(VerificationChallenge)
            .where(VerificationChallenge.id == artifact_id)
            .where(VerificationChallenge.consumed_at.is_(None))
            .values(consumed_at=at)
        )
        return result.rowcount == 1


class SqlTwoFactorStore(SessionUnitOfWork):
    def load(self, subject_id):
        setting = TwoFactorSetting.query.filter_by(user_id=subject_id).first()
        if setting is None:
            return None
        return TwoFactorSecret(
            subject_id=setting.user_id,
            secret_key=setting.secret_key,
            enabled=setting.enabled,
            last_used_step=setting.last_used_step,
        )

    def save(self, secret):
        setting = TwoFactorSetting.query.filter_by(user_id=secret.subject_id).first()
        if setting is None:
            setting = TwoFactorSetting(user_id=secret.subject_id)
            db.session.add(setting)

        setting.secret_key = secret.secret_key
        setting.enabled = secret.enabled
        setting.last_used_step = secret.last_used_step
        db.session.flush()


class SqlAuthCheck:
    def verify_password(self, subject_id, password):
        user = User.query.filter_by(id=subject_id).first()
        return user is not None and user.check_password(password)


def build_challenge_services(app=None):
    """Wire the challenge core to the database and the app's delivery channel."""
    app = app or current_app
    config = app.config

    accounts = SqlAccountStore()
    artifacts = SqlArtifactStore()
    totp_store = SqlTwoFactorStore()
    hash_key = config['CHALLENGE_HASH_KEY'].encode('utf-8')
    policies = build_policies(
        code_ttl=timedelta(minutes=config['CHALLENGE_CODE_TTL_MINUTES']),
        login_ttl=timedelta(minutes=config['TWO_FACTOR_LOGIN_TTL_MINUTES']),
    )

    issuer = ChallengeIssuer(
        accounts, artifacts, app.extensions['delivery_channel'],
        totp_store=totp_store, hash_key=hash_key, policies=policies,
    )
    verifier = ChallengeVerifier(
        accounts, artifacts, totp_store=totp_store, hash_key=hash_key,
        policies=policies,
    )
    two_factor = TwoFactorService(
        issuer, verifier, totp_store, SqlAuthCheck(), issuer_name=config['APP_NAME'],
    )
    return ChallengeServices(issuer, verifier, two_factor)
