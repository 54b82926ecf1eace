"""TOTP two-factor enrollment, confirmation, disabling and login."""

import logging
from dataclasses import dataclass

from profile_api.challenges.codes import provisioning_uri
from profile_api.challenges.errors import Forbidden, TwoFactorNotEnabled, StorageError
from profile_api.challenges.policy import Purpose, IssuedChallenge

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TotpEnrollment:
    """Seed and provisioning URI for the authenticator app."""

    secret: str
    provisioning_uri: str
    challenge: IssuedChallenge

    def to_dict(self):
        return {
            'secret': self.secret,
            'provisioning_uri': self.provisioning_uri,
            'challenge': self.challenge.to_dict(),
        }


class TwoFactorService:
    def __init__(self, issuer, verifier, totp_store, auth, issuer_name='Profiles'):
        self.issuer = issuer
        self.verifier = verifier
        self.totp_store = totp_store
        self.auth = auth
        self.issuer_name = issuer_name

    def status(self, subject_id):
        secret = self.totp_store.load(subject_id)
        return {
            'enabled': bool(secret and secret.enabled),
            'enrolled': secret is not None,
        }

    def is_enabled(self, subject_id):
        secret = self.totp_store.load(subject_id)
        return bool(secret and secret.enabled)

    def enroll(self, subject_id, account_name):
        """Generate a new seed (disabled until confirmed) and return it."""
        challenge = self.issuer.issue(subject_id, Purpose.TWO_FACTOR_ENROLLMENT)
        secret = self.totp_store.load(subject_id)
        if secret is None:
            raise StorageError()
        return TotpEnrollment(
            secret=secret.secret_key,
            provisioning_uri=provisioning_uri(secret.secret_key, account_name, self.issuer_name),
            challenge=challenge,
        )

    def confirm(self, subject_id, code):
        """Enable 2FA once the user proves the authenticator app works."""
        result = self.verifier.verify(subject_id, Purpose.TWO_FACTOR_ENROLLMENT, code)
        logger.info("Two-factor authentication enabled for %s", subject_id)
        return result

    def disable(self, subject_id, current_password):
        if not current_password or not self.auth.verify_password(subject_id, current_password):
            logger.warning("Two-factor disable refused for %s: password mismatch", subject_id)
            raise Forbidden()

        secret = self.totp_store.load(subject_id)
        if secret is None or not secret.enabled:
            raise TwoFactorNotEnabled()

        secret.enabled = False
        with self.totp_store.atomic():
            self.totp_store.save(secret)
        logger.info("Two-factor authentication disabled for %s", subject_id)

    def begin_login(self, subject_id):
        return self.issuer.issue(subject_id, Purpose.TWO_FACTOR_LOGIN)

    def complete_login(self, subject_id, code):
        return self.verifier.verify(subject_id, Purpose.TWO_FACTOR_LOGIN, code)
