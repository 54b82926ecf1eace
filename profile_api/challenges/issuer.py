"""Issuing verification challenges."""

import logging

from profile_api.challenges.codes import (
    utc_now, new_challenge_id, generate_numeric_code, generate_totp_secret,
    require_hash_key, hash_secret
)
from profile_api.challenges.errors import (
    AccountNotFound, PendingValueConflict, DeliveryError, DeliveryFailed,
    MalformedInput, Forbidden, TwoFactorNotEnabled
)
from profile_api.challenges.policy import (
    DEFAULT_POLICIES, KIND_TOTP, Purpose, ChallengeArtifact, TwoFactorSecret,
    IssuedChallenge, resolve_purpose, mask_destination
)

logger = logging.getLogger(__name__)

CODE_MESSAGE = 'Your verification code is: {code}'


class ChallengeIssuer:
    """Creates challenges bound to a (subject, purpose) pair.

    Collaborators:
        accounts: AccountStore (exists, is_value_taken, get_contact)
        artifacts: ArtifactStore (upsert, load_active, try_consume, atomic)
        delivery: DeliveryChannel (send)
        totp_store: TwoFactorStore (load, save), needed for TOTP purposes
    """

    def __init__(self, accounts, artifacts, delivery, hash_key, totp_store=None,
                 policies=None, clock=utc_now):
        self.accounts = accounts
        self.artifacts = artifacts
        self.delivery = delivery
        self.totp_store = totp_store
        self.hash_key = require_hash_key(hash_key)
        self.policies = policies or DEFAULT_POLICIES
        self.clock = clock

    def issue(self, subject_id, purpose, pending_value=None, rollback_on_failure=False):
        """Issue a new challenge, superseding any active one.

        Returns an IssuedChallenge. Raises AccountNotFound, MalformedInput,
        PendingValueConflict, TwoFactorNotEnabled, Forbidden or
        DeliveryFailed. On DeliveryFailed the challenge stays persisted unless
        ``rollback_on_failure`` is set, in which case it is withdrawn and any
        challenge it superseded becomes active again.
        """
        purpose = resolve_purpose(purpose)
        policy = self.policies[purpose]

        if not subject_id or not self.accounts.exists(subject_id):
            raise AccountNotFound()

        value = None
        if policy.value_at_issue:
            value = policy.normalize_value(pending_value)
        elif pending_value is not None:
            raise MalformedInput(f'{purpose.value} does not take a pending value')

        if policy.unique_value and self.accounts.is_value_taken(purpose, value):
            logger.info("Challenge refused: %s value already taken (subject=%s)", purpose.value, subject_id)
            raise PendingValueConflict()

        if policy.kind == KIND_TOTP:
            secret = self._totp_secret_for(subject_id, purpose)
            plaintext = None
        else:
            secret = generate_numeric_code(policy.code_length)
            plaintext = secret

        destination = None
        if policy.channel:
            destination = value if policy.value_at_issue else self.accounts.get_contact(subject_id, policy.channel)
            if not destination:
                raise MalformedInput(f'No {policy.channel} contact on file for this account')

        now = self.clock()
        artifact = ChallengeArtifact(
            id=new_challenge_id(),
            subject_id=subject_id,
            purpose=purpose,
            secret_hash=hash_secret(self.hash_key, subject_id, purpose, secret),
            pending_value=value,
            created_at=now,
            expires_at=now + policy.ttl if policy.ttl else None,
        )

        superseded = None
        with self.artifacts.atomic():
            prior = self.artifacts.load_active(subject_id, purpose)
            if prior is not None and self.artifacts.try_consume(prior.id, now):
                superseded = prior
                logger.info("Superseded challenge %s (%s, subject=%s)", prior.id, purpose.value, subject_id)

            if policy.kind == KIND_TOTP and purpose == Purpose.TWO_FACTOR_ENROLLMENT:
                self.totp_store.save(TwoFactorSecret(subject_id=subject_id, secret_key=secret, enabled=False))

            self.artifacts.upsert(artifact)

        # Delivery runs after the commit so no write transaction waits on the transport.
        if plaintext is not None:
            try:
                self.delivery.send(policy.channel, destination, CODE_MESSAGE.format(code=plaintext))
            except DeliveryError as exc:
                logger.error("Delivery of challenge %s via %s failed: %s", artifact.id, policy.channel, exc)
                if rollback_on_failure:
                    self._withdraw(artifact, superseded, now)
                raise DeliveryFailed(challenge_id=artifact.id) from exc

        logger.info("Issued challenge %s (%s, subject=%s)", artifact.id, purpose.value, subject_id)

        return IssuedChallenge(
            challenge_id=artifact.id,
            purpose=purpose,
            channel=policy.channel,
            destination=mask_destination(destination),
            expires_at=artifact.expires_at,
        )

    def _totp_secret_for(self, subject_id, purpose):
        if self.totp_store is None:
            raise TwoFactorNotEnabled('Two-factor storage is not configured')

        current = self.totp_store.load(subject_id)

        if purpose == Purpose.TWO_FACTOR_ENROLLMENT:
            if current is not None and current.enabled:
                raise Forbidden('Two-factor authentication is already enabled. Disable it first.')
            return generate_totp_secret()

        if current is None or not current.enabled:
            raise TwoFactorNotEnabled()
        return current.secret_key

    def _withdraw(self, artifact, superseded, now):
        """Undo an issue whose code never left: retire it and revive the one it replaced."""
        with self.artifacts.atomic():
            # A newer issue may already have replaced ours; then leave both alone.
            if self.artifacts.try_consume(artifact.id, now) and superseded is not None:
                self.artifacts.upsert(superseded)
        logger.info("Withdrew undelivered challenge %s (%s, subject=%s)",
                    artifact.id, artifact.purpose.value, artifact.subject_id)
