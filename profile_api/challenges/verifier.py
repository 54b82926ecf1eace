"""Verifying presented codes against issued challenges."""

import logging

from profile_api.challenges.codes import (
    utc_now, require_hash_key, hash_secret, hashes_match, totp_matched_step
)
from profile_api.challenges.errors import (
    ChallengeError, NoActiveChallenge, InvalidCode, MalformedInput, StorageError
)
from profile_api.challenges.policy import (
    DEFAULT_POLICIES, KIND_TOTP, Purpose, VerificationResult, resolve_purpose
)
from profile_api.utils.validators import CODE_REGEX

logger = logging.getLogger(__name__)


class ChallengeVerifier:
    """Checks a presented code and commits the challenge's side effect.

    Expired and mismatched codes are both reported as InvalidCode. The
    consume step is a compare-and-swap on the artifact store, so of two
    concurrent verifications only one can commit.
    """

    def __init__(self, accounts, artifacts, hash_key, totp_store=None,
                 policies=None, clock=utc_now):
        self.accounts = accounts
        self.artifacts = artifacts
        self.totp_store = totp_store
        self.hash_key = require_hash_key(hash_key)
        self.policies = policies or DEFAULT_POLICIES
        self.clock = clock

    def verify(self, subject_id, purpose, presented_code, new_value=None):
        purpose = resolve_purpose(purpose)
        policy = self.policies[purpose]

        code = presented_code.strip() if isinstance(presented_code, str) else None
        if not code:
            raise MalformedInput('Verification code is required')
        if not CODE_REGEX.match(code):
            raise MalformedInput('Verification code must be 6 digits')

        value = None
        if policy.value_at_verify:
            value = policy.normalize_value(new_value)

        artifact = self.artifacts.load_active(subject_id, purpose)
        if artifact is None:
            raise NoActiveChallenge()

        now = self.clock()
        if artifact.is_expired(now):
            logger.info("Challenge %s expired (%s, subject=%s)", artifact.id, purpose.value, subject_id)
            raise InvalidCode()

        totp_secret = None
        if policy.kind == KIND_TOTP:
            totp_secret = self._match_totp(artifact, code, now)
            matched = totp_secret is not None
        else:
            matched = self._match_code(artifact, code)

        if not matched:
            logger.warning("Code mismatch for challenge %s (%s, subject=%s)", artifact.id, purpose.value, subject_id)
            raise InvalidCode()

        if policy.value_at_issue:
            value = artifact.pending_value

        try:
            with self.artifacts.atomic():
                if not self.artifacts.try_consume(artifact.id, now):
                    logger.warning("Challenge %s was consumed concurrently", artifact.id)
                    raise NoActiveChallenge()
                if totp_secret is not None:
                    self.totp_store.save(totp_secret)
                if policy.commits:
                    self.accounts.commit_pending_value(subject_id, purpose, value)
        except ChallengeError:
            raise
        except Exception as exc:
            logger.error("Committing challenge %s failed: %s", artifact.id, exc)
            raise StorageError() from exc

        logger.info("Challenge %s verified (%s, subject=%s)", artifact.id, purpose.value, subject_id)

        return VerificationResult(
            purpose=purpose,
            committed_value=value if policy.echo_value else None,
        )

    def _match_code(self, artifact, code):
        presented = hash_secret(self.hash_key, artifact.subject_id, artifact.purpose, code)
        return hashes_match(artifact.secret_hash, presented)

    def _match_totp(self, artifact, code, now):
        """Return the seed with its accepted step recorded, or None on mismatch."""
        secret = self.totp_store.load(artifact.subject_id) if self.totp_store else None
        if secret is None:
            return None

        # Login challenges die with the setting that issued them.
        if artifact.purpose == Purpose.TWO_FACTOR_LOGIN and not secret.enabled:
            return None

        # The artifact must still belong to the seed on file.
        fingerprint = hash_secret(self.hash_key, artifact.subject_id, artifact.purpose, secret.secret_key)
        if not hashes_match(artifact.secret_hash, fingerprint):
            return None

        step = totp_matched_step(secret.secret_key, code, now)
        if step is None:
            return None
        if secret.last_used_step is not None and step <= secret.last_used_step:
            logger.warning("Replayed TOTP step for challenge %s (subject=%s)", artifact.id, artifact.subject_id)
            return None

        secret.last_used_step = step
        return secret
