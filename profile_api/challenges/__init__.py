"""Verification-code and two-factor challenge-response core.

- policy: purposes, per-purpose policies and value types
- issuer: ChallengeIssuer, creates and delivers challenges
- verifier: ChallengeVerifier, checks codes and commits side effects
- two_factor: TwoFactorService, TOTP enrollment/enable/disable/login
"""

from profile_api.challenges.errors import (
    ChallengeError, AccountNotFound, PendingValueConflict, DeliveryError,
    DeliveryFailed, NoActiveChallenge, InvalidCode, Forbidden, MalformedInput,
    TwoFactorNotEnabled, StorageError
)
from profile_api.challenges.policy import (
    Purpose, ChallengePolicy, ChallengeArtifact, TwoFactorSecret,
    IssuedChallenge, VerificationResult, build_policies
)
from profile_api.challenges.issuer import ChallengeIssuer
from profile_api.challenges.verifier import ChallengeVerifier
from profile_api.challenges.two_factor import TwoFactorService, TotpEnrollment

__all__ = [
    'ChallengeError', 'AccountNotFound', 'PendingValueConflict', 'DeliveryError',
    'DeliveryFailed', 'NoActiveChallenge', 'InvalidCode', 'Forbidden',
    'MalformedInput', 'TwoFactorNotEnabled', 'StorageError',
    'Purpose', 'ChallengePolicy', 'ChallengeArtifact', 'TwoFactorSecret',
    'IssuedChallenge', 'VerificationResult', 'build_policies',
    'ChallengeIssuer', 'ChallengeVerifier', 'TwoFactorService', 'TotpEnrollment',
]
