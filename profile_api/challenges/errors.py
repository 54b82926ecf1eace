"""Typed rejections raised by the challenge issuer and verifier.

Every error carries a stable ``code`` for API clients and the HTTP status the
web layer answers with. Messages never mention codes, hashes or seeds.
"""


class DeliveryError(Exception):
    """Raised by a delivery channel when a message could not be sent."""


class ChallengeError(Exception):
    code = 'challenge_error'
    http_status = 400
    default_message = 'Verification failed'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self):
        return {'error': self.message, 'code': self.code}


class AccountNotFound(ChallengeError):
    code = 'account_not_found'
    http_status = 404
    default_message = 'User not found'


class PendingValueConflict(ChallengeError):
    code = 'pending_value_conflict'
    http_status = 409
    default_message = 'This value is already linked to another account'


class DeliveryFailed(ChallengeError):
    code = 'delivery_failed'
    http_status = 502
    default_message = 'Failed to send verification code. Please try again.'

    def __init__(self, message=None, challenge_id=None):
        super().__init__(message)
        self.challenge_id = challenge_id


class NoActiveChallenge(ChallengeError):
    code = 'no_active_challenge'
    default_message = 'No verification code found. Please request a new one.'


class InvalidCode(ChallengeError):
    """Covers both a wrong code and an expired one."""

    code = 'invalid_code'
    default_message = 'The verification code is invalid'


class Forbidden(ChallengeError):
    code = 'forbidden'
    http_status = 403
    default_message = 'Your password does not match your account password. Please try again.'


class MalformedInput(ChallengeError):
    code = 'malformed_input'
    default_message = 'Invalid input'


class TwoFactorNotEnabled(ChallengeError):
    code = 'two_factor_not_enabled'
    default_message = 'Two-factor authentication is not enabled'


class StorageError(ChallengeError):
    code = 'storage_error'
    http_status = 500
    default_message = 'An error occurred! Please, try again.'
