"""Secret generation, hashing and matching for verification challenges."""

import calendar
import hashlib
import hmac
import secrets
import uuid
from datetime import datetime, timezone

import pyotp

TOTP_WINDOW = 1


def utc_now():
    """Naive UTC now, matching how the database columns store timestamps."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_challenge_id():
    return uuid.uuid4().hex


def generate_numeric_code(length=6):
    """Generate a random decimal code, zero-padded to ``length`` digits."""
    return ''.join(str(secrets.randbelow(10)) for _ in range(length))


def generate_totp_secret():
    return pyotp.random_base32()


def require_hash_key(key):
    """Return the HMAC key as bytes. An empty or missing key is a wiring error."""
    if isinstance(key, str):
        key = key.encode('utf-8')
    if not key:
        raise ValueError('A non-empty hash key is required')
    return key


def hash_secret(key, subject_id, purpose, secret):
    """Keyed one-way hash binding a secret to its subject and purpose."""
    key = require_hash_key(key)
    message = f'{subject_id}:{purpose.value}:{secret}'.encode('utf-8')
    return hmac.new(key, message, hashlib.sha256).hexdigest()


def hashes_match(expected, presented):
    """Constant-time comparison of two hex digests."""
    return hmac.compare_digest(expected.encode('ascii'), presented.encode('ascii'))


def totp_matched_step(secret_key, code, now, window=TOTP_WINDOW):
    """Return the time step (counter) a TOTP code matches at ``now`` (naive UTC),
    tolerating +/- ``window`` steps, or None when it matches none of them.
    """
    totp = pyotp.TOTP(secret_key)
    current = calendar.timegm(now.timetuple()) // totp.interval
    matched = None
    for step in range(current - window, current + window + 1):
        if hmac.compare_digest(totp.generate_otp(step), code):
            matched = step
    return matched


def provisioning_uri(secret_key, account_name, issuer_name):
    return pyotp.TOTP(secret_key).provisioning_uri(name=account_name, issuer_name=issuer_name)
