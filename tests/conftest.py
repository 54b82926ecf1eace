"""
Pytest configuration and fixtures for testing the profile service.
"""

import copy
import os
import re
import sys
import threading
from contextlib import contextmanager
from datetime import datetime, timedelta

import pytest
from faker import Faker

# Add the parent directory to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from profile_api import create_app, db
from profile_api.challenges import (
    ChallengeIssuer, ChallengeVerifier, TwoFactorService, DeliveryError, Purpose
)
from profile_api.models.user import User

fake = Faker()


# ---------------------------------------------------------------------------
# Collaborator fakes for the challenge core
# ---------------------------------------------------------------------------

class FakeClock:
    def __init__(self, now=None):
        self.now = now or datetime(2026, 3, 1, 12, 0, 5)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class RecordingChannel:
    """Delivery channel that keeps messages instead of sending them."""

    def __init__(self):
        self.messages = []
        self.fail = False
        self.on_send = None

    def send(self, channel, destination, payload):
        if self.on_send:
            self.on_send()
        if self.fail:
            raise DeliveryError('transport unavailable')
        self.messages.append({'channel': channel, 'to': destination, 'message': payload})

    def last_code(self):
        return re.search(r'\d{6}', self.messages[-1]['message']).group(0)


class MemoryTotpStore:
    def __init__(self):
        self.secrets = {}

    @contextmanager
    def atomic(self):
        yield

    def load(self, subject_id):
        secret = self.secrets.get(subject_id)
        return copy.copy(secret) if secret else None

    def save(self, secret):
        self.secrets[secret.subject_id] = copy.copy(secret)


class MemoryAccountStore:
    def __init__(self, totp_store=None):
        self.users = {}
        self.commits = []
        self.fail_commit = None
        self.totp_store = totp_store

    def add(self, subject_id, phone=None, email=None):
        self.users[subject_id] = {'phone': phone, 'email': email, 'password': None}

    def exists(self, subject_id):
        return subject_id in self.users

    def is_value_taken(self, purpose, value):
        field = {Purpose.PHONE_CHANGE: 'phone', Purpose.EMAIL_CHANGE: 'email'}.get(purpose)
        return field is not None and any(u[field] == value for u in self.users.values())

    def get_contact(self, subject_id, channel):
        return self.users[subject_id]['phone' if channel == 'sms' else 'email']

    def commit_pending_value(self, subject_id, purpose, value):
        if self.fail_commit is not None:
            raise self.fail_commit
        self.commits.append((subject_id, purpose, value))
        user = self.users[subject_id]
        if purpose == Purpose.PHONE_CHANGE:
            user['phone'] = value
        elif purpose == Purpose.EMAIL_CHANGE:
            user['email'] = value
        elif purpose == Purpose.PASSWORD_RESET:
            user['password'] = value
        elif purpose == Purpose.TWO_FACTOR_ENROLLMENT:
            secret = self.totp_store.load(subject_id)
            secret.enabled = True
            self.totp_store.save(secret)


class MemoryArtifactStore:
    """Thread-safe artifact store; atomic() undoes its own writes on error."""

    def __init__(self):
        self.artifacts = {}
        self.after_load = None
        self._lock = threading.Lock()
        self._local = threading.local()

    @contextmanager
    def atomic(self):
        self._local.journal = []
        try:
            yield
        except Exception:
            with self._lock:
                for artifact_id, previous in reversed(self._local.journal):
                    if previous is None:
                        self.artifacts.pop(artifact_id, None)
                    else:
                        self.artifacts[artifact_id] = previous
            raise
        finally:
            self._local.journal = None

    def in_atomic(self):
        return getattr(self._local, 'journal', None) is not None

    def _record(self, artifact_id):
        journal = getattr(self._local, 'journal', None)
        if journal is not None:
            previous = self.artifacts.get(artifact_id)
            journal.append((artifact_id, copy.copy(previous) if previous else None))

    def upsert(self, artifact):
        with self._lock:
            self._record(artifact.id)
            self.artifacts[artifact.id] = copy.copy(artifact)

    def load_active(self, subject_id, purpose):
        with self._lock:
            candidates = [
                a for a in self.artifacts.values()
                if a.subject_id == subject_id and a.purpose == purpose and a.consumed_at is None
            ]
        if self.after_load:
            self.after_load()
        if not candidates:
            return None
        return copy.copy(max(candidates, key=lambda a: a.created_at))

    def try_consume(self, artifact_id, at):
        with self._lock:
            artifact = self.artifacts.get(artifact_id)
            if artifact is None or artifact.consumed_at is not None:
                return False
            self._record(artifact_id)
            artifact.consumed_at = at
            return True

    def active(self):
        return [a for a in self.artifacts.values() if a.consumed_at is None]


class MemoryAuthCheck:
    def __init__(self, passwords=None):
        self.passwords = passwords or {}

    def verify_password(self, subject_id, password):
        return self.passwords.get(subject_id) == password


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
def totp_store():
    return MemoryTotpStore()


@pytest.fixture
def accounts(totp_store):
    store = MemoryAccountStore(totp_store)
    store.add('u1', phone='+15550000001', email='u1@example.com')
    store.add('u2', phone='+15550000002', email='u2@example.com')
    return store


@pytest.fixture
def artifacts():
    return MemoryArtifactStore()


@pytest.fixture
def issuer(accounts, artifacts, channel, totp_store, clock):
    return ChallengeIssuer(accounts, artifacts, channel, totp_store=totp_store,
                           hash_key=b'test-hash-key', clock=clock)


@pytest.fixture
def verifier(accounts, artifacts, totp_store, clock):
    return ChallengeVerifier(accounts, artifacts, totp_store=totp_store,
                             hash_key=b'test-hash-key', clock=clock)


@pytest.fixture
def two_factor(issuer, verifier, totp_store):
    auth = MemoryAuthCheck({'u1': 'correct-horse'})
    return TwoFactorService(issuer, verifier, totp_store, auth, issuer_name='Profiles')


# ---------------------------------------------------------------------------
# Flask application fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    os.environ['JWT_SECRET_KEY'] = 'test-secret-key-for-testing'

    app = create_app('testing', overrides={'JWT_SECRET_KEY': 'test-secret-key-for-testing'})

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client for each test function."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create a fresh database session for each test."""
    with app.app_context():
        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        yield db.session
        db.session.rollback()


@pytest.fixture
def outbox(app):
    """Capture codes sent by the app instead of printing them."""
    recording = RecordingChannel()
    previous = app.extensions['delivery_channel']
    app.extensions['delivery_channel'] = recording
    yield recording
    app.extensions['delivery_channel'] = previous


def _create_user(password='testpassword123', **overrides):
    """Helper to create a user with sensible defaults."""
    data = {
        'username': fake.user_name()[:20] + fake.pystr(min_chars=4, max_chars=6),
        'email': fake.unique.email(),
        'first_name': fake.first_name(),
        'last_name': fake.last_name(),
    }
    data.update(overrides)
    user = User(**data)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return {
        'id': user.id,
        'username': user.username,
        'email': user.email,
        'phone': user.phone,
        'password': password,
    }


@pytest.fixture
def test_user(app, db_session):
    """Create a test user."""
    return _create_user(phone='+37120000001')


@pytest.fixture
def second_user(app, db_session):
    """Create a second test user for conflict tests."""
    return _create_user(password='testpassword456', phone='+37120000002')


def _get_token(client, email, password):
    """Login and return JWT token."""
    resp = client.post('/api/auth/login', json={
        'email': email,
        'password': password,
    })
    data = resp.get_json()
    if data is None or 'token' not in data:
        raise RuntimeError(f"Login failed: status={resp.status_code}, body={data}")
    return data['token']


@pytest.fixture
def auth_headers(client, test_user):
    """Get authentication headers for test user."""
    token = _get_token(client, test_user['email'], test_user['password'])
    return {'Authorization': f'Bearer {token}'}
