"""
Tests for the two-factor (TOTP) endpoints and the two-step login.
"""

import time

import pyotp
import pytest


def _next_code(secret):
    """Code for the following time step: the current one was spent enabling 2FA."""
    return pyotp.TOTP(secret).at(int(time.time()) + 30)


def _enable_two_factor(client, auth_headers):
    response = client.post('/api/auth/2fa/secret', headers=auth_headers)
    secret = response.json['data']['secret']
    client.post('/api/auth/2fa/enable', headers=auth_headers, json={'code': pyotp.TOTP(secret).now()})
    return secret


class TestTwoFactorSetup:
    """Tests for /api/auth/2fa, /2fa/secret and /2fa/enable"""

    def test_status_when_not_enrolled(self, client, auth_headers):
        response = client.get('/api/auth/2fa', headers=auth_headers)

        assert response.status_code == 200
        assert response.json == {'enabled': False, 'enrolled': False}

    def test_generate_secret(self, client, auth_headers, test_user):
        response = client.post('/api/auth/2fa/secret', headers=auth_headers)

        assert response.status_code == 200
        data = response.json['data']
        assert len(data['secret']) >= 16
        assert data['provisioning_uri'].startswith('otpauth://totp/')
        assert data['challenge']['purpose'] == 'two_factor_enrollment'

        status = client.get('/api/auth/2fa', headers=auth_headers)
        assert status.json == {'enabled': False, 'enrolled': True}

    def test_enable(self, client, auth_headers):
        response = client.post('/api/auth/2fa/secret', headers=auth_headers)
        secret = response.json['data']['secret']

        response = client.post('/api/auth/2fa/enable', headers=auth_headers,
                               json={'code': pyotp.TOTP(secret).now()})

        assert response.status_code == 200
        assert client.get('/api/auth/2fa', headers=auth_headers).json['enabled'] is True

    def test_enable_with_wrong_code(self, client, auth_headers):
        response = client.post('/api/auth/2fa/secret', headers=auth_headers)
        secret = response.json['data']['secret']
        wrong = f'{(int(pyotp.TOTP(secret).now()) + 1) % 1000000:06d}'

        response = client.post('/api/auth/2fa/enable', headers=auth_headers, json={'code': wrong})

        if response.status_code != 400:
            pytest.skip('neighbouring code happened to fall in the time window')
        assert response.json['code'] == 'invalid_code'
        assert client.get('/api/auth/2fa', headers=auth_headers).json['enabled'] is False

    def test_enable_without_secret(self, client, auth_headers):
        response = client.post('/api/auth/2fa/enable', headers=auth_headers, json={'code': '123456'})

        assert response.status_code == 400
        assert response.json['code'] == 'no_active_challenge'

    def test_enable_missing_code(self, client, auth_headers):
        response = client.post('/api/auth/2fa/enable', headers=auth_headers, json={})

        assert response.status_code == 400

    def test_new_secret_refused_while_enabled(self, client, auth_headers):
        _enable_two_factor(client, auth_headers)

        response = client.post('/api/auth/2fa/secret', headers=auth_headers)

        assert response.status_code == 403

    def test_requires_authentication(self, client, db_session):
        assert client.post('/api/auth/2fa/secret').status_code == 401


class TestTwoFactorDisable:
    """Tests for POST /api/auth/2fa/disable"""

    def test_disable(self, client, auth_headers, test_user):
        _enable_two_factor(client, auth_headers)

        response = client.post('/api/auth/2fa/disable', headers=auth_headers,
                               json={'current_password': test_user['password']})

        assert response.status_code == 200
        assert client.get('/api/auth/2fa', headers=auth_headers).json['enabled'] is False

    def test_disable_wrong_password(self, client, auth_headers):
        _enable_two_factor(client, auth_headers)

        response = client.post('/api/auth/2fa/disable', headers=auth_headers,
                               json={'current_password': 'not-my-password'})

        assert response.status_code == 403
        assert response.json['code'] == 'forbidden'
        assert client.get('/api/auth/2fa', headers=auth_headers).json['enabled'] is True

    def test_disable_when_not_enabled(self, client, auth_headers, test_user):
        response = client.post('/api/auth/2fa/disable', headers=auth_headers,
                               json={'current_password': test_user['password']})

        assert response.status_code == 400
        assert response.json['code'] == 'two_factor_not_enabled'

    def test_disable_missing_password(self, client, auth_headers):
        response = client.post('/api/auth/2fa/disable', headers=auth_headers, json={})

        assert response.status_code == 400


class TestTwoFactorLogin:
    """Tests for POST /api/auth/login with 2FA and /api/auth/login/two-factor"""

    def test_two_step_login(self, client, auth_headers, test_user):
        secret = _enable_two_factor(client, auth_headers)

        response = client.post('/api/auth/login', json={
            'email': test_user['email'],
            'password': test_user['password']
        })

        assert response.status_code == 200
        assert response.json['two_factor_required'] is True
        assert 'token' not in response.json
        assert response.json['challenge']['purpose'] == 'two_factor_login'

        response = client.post('/api/auth/login/two-factor', json={
            'user_id': response.json['user_id'],
            'code': _next_code(secret)
        })

        assert response.status_code == 200
        assert 'token' in response.json

    def test_second_step_without_login(self, client, auth_headers, test_user):
        secret = _enable_two_factor(client, auth_headers)

        response = client.post('/api/auth/login/two-factor', json={
            'user_id': test_user['id'],
            'code': pyotp.TOTP(secret).now()
        })

        assert response.status_code == 400
        assert response.json['code'] == 'no_active_challenge'

    def test_second_step_is_single_use(self, client, auth_headers, test_user):
        secret = _enable_two_factor(client, auth_headers)
        client.post('/api/auth/login', json={'email': test_user['email'], 'password': test_user['password']})
        code = _next_code(secret)

        first = client.post('/api/auth/login/two-factor', json={'user_id': test_user['id'], 'code': code})
        second = client.post('/api/auth/login/two-factor', json={'user_id': test_user['id'], 'code': code})

        assert first.status_code == 200
        assert second.status_code == 400

    def test_code_cannot_complete_a_second_login(self, client, auth_headers, test_user):
        secret = _enable_two_factor(client, auth_headers)
        credentials = {'email': test_user['email'], 'password': test_user['password']}
        code = _next_code(secret)

        client.post('/api/auth/login', json=credentials)
        first = client.post('/api/auth/login/two-factor', json={'user_id': test_user['id'], 'code': code})
        client.post('/api/auth/login', json=credentials)
        second = client.post('/api/auth/login/two-factor', json={'user_id': test_user['id'], 'code': code})

        assert first.status_code == 200
        assert second.status_code == 400
        assert second.json['code'] == 'invalid_code'

    def test_pending_login_voided_by_disable(self, client, auth_headers, test_user):
        secret = _enable_two_factor(client, auth_headers)
        client.post('/api/auth/login', json={'email': test_user['email'], 'password': test_user['password']})
        client.post('/api/auth/2fa/disable', headers=auth_headers,
                    json={'current_password': test_user['password']})

        response = client.post('/api/auth/login/two-factor', json={
            'user_id': test_user['id'],
            'code': _next_code(secret)
        })

        assert response.status_code == 400
        assert response.json['code'] == 'invalid_code'

    def test_unknown_user(self, client, db_session):
        response = client.post('/api/auth/login/two-factor', json={
            'user_id': 'no-such-user',
            'code': '123456'
        })

        assert response.status_code == 404

    def test_missing_fields(self, client, db_session):
        response = client.post('/api/auth/login/two-factor', json={'code': '123456'})

        assert response.status_code == 400
