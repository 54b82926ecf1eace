"""Core authentication routes: registration and login."""

from flask import request, jsonify, current_app
from profile_api import db, limiter
from profile_api.models import User
from profile_api.routes.auth import auth_bp
from profile_api.services.stores import build_challenge_services
from profile_api.utils import create_access_token
from profile_api.utils.validators import (
    USERNAME_REGEX, normalize_email, normalize_phone_number, is_valid_email,
    is_valid_phone, password_error
)


def challenge_services():
    """Challenge issuer/verifier/two-factor service bound to the current app."""
    return build_challenge_services(current_app)


def get_active_user(user_id):
    """Return (user, error_response) for the authenticated user id."""
    user = User.query.filter_by(id=user_id).first()

    if not user:
        return None, (jsonify({'error': 'User not found'}), 404)

    if not user.is_active:
        return None, (jsonify({'error': 'Account is disabled'}), 403)

    return user, None


@auth_bp.route('/register', methods=['POST'])
@limiter.limit("5 per minute")
def register():
    """Register a new user account."""
    try:
        data = request.get_json(silent=True)

        if not data or not all(k in data for k in ['username', 'email', 'password']):
            return jsonify({'error': 'Missing required fields'}), 400

        username = str(data['username']).strip()
        email = normalize_email(data['email'])
        password = data['password']
        phone = None

        # Validate username: 3-30 chars, alphanumeric + underscores
        if not USERNAME_REGEX.match(username):
            return jsonify({'error': 'Username must be 3-30 characters and contain only letters, numbers, and underscores'}), 400

        if not is_valid_email(email):
            return jsonify({'error': 'Invalid email format'}), 400

        error = password_error(password)
        if error:
            return jsonify({'error': error}), 400

        if data.get('phone'):
            phone = normalize_phone_number(data['phone'])
            if not is_valid_phone(phone):
                return jsonify({'error': 'Invalid phone number format'}), 400

        if User.query.filter_by(username=username).first():
            return jsonify({'error': 'Username already exists'}), 409

        if User.query.filter_by(email=email).first():
            return jsonify({'error': 'Email already exists'}), 409

        if phone and User.query.filter_by(phone=phone).first():
            return jsonify({'error': 'Phone number already exists'}), 409

        user = User(
            username=username,
            email=email,
            phone=phone,
            first_name=data.get('first_name'),
            last_name=data.get('last_name')
        )
        user.set_password(password)

        db.session.add(user)
        db.session.commit()

        current_app.logger.info(f"Registered user {user.id}")

        return jsonify({
            'message': 'User registered successfully',
            'token': create_access_token(user),
            'user': user.to_dict()
        }), 201
    except Exception:
        db.session.rollback()
        raise


@auth_bp.route('/login', methods=['POST'])
@limiter.limit("10 per minute")
def login():
    """Authenticate user and return JWT token.

    Users with two-factor authentication get a login challenge instead of a
    token and must finish at /login/two-factor.
    """
    data = request.get_json(silent=True)

    if not data or not all(k in data for k in ['email', 'password']):
        return jsonify({'error': 'Missing email or password'}), 400

    user = User.query.filter_by(email=normalize_email(data['email'])).first()

    if not user or not user.check_password(data['password']):
        return jsonify({'error': 'Invalid email or password'}), 401

    if not user.is_active:
        return jsonify({'error': 'Account is disabled'}), 403

    if user.two_factor_enabled:
        challenge = challenge_services().two_factor.begin_login(user.id)
        return jsonify({
            'message': 'Two-factor authentication required',
            'two_factor_required': True,
            'user_id': user.id,
            'challenge': challenge.to_dict()
        }), 200

    return jsonify({
        'message': 'Login successful',
        'token': create_access_token(user),
        'user': user.to_dict()
    }), 200


@auth_bp.route('/login/two-factor', methods=['POST'])
@limiter.limit("5 per minute")
def login_two_factor():
    """Finish a two-factor login with the authenticator app code."""
    data = request.get_json(silent=True)

    if not data or not all(k in data for k in ['user_id', 'code']):
        return jsonify({'error': 'User id and verification code are required'}), 400

    user, error = get_active_user(data['user_id'])
    if error:
        return error

    challenge_services().two_factor.complete_login(user.id, str(data['code']))

    return jsonify({
        'message': 'Login successful',
        'token': create_access_token(user),
        'user': user.to_dict()
    }), 200
