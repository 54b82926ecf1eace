"""Password reset routes: SMS code request and reset."""

from flask import request, jsonify, current_app
from profile_api import limiter
from profile_api.challenges import Purpose, ChallengeError, NoActiveChallenge
from profile_api.models import User
from profile_api.routes.auth import auth_bp
from profile_api.routes.auth.core import challenge_services
from profile_api.utils.validators import normalize_phone_number


@auth_bp.route('/password/forgot', methods=['POST'])
@limiter.limit("3 per minute")
def forgot_password():
    """Send a password reset code to the phone number on file."""
    data = request.get_json(silent=True)

    if not data or not data.get('phone'):
        return jsonify({'error': 'Phone number is required'}), 400

    phone = normalize_phone_number(data['phone'])
    user = User.query.filter_by(phone=phone).first() if phone else None

    if user and user.is_active:
        try:
            challenge_services().issuer.issue(user.id, Purpose.PASSWORD_RESET)
        except ChallengeError as e:
            current_app.logger.error(f"Password reset code for user {user.id} failed: {e.code}")

    # Always return success to prevent phone enumeration
    return jsonify({
        'message': 'If an account with that phone number exists, we have sent a verification code.'
    }), 200


@auth_bp.route('/password/reset', methods=['POST'])
@limiter.limit("5 per minute")
def reset_password():
    """Reset password using the SMS code."""
    data = request.get_json(silent=True)

    if not data or not all(k in data for k in ['phone', 'code', 'password']):
        return jsonify({'error': 'Phone number, code and password are required'}), 400

    phone = normalize_phone_number(data['phone'])
    user = User.query.filter_by(phone=phone).first() if phone else None

    if not user or not user.is_active:
        # Same answer as a missing code, so phone numbers cannot be probed
        raise NoActiveChallenge()

    challenge_services().verifier.verify(
        user.id, Purpose.PASSWORD_RESET, str(data['code']), new_value=data['password']
    )

    return jsonify({
        'message': 'Password has been reset successfully'
    }), 200
