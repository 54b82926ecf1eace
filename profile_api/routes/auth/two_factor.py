"""Two-factor (TOTP) routes: status, secret generation, enable, disable."""

from flask import request, jsonify
from profile_api import limiter
from profile_api.routes.auth import auth_bp
from profile_api.routes.auth.core import challenge_services, get_active_user
from profile_api.utils import token_required


@auth_bp.route('/2fa', methods=['GET'])
@token_required
def two_factor_status(current_user_id):
    user, error = get_active_user(current_user_id)
    if error:
        return error

    return jsonify(challenge_services().two_factor.status(user.id)), 200


@auth_bp.route('/2fa/secret', methods=['POST'])
@token_required
@limiter.limit("5 per minute")
def generate_two_factor_secret(current_user_id):
    """Generate a TOTP secret. 2FA stays off until /2fa/enable succeeds."""
    user, error = get_active_user(current_user_id)
    if error:
        return error

    enrollment = challenge_services().two_factor.enroll(user.id, user.email)

    return jsonify({
        'message': 'Secret key is generated.',
        'data': enrollment.to_dict()
    }), 200


@auth_bp.route('/2fa/enable', methods=['POST'])
@token_required
@limiter.limit("5 per minute")
def enable_two_factor(current_user_id):
    user, error = get_active_user(current_user_id)
    if error:
        return error

    data = request.get_json(silent=True)

    if not data or not data.get('code'):
        return jsonify({'error': 'Verification code is required'}), 400

    challenge_services().two_factor.confirm(user.id, str(data['code']))

    return jsonify({'message': '2FA is enabled successfully'}), 200


@auth_bp.route('/2fa/disable', methods=['POST'])
@token_required
@limiter.limit("5 per minute")
def disable_two_factor(current_user_id):
    user, error = get_active_user(current_user_id)
    if error:
        return error

    data = request.get_json(silent=True) or {}

    if not data.get('current_password'):
        return jsonify({'error': 'Current password is required'}), 400

    challenge_services().two_factor.disable(user.id, data['current_password'])

    return jsonify({'message': '2FA is now disabled.'}), 200
