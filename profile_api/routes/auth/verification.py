"""Phone and email change routes.

Each change is two calls: request a 6-digit code for the new value, then
confirm with the code. The new value only lands on the account after a
successful confirmation.
"""

from flask import request, jsonify, current_app
from profile_api import limiter
from profile_api.challenges import Purpose
from profile_api.routes.auth import auth_bp
from profile_api.routes.auth.core import challenge_services, get_active_user
from profile_api.utils import token_required


def _request_change(current_user_id, purpose, field, sent_message):
    user, error = get_active_user(current_user_id)
    if error:
        return error

    data = request.get_json(silent=True)

    if not data or not data.get(field):
        return jsonify({'error': f'{field.capitalize()} is required'}), 400

    challenge = challenge_services().issuer.issue(user.id, purpose, pending_value=data[field])

    current_app.logger.info(f"{purpose.value} code issued for user {user.id}")

    return jsonify({
        'message': sent_message,
        'challenge': challenge.to_dict()
    }), 200


def _confirm_change(current_user_id, purpose, updated_message):
    user, error = get_active_user(current_user_id)
    if error:
        return error

    data = request.get_json(silent=True)

    if not data or not data.get('verification_code'):
        return jsonify({'error': 'Verification code is required'}), 400

    result = challenge_services().verifier.verify(user.id, purpose, str(data['verification_code']))

    return jsonify({
        'message': updated_message,
        'result': result.to_dict(),
        'user': user.to_dict()
    }), 200


@auth_bp.route('/profile/phone/verify', methods=['POST'])
@token_required
@limiter.limit("3 per minute")
def request_phone_change(current_user_id):
    """Send a verification code to the new phone number."""
    return _request_change(
        current_user_id, Purpose.PHONE_CHANGE, 'phone',
        'A 6-digit code has been sent to your phone number'
    )


@auth_bp.route('/profile/phone', methods=['PUT'])
@token_required
@limiter.limit("5 per minute")
def confirm_phone_change(current_user_id):
    """Confirm the new phone number with the code."""
    return _confirm_change(current_user_id, Purpose.PHONE_CHANGE, 'Phone number updated')


@auth_bp.route('/profile/email/verify', methods=['POST'])
@token_required
@limiter.limit("3 per minute")
def request_email_change(current_user_id):
    """Send a verification code to the new email address."""
    return _request_change(
        current_user_id, Purpose.EMAIL_CHANGE, 'email',
        'A 6-digit code has been sent to your email'
    )


@auth_bp.route('/profile/email', methods=['PUT'])
@token_required
@limiter.limit("5 per minute")
def confirm_email_change(current_user_id):
    """Confirm the new email address with the code."""
    return _confirm_change(current_user_id, Purpose.EMAIL_CHANGE, 'Email updated')
