"""User profile routes: get/update own profile and change password."""

from flask import request, jsonify, current_app
from profile_api import db, limiter
from profile_api.models import User
from profile_api.routes.auth import auth_bp
from profile_api.routes.auth.core import get_active_user
from profile_api.services.email import email_service
from profile_api.utils import token_required
from profile_api.utils.validators import validate_profile_data, parse_birthday, password_error


@auth_bp.route('/profile', methods=['GET'])
@token_required
def get_profile(current_user_id):
    """Get current user profile."""
    user, error = get_active_user(current_user_id)
    if error:
        return error

    return jsonify(user.to_dict()), 200


@auth_bp.route('/profile', methods=['PUT'])
@token_required
def update_profile(current_user_id):
    """Update current user profile.

    Phone and email are not accepted here: they change only through the
    code-confirmed flows.
    """
    try:
        user, error = get_active_user(current_user_id)
        if error:
            return error

        data = request.get_json(silent=True)

        if not data:
            return jsonify({'error': 'No data provided'}), 400

        # Validate all fields before applying any changes
        validation_error = validate_profile_data(data)
        if validation_error:
            return jsonify({'error': validation_error}), 400

        if 'username' in data and data['username'] != user.username:
            existing = User.query.filter_by(username=data['username']).first()
            if existing and existing.id != user.id:
                return jsonify({'error': 'Username already exists'}), 409
            user.username = data['username']

        for field in ('first_name', 'last_name', 'country', 'locale', 'subscribed_to_announcement'):
            if field in data:
                setattr(user, field, data[field])

        if 'birthday' in data:
            user.birthday = parse_birthday(data['birthday']) if data['birthday'] else None

        db.session.commit()

        return jsonify({
            'message': 'Profile updated successfully',
            'user': user.to_dict()
        }), 200
    except Exception:
        db.session.rollback()
        raise


@auth_bp.route('/profile/password', methods=['PUT'])
@token_required
@limiter.limit("5 per minute")
def update_password(current_user_id):
    """Change password after re-checking the current one."""
    try:
        user, error = get_active_user(current_user_id)
        if error:
            return error

        data = request.get_json(silent=True)

        if not data or not all(k in data for k in ['current_password', 'new_password']):
            return jsonify({'error': 'Current and new password are required'}), 400

        if not user.check_password(data['current_password']):
            return jsonify({'error': 'Invalid user password. Try again'}), 403

        error = password_error(data['new_password'])
        if error:
            return jsonify({'error': error}), 400

        user.set_password(data['new_password'])
        db.session.commit()

        if not email_service.send_password_changed_email(user.email, user.username):
            current_app.logger.warning(f"Password change notification not sent to user {user.id}")

        return jsonify({'message': 'User password updated successfully.'}), 200
    except Exception:
        db.session.rollback()
        raise
