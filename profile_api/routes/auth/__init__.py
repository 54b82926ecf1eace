"""Auth routes package.

This package organizes account routes into logical submodules:
- core: Registration, login (with the two-factor step) and shared helpers
- profile: Own profile read/update and password change
- verification: Phone and email change confirmed by a 6-digit code
- password: Password reset with an SMS code
- two_factor: TOTP secret generation, enable and disable
"""

from flask import Blueprint, jsonify, current_app
from profile_api.challenges import ChallengeError

auth_bp = Blueprint('auth', __name__)


@auth_bp.errorhandler(ChallengeError)
def handle_challenge_error(error):
    current_app.logger.info(f"Challenge rejected: {error.code}")
    return jsonify(error.to_dict()), error.http_status


# Import all route modules (registers routes on auth_bp)
from profile_api.routes.auth import core  # noqa: E402,F401
from profile_api.routes.auth import profile  # noqa: E402,F401
from profile_api.routes.auth import verification  # noqa: E402,F401
from profile_api.routes.auth import password  # noqa: E402,F401
from profile_api.routes.auth import two_factor  # noqa: E402,F401
