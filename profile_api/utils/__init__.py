"""Shared utilities for the profile service.

Reusable helpers shared across the route modules and the challenge core.
"""

from profile_api.utils.auth import token_required, create_access_token

__all__ = [
    'token_required',
    'create_access_token',
]
