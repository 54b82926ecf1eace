"""Database models for the profile service."""

from .user import User
from .challenge import VerificationChallenge
from .two_factor import TwoFactorSetting

__all__ = ['User', 'VerificationChallenge', 'TwoFactorSetting']
