"""Input validators shared by the challenge core and the routes."""

import re
from datetime import datetime

# Email validation regex
EMAIL_REGEX = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')

# Username validation: 3-30 chars, alphanumeric + underscores
USERNAME_REGEX = re.compile(r'^[a-zA-Z0-9_]{3,30}$')

# Optional leading +, then 7 to 16 digits
PHONE_REGEX = re.compile(r'^\+?\d{7,16}$')

# Six decimal digits, for both SMS/email codes and TOTP
CODE_REGEX = re.compile(r'^\d{6}$')

PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 128

# Allowed fields for profile update (prevent mass assignment)
PROFILE_ALLOWED_FIELDS = {
    'first_name', 'last_name', 'username', 'country', 'locale',
    'birthday', 'subscribed_to_announcement'
}


def normalize_phone_number(phone):
    """Strip formatting from a phone number, keeping a leading +.

    Returns None when nothing usable is left.
    """
    if not phone or not isinstance(phone, str):
        return None

    phone = phone.strip()
    cleaned = ''.join(c for i, c in enumerate(phone) if c.isdigit() or (c == '+' and i == 0))

    if not cleaned or cleaned == '+':
        return None

    return cleaned


def normalize_email(email):
    if not email or not isinstance(email, str):
        return None
    return email.strip().lower()


def is_valid_phone(phone):
    return bool(phone) and PHONE_REGEX.match(phone) is not None


def is_valid_email(email):
    return bool(email) and len(email) <= 254 and EMAIL_REGEX.match(email) is not None


def password_error(password):
    """Return an error message for an unacceptable password, or None."""
    if not isinstance(password, str):
        return 'Password is required'
    if len(password) < PASSWORD_MIN_LENGTH:
        return f'Password must be at least {PASSWORD_MIN_LENGTH} characters'
    if len(password) > PASSWORD_MAX_LENGTH:
        return f'Password must be less than {PASSWORD_MAX_LENGTH} characters'
    return None


def parse_birthday(value):
    """Parse a dd-mm-YYYY birthday. Raises ValueError on bad input."""
    return datetime.strptime(value, '%d-%m-%Y').date()


def validate_profile_data(data):
    """Validate profile update fields. Returns error message or None."""
    # Check for unknown fields
    unknown = set(data.keys()) - PROFILE_ALLOWED_FIELDS
    if unknown:
        return f"Unknown fields: {', '.join(sorted(unknown))}"

    # String length limits
    length_limits = {
        'first_name': 50,
        'last_name': 50,
        'country': 80,
        'locale': 10,
    }

    for field, max_len in length_limits.items():
        if field in data and data[field] is not None:
            if not isinstance(data[field], str):
                return f"{field} must be a string"
            if len(data[field]) > max_len:
                return f"{field} must be less than {max_len} characters"

    if 'username' in data:
        if not isinstance(data['username'], str) or not USERNAME_REGEX.match(data['username']):
            return 'Username must be 3-30 characters and contain only letters, numbers, and underscores'

    if 'birthday' in data and data['birthday'] is not None:
        try:
            parse_birthday(data['birthday'])
        except (TypeError, ValueError):
            return 'birthday must use the dd-mm-YYYY format'

    if 'subscribed_to_announcement' in data and not isinstance(data['subscribed_to_announcement'], bool):
        return 'subscribed_to_announcement must be a boolean'

    return None
