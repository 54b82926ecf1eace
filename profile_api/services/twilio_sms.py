"""Twilio SMS sending for verification codes.

Unlike Twilio Verify, the code is generated and checked by the challenge
core; Twilio only carries the text message.
"""

import os
import logging
from twilio.rest import Client
from twilio.base.exceptions import TwilioRestException
from twilio.http.http_client import TwilioHttpClient

logger = logging.getLogger(__name__)

# Twilio credentials from environment variables
TWILIO_ACCOUNT_SID = os.environ.get('TWILIO_ACCOUNT_SID')
TWILIO_AUTH_TOKEN = os.environ.get('TWILIO_AUTH_TOKEN')
TWILIO_FROM_NUMBER = os.environ.get('TWILIO_FROM_NUMBER')


def get_twilio_client(timeout=10):
    """Get Twilio client instance."""
    if not TWILIO_ACCOUNT_SID or not TWILIO_AUTH_TOKEN:
        raise ValueError("Twilio credentials not configured. Set TWILIO_ACCOUNT_SID and TWILIO_AUTH_TOKEN environment variables.")

    return Client(TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, http_client=TwilioHttpClient(timeout=timeout))


def send_sms(to_number: str, body: str, timeout=10) -> dict:
    """Send a text message.

    Returns:
        dict with 'success' boolean and 'sid' or 'error'
    """
    if not TWILIO_FROM_NUMBER:
        raise ValueError("Twilio sender not configured. Set TWILIO_FROM_NUMBER environment variable.")

    try:
        client = get_twilio_client(timeout=timeout)
        message = client.messages.create(to=to_number, from_=TWILIO_FROM_NUMBER, body=body)

        logger.info(f"SMS queued to {to_number}, status: {message.status}")
        return {'success': True, 'sid': message.sid}

    except TwilioRestException as e:
        logger.error(f"Twilio error sending SMS to {to_number}: {e}")

        # Handle specific Twilio errors
        if e.code == 21211:
            return {'success': False, 'error': 'Invalid phone number'}
        elif e.code == 21408:
            return {'success': False, 'error': 'SMS not supported for this region'}
        else:
            return {'success': False, 'error': 'Failed to send SMS'}
