"""Delivery channels for verification codes.

Every channel exposes ``send(channel, destination, payload)`` and raises
DeliveryError when the message could not be handed off. Channels never retry;
retries belong to the caller or the transport.
"""

import logging
import requests

from profile_api.challenges.errors import DeliveryError
from profile_api.services.email import email_service
from profile_api.services import twilio_sms

logger = logging.getLogger(__name__)

CHANNEL_SMS = 'sms'
CHANNEL_EMAIL = 'email'


class CommunicationsChannel:
    """Hands messages to the communications microservice over HTTP."""

    def __init__(self, base_url, timeout=10):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

    def send(self, channel, destination, payload):
        if channel not in (CHANNEL_SMS, CHANNEL_EMAIL):
            raise DeliveryError(f'Unsupported channel: {channel}')

        url = f'{self.base_url}/messages/{channel}/send-message'
        try:
            response = requests.post(url, json={'to': destination, 'message': payload}, timeout=self.timeout)
        except requests.RequestException as e:
            raise DeliveryError(f'{channel} delivery request failed: {e}') from e

        if not response.ok:
            raise DeliveryError(f'{channel} delivery rejected with status {response.status_code}')


class TwilioSmsChannel:
    def __init__(self, timeout=10):
        self.timeout = timeout

    def send(self, channel, destination, payload):
        try:
            result = twilio_sms.send_sms(destination, payload, timeout=self.timeout)
        except ValueError as e:
            raise DeliveryError(str(e)) from e
        except requests.RequestException as e:
            raise DeliveryError(f'SMS delivery request failed: {e}') from e

        if not result['success']:
            raise DeliveryError(result['error'])


class SmtpEmailChannel:
    def __init__(self, service=None):
        self.service = service or email_service

    def send(self, channel, destination, payload):
        if not self.service.send_verification_code_email(destination, payload):
            raise DeliveryError('Failed to send verification email')


class ConsoleChannel:
    """Development transport: prints messages instead of sending them."""

    def send(self, channel, destination, payload):
        print(f"\n{'='*60}")
        print(f"[{channel.upper()}] DEV MODE - not sent")
        print(f"To: {destination}")
        print(payload)
        print(f"{'='*60}\n")


class ChannelRouter:
    """Dispatches each message to the transport registered for its channel."""

    def __init__(self, routes):
        self.routes = routes

    def send(self, channel, destination, payload):
        transport = self.routes.get(channel)
        if transport is None:
            raise DeliveryError(f'No transport configured for channel: {channel}')
        transport.send(channel, destination, payload)


def build_delivery_channel(config):
    """Build the delivery channel selected by DELIVERY_BACKEND."""
    backend = config.get('DELIVERY_BACKEND', 'console')
    timeout = config.get('DELIVERY_TIMEOUT', 10)

    if backend == 'communications':
        return CommunicationsChannel(config['COMMUNICATIONS_MS_URL'], timeout=timeout)

    if backend == 'direct':
        return ChannelRouter({
            CHANNEL_SMS: TwilioSmsChannel(timeout=timeout),
            CHANNEL_EMAIL: SmtpEmailChannel(),
        })

    if backend != 'console':
        logger.warning("Unknown DELIVERY_BACKEND '%s', falling back to console", backend)
    return ConsoleChannel()
