"""Email service for sending transactional emails."""

import logging
import os
import smtplib
import socket
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart

logger = logging.getLogger(__name__)


class EmailService:
    """
    Email service for sending transactional emails over SMTP
    (Gmail, Outlook, custom SMTP servers).
    """

    def __init__(self):
        self.smtp_host = os.getenv('SMTP_HOST', 'smtp.gmail.com')
        self.smtp_port = int(os.getenv('SMTP_PORT', '587'))
        self.smtp_user = os.getenv('SMTP_USER', '')
        self.smtp_password = os.getenv('SMTP_PASSWORD', '')
        self.from_email = os.getenv('FROM_EMAIL', self.smtp_user)
        self.from_name = os.getenv('FROM_NAME', 'Profiles')
        # Timeout for SMTP operations (in seconds)
        self.smtp_timeout = int(os.getenv('SMTP_TIMEOUT', '10'))

    @property
    def is_configured(self):
        return bool(self.smtp_user and self.smtp_password)

    def _create_connection(self):
        """Create SMTP connection with timeout."""
        server = smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.smtp_timeout)
        server.starttls()
        if self.smtp_user and self.smtp_password:
            server.login(self.smtp_user, self.smtp_password)
        return server

    def send_email(self, to_email, subject, html_content, text_content=None):
        """
        Send an email.

        Args:
            to_email: Recipient email address
            subject: Email subject
            html_content: HTML body content
            text_content: Plain text fallback (optional)

        Returns:
            bool: True if sent successfully, False otherwise
        """
        if not self.is_configured:
            logger.warning("SMTP not configured, email to %s not sent", to_email)
            return False

        try:
            msg = MIMEMultipart('alternative')
            msg['Subject'] = subject
            msg['From'] = f"{self.from_name} <{self.from_email}>"
            msg['To'] = to_email

            if text_content:
                msg.attach(MIMEText(text_content, 'plain'))
            msg.attach(MIMEText(html_content, 'html'))

            server = self._create_connection()
            server.sendmail(self.from_email, to_email, msg.as_string())
            server.quit()

            logger.info("Sent email '%s' to %s", subject, to_email)
            return True

        except socket.timeout:
            logger.error("SMTP connection timed out after %ss", self.smtp_timeout)
            return False
        except smtplib.SMTPAuthenticationError as e:
            logger.error("SMTP authentication failed: %s", e)
            return False
        except smtplib.SMTPException as e:
            logger.error("SMTP error: %s", e)
            return False
        except OSError as e:
            logger.error("Failed to send email to %s: %s", to_email, e)
            return False

    def send_verification_code_email(self, to_email, message):
        """Send a verification code message to a new email address."""
        subject = f"Your verification code - {self.from_name}"

        html_content = f"""
        <!DOCTYPE html>
        <html>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h1 style="font-size: 22px;">Confirm your email address</h1>
            <p style="font-size: 16px;">{message}</p>
            <p style="font-size: 14px; color: #6b7280;">The code expires in <strong>10 minutes</strong>. If you didn't request this change, you can safely ignore this email.</p>
        </body>
        </html>
        """

        text_content = f"""
        {message}

        The code expires in 10 minutes.

        If you didn't request this change, you can safely ignore this email.
        """

        return self.send_email(to_email, subject, html_content, text_content)

    def send_password_changed_email(self, to_email, username):
        """Notify a user that their password was changed."""
        subject = "Change Password"
        html_content = f"""
        <p>Hi <strong>{username}</strong>,</p>
        <p>Your password has been updated successfully.</p>
        <p>If you didn't do this, reset your password immediately.</p>
        """
        text_content = f"Hi {username},\n\nYour password has been updated successfully."
        return self.send_email(to_email, subject, html_content, text_content)


# Singleton instance
email_service = EmailService()
