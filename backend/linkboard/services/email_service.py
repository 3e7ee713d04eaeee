import logging
from typing import List, Optional

import resend
from jinja2 import Template

from linkboard.config import settings

logger = logging.getLogger(__name__)

PASSWORD_RESET_TEMPLATE = """
<!DOCTYPE html>
<html>
<head>
    <style>
        body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
        .container { max-width: 600px; margin: 0 auto; padding: 20px; }
        .button { background: #FF4500; color: white; padding: 12px 24px; text-decoration: none; border-radius: 4px; }
        .footer { text-align: center; padding: 20px; color: #666; font-size: 12px; }
    </style>
</head>
<body>
    <div class="container">
        <h2>Reset your password</h2>
        <p>Hi {{ username }},</p>
        <p>Someone asked to reset the password for your {{ app_name }} account.
           The link below works once and expires in {{ ttl_days }} days.</p>
        <p style="margin: 30px 0;">
            <a class="button" href="{{ reset_url }}">reset password</a>
        </p>
        <p>If you didn't request this, you can ignore this email.</p>
        <div class="footer">{{ app_name }}</div>
    </div>
</body>
</html>
"""


class EmailService:
    """Email service with template rendering."""

    def __init__(self, api_key: Optional[str] = None, from_email: Optional[str] = None):
        self.api_key = api_key if api_key is not None else settings.RESEND_API_KEY
        self.from_email = from_email or settings.EMAIL_FROM

    @property
    def is_mock(self) -> bool:
        api_key = self.api_key
        return not api_key or api_key.startswith("your-") or api_key == "None"

    def send_email(self, to: List[str], subject: str, html_content: str) -> bool:
        """
        Send email using Resend.

        Without a usable API key the message is only logged and reported as sent.

        Returns:
            True on success, False when the provider rejected the message
        """
        if self.is_mock:
            logger.info(f"Resend API key missing, not sending '{subject}' to {to}")
            return True

        try:
            resend.api_key = self.api_key
            response = resend.Emails.send({
                "from": self.from_email,
                "to": to,
                "subject": subject,
                "html": html_content
            })
            logger.info(f"Email sent to {to}: {response}")
            return True
        except Exception as e:
            logger.error(f"Error sending email to {to}: {e}")
            return False

    @staticmethod
    def render_template(template: str, context: dict) -> str:
        return Template(template).render(**context)

    @staticmethod
    def build_reset_url(token: str) -> str:
        return f"{settings.FRONTEND_URL.rstrip('/')}/change-password/{token}"

    def send_password_reset_email(self, to_email: str, username: str, token: str) -> bool:
        """Send the one-time password reset link."""
        html_content = self.render_template(PASSWORD_RESET_TEMPLATE, {
            "username": username,
            "app_name": settings.APP_NAME,
            "reset_url": self.build_reset_url(token),
            "ttl_days": settings.RESET_TOKEN_TTL_SECONDS // 86400,
        })
        return self.send_email(
            to=[to_email],
            subject=f"{settings.APP_NAME} - change your password",
            html_content=html_content
        )


# Global email service instance
email_service = EmailService()


def get_mailer() -> EmailService:
    return email_service
