"""Transactional email through the Resend HTTP API."""

from datetime import datetime, timezone
from html import escape
from typing import Optional

import httpx

from config import get_settings
from core.exceptions import AppException
from core.logging import get_logger

logger = get_logger(__name__)

VERIFICATION_SUBJECT = "Verify your Entipedia account"

_VERIFICATION_TEMPLATE = """\
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <title>Verify your Entipedia account</title>
</head>
<body style="margin:0;padding:0;font-family:-apple-system,'Segoe UI',Roboto,Arial,sans-serif;background-color:#f5f5f5;">
  <table role="presentation" style="max-width:600px;margin:40px auto;background-color:#ffffff;border-radius:8px;">
    <tr>
      <td style="padding:40px 30px;">
        <h1 style="margin:0 0 20px 0;font-size:24px;color:#1C2431;">Welcome to Entipedia, {name}!</h1>
        <p style="font-size:16px;line-height:1.6;color:#4a5568;">
          Thanks for signing up. Confirm your email address to finish creating your account.
        </p>
        <p style="text-align:center;padding:10px 0 30px 0;">
          <a href="{url}" style="display:inline-block;padding:14px 28px;background-color:#1C2431;color:#ffffff;text-decoration:none;border-radius:6px;">Verify my account</a>
        </p>
        <p style="font-size:14px;color:#718096;">Or paste this link into your browser:</p>
        <p style="font-size:14px;color:#4a90e2;word-break:break-all;">{url}</p>
        <p style="font-size:12px;color:#a0aec0;">
          This link expires in {ttl_hours} hours. If you did not create an Entipedia account you can ignore this email.
        </p>
      </td>
    </tr>
  </table>
  <p style="text-align:center;font-size:12px;color:#a0aec0;">&copy; {year} Entipedia</p>
</body>
</html>
"""


class EmailService:
    """Sends verification mail; one instance per process."""

    def __init__(
        self,
        api_key: Optional[str],
        app_url: Optional[str],
        sender: str,
        api_url: str = "https://api.resend.com/emails",
        ttl_hours: int = 24,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.app_url = app_url
        self.sender = sender
        self.api_url = api_url
        self.ttl_hours = ttl_hours
        self.transport = transport

    def verification_url(self, token: str) -> str:
        return f"{self.app_url.rstrip('/')}/verify-email?token={token}"

    def render_verification_email(self, token: str, name: str) -> str:
        url = escape(self.verification_url(token), quote=True)
        return _VERIFICATION_TEMPLATE.format(
            name=escape(name),
            url=url,
            ttl_hours=self.ttl_hours,
            year=datetime.now(timezone.utc).year,
        )

    async def send_verification_email(self, email: str, token: str, name: str) -> None:
        """Send the verification link to ``email``; raises AppException (500) on failure."""
        if not self.api_key:
            raise AppException(
                code="CONFIGURATION_ERROR",
                message="Server configuration error: RESEND_API_KEY not set.",
                status_code=500,
            )
        if not self.app_url:
            raise AppException(
                code="CONFIGURATION_ERROR",
                message="Server configuration error: APP_URL not set.",
                status_code=500,
            )

        payload = {
            "from": self.sender,
            "to": [email],
            "subject": VERIFICATION_SUBJECT,
            "html": self.render_verification_email(token, name),
        }

        try:
            async with httpx.AsyncClient(
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=15,
                transport=self.transport,
            ) as client:
                response = await client.post(self.api_url, json=payload)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("verification_email_failed", error=str(e))
            raise AppException(
                code="EMAIL_SEND_FAILED",
                message="Failed to send verification email.",
                status_code=500,
            ) from e

        logger.info("verification_email_sent")


_email_service: Optional[EmailService] = None


def get_email_service() -> EmailService:
    global _email_service
    if _email_service is None:
        settings = get_settings()
        _email_service = EmailService(
            api_key=settings.resend_api_key,
            app_url=settings.app_url,
            sender=settings.email_from,
            api_url=settings.resend_api_url,
            ttl_hours=settings.email_verification_ttl_hours,
        )
    return _email_service


def set_email_service(service: Optional[EmailService]) -> None:
    global _email_service
    _email_service = service
