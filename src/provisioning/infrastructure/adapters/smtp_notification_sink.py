"""SMTP welcome-email sender."""
from __future__ import annotations

import asyncio
import html
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from shared.infrastructure.observability.logger import get_logger

logger = get_logger(__name__)


WELCOME_TEMPLATE = """\
<div style="font-family: Arial, sans-serif; line-height: 1.6;">
  <h2>Welcome aboard, {name}!</h2>
  <p>Your account has been created on {app_name}.</p>
  <p>You can log in with the following credentials:</p>
  <ul>
    <li><strong>Email:</strong> {email}</li>
    <li><strong>Password:</strong> {password_hint}</li>
  </ul>
  <p>Please log in here: <a href="{login_url}">{login_url}</a></p>
  <p>Best regards,<br>The {app_name} Team</p>
</div>
"""


class SmtpNotificationSink:
    """
    Sends mail with the standard library client in a worker thread so the
    event loop is never blocked. Without credentials it logs and skips.
    """

    def __init__(
        self,
        smtp_server: str,
        smtp_port: int,
        username: Optional[str],
        password: Optional[str],
        from_email: str,
        app_name: str,
        login_url: str,
    ) -> None:
        self.smtp_server = smtp_server
        self.smtp_port = smtp_port
        self.username = username
        self.password = password
        self.from_email = from_email
        self.app_name = app_name
        self.login_url = login_url

    def build_welcome(self, email: str, name: str, password_hint: str) -> MIMEMultipart:
        message = MIMEMultipart("alternative")
        message["Subject"] = f"Welcome to {self.app_name}!"
        message["From"] = self.from_email
        message["To"] = email
        body = WELCOME_TEMPLATE.format(
            name=html.escape(name),
            email=html.escape(email),
            password_hint=html.escape(password_hint),
            app_name=self.app_name,
            login_url=self.login_url,
        )
        message.attach(MIMEText(body, "html"))
        return message

    async def send_welcome(self, email: str, name: str, password_hint: str) -> None:
        if not self.username or not self.password:
            logger.warning("smtp_not_configured_skipping_email")
            return
        message = self.build_welcome(email, name, password_hint)
        await asyncio.to_thread(self._send_sync, message, email)
        logger.info("welcome_email_delivered")

    def _send_sync(self, message: MIMEMultipart, to_email: str) -> None:
        context = ssl.create_default_context()
        with smtplib.SMTP(self.smtp_server, self.smtp_port) as server:
            server.starttls(context=context)
            server.login(self.username or "", self.password or "")
            server.sendmail(self.from_email, [to_email], message.as_string())
