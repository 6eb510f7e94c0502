"""
Transactional email over SMTP.

Sending happens in the threadpool. Every public method returns a bool and
never raises; delivery failures are logged.
Without ``SMTP_HOST`` the message is logged instead of sent (dev mode).
"""

from __future__ import annotations

import html
import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from starlette.concurrency import run_in_threadpool

from app.core.config import settings

logger = logging.getLogger(__name__)

_STYLE = """
        body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
        .container { max-width: 600px; margin: 0 auto; padding: 20px; }
        .button { display: inline-block; padding: 12px 24px; background-color: #007bff; color: white; text-decoration: none; border-radius: 5px; font-weight: bold; }
        .footer { margin-top: 30px; font-size: 13px; color: #666; }
"""


def _page(title: str, body: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>{title}</title>
    <style>{_STYLE}</style>
</head>
<body>
    <div class="container">
        <h1>{title}</h1>
        {body}
    </div>
</body>
</html>
"""


class EmailService:
    def __init__(
        self,
        *,
        smtp_host: str | None = None,
        smtp_port: int = 587,
        smtp_user: str | None = None,
        smtp_password: str | None = None,
        smtp_use_tls: bool = True,
        from_email: str = "no-reply@tourbook.io",
    ) -> None:
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.smtp_use_tls = smtp_use_tls
        self.from_email = from_email

    @classmethod
    def from_settings(cls) -> EmailService:
        return cls(
            smtp_host=settings.SMTP_HOST,
            smtp_port=settings.SMTP_PORT,
            smtp_user=settings.SMTP_USER,
            smtp_password=settings.SMTP_PASSWORD,
            smtp_use_tls=settings.SMTP_USE_TLS,
            from_email=settings.SMTP_FROM,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_host)

    @staticmethod
    def _redact(email: str) -> str:
        if "@" not in email:
            return "redacted"
        local, domain = email.split("@", 1)
        return f"{local[:2]}***@{domain}"

    def _deliver(self, to_email: str, subject: str, html_body: str, text_body: str) -> None:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.from_email
        msg["To"] = to_email
        msg.attach(MIMEText(text_body, "plain"))
        msg.attach(MIMEText(html_body, "html"))

        context = ssl.create_default_context()
        if self.smtp_use_tls:
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=30) as server:
                server.starttls(context=context)
                if self.smtp_user and self.smtp_password:
                    server.login(self.smtp_user, self.smtp_password)
                server.sendmail(self.from_email, to_email, msg.as_string())
        else:
            with smtplib.SMTP_SSL(
                self.smtp_host, self.smtp_port, context=context, timeout=30
            ) as server:
                if self.smtp_user and self.smtp_password:
                    server.login(self.smtp_user, self.smtp_password)
                server.sendmail(self.from_email, to_email, msg.as_string())

    async def send(self, to_email: str, subject: str, html_body: str, text_body: str) -> bool:
        if not self.is_configured:
            logger.info(
                "Email (dev mode, not sent) to=%s subject=%r",
                self._redact(to_email),
                subject,
            )
            return True
        try:
            await run_in_threadpool(self._deliver, to_email, subject, html_body, text_body)
        except (smtplib.SMTPException, ssl.SSLError, OSError) as e:
            logger.error(
                "Failed to send email to %s (%s): %s",
                self._redact(to_email),
                type(e).__name__,
                e,
            )
            return False
        logger.info("Email sent to %s subject=%r", self._redact(to_email), subject)
        return True

    # ── Templates ───────────────────────────────────────────────────
    async def send_verification_email(self, email: str, first_name: str, link: str) -> bool:
        name = html.escape(first_name)
        body = f"""
        <p>Hello {name},</p>
        <p>Thanks for signing up! Please verify your email address:</p>
        <p><a href="{html.escape(link)}" class="button">Verify Email</a></p>
        <p><strong>This link will expire in {settings.VERIFY_TOKEN_EXPIRE_HOURS} hours.</strong></p>
        <div class="footer"><p>If you didn't create an account, you can safely ignore this email.</p></div>
        """
        text = f"Hello {first_name}, verify your email by visiting: {link}"
        return await self.send(email, "Verify Your Email", _page("Email Verification", body), text)

    async def send_password_reset_email(self, email: str, link: str, first_name: str) -> bool:
        name = html.escape(first_name)
        body = f"""
        <p>Hello {name},</p>
        <p>We received a request to reset your password:</p>
        <p><a href="{html.escape(link)}" class="button">Reset Password</a></p>
        <p><strong>This link will expire in {settings.RESET_TOKEN_EXPIRE_MINUTES} minutes.</strong></p>
        <div class="footer"><p>If you didn't request this, you can safely ignore this email.</p></div>
        """
        text = f"Hello {first_name}, reset your password by visiting: {link}"
        return await self.send(email, "Password Reset Request", _page("Password Reset", body), text)

    async def send_otp_email(self, email: str, otp: str) -> bool:
        minutes = settings.OTP_TTL_SECONDS // 60
        body = f"""
        <p>You have been designated as an admin.</p>
        <p>Here is your OTP: <strong>{html.escape(otp)}</strong></p>
        <p><strong>This OTP will expire in {minutes} minutes.</strong></p>
        <p><a href="{html.escape(settings.FRONTEND_URL)}/admin-create" class="button">Access Admin Panel</a></p>
        """
        text = f"Your OTP code is {otp}"
        return await self.send(email, "Your OTP Code", _page("Admin Verification", body), text)

    async def send_welcome_email(self, email: str, first_name: str) -> bool:
        body = f"<p>Welcome aboard, {html.escape(first_name)}! Your email is now verified.</p>"
        text = f"Welcome aboard, {first_name}! Your email is now verified."
        return await self.send(email, "Welcome to Tourbook!", _page("Welcome", body), text)
