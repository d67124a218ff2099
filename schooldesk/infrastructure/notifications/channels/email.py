# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Email notification channel using async SMTP.

Configuration comes from SMTPSettings (``SMTP_*`` environment variables).
When the settings are incomplete every send is reported as skipped.
"""

import html
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid

import aiosmtplib

from schooldesk.core.config.settings import SMTPSettings
from schooldesk.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    NotificationPayload,
)


class EmailChannel(BaseChannel):
    """Email notification channel using aiosmtplib.

    Sends a plain text and an HTML part for each notification.
    """

    def __init__(self, settings: SMTPSettings) -> None:
        """Initialize the email channel.

        Args:
            settings: SMTP configuration.
        """
        super().__init__()
        self.settings = settings
        if not settings.is_configured:
            self.logger.warning(
                "Email notifications disabled: SMTP_HOST, SMTP_USERNAME, "
                "SMTP_PASSWORD, or SMTP_FROM_EMAIL not set"
            )

    @property
    def channel_type(self) -> ChannelType:
        """Return the channel type."""
        return ChannelType.EMAIL

    async def send(self, payload: NotificationPayload) -> ChannelResult:
        """Send email notification via SMTP.

        Args:
            payload: The notification payload.

        Returns:
            ChannelResult with delivery status.
        """
        if not self.settings.is_configured:
            return self.create_skipped_result("SMTP configuration incomplete")

        if not payload.recipient_email:
            return self.create_skipped_result("No recipient email address")

        message = self._build_email_message(payload)
        password = self.settings.password.get_secret_value() if self.settings.password else None

        try:
            await aiosmtplib.send(
                message,
                hostname=self.settings.host,
                port=self.settings.port,
                username=self.settings.username,
                password=password,
                start_tls=self.settings.use_tls,
                timeout=self.settings.timeout,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            self.logger.error(
                "Failed to send email to %s: %s",
                payload.recipient_email,
                str(e),
            )
            return self.create_failure_result(
                f"SMTP error: {e}",
                metadata={"recipient": payload.recipient_email},
            )

        self.logger.info("Email sent to %s: %s", payload.recipient_email, payload.title)
        return self.create_success_result(
            message_id=message["Message-ID"],
            metadata={"recipient": payload.recipient_email},
        )

    def _build_email_message(self, payload: NotificationPayload) -> MIMEMultipart:
        """Build MIME email message.

        Args:
            payload: Notification payload.

        Returns:
            MIMEMultipart message ready to send.
        """
        message = MIMEMultipart("alternative")
        message["From"] = f"{self.settings.from_name} <{self.settings.from_email}>"
        message["To"] = payload.recipient_email
        message["Subject"] = payload.title
        message["Message-ID"] = make_msgid(domain=self.settings.from_email.split("@")[-1])

        message.attach(MIMEText(self._build_plain_text(payload), "plain", "utf-8"))
        message.attach(MIMEText(self._build_html(payload), "html", "utf-8"))
        return message

    def _build_plain_text(self, payload: NotificationPayload) -> str:
        lines = [
            payload.title,
            "=" * len(payload.title),
            "",
            payload.message,
            "",
        ]
        if payload.student_name:
            lines.append(f"Student: {payload.student_name}")
            lines.append("")
        lines.extend(["---", f"This notification was sent by {self.settings.from_name}."])
        return "\n".join(lines)

    def _build_html(self, payload: NotificationPayload) -> str:
        title = html.escape(payload.title)
        body = html.escape(payload.message).replace("\n", "<br>")

        student_info = ""
        if payload.student_name:
            student_info = (
                '<p style="color: #6B7280; margin: 16px 0 0 0;">'
                f"<strong>Student:</strong> {html.escape(payload.student_name)}</p>"
            )

        return f"""
<!DOCTYPE html>
<html>
<head><meta charset="utf-8"></head>
<body style="font-family: Arial, sans-serif; color: #1F2937; background-color: #F3F4F6;">
    <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
        <div style="background-color: white; border-radius: 8px; padding: 32px;">
            <h1 style="color: #4F46E5; font-size: 22px; margin: 0 0 16px 0;">{title}</h1>
            <p style="margin: 0 0 16px 0;">{body}</p>
            {student_info}
            <p style="border-top: 1px solid #E5E7EB; padding-top: 16px;
                      font-size: 12px; color: #9CA3AF;">
                This notification was sent by {html.escape(self.settings.from_name)}.
            </p>
        </div>
    </div>
</body>
</html>
        """.strip()
