# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for result publication notifications."""

from unittest.mock import AsyncMock, patch

import aiosmtplib
import pytest
from pydantic import SecretStr

from schooldesk.core.config.settings import SMTPSettings
from schooldesk.infrastructure.notifications import (
    RESULT_PUBLISHED,
    BaseChannel,
    ChannelResult,
    ChannelType,
    DeliveryStatus,
    EmailChannel,
    NotificationPayload,
    Recipient,
    ResultNotice,
    ResultNotifier,
)


class RecordingChannel(BaseChannel):
    """Channel that records payloads and fails for chosen addresses."""

    def __init__(self, failing: set[str] | None = None) -> None:
        super().__init__()
        self.sent: list[NotificationPayload] = []
        self.failing = failing or set()

    @property
    def channel_type(self) -> ChannelType:
        return ChannelType.EMAIL

    async def send(self, payload: NotificationPayload) -> ChannelResult:
        self.sent.append(payload)
        if payload.recipient_email in self.failing:
            return self.create_failure_result("mailbox full")
        return self.create_success_result(message_id="msg-1")


@pytest.fixture
def notice() -> ResultNotice:
    return ResultNotice(
        result_id="result-1",
        student_name="Lena Okafor",
        exam_name="Mid-term",
        subject_name="Mathematics",
        score=68.0,
        max_marks=80.0,
        percentage=85.0,
        grade="A",
    )


@pytest.fixture
def recipients() -> list[Recipient]:
    return [
        Recipient(email="lena@students.example.com", full_name="Lena Okafor", user_type="student"),
        Recipient(email="grace@example.com", full_name="Grace Okafor", user_type="parent"),
    ]


@pytest.fixture
def smtp_settings() -> SMTPSettings:
    return SMTPSettings(
        host="smtp.example.com",
        port=587,
        username="mailer",
        password=SecretStr("secret"),
        from_email="results@school.example.com",
    )


@pytest.fixture
def payload() -> NotificationPayload:
    return NotificationPayload(
        notification_type=RESULT_PUBLISHED,
        title="Mid-term: Mathematics result published",
        message="Your Mathematics result is now available.",
        recipient_email="lena@students.example.com",
        recipient_name="Lena Okafor",
        student_name="Lena <Okafor>",
    )


class TestResultNotifier:
    """Tests for ResultNotifier."""

    @pytest.mark.asyncio
    async def test_one_message_per_recipient(
        self,
        notice: ResultNotice,
        recipients: list[Recipient],
    ) -> None:
        channel = RecordingChannel()
        notifier = ResultNotifier(channel)

        results = await notifier.notify_published(notice, recipients)

        assert [r.status for r in results] == [DeliveryStatus.SENT, DeliveryStatus.SENT]
        student_msg, parent_msg = channel.sent
        assert student_msg.title == "Mid-term: Mathematics result published"
        assert student_msg.message.startswith("Your Mathematics result")
        assert "68 / 80 (85.00%), grade A." in student_msg.message
        assert parent_msg.message.startswith(
            "The Mathematics result for Lena Okafor is now available."
        )
        assert parent_msg.data == {"result_id": "result-1"}

    @pytest.mark.asyncio
    async def test_failure_is_reported_not_raised(
        self,
        notice: ResultNotice,
        recipients: list[Recipient],
    ) -> None:
        channel = RecordingChannel(failing={"grace@example.com"})

        results = await ResultNotifier(channel).notify_published(notice, recipients)

        assert [r.status for r in results] == [DeliveryStatus.SENT, DeliveryStatus.FAILED]
        assert results[1].error_message == "mailbox full"

    @pytest.mark.asyncio
    async def test_no_recipients(self, notice: ResultNotice) -> None:
        channel = RecordingChannel()

        assert await ResultNotifier(channel).notify_published(notice, []) == []
        assert channel.sent == []


class TestEmailChannel:
    """Tests for EmailChannel."""

    @pytest.mark.asyncio
    async def test_skipped_when_unconfigured(self, payload: NotificationPayload) -> None:
        channel = EmailChannel(SMTPSettings())

        with patch(
            "schooldesk.infrastructure.notifications.channels.email.aiosmtplib.send",
            new_callable=AsyncMock,
        ) as mock_send:
            result = await channel.send(payload)

        assert result.status == DeliveryStatus.SKIPPED
        mock_send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_sends_via_smtp(
        self,
        smtp_settings: SMTPSettings,
        payload: NotificationPayload,
    ) -> None:
        channel = EmailChannel(smtp_settings)

        with patch(
            "schooldesk.infrastructure.notifications.channels.email.aiosmtplib.send",
            new_callable=AsyncMock,
        ) as mock_send:
            result = await channel.send(payload)

        assert result.status == DeliveryStatus.SENT
        assert result.message_id is not None
        message = mock_send.await_args.args[0]
        assert message["To"] == "lena@students.example.com"
        assert message["From"] == "SchoolDesk <results@school.example.com>"
        kwargs = mock_send.await_args.kwargs
        assert kwargs["hostname"] == "smtp.example.com"
        assert kwargs["password"] == "secret"
        assert kwargs["start_tls"] is True

    @pytest.mark.asyncio
    async def test_smtp_error_is_failure(
        self,
        smtp_settings: SMTPSettings,
        payload: NotificationPayload,
    ) -> None:
        channel = EmailChannel(smtp_settings)

        with patch(
            "schooldesk.infrastructure.notifications.channels.email.aiosmtplib.send",
            new_callable=AsyncMock,
            side_effect=aiosmtplib.SMTPException("relay denied"),
        ):
            result = await channel.send(payload)

        assert result.status == DeliveryStatus.FAILED
        assert "relay denied" in result.error_message
        assert result.metadata == {"recipient": "lena@students.example.com"}

    def test_html_escapes_names(
        self,
        smtp_settings: SMTPSettings,
        payload: NotificationPayload,
    ) -> None:
        body = EmailChannel(smtp_settings)._build_html(payload)

        assert "Lena &lt;Okafor&gt;" in body
        assert "<Okafor>" not in body
