# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Result publication notifications.

ResultNotifier renders a "results published" message for each recipient
(the student and linked parents) and hands it to a channel. Delivery is
best-effort: a channel failure is reported in the returned results and
never raised.
"""

import logging
from dataclasses import dataclass

from schooldesk.core.config.settings import Settings
from schooldesk.infrastructure.notifications.channels import (
    BaseChannel,
    ChannelResult,
    DeliveryStatus,
    EmailChannel,
    NotificationPayload,
)

logger = logging.getLogger(__name__)

RESULT_PUBLISHED = "result_published"


@dataclass
class Recipient:
    """A notification recipient.

    Attributes:
        email: Recipient's email address.
        full_name: Recipient's display name.
        user_type: ``student`` or ``parent``.
    """

    email: str
    full_name: str
    user_type: str


@dataclass
class ResultNotice:
    """What a published result notification says.

    Attributes:
        result_id: Published result ID.
        student_name: Student's display name.
        exam_name: Exam name.
        subject_name: Subject name.
        score: Marks obtained.
        max_marks: Maximum marks.
        percentage: Rounded percentage.
        grade: Letter grade.
    """

    result_id: str
    student_name: str
    exam_name: str
    subject_name: str
    score: float
    max_marks: float
    percentage: float
    grade: str


class ResultNotifier:
    """Sends result publication notices through a channel."""

    def __init__(self, channel: BaseChannel) -> None:
        """Initialize the notifier.

        Args:
            channel: Delivery channel.
        """
        self.channel = channel

    async def notify_published(
        self,
        notice: ResultNotice,
        recipients: list[Recipient],
    ) -> list[ChannelResult]:
        """Notify every recipient that a result was published.

        Args:
            notice: Published result summary.
            recipients: Student and parent recipients.

        Returns:
            One channel result per recipient.
        """
        if not recipients:
            logger.info("No recipients for published result %s", notice.result_id)
            return []

        results: list[ChannelResult] = []
        for recipient in recipients:
            payload = self._render(notice, recipient)
            result = await self.channel.send(payload)
            if result.status == DeliveryStatus.FAILED:
                logger.warning(
                    "Result %s notification to %s failed: %s",
                    notice.result_id,
                    recipient.email,
                    result.error_message,
                )
            results.append(result)

        logger.info(
            "Result %s publication notices: %d sent of %d",
            notice.result_id,
            sum(1 for r in results if r.status == DeliveryStatus.SENT),
            len(results),
        )
        return results

    def _render(self, notice: ResultNotice, recipient: Recipient) -> NotificationPayload:
        subject_line = f"{notice.exam_name}: {notice.subject_name} result published"
        if recipient.user_type == "parent":
            opening = (
                f"The {notice.subject_name} result for {notice.student_name} is now available."
            )
        else:
            opening = f"Your {notice.subject_name} result is now available."

        message = (
            f"{opening}\n"
            f"Score: {notice.score:g} / {notice.max_marks:g} "
            f"({notice.percentage:.2f}%), grade {notice.grade}."
        )
        return NotificationPayload(
            notification_type=RESULT_PUBLISHED,
            title=subject_line,
            message=message,
            recipient_email=recipient.email,
            recipient_name=recipient.full_name,
            student_name=notice.student_name,
            data={"result_id": notice.result_id},
        )


_notifier_instance: ResultNotifier | None = None


def get_result_notifier(settings: Settings) -> ResultNotifier:
    """Get or create the notifier singleton backed by the email channel.

    Args:
        settings: Application settings.

    Returns:
        ResultNotifier instance.
    """
    global _notifier_instance
    if _notifier_instance is None:
        _notifier_instance = ResultNotifier(EmailChannel(settings.smtp))
    return _notifier_instance
