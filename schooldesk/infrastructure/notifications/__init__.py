# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notifications for SchoolDesk.

Published exam results are announced to the student and linked parents by
email. Delivery failures never affect the result workflow.

Usage:
    from schooldesk.infrastructure.notifications import get_result_notifier

    notifier = get_result_notifier(settings)
    await notifier.notify_published(notice, recipients)

Configuration (environment variables):
- SMTP_HOST: SMTP server hostname
- SMTP_PORT: SMTP server port (default: 587)
- SMTP_USERNAME: SMTP authentication username
- SMTP_PASSWORD: SMTP authentication password
- SMTP_FROM_EMAIL: Sender email address
- SMTP_FROM_NAME: Sender display name
"""

from schooldesk.infrastructure.notifications.channels import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    DeliveryStatus,
    EmailChannel,
    NotificationPayload,
)
from schooldesk.infrastructure.notifications.service import (
    RESULT_PUBLISHED,
    Recipient,
    ResultNotice,
    ResultNotifier,
    get_result_notifier,
)

__all__ = [
    "BaseChannel",
    "ChannelResult",
    "ChannelType",
    "DeliveryStatus",
    "EmailChannel",
    "NotificationPayload",
    "RESULT_PUBLISHED",
    "Recipient",
    "ResultNotice",
    "ResultNotifier",
    "get_result_notifier",
]
