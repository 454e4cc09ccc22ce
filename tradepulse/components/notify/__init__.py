"""
TradePulse notify: outbound notification channels.

Classes:
    NotificationChannel, EmailChannel, DocumentLogChannel, TaskTrackerChannel, ChatAlertChannel
        See channels.py

Functions:
    build_channels(settings) -> dict[str, NotificationChannel]
"""

from .channels import (
    NotificationChannel,
    EmailChannel,
    DocumentLogChannel,
    TaskTrackerChannel,
    ChatAlertChannel,
    build_channels,
)

__all__ = [
    "NotificationChannel",
    "EmailChannel",
    "DocumentLogChannel",
    "TaskTrackerChannel",
    "ChatAlertChannel",
    "build_channels",
]
