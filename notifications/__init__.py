"""
Multi-channel notification dispatch for SubTrackr.

This package fans subscription payment reminders out to email, browser push,
Pushbullet and Pushover:
- Channel adapters (one per delivery mechanism)
- Channel registry (process-wide readiness)
- Settings store (per-member channel choices and credentials)
- NotificationManager (the coordinator)
"""

from notifications.channels import (
    EmailChannel,
    PushbulletChannel,
    PushoverChannel,
    VapidCredentials,
    WebPushChannel,
)
from notifications.errors import DeliveryError, NotFoundError
from notifications.manager import NotificationManager, create_notification_manager
from notifications.models import (
    ChannelKind,
    ChannelStatus,
    DeliveryResult,
    SettingsUpdate,
    UserNotificationSettings,
)
from notifications.registry import ChannelRegistry
from notifications.settings_store import SettingsStore

__all__ = [
    "ChannelKind",
    "ChannelRegistry",
    "ChannelStatus",
    "DeliveryError",
    "DeliveryResult",
    "EmailChannel",
    "NotFoundError",
    "NotificationManager",
    "PushbulletChannel",
    "PushoverChannel",
    "SettingsStore",
    "SettingsUpdate",
    "UserNotificationSettings",
    "VapidCredentials",
    "WebPushChannel",
    "create_notification_manager",
]
