"""
Models for the notification dispatch core.

Design decisions:
- ChannelKind is a closed enum; every channel-keyed map uses it as key
- Settings records are Pydantic models so the route layer can return them directly
- Transient results (ChannelStatus, DeliveryResult, RenderedMessage) are dataclasses
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class ChannelKind(str, Enum):
    """Supported delivery channels."""
    EMAIL = "email"
    WEBPUSH = "webpush"
    PUSHBULLET = "pushbullet"
    PUSHOVER = "pushover"


def default_channels() -> dict[ChannelKind, bool]:
    """Channel map for a freshly created settings record: email only."""
    return {kind: kind == ChannelKind.EMAIL for kind in ChannelKind}


def empty_results() -> dict[ChannelKind, bool]:
    """Per-channel result map with every channel marked as not delivered."""
    return {kind: False for kind in ChannelKind}


# =============================================================================
# Process-wide channel health
# =============================================================================

@dataclass
class ChannelStatus:
    """
    Readiness of one channel for the whole process.

    ``enabled`` is only ever set together with ``initialized`` so that
    ``enabled => initialized`` always holds.
    """
    initialized: bool = False
    enabled: bool = False
    error: Optional[str] = None


# =============================================================================
# Per-member settings
# =============================================================================

class UserNotificationSettings(BaseModel):
    """
    Notification settings for one household member.

    Only ``reminder_days`` is written back to the household store. The
    credentials, push subscription and channel flags live in this in-memory
    record and are lost on restart.
    """
    user_id: int
    email: Optional[str] = None
    pushbullet_api_key: Optional[str] = None
    pushover_api_token: Optional[str] = None
    pushover_user_key: Optional[str] = None
    webpush_subscription: Optional[dict[str, Any]] = None
    channels: dict[ChannelKind, bool] = Field(default_factory=default_channels)
    reminder_days: int = 7


class SettingsUpdate(BaseModel):
    """
    Partial update for UserNotificationSettings.

    Fields left as None are not touched. ``channels`` may name a subset of
    channels; the others keep their current value.
    """
    email: Optional[str] = None
    pushbullet_api_key: Optional[str] = None
    pushover_api_token: Optional[str] = None
    pushover_user_key: Optional[str] = None
    webpush_subscription: Optional[dict[str, Any]] = None
    channels: Optional[dict[ChannelKind, bool]] = None
    reminder_days: Optional[int] = Field(default=None, ge=0)


# =============================================================================
# Messages and results
# =============================================================================

class ReminderPayload(BaseModel):
    """What a payment reminder is about. Built fresh for every dispatch."""
    subscription_name: str
    due_date: date
    amount: float

    @classmethod
    def from_subscription(cls, subscription) -> "ReminderPayload":
        """Build a payload from any record with name, due_date and amount."""
        due = subscription.due_date
        if isinstance(due, datetime):
            due = due.date()
        return cls(
            subscription_name=subscription.name,
            due_date=due,
            amount=subscription.amount,
        )


@dataclass
class RenderedMessage:
    """
    A message rendered once and handed to every channel.

    Push channels use ``title``/``body``. Email uses ``subject``/``text``/``html``
    and falls back to the push fields when they are missing.
    """
    title: str
    body: str
    subject: Optional[str] = None
    text: Optional[str] = None
    html: Optional[str] = None
    tag: Optional[str] = None
    icon: Optional[str] = None
    url: Optional[str] = None
    data: Optional[dict[str, Any]] = None
    priority: int = 0
    sound: Optional[str] = None


@dataclass
class DeliveryResult:
    """
    Outcome of one channel send attempt.

    Every adapter returns one of these instead of raising, so the manager
    applies a single logging policy to all channels.
    """
    success: bool
    channel: ChannelKind
    recipient: Optional[str] = None
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def __str__(self) -> str:
        status = "✓" if self.success else "✗"
        target = self.recipient or "default target"
        text = f"{status} {self.channel.value.upper()} to {target}"
        if self.error:
            text += f" ({self.error})"
        return text
