"""
FastAPI application for SubTrackr notifications.

This is the composition root: it builds one NotificationManager from the
environment settings and routes requests to it on behalf of the default
household member (there is no login).

Run with:
    uvicorn api.main:app --reload

Then visit http://localhost:8000/docs for interactive API documentation.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any, Optional

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field

from notifications.config import get_settings
from notifications.errors import NotFoundError
from notifications.manager import NotificationManager, create_notification_manager
from notifications.models import ChannelKind, SettingsUpdate, UserNotificationSettings

# Configure logging
logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s | %(name)-24s | %(levelname)-5s | %(message)s",
    datefmt="%H:%M:%S",
)

logger = logging.getLogger("api")


# Request/response models
class PushSubscriptionBody(BaseModel):
    """Subscription object produced by the browser's PushManager."""
    endpoint: str
    keys: dict[str, str]
    expirationTime: Optional[float] = None


class TestNotificationBody(BaseModel):
    """Optional body for a test notification; Web Push may carry a fresh subscription."""
    subscription: Optional[PushSubscriptionBody] = None


def _mask(secret: Optional[str]) -> Optional[str]:
    """Keep only the 5-character prefix used in logs."""
    return f"{secret[:5]}..." if secret else None


class NotificationSettingsView(BaseModel):
    """
    A member's settings as returned by the API.

    Credentials are masked; the push subscription is reduced to a flag.
    """
    user_id: int
    email: Optional[str] = None
    pushbullet_api_key: Optional[str] = None
    pushover_api_token: Optional[str] = None
    pushover_user_key: Optional[str] = None
    webpush_subscribed: bool = False
    channels: dict[ChannelKind, bool]
    reminder_days: int

    @classmethod
    def from_settings(cls, settings: UserNotificationSettings) -> "NotificationSettingsView":
        return cls(
            user_id=settings.user_id,
            email=settings.email,
            pushbullet_api_key=_mask(settings.pushbullet_api_key),
            pushover_api_token=_mask(settings.pushover_api_token),
            pushover_user_key=_mask(settings.pushover_user_key),
            webpush_subscribed=bool(settings.webpush_subscription),
            channels=settings.channels,
            reminder_days=settings.reminder_days,
        )


class ReminderResults(BaseModel):
    """Per-channel outcome of a reminder fan-out."""
    subscription_id: int
    results: dict[ChannelKind, bool]
    delivered: int = Field(..., description="Number of channels that accepted the reminder")


# Application lifespan
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    logger.info("Starting SubTrackr notification API")
    get_manager()
    yield
    logger.info("Shutting down")


app = FastAPI(
    title="SubTrackr Notifications",
    description="Subscription payment reminders over email, Web Push, Pushbullet and Pushover.",
    version="1.0.0",
    lifespan=lifespan,
)


# Built once at startup and shared by every request
_manager: Optional[NotificationManager] = None


def get_manager() -> NotificationManager:
    """Get the notification manager instance."""
    global _manager
    if _manager is None:
        _manager = create_notification_manager(get_settings())
    return _manager


def reset_api_state(manager: Optional[NotificationManager] = None) -> None:
    """Reset API state (for testing)."""
    global _manager
    _manager = manager


def get_current_user_id(manager: NotificationManager = Depends(get_manager)) -> int:
    """Resolve the household member requests act for."""
    configured = get_settings().default_user_id
    if configured is not None:
        return configured
    member = manager.household.get_default_user()
    if member is None:
        raise HTTPException(status_code=404, detail="No household members found")
    return member.id


# =============================================================================
# Health Check
# =============================================================================

@app.get("/health", tags=["Health"])
def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "subtrackr-notifications"}


# =============================================================================
# Channel Status
# =============================================================================

@app.get("/api/notifications/channels", tags=["Channels"])
def get_channel_status(manager: NotificationManager = Depends(get_manager)) -> dict[str, Any]:
    """Readiness of every channel for the whole process."""
    return {
        kind.value: asdict(status)
        for kind, status in manager.get_channel_status().items()
    }


# =============================================================================
# Settings
# =============================================================================

@app.get(
    "/api/settings/notifications",
    response_model=NotificationSettingsView,
    tags=["Settings"],
)
def get_notification_settings(
    manager: NotificationManager = Depends(get_manager),
    user_id: int = Depends(get_current_user_id),
):
    """Get the member's notification settings."""
    try:
        settings = manager.ensure_user_settings(user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return NotificationSettingsView.from_settings(settings)


@app.put(
    "/api/settings/notifications",
    response_model=NotificationSettingsView,
    tags=["Settings"],
)
def update_notification_settings(
    update: SettingsUpdate,
    manager: NotificationManager = Depends(get_manager),
    user_id: int = Depends(get_current_user_id),
):
    """
    Update the member's notification settings.

    New Pushbullet or Pushover credentials initialize the matching channel.
    """
    try:
        settings = manager.update_user_settings(user_id, update)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return NotificationSettingsView.from_settings(settings)


# =============================================================================
# Sending
# =============================================================================

@app.post("/api/notifications/test/{channel}", tags=["Notifications"])
def send_test_notification(
    channel: str,
    body: Optional[TestNotificationBody] = None,
    manager: NotificationManager = Depends(get_manager),
    user_id: int = Depends(get_current_user_id),
):
    """Send a test notification on one channel."""
    try:
        kind = ChannelKind(channel)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid notification channel")

    try:
        if kind == ChannelKind.WEBPUSH and body is not None and body.subscription is not None:
            manager.update_user_settings(user_id, SettingsUpdate(
                webpush_subscription=body.subscription.model_dump(),
            ))
        success = manager.send_test_notification(user_id, kind)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    if not success:
        raise HTTPException(
            status_code=400,
            detail=f"Failed to send test notification via {kind.value}",
        )
    return {"success": True, "message": f"Test notification sent via {kind.value}"}


@app.post(
    "/api/subscriptions/{subscription_id}/remind",
    response_model=ReminderResults,
    tags=["Notifications"],
)
def send_subscription_reminder(
    subscription_id: int,
    manager: NotificationManager = Depends(get_manager),
    user_id: int = Depends(get_current_user_id),
) -> ReminderResults:
    """Send a payment reminder for one subscription on every usable channel."""
    try:
        results = manager.send_subscription_reminder(user_id, subscription_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return ReminderResults(
        subscription_id=subscription_id,
        results=results,
        delivered=sum(1 for ok in results.values() if ok),
    )


# =============================================================================
# Web Push
# =============================================================================

@app.get("/api/web-push/vapid-public-key", tags=["Web Push"])
def get_vapid_public_key(manager: NotificationManager = Depends(get_manager)):
    """VAPID public key the browser needs to subscribe."""
    public_key = manager.vapid_public_key
    if not public_key:
        raise HTTPException(status_code=503, detail="Web Push not configured")
    return {"publicKey": public_key}


@app.post("/api/web-push/subscribe", tags=["Web Push"])
def subscribe_web_push(
    subscription: PushSubscriptionBody,
    manager: NotificationManager = Depends(get_manager),
    user_id: int = Depends(get_current_user_id),
):
    """Store the browser's push subscription and enable Web Push for the member."""
    if not manager.vapid_public_key:
        raise HTTPException(status_code=503, detail="Web Push not configured")

    try:
        manager.update_user_settings(user_id, SettingsUpdate(
            webpush_subscription=subscription.model_dump(),
            channels={ChannelKind.WEBPUSH: True},
        ))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return {"success": True, "message": "Web Push subscription saved"}
