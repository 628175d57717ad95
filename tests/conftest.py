"""
Shared pytest fixtures for the notification tests.

Provider calls never leave the process: Pushbullet and Pushover go through
httpx.MockTransport handlers that record every request, Web Push goes
through a MagicMock sender, and email uses the logging transport.
"""

from pathlib import Path
from unittest.mock import MagicMock

import httpx
import pytest

from household.data_store import HouseholdStore
from notifications.channels import (
    EmailChannel,
    PushbulletChannel,
    PushoverChannel,
    VapidCredentials,
    WebPushChannel,
)
from notifications.manager import NotificationManager
from notifications.registry import ChannelRegistry
from notifications.settings_store import SettingsStore

PUSHBULLET_KEY = "o.8hQzT1xWk3PbN2mVd7YcR4sLa9Ee"
PUSHOVER_TOKEN = "azGDORePK8gMaC0QOYAMyEEuzJnyUi"
PUSHOVER_USER_KEY = "uQiRzpo4DXghDmr9QzzfQu27cmVRsG"


@pytest.fixture
def data_dir() -> Path:
    """Path to the household fixture directory."""
    return Path(__file__).parent.parent / "data"


@pytest.fixture
def household(data_dir: Path) -> HouseholdStore:
    """
    Fresh HouseholdStore for each test.

    Uses the real JSON fixtures but creates a new instance
    so in-memory writes don't leak between tests.
    """
    return HouseholdStore(data_dir=data_dir)


# =============================================================================
# Member Fixtures
# =============================================================================

@pytest.fixture
def alex_user_id() -> int:
    """Alex: default member, has an email and saved Pushbullet/Pushover keys."""
    return 1


@pytest.fixture
def jordan_user_id() -> int:
    """Jordan: has an email and a malformed saved Pushover key."""
    return 2


@pytest.fixture
def sam_user_id() -> int:
    """Sam: no email address, only a disabled Pushbullet key."""
    return 3


@pytest.fixture
def push_subscription() -> dict:
    """A browser push subscription as sent by PushManager.subscribe()."""
    return {
        "endpoint": "https://fcm.googleapis.com/fcm/send/dXNlci0xLXN1YnNjcmlwdGlvbg",
        "keys": {
            "p256dh": "BNcRdreALRFXTkOOUHK1EtK2wtaz5Ry4YfYCA_0QTpQtUbVlUls0VJXg7A8u-Ts1XbjhazAkj7I99e8QcYP7DkM",
            "auth": "tBHItJI5svbpez7KI4CCXg",
        },
    }


@pytest.fixture
def vapid_credentials() -> VapidCredentials:
    return VapidCredentials(
        public_key="BEl62iUYgUivxIkv69yViEuiBIa-Ib9-SkvMeAtA3LFgDzkrxZJjSgSnfckjBJuBkr3qBUYIHBQFLXYp5Nksh8U",
        private_key="UUxI4O8-FbRouAevSmBQ6RLtizUKNR6D3MjjOmRchrg",
        contact_email="admin@subtrackr.app",
    )


# =============================================================================
# Provider Fakes
# =============================================================================

@pytest.fixture
def pushbullet_requests() -> list[httpx.Request]:
    """Every request the Pushbullet mock transport received."""
    return []


@pytest.fixture
def pushbullet_transport(pushbullet_requests) -> httpx.MockTransport:
    """Pushbullet API stand-in that accepts every push."""
    def handler(request: httpx.Request) -> httpx.Response:
        pushbullet_requests.append(request)
        if request.url.path.endswith("/devices"):
            return httpx.Response(200, json={"devices": [
                {"iden": "ujpah72o0sjAoRtnM0jc", "nickname": "Pixel 8", "active": True},
            ]})
        return httpx.Response(200, json={"iden": "ujzb2m3l5FoSjAiVsKnSTs", "type": "note"})

    return httpx.MockTransport(handler)


@pytest.fixture
def pushover_requests() -> list[httpx.Request]:
    """Every request the Pushover mock transport received."""
    return []


@pytest.fixture
def pushover_transport(pushover_requests) -> httpx.MockTransport:
    """Pushover API stand-in that acknowledges every message."""
    def handler(request: httpx.Request) -> httpx.Response:
        pushover_requests.append(request)
        return httpx.Response(200, json={"status": 1, "request": "647d2300-702c-4b38-8b2f-d56326ae460b"})

    return httpx.MockTransport(handler)


@pytest.fixture
def webpush_sender() -> MagicMock:
    """Stand-in for pywebpush.webpush."""
    return MagicMock(return_value=None)


# =============================================================================
# Channel and Manager Fixtures
# =============================================================================

@pytest.fixture
def email_channel() -> EmailChannel:
    """Email channel on the logging transport."""
    return EmailChannel()


@pytest.fixture
def webpush_channel(webpush_sender) -> WebPushChannel:
    return WebPushChannel(sender=webpush_sender)


@pytest.fixture
def pushbullet_channel(pushbullet_transport) -> PushbulletChannel:
    return PushbulletChannel(transport=pushbullet_transport)


@pytest.fixture
def pushover_channel(pushover_transport) -> PushoverChannel:
    return PushoverChannel(transport=pushover_transport)


@pytest.fixture
def registry() -> ChannelRegistry:
    return ChannelRegistry()


@pytest.fixture
def settings_store(household) -> SettingsStore:
    return SettingsStore(household)


@pytest.fixture
def manager(
    settings_store,
    registry,
    household,
    email_channel,
    webpush_channel,
    pushbullet_channel,
    pushover_channel,
) -> NotificationManager:
    """NotificationManager wired to the fakes above."""
    return NotificationManager(
        settings_store=settings_store,
        registry=registry,
        household=household,
        email=email_channel,
        webpush=webpush_channel,
        pushbullet=pushbullet_channel,
        pushover=pushover_channel,
    )
