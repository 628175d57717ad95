"""
Tests for the notification API.

These tests verify the FastAPI endpoints against a manager wired to the fake
providers from conftest.py.
"""

import pytest
from fastapi.testclient import TestClient

from api.main import app, reset_api_state
from notifications.models import ChannelKind

from conftest import PUSHBULLET_KEY, PUSHOVER_TOKEN, PUSHOVER_USER_KEY


@pytest.fixture
def api_client(manager):
    """Create a test client with fresh state."""
    reset_api_state(manager)
    yield TestClient(app)
    reset_api_state(None)


@pytest.fixture
def vapid_ready(manager, vapid_credentials):
    manager.initialize_web_push(vapid_credentials)
    return vapid_credentials


class TestHealthEndpoint:

    def test_health_check(self, api_client):
        response = api_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestChannelStatusEndpoint:

    def test_initial_status(self, api_client):
        """Test that only email is ready before any credentials arrive."""
        data = api_client.get("/api/notifications/channels").json()

        assert data["email"] == {"initialized": True, "enabled": True, "error": None}
        assert data["pushover"]["initialized"] is False
        assert set(data) == {"email", "webpush", "pushbullet", "pushover"}

    def test_status_after_failed_initialization(self, api_client):
        api_client.put("/api/settings/notifications", json={"pushbullet_api_key": ""})

        data = api_client.get("/api/notifications/channels").json()

        assert data["pushbullet"]["error"] == "Failed to initialize Pushbullet"


class TestSettingsEndpoints:
    """Tests for reading and updating the default member's settings."""

    def test_get_settings_creates_defaults(self, api_client):
        data = api_client.get("/api/settings/notifications").json()

        assert data["user_id"] == 1
        assert data["email"] == "alex.rivera@example.com"
        assert data["channels"] == {"email": True, "webpush": False, "pushbullet": False, "pushover": False}
        assert data["reminder_days"] == 7

    def test_update_settings(self, api_client):
        response = api_client.put("/api/settings/notifications", json={
            "pushbullet_api_key": PUSHBULLET_KEY,
            "channels": {"pushbullet": True},
            "reminder_days": 3,
        })

        assert response.status_code == 200
        data = response.json()
        assert data["channels"]["pushbullet"] is True
        assert data["channels"]["email"] is True
        assert data["reminder_days"] == 3

    def test_credentials_are_masked(self, api_client):
        """Test that stored credentials are never echoed back in full."""
        response = api_client.put("/api/settings/notifications", json={
            "pushbullet_api_key": PUSHBULLET_KEY,
            "pushover_api_token": PUSHOVER_TOKEN,
            "pushover_user_key": PUSHOVER_USER_KEY,
        })

        data = response.json()
        assert data["pushbullet_api_key"] == "o.8hQ..."
        assert data["pushover_api_token"] == "azGDO..."
        assert data["pushover_user_key"] == "uQiRz..."
        fetched = api_client.get("/api/settings/notifications").text
        for secret in (PUSHBULLET_KEY, PUSHOVER_TOKEN, PUSHOVER_USER_KEY):
            assert secret not in response.text
            assert secret not in fetched

    def test_unset_credentials_stay_null(self, api_client):
        data = api_client.get("/api/settings/notifications").json()

        assert data["pushbullet_api_key"] is None
        assert data["webpush_subscribed"] is False

    def test_enable_without_credentials_is_dropped(self, api_client):
        data = api_client.put("/api/settings/notifications", json={"channels": {"pushover": True}}).json()

        assert data["channels"]["pushover"] is False

    def test_invalid_reminder_days(self, api_client):
        response = api_client.put("/api/settings/notifications", json={"reminder_days": -1})

        assert response.status_code == 422

    def test_unknown_configured_member(self, api_client, monkeypatch):
        """Test that a configured member id that does not exist returns 404."""
        monkeypatch.setenv("SUBTRACKR_DEFAULT_USER_ID", "999")
        from notifications.config import get_settings
        get_settings.cache_clear()
        try:
            response = api_client.get("/api/settings/notifications")
        finally:
            monkeypatch.delenv("SUBTRACKR_DEFAULT_USER_ID")
            get_settings.cache_clear()

        assert response.status_code == 404
        assert "not found" in response.json()["detail"].lower()


class TestTestNotificationEndpoint:
    """Tests for POST /api/notifications/test/{channel}."""

    def test_email(self, api_client, email_channel):
        response = api_client.post("/api/notifications/test/email")

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Test notification sent via email"}
        assert email_channel.get_sent_count() == 1

    def test_invalid_channel(self, api_client):
        response = api_client.post("/api/notifications/test/sms")

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid notification channel"

    def test_pushbullet_with_saved_key(self, api_client, pushbullet_requests):
        response = api_client.post("/api/notifications/test/pushbullet")

        assert response.status_code == 200
        assert len(pushbullet_requests) == 1

    def test_webpush_not_configured(self, api_client):
        response = api_client.post("/api/notifications/test/webpush")

        assert response.status_code == 400
        assert response.json()["detail"] == "Failed to send test notification via webpush"

    def test_webpush_with_fresh_subscription(self, api_client, vapid_ready, push_subscription, webpush_sender):
        """Test that a subscription in the body is stored before testing."""
        response = api_client.post("/api/notifications/test/webpush", json={"subscription": push_subscription})

        assert response.status_code == 200
        webpush_sender.assert_called_once()


class TestReminderEndpoint:

    def test_send_reminder(self, api_client):
        response = api_client.post("/api/subscriptions/1/remind")

        assert response.status_code == 200
        data = response.json()
        assert data["subscription_id"] == 1
        assert data["results"] == {"email": True, "webpush": False, "pushbullet": False, "pushover": False}
        assert data["delivered"] == 1

    def test_other_members_subscription(self, api_client):
        response = api_client.post("/api/subscriptions/3/remind")

        assert response.status_code == 404

    def test_unknown_subscription(self, api_client):
        response = api_client.post("/api/subscriptions/999/remind")

        assert response.status_code == 404
        assert response.json()["detail"] == "Subscription with ID 999 not found"


class TestWebPushEndpoints:
    """Tests for the VAPID key and subscribe endpoints."""

    def test_public_key_not_configured(self, api_client):
        response = api_client.get("/api/web-push/vapid-public-key")

        assert response.status_code == 503

    def test_public_key(self, api_client, vapid_ready):
        response = api_client.get("/api/web-push/vapid-public-key")

        assert response.status_code == 200
        assert response.json() == {"publicKey": vapid_ready.public_key}

    def test_subscribe_not_configured(self, api_client, push_subscription):
        response = api_client.post("/api/web-push/subscribe", json=push_subscription)

        assert response.status_code == 503
        assert response.json()["detail"] == "Web Push not configured"

    def test_subscribe(self, api_client, manager, vapid_ready, push_subscription):
        response = api_client.post("/api/web-push/subscribe", json=push_subscription)

        assert response.status_code == 200
        settings = manager.ensure_user_settings(1)
        assert settings.channels[ChannelKind.WEBPUSH] is True
        assert settings.webpush_subscription["endpoint"] == push_subscription["endpoint"]
        view = api_client.get("/api/settings/notifications").json()
        assert view["webpush_subscribed"] is True
        assert "p256dh" not in str(view)

    def test_subscribe_rejects_malformed_body(self, api_client, vapid_ready):
        response = api_client.post("/api/web-push/subscribe", json={"keys": {}})

        assert response.status_code == 422
