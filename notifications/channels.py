"""
Notification channel adapters.

Each adapter wraps one delivery mechanism:
- Email: SMTP, or a logging fallback when no SMTP host is configured
- Web Push: browser push subscriptions signed with a global VAPID key pair
- Pushbullet: single access token, pushes a note to the account's devices
- Pushover: API token + user key, posts to the messages endpoint

Design decisions:
- Every adapter exposes initialize(credentials) -> bool and
  send(message, settings) -> DeliveryResult
- initialize() never raises and never keeps half of a credential; a rejected
  credential also drops the previous one, so is_ready matches the registry
- Provider failures are raised as DeliveryError inside the adapter and turned
  into a failed DeliveryResult at the send() boundary
- Adapters keep a bounded history of recent send results
"""

import json
import logging
import smtplib
import time
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import make_msgid
from typing import Any, Callable, Optional

import httpx
from pywebpush import WebPushException, webpush

from notifications.errors import CredentialError, DeliveryError
from notifications.models import (
    ChannelKind,
    DeliveryResult,
    RenderedMessage,
    UserNotificationSettings,
)

logger = logging.getLogger("notifications")


class ChannelAdapter(ABC):
    """
    Base class for delivery channels.

    Subclasses implement ``initialize`` and ``_deliver``; ``_deliver`` raises
    DeliveryError when the provider does not accept the message.
    """

    kind: ChannelKind

    def __init__(self, timeout: float = 10.0, history_size: int = 100):
        self.timeout = timeout
        self._ready = False
        self.sent_messages: deque[DeliveryResult] = deque(maxlen=history_size)

    @property
    def is_ready(self) -> bool:
        """True once credentials have been accepted."""
        return self._ready

    @property
    def tag(self) -> str:
        return self.kind.value.upper()

    @abstractmethod
    def initialize(self, credentials: Any) -> bool:
        """Accept credentials. Returns False and keeps nothing when they are invalid."""

    def has_target(self, settings: UserNotificationSettings) -> bool:
        """Whether the member record holds an address for this channel."""
        return True

    def recipient(self, settings: UserNotificationSettings) -> Optional[str]:
        """Printable recipient for logs and results."""
        return None

    def send(
        self,
        message: RenderedMessage,
        settings: UserNotificationSettings,
    ) -> DeliveryResult:
        """
        Deliver a message to one member.

        Returns:
            DeliveryResult, with success=False and the reason in ``error``
            when the provider did not accept the message
        """
        recipient = self.recipient(settings)
        try:
            self._deliver(message, settings)
        except DeliveryError as e:
            result = DeliveryResult(
                success=False,
                channel=self.kind,
                recipient=recipient,
                error=str(e),
            )
            logger.error(f"[{self.tag} FAILED] To: {recipient} | Error: {result.error}")
        else:
            result = DeliveryResult(success=True, channel=self.kind, recipient=recipient)
            logger.info(f"[{self.tag}] To: {recipient} | Title: {message.title}")

        self.sent_messages.append(result)
        return result

    @abstractmethod
    def _deliver(self, message: RenderedMessage, settings: UserNotificationSettings) -> None:
        """Hand the message to the provider. Raises DeliveryError on failure."""

    def get_sent_count(self) -> int:
        """Get the number of recent send attempts still in the history."""
        return len(self.sent_messages)

    def get_successful_sends(self) -> list[DeliveryResult]:
        """Get all successful sends."""
        return [m for m in self.sent_messages if m.success]

    def clear_history(self):
        """Clear sent message history (useful between tests)."""
        self.sent_messages.clear()


# =============================================================================
# Email
# =============================================================================

class LoggingTransport:
    """
    Fallback mail transport that only logs.

    Returns the same metadata shape as a real transport, so a logged email
    counts as accepted.
    """

    def send_mail(
        self,
        sender: str,
        to: str,
        subject: str,
        text: str,
        html: Optional[str] = None,
    ) -> dict[str, Any]:
        preview = text[:100] + ("..." if len(text) > 100 else "")
        logger.info(f"[EMAIL] Email would be sent to {to} | Subject: {subject}")
        logger.debug(f"[EMAIL BODY] {preview}")
        return {
            "accepted": [to],
            "rejected": [],
            "response": "OK: simulated email sent",
            "message_id": f"mock-{int(time.time() * 1000)}@subtrackr.app",
        }


class SMTPTransport:
    """Mail transport backed by an SMTP server."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def send_mail(
        self,
        sender: str,
        to: str,
        subject: str,
        text: str,
        html: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        Send one email.

        Raises:
            smtplib.SMTPException or OSError when the server is unreachable
            or refuses the message
        """
        msg = EmailMessage()
        msg["From"] = sender
        msg["To"] = to
        msg["Subject"] = subject
        msg["Message-ID"] = make_msgid(domain="subtrackr.app")
        msg.set_content(text)
        if html:
            msg.add_alternative(html, subtype="html")

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            if self.use_tls:
                server.starttls()
            if self.username:
                server.login(self.username, self.password)
            refused = server.send_message(msg)

        return {
            "accepted": [] if to in refused else [to],
            "rejected": list(refused),
            "response": "OK",
            "message_id": msg["Message-ID"],
        }


class EmailChannel(ChannelAdapter):
    """
    Email channel.

    Needs no credentials and is ready from construction. Sends to the
    member's email address.
    """

    kind = ChannelKind.EMAIL

    def __init__(
        self,
        transport=None,
        sender: str = '"SubTrackr" <notifications@subtrackr.app>',
        timeout: float = 10.0,
        history_size: int = 100,
    ):
        super().__init__(timeout=timeout, history_size=history_size)
        if transport is None:
            logger.info("No SMTP transport configured, emails will only be logged")
            transport = LoggingTransport()
        self.transport = transport
        self.sender = sender
        self.last_response: Optional[dict[str, Any]] = None
        self._ready = True

    def initialize(self, credentials: Any = None) -> bool:
        return True

    def has_target(self, settings: UserNotificationSettings) -> bool:
        return bool(settings.email)

    def recipient(self, settings: UserNotificationSettings) -> Optional[str]:
        return settings.email

    def _deliver(self, message: RenderedMessage, settings: UserNotificationSettings) -> None:
        if not settings.email:
            raise DeliveryError(self.kind, "No email address on file")

        try:
            info = self.transport.send_mail(
                sender=self.sender,
                to=settings.email,
                subject=message.subject or message.title,
                text=message.text or message.body,
                html=message.html,
            )
        except (smtplib.SMTPException, OSError) as e:
            raise DeliveryError(self.kind, f"Failed to send email: {e}") from e

        self.last_response = info
        if settings.email in info.get("rejected", []):
            raise DeliveryError(self.kind, f"Recipient rejected: {settings.email}")


# =============================================================================
# Web Push
# =============================================================================

@dataclass
class VapidCredentials:
    """Process-wide VAPID key pair and contact address."""
    public_key: str
    private_key: str
    contact_email: str


WebPushSender = Callable[..., Any]


class WebPushChannel(ChannelAdapter):
    """
    Browser push channel.

    The VAPID keys are set once for the whole process. Each member supplies
    their own subscription object (``endpoint`` + ``keys``) from the browser.
    """

    kind = ChannelKind.WEBPUSH

    def __init__(
        self,
        timeout: float = 10.0,
        sender: Optional[WebPushSender] = None,
        history_size: int = 100,
    ):
        super().__init__(timeout=timeout, history_size=history_size)
        self._sender = sender or webpush
        self._credentials: Optional[VapidCredentials] = None

    @property
    def public_key(self) -> Optional[str]:
        """VAPID public key the browser subscribes with, if configured."""
        return self._credentials.public_key if self._credentials else None

    def initialize(self, credentials: Optional[VapidCredentials]) -> bool:
        if (
            credentials is None
            or not credentials.public_key
            or not credentials.private_key
            or not credentials.contact_email
        ):
            logger.warning("Missing VAPID keys or contact email")
            self._credentials = None
            self._ready = False
            return False

        self._credentials = credentials
        self._ready = True
        logger.info("Web Push service initialized")
        return True

    def has_target(self, settings: UserNotificationSettings) -> bool:
        subscription = settings.webpush_subscription
        return bool(subscription and subscription.get("endpoint"))

    def recipient(self, settings: UserNotificationSettings) -> Optional[str]:
        if not self.has_target(settings):
            return None
        return settings.webpush_subscription["endpoint"][:40]

    def _deliver(self, message: RenderedMessage, settings: UserNotificationSettings) -> None:
        if self._credentials is None:
            raise DeliveryError(self.kind, "Web Push service not initialized")
        if not self.has_target(settings):
            raise DeliveryError(self.kind, "No push subscription stored")

        payload = json.dumps({
            "title": message.title,
            "body": message.body,
            "icon": message.icon,
            "tag": message.tag,
            "data": message.data,
            "url": message.url,
        })

        try:
            self._sender(
                subscription_info=settings.webpush_subscription,
                data=payload,
                vapid_private_key=self._credentials.private_key,
                vapid_claims={"sub": f"mailto:{self._credentials.contact_email}"},
                timeout=self.timeout,
            )
        except (WebPushException, OSError, ValueError) as e:
            raise DeliveryError(self.kind, f"Failed to send Web Push notification: {e}") from e


# =============================================================================
# Pushbullet
# =============================================================================

class PushbulletChannel(ChannelAdapter):
    """
    Pushbullet channel.

    One access token for the adapter; notes go to every device on the
    account unless ``device_iden`` targets a single one.
    """

    kind = ChannelKind.PUSHBULLET

    def __init__(
        self,
        api_url: str = "https://api.pushbullet.com/v2",
        timeout: float = 10.0,
        device_iden: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
        history_size: int = 100,
    ):
        super().__init__(timeout=timeout, history_size=history_size)
        self.api_url = api_url
        self.device_iden = device_iden
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    def initialize(self, api_key: Optional[str]) -> bool:
        token = (api_key or "").strip()
        if not token:
            logger.warning("No Pushbullet API key provided")
            self._reset()
            return False

        client = httpx.Client(
            base_url=self.api_url,
            headers={"Access-Token": token},
            timeout=self.timeout,
            transport=self._transport,
        )
        if self._client is not None:
            self._client.close()
        self._client = client
        self._ready = True
        logger.info("Pushbullet client initialized")
        return True

    def _reset(self) -> None:
        # a rejected key replaces the previous one; nothing stays usable
        if self._client is not None:
            self._client.close()
        self._client = None
        self._ready = False

    def recipient(self, settings: UserNotificationSettings) -> Optional[str]:
        return self.device_iden or "all devices"

    def push_note(self, title: str, body: str, device_iden: Optional[str] = None) -> None:
        """
        Push a note.

        Raises:
            DeliveryError: If the client is not initialized or Pushbullet
                does not accept the push
        """
        if self._client is None:
            raise DeliveryError(self.kind, "Pushbullet client not initialized")

        note = {"type": "note", "title": title, "body": body}
        if device_iden:
            note["device_iden"] = device_iden

        try:
            response = self._client.post("/pushes", json=note)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise DeliveryError(self.kind, f"Failed to send push notification: {e}") from e

    def get_devices(self) -> list[dict[str, Any]]:
        """List the account's devices. Empty when unavailable."""
        if self._client is None:
            logger.warning("Pushbullet client not initialized")
            return []
        try:
            response = self._client.get("/devices")
            response.raise_for_status()
            return response.json().get("devices", [])
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Failed to get Pushbullet devices: {e}")
            return []

    def _deliver(self, message: RenderedMessage, settings: UserNotificationSettings) -> None:
        self.push_note(message.title, message.body, self.device_iden)


# =============================================================================
# Pushover
# =============================================================================

# Pushover tokens and user keys are 30 characters; anything under 10 is
# certainly not one.
PUSHOVER_MIN_KEY_LENGTH = 10


def encode_pushover_credential(api_token: str, user_key: str) -> str:
    """Join a Pushover token and user key into the stored 'token:userkey' form."""
    return f"{api_token}:{user_key}"


def split_pushover_credential(credential: Optional[str]) -> tuple[str, str]:
    """
    Split a stored 'token:userkey' credential.

    Splits on the first colon and trims both halves.

    Raises:
        CredentialError: If there is no colon, either half is shorter than
            PUSHOVER_MIN_KEY_LENGTH, or either half contains a colon
    """
    if not credential or ":" not in credential:
        raise CredentialError("Invalid Pushover API key format. Expected format: 'token:userkey'")

    api_token, user_key = credential.split(":", 1)
    api_token = api_token.strip()
    user_key = user_key.strip()

    if len(api_token) < PUSHOVER_MIN_KEY_LENGTH or len(user_key) < PUSHOVER_MIN_KEY_LENGTH:
        raise CredentialError(
            f"Invalid Pushover API token or user key format - "
            f"token length: {len(api_token)}, key length: {len(user_key)}"
        )

    if ":" in api_token or ":" in user_key:
        raise CredentialError("Invalid Pushover token or key - contains colon character")

    return api_token, user_key


class PushoverChannel(ChannelAdapter):
    """
    Pushover channel.

    Credentials arrive as one 'token:userkey' string. ``post_message`` raises
    DeliveryError for every kind of failure; ``send`` reports it as a failed
    result.
    """

    kind = ChannelKind.PUSHOVER

    def __init__(
        self,
        api_url: str = "https://api.pushover.net/1/messages.json",
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
        history_size: int = 100,
    ):
        super().__init__(timeout=timeout, history_size=history_size)
        self.api_url = api_url
        self._client = httpx.Client(timeout=timeout, transport=transport)
        self._api_token: Optional[str] = None
        self._user_key: Optional[str] = None

    def initialize(self, credential: Optional[str]) -> bool:
        try:
            api_token, user_key = split_pushover_credential(credential)
        except CredentialError as e:
            logger.warning(str(e))
            self._api_token = None
            self._user_key = None
            self._ready = False
            return False

        self._api_token = api_token
        self._user_key = user_key
        self._ready = True
        logger.info("Pushover client initialized")
        return True

    def recipient(self, settings: UserNotificationSettings) -> Optional[str]:
        if not self._user_key:
            return None
        return f"{self._user_key[:5]}..."

    def post_message(
        self,
        title: str,
        message: str,
        url: Optional[str] = None,
        url_title: Optional[str] = None,
        priority: int = 0,
        sound: Optional[str] = None,
        device: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        Post a message to Pushover.

        Returns:
            The decoded provider response

        Raises:
            DeliveryError: If the client is not initialized, the request
                fails, Pushover answers with anything but 200, or the body
                is not a Pushover acknowledgement
        """
        if not self._api_token or not self._user_key:
            raise DeliveryError(self.kind, "Pushover client not initialized")

        payload = {
            "token": self._api_token,
            "user": self._user_key,
            "title": title,
            "message": message,
            "url": url,
            "url_title": url_title,
            "priority": priority or 0,
            "sound": sound,
            "device": device,
        }

        logger.info(f"[{self.tag}] Sending notification to {self._user_key[:5]}...")

        try:
            response = self._client.post(self.api_url, json=payload)
        except httpx.HTTPError as e:
            raise DeliveryError(self.kind, f"No response received from Pushover API: {e}") from e

        if response.status_code != 200:
            raise DeliveryError(
                self.kind,
                f"Pushover API error: {response.status_code} - {response.text}",
            )

        try:
            body = response.json()
        except ValueError as e:
            raise DeliveryError(self.kind, "Malformed response from Pushover API") from e

        if not isinstance(body, dict) or body.get("status") != 1:
            raise DeliveryError(self.kind, f"Malformed response from Pushover API: {body}")

        return body

    def _deliver(self, message: RenderedMessage, settings: UserNotificationSettings) -> None:
        self.post_message(
            title=message.title,
            message=message.body,
            url=message.url,
            priority=message.priority,
            sound=message.sound,
        )
