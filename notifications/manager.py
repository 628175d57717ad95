"""
Notification manager: fans one reminder out to every usable channel.

The manager owns the channel registry and the settings store and is the only
thing that initializes adapters. Adapters are initialized as a side effect of
a settings update that carries new credentials. Member opt-ins and channel
health are kept apart: a member may stay opted in to a channel that is
currently down, and dispatch checks both.

Design decisions:
- Constructed explicitly and shared by the composition root (no module global)
- One kind -> adapter table; adding a channel means registering it here
- A channel is attempted only if the member enabled it, the registry says it
  is initialized, and the adapter has an address for the member
- Each send is isolated: an exception from one channel only turns that
  channel's result into False
- Sends run sequentially on a snapshot taken under the lock, so a slow
  provider never blocks settings updates
"""

import logging
import threading
from typing import Optional, Union

from household.data_store import HouseholdStore
from notifications.channels import (
    ChannelAdapter,
    EmailChannel,
    PushbulletChannel,
    PushoverChannel,
    SMTPTransport,
    VapidCredentials,
    WebPushChannel,
    encode_pushover_credential,
    split_pushover_credential,
)
from notifications.config import Settings
from notifications.errors import CredentialError, NotFoundError
from notifications.models import (
    ChannelKind,
    ChannelStatus,
    RenderedMessage,
    ReminderPayload,
    SettingsUpdate,
    UserNotificationSettings,
    empty_results,
)
from notifications.registry import ChannelRegistry
from notifications.settings_store import SettingsStore
from notifications.templates import render_reminder, render_test_message, sample_reminder_payload

logger = logging.getLogger("notification_manager")


# Channels whose credentials can be recovered from a member's saved API keys
SAVED_KEY_SERVICES = {
    ChannelKind.PUSHBULLET: "pushbullet",
    ChannelKind.PUSHOVER: "pushover",
}


class NotificationManager:
    """
    Coordinates channel setup and reminder dispatch.

    Example:
        manager = NotificationManager(
            settings_store=SettingsStore(household),
            registry=ChannelRegistry(),
            household=household,
            email=EmailChannel(),
            webpush=WebPushChannel(),
            pushbullet=PushbulletChannel(),
            pushover=PushoverChannel(),
        )
        manager.update_user_settings(1, SettingsUpdate(pushbullet_api_key="o.abc..."))
        results = manager.send_reminders(1, subscription)
    """

    def __init__(
        self,
        settings_store: SettingsStore,
        registry: ChannelRegistry,
        household: HouseholdStore,
        email: EmailChannel,
        webpush: WebPushChannel,
        pushbullet: PushbulletChannel,
        pushover: PushoverChannel,
    ):
        self.settings_store = settings_store
        self.registry = registry
        self.household = household
        self.adapters: dict[ChannelKind, ChannelAdapter] = {
            ChannelKind.EMAIL: email,
            ChannelKind.WEBPUSH: webpush,
            ChannelKind.PUSHBULLET: pushbullet,
            ChannelKind.PUSHOVER: pushover,
        }
        self._lock = threading.RLock()

    # =========================================================================
    # Settings
    # =========================================================================

    def ensure_user_settings(self, user_id: int) -> UserNotificationSettings:
        """
        Get a member's settings, creating them on first access.

        Raises:
            NotFoundError: If the member does not exist
        """
        with self._lock:
            return self.settings_store.ensure(user_id)

    def update_user_settings(
        self,
        user_id: int,
        update: SettingsUpdate,
    ) -> UserNotificationSettings:
        """
        Merge a partial settings update, initializing adapters for new credentials.

        - A changed Pushbullet key re-initializes the Pushbullet adapter
        - A changed Pushover token/user key re-initializes the Pushover adapter
        - A changed Web Push subscription enables Web Push for the member

        A Pushbullet or Pushover enablement in ``update.channels`` only sticks
        if that adapter is initialized; Web Push only sticks with a stored
        subscription. A failed re-initialization also turns off that
        channel for this member. Flags this update does not touch are left
        alone even while the channel is down.

        Raises:
            NotFoundError: If the member does not exist
        """
        with self._lock:
            current = self.settings_store.ensure(user_id)
            failed = self._initialize_changed_channels(current, update)

            settings = self.settings_store.merge(user_id, update)

            if (
                update.webpush_subscription is not None
                and update.webpush_subscription != current.webpush_subscription
            ):
                # VAPID keys are global; nothing to initialize per member
                settings = self.settings_store.set_channel(user_id, ChannelKind.WEBPUSH, True)

            requested = {kind for kind, on in (update.channels or {}).items() if on}
            return self._gate_channels(settings, requested | failed)

    def _initialize_changed_channels(
        self,
        current: UserNotificationSettings,
        update: SettingsUpdate,
    ) -> set[ChannelKind]:
        """Initialize adapters for changed credentials. Returns the kinds that failed."""
        failed = set()
        if (
            update.pushbullet_api_key is not None
            and update.pushbullet_api_key != current.pushbullet_api_key
        ):
            if not self._initialize_adapter(
                ChannelKind.PUSHBULLET,
                update.pushbullet_api_key,
                "Failed to initialize Pushbullet",
            ):
                failed.add(ChannelKind.PUSHBULLET)

        if update.pushover_api_token is not None or update.pushover_user_key is not None:
            api_token = update.pushover_api_token or current.pushover_api_token
            user_key = update.pushover_user_key or current.pushover_user_key
            changed = (
                api_token != current.pushover_api_token
                or user_key != current.pushover_user_key
            )
            if changed and api_token and user_key:
                if not self._initialize_adapter(
                    ChannelKind.PUSHOVER,
                    encode_pushover_credential(api_token, user_key),
                    "Failed to initialize Pushover",
                ):
                    failed.add(ChannelKind.PUSHOVER)

        return failed

    def _initialize_adapter(self, kind: ChannelKind, credentials, error: str) -> bool:
        initialized = self.adapters[kind].initialize(credentials)
        self.registry.set_initialized(kind, initialized, error=error)
        return initialized

    def _gate_channels(
        self,
        settings: UserNotificationSettings,
        kinds: set[ChannelKind],
    ) -> UserNotificationSettings:
        """
        Turn off enablements among ``kinds`` that the channel cannot honour yet.

        Only the kinds an update asked for, or whose initialization it broke,
        are checked. Flags stored by earlier updates are member intent and
        stay as they are while a channel is down.
        """
        for kind in SAVED_KEY_SERVICES:
            if kind not in kinds:
                continue
            if settings.channels.get(kind) and not self.registry.is_initialized(kind):
                logger.warning(
                    f"Not enabling {kind.value} for user {settings.user_id}: channel not initialized"
                )
                settings = self.settings_store.set_channel(settings.user_id, kind, False)

        webpush = self.adapters[ChannelKind.WEBPUSH]
        if (
            ChannelKind.WEBPUSH in kinds
            and settings.channels.get(ChannelKind.WEBPUSH)
            and not webpush.has_target(settings)
        ):
            logger.warning(
                f"Not enabling webpush for user {settings.user_id}: no push subscription stored"
            )
            settings = self.settings_store.set_channel(settings.user_id, ChannelKind.WEBPUSH, False)

        return settings

    # =========================================================================
    # Channel status
    # =========================================================================

    def initialize_web_push(self, credentials: VapidCredentials) -> bool:
        """Set the process-wide VAPID keys. Usually called once at startup."""
        with self._lock:
            return self._initialize_adapter(
                ChannelKind.WEBPUSH,
                credentials,
                "Failed to initialize Web Push",
            )

    def get_channel_status(self) -> dict[ChannelKind, ChannelStatus]:
        """Snapshot of every channel's status (a copy)."""
        with self._lock:
            return self.registry.snapshot()

    @property
    def vapid_public_key(self) -> Optional[str]:
        return self.adapters[ChannelKind.WEBPUSH].public_key

    # =========================================================================
    # Dispatch
    # =========================================================================

    def send_reminders(self, user_id: int, subscription) -> dict[ChannelKind, bool]:
        """
        Send a payment reminder on every channel the member can receive.

        Args:
            user_id: Household member to remind
            subscription: Any record with ``name``, ``due_date`` and ``amount``

        Returns:
            Map with every ChannelKind; False for channels that were skipped
            or failed

        Raises:
            NotFoundError: If the member does not exist
        """
        payload = ReminderPayload.from_subscription(subscription)
        logger.info(
            f"Sending reminders for {payload.subscription_name} to user {user_id}"
        )
        return self._dispatch(user_id, render_reminder(payload), list(ChannelKind))

    def send_subscription_reminder(self, user_id: int, subscription_id: int) -> dict[ChannelKind, bool]:
        """
        Look up a subscription and send its reminders.

        Raises:
            NotFoundError: If the subscription does not exist or belongs to
                another member
        """
        subscription = self.household.get_subscription(subscription_id)
        if subscription is None or subscription.user_id != user_id:
            raise NotFoundError(f"Subscription with ID {subscription_id} not found")
        return self.send_reminders(user_id, subscription)

    def send_test_notification(self, user_id: int, channel: Union[ChannelKind, str]) -> bool:
        """
        Send one synthetic notification on exactly one channel.

        Pushbullet and Pushover credentials the member saved earlier are
        loaded first if the channel is not ready for them.

        Returns:
            True if delivered; False when the channel is not configured or
            delivery failed

        Raises:
            NotFoundError: If the member does not exist
        """
        try:
            kind = ChannelKind(channel)
        except ValueError:
            logger.warning(f"Unknown notification channel: {channel}")
            return False

        self.ensure_user_settings(user_id)

        if kind in SAVED_KEY_SERVICES:
            self._recover_saved_credentials(user_id, kind)

        if kind == ChannelKind.WEBPUSH:
            message = render_reminder(sample_reminder_payload())
        else:
            message = render_test_message()

        return self._dispatch(user_id, message, [kind])[kind]

    def _recover_saved_credentials(self, user_id: int, kind: ChannelKind) -> None:
        with self._lock:
            settings = self.settings_store.ensure(user_id)
            if self.registry.is_initialized(kind) and settings.channels.get(kind):
                return

        saved = self.household.get_api_key_by_service(user_id, SAVED_KEY_SERVICES[kind])
        if saved is None:
            logger.info(f"No saved {kind.value} key for user {user_id}")
            return

        if kind == ChannelKind.PUSHOVER:
            try:
                api_token, user_key = split_pushover_credential(saved.api_key)
            except CredentialError as e:
                logger.warning(f"Saved Pushover key for user {user_id} is unusable: {e}")
                return
            update = SettingsUpdate(
                pushover_api_token=api_token,
                pushover_user_key=user_key,
                channels={kind: True},
            )
        else:
            update = SettingsUpdate(pushbullet_api_key=saved.api_key, channels={kind: True})

        self.update_user_settings(user_id, update)

    def _is_usable(self, kind: ChannelKind, settings: UserNotificationSettings) -> bool:
        return (
            bool(settings.channels.get(kind))
            and self.registry.is_initialized(kind)
            and self.adapters[kind].has_target(settings)
        )

    def _dispatch(
        self,
        user_id: int,
        message: RenderedMessage,
        kinds: list[ChannelKind],
    ) -> dict[ChannelKind, bool]:
        with self._lock:
            settings = self.settings_store.ensure(user_id)
            eligible = [kind for kind in kinds if self._is_usable(kind, settings)]

        results = empty_results()
        for kind in eligible:
            results[kind] = self._send_one(kind, message, settings)
        return results

    def _send_one(
        self,
        kind: ChannelKind,
        message: RenderedMessage,
        settings: UserNotificationSettings,
    ) -> bool:
        try:
            result = self.adapters[kind].send(message, settings)
        except Exception as e:
            logger.error(f"Failed to send {kind.value} notification: {e}")
            return False

        if not result.success:
            logger.warning(f"{kind.value} notification not delivered: {result.error}")
        return result.success


def create_notification_manager(
    config: Settings,
    household: Optional[HouseholdStore] = None,
) -> NotificationManager:
    """
    Build a manager wired from configuration.

    Uses SMTP when ``smtp_host`` is set and the logging transport otherwise,
    and sets the VAPID keys when both are configured.
    """
    household = household or HouseholdStore(data_dir=config.data_dir)

    transport = None
    if config.smtp_host:
        transport = SMTPTransport(
            host=config.smtp_host,
            port=config.smtp_port,
            username=config.smtp_username,
            password=config.smtp_password,
            use_tls=config.smtp_use_tls,
            timeout=config.delivery_timeout,
        )

    manager = NotificationManager(
        settings_store=SettingsStore(household),
        registry=ChannelRegistry(),
        household=household,
        email=EmailChannel(
            transport=transport,
            sender=config.email_sender,
            timeout=config.delivery_timeout,
            history_size=config.sent_history_size,
        ),
        webpush=WebPushChannel(
            timeout=config.delivery_timeout,
            history_size=config.sent_history_size,
        ),
        pushbullet=PushbulletChannel(
            api_url=config.pushbullet_api_url,
            timeout=config.delivery_timeout,
            history_size=config.sent_history_size,
        ),
        pushover=PushoverChannel(
            api_url=config.pushover_api_url,
            timeout=config.delivery_timeout,
            history_size=config.sent_history_size,
        ),
    )

    if config.vapid_public_key and config.vapid_private_key:
        manager.initialize_web_push(VapidCredentials(
            public_key=config.vapid_public_key,
            private_key=config.vapid_private_key,
            contact_email=config.vapid_contact_email,
        ))

    return manager
