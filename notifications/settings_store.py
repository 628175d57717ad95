"""
In-memory store of per-member notification settings.

Records are created lazily from the household store the first time a member
is touched and live for the life of the process.

Known limitation: only ``reminder_days`` is written back to the household
store. Credentials, push subscriptions and channel flags stay in this cache
and are lost on restart; raw credentials are deliberately not copied into the
durable store.
"""

import logging
from typing import Optional

from household.data_store import HouseholdStore
from notifications.errors import NotFoundError
from notifications.models import (
    ChannelKind,
    SettingsUpdate,
    UserNotificationSettings,
    default_channels,
)

logger = logging.getLogger("notification_settings")


class SettingsStore:
    """Per-member notification settings, keyed by household member id."""

    def __init__(self, household: HouseholdStore):
        self.household = household
        self._settings: dict[int, UserNotificationSettings] = {}

    def get(self, user_id: int) -> Optional[UserNotificationSettings]:
        """Get the cached record, or None if it has not been created yet."""
        return self._settings.get(user_id)

    def ensure(self, user_id: int) -> UserNotificationSettings:
        """
        Get a member's settings, creating the default record on first access.

        The default record takes the member's email address and reminder lead
        time from the household store and enables email only.

        Raises:
            NotFoundError: If the member does not exist
        """
        existing = self._settings.get(user_id)
        if existing is not None:
            return existing

        user = self.household.get_user(user_id)
        if user is None:
            raise NotFoundError(f"User with ID {user_id} not found")

        reminder = self.household.get_notification_settings(user_id)
        settings = UserNotificationSettings(
            user_id=user_id,
            email=user.email or None,
            channels=default_channels(),
            reminder_days=reminder.reminder_days if reminder else user.reminder_days,
        )
        self._settings[user_id] = settings
        logger.info(f"Initialized notification settings for user {user_id}")
        return settings

    def merge(self, user_id: int, update: SettingsUpdate) -> UserNotificationSettings:
        """
        Merge a partial update into a member's settings.

        Top-level fields are replaced when present in the update; the
        ``channels`` map is merged key by key. A changed ``reminder_days`` is
        written through to the household store.

        Raises:
            KeyError: If ``ensure`` has not run for this member
        """
        current = self._settings[user_id]
        changes = update.model_dump(exclude_none=True, exclude={"channels"})

        channels = dict(current.channels)
        if update.channels:
            channels.update(update.channels)

        merged = current.model_copy(update={**changes, "channels": channels})
        self._settings[user_id] = merged

        if update.reminder_days is not None and update.reminder_days != current.reminder_days:
            self.household.update_notification_settings(
                user_id,
                enabled=True,
                reminder_days=update.reminder_days,
            )
            logger.info(f"Persisted reminder lead time of {update.reminder_days} days for user {user_id}")

        return merged

    def set_channel(self, user_id: int, kind: ChannelKind, enabled: bool) -> UserNotificationSettings:
        """Set one channel flag without touching anything else."""
        current = self._settings[user_id]
        channels = {**current.channels, kind: enabled}
        updated = current.model_copy(update={"channels": channels})
        self._settings[user_id] = updated
        return updated

    def clear(self) -> None:
        """Drop every cached record (useful for tests)."""
        self._settings.clear()
