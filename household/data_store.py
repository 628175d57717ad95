"""
JSON-backed household store.

Provides the data the notification core needs from the rest of the app:
member profiles, durable reminder settings, saved API keys and
subscriptions.

Design decisions:
- Fixtures are loaded lazily from JSON files in the data directory
- Writes update in-memory state only
- Lookups return None for unknown ids; raising is left to the caller
"""

import json
import logging
from pathlib import Path
from typing import Optional

from household.models import ApiKey, HouseholdMember, ReminderSettings, Subscription

logger = logging.getLogger("household")


class HouseholdStore:
    """
    Data store that loads and manages the household JSON fixtures.

    Implements the user/profile, API-credential and subscription lookups
    the notification manager depends on.
    """

    def __init__(self, data_dir: Optional[Path] = None):
        """
        Initialize the store.

        Args:
            data_dir: Directory containing members.json, api_keys.json and
                     subscriptions.json. Defaults to ./data at the project root.
        """
        if data_dir is None:
            data_dir = Path(__file__).parent.parent / "data"

        self.data_dir = Path(data_dir)

        self._members: Optional[dict[int, HouseholdMember]] = None
        self._api_keys: Optional[dict[int, ApiKey]] = None
        self._subscriptions: Optional[dict[int, Subscription]] = None

    # =========================================================================
    # Data Loading (lazy)
    # =========================================================================

    def _load_json(self, filename: str) -> list[dict]:
        """Load a JSON fixture file."""
        filepath = self.data_dir / filename
        if not filepath.exists():
            logger.debug(f"No fixture file at {filepath}")
            return []
        with open(filepath, "r") as f:
            return json.load(f)

    def _ensure_members_loaded(self):
        if self._members is None:
            data = self._load_json("members.json")
            self._members = {m["id"]: HouseholdMember(**m) for m in data}

    def _ensure_api_keys_loaded(self):
        if self._api_keys is None:
            data = self._load_json("api_keys.json")
            self._api_keys = {k["id"]: ApiKey(**k) for k in data}

    def _ensure_subscriptions_loaded(self):
        if self._subscriptions is None:
            data = self._load_json("subscriptions.json")
            self._subscriptions = {s["id"]: Subscription(**s) for s in data}

    # =========================================================================
    # Member Operations
    # =========================================================================

    def get_user(self, user_id: int) -> Optional[HouseholdMember]:
        """Get a household member by ID."""
        self._ensure_members_loaded()
        return self._members.get(user_id)

    def get_all_users(self) -> list[HouseholdMember]:
        """Get all household members."""
        self._ensure_members_loaded()
        return list(self._members.values())

    def get_default_user(self) -> Optional[HouseholdMember]:
        """
        Get the member the app acts for.

        Falls back to the first member when none is flagged as default.
        """
        members = self.get_all_users()
        for member in members:
            if member.is_default:
                return member
        return members[0] if members else None

    # =========================================================================
    # Reminder Settings
    # =========================================================================

    def get_notification_settings(self, user_id: int) -> Optional[ReminderSettings]:
        """Get a member's durable reminder settings."""
        member = self.get_user(user_id)
        if member is None:
            return None
        return ReminderSettings(
            enabled=member.notification_enabled,
            reminder_days=member.reminder_days,
        )

    def update_notification_settings(
        self,
        user_id: int,
        enabled: bool,
        reminder_days: int,
    ) -> Optional[ReminderSettings]:
        """
        Update a member's durable reminder settings (in-memory only).

        Returns the new settings or None if the member does not exist.
        """
        member = self.get_user(user_id)
        if member is None:
            return None
        self._members[user_id] = member.model_copy(update={
            "notification_enabled": enabled,
            "reminder_days": reminder_days,
        })
        return ReminderSettings(enabled=enabled, reminder_days=reminder_days)

    # =========================================================================
    # API Key Operations
    # =========================================================================

    def get_api_keys(self, user_id: int) -> list[ApiKey]:
        """Get every API key a member has saved."""
        self._ensure_api_keys_loaded()
        return [k for k in self._api_keys.values() if k.user_id == user_id]

    def get_api_key_by_service(self, user_id: int, service: str) -> Optional[ApiKey]:
        """
        Get a member's saved key for one service.

        Disabled keys are skipped.
        """
        for key in self.get_api_keys(user_id):
            if key.service == service and key.enabled:
                return key
        return None

    def save_api_key(self, user_id: int, service: str, api_key: str, enabled: bool = True) -> ApiKey:
        """Save a key, replacing any key the member already has for the service."""
        self._ensure_api_keys_loaded()
        for existing in self.get_api_keys(user_id):
            if existing.service == service:
                del self._api_keys[existing.id]
        new_id = max(self._api_keys, default=0) + 1
        key = ApiKey(id=new_id, user_id=user_id, service=service, api_key=api_key, enabled=enabled)
        self._api_keys[new_id] = key
        return key

    # =========================================================================
    # Subscription Operations
    # =========================================================================

    def get_subscription(self, subscription_id: int) -> Optional[Subscription]:
        """Get a subscription by ID."""
        self._ensure_subscriptions_loaded()
        return self._subscriptions.get(subscription_id)

    def get_subscriptions(self, user_id: int) -> list[Subscription]:
        """Get all subscriptions for a member."""
        self._ensure_subscriptions_loaded()
        return [s for s in self._subscriptions.values() if s.user_id == user_id]

    # =========================================================================
    # Utility Methods
    # =========================================================================

    def reload(self):
        """Force reload all data from JSON files."""
        self._members = None
        self._api_keys = None
        self._subscriptions = None
