"""
Household data the notification core reads.

- Domain models (HouseholdMember, ApiKey, Subscription, ReminderSettings)
- JSON-backed HouseholdStore
"""

from household.models import ApiKey, HouseholdMember, ReminderSettings, Subscription
from household.data_store import HouseholdStore

__all__ = [
    "ApiKey",
    "HouseholdMember",
    "ReminderSettings",
    "Subscription",
    "HouseholdStore",
]
