"""
Household domain models.

These stand in for the relational tables the notification core reads:
household members, their saved third-party API keys, and their
subscriptions.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field


class HouseholdMember(BaseModel):
    """
    A household member.

    There is no login; the member flagged ``is_default`` is the one the app
    acts for.
    """
    id: int = Field(..., description="Unique member identifier")
    name: str = Field(..., description="Display name")
    email: Optional[str] = Field(default=None, description="Address for email reminders")
    color: str = Field(default="#3b82f6", description="Color for UI representation")
    notification_enabled: bool = Field(default=True)
    reminder_days: int = Field(default=7, ge=0, description="Days before due date to remind")
    is_default: bool = Field(default=False)


class ReminderSettings(BaseModel):
    """The durable part of a member's notification settings."""
    enabled: bool = True
    reminder_days: int = Field(default=7, ge=0)


class ApiKey(BaseModel):
    """
    A saved credential for a third-party service.

    Pushover keys are stored as a single 'token:userkey' string.
    """
    id: int
    user_id: int
    service: str = Field(..., description="'pushbullet', 'pushover', ...")
    api_key: str
    enabled: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Subscription(BaseModel):
    """A recurring subscription a member pays for."""
    id: int
    user_id: int
    name: str
    amount: float = Field(..., ge=0)
    due_date: date
    billing_cycle: str = "monthly"
    active: bool = True
