"""
Runtime settings for the notification service.

Loaded from environment variables prefixed with SUBTRACKR_ (or a .env file).
No outbound call has a timeout of its own; ``delivery_timeout`` bounds every
one of them so a slow provider cannot stall a reminder fan-out.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Notification service settings loaded from environment variables."""

    # --- Household data ---
    data_dir: Path = Path(__file__).parent.parent / "data"
    default_user_id: Optional[int] = None

    # --- Email (falls back to a logging transport when smtp_host is empty) ---
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    email_sender: str = '"SubTrackr" <notifications@subtrackr.app>'

    # --- Web Push (VAPID) ---
    vapid_public_key: str = ""
    vapid_private_key: str = ""
    vapid_contact_email: str = "admin@subtrackr.app"

    # --- Push providers ---
    pushbullet_api_url: str = "https://api.pushbullet.com/v2"
    pushover_api_url: str = "https://api.pushover.net/1/messages.json"

    # --- Dispatch ---
    delivery_timeout: float = 10.0
    sent_history_size: int = 100
    log_level: str = "INFO"

    model_config = {
        "env_prefix": "SUBTRACKR_",
        "env_file": ".env",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton."""
    return Settings()
