"""
HTTP surface for SubTrackr notifications.

This package provides the FastAPI application that builds the
NotificationManager and exposes its operations for the default household
member.
"""

from api.main import app

__all__ = ["app"]
