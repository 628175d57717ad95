"""
Process-wide channel status table.

Email needs no credentials and is ready from process start. The other
channels become ready only after their adapter accepts credentials.
"""

import logging
from dataclasses import replace
from typing import Optional

from notifications.models import ChannelKind, ChannelStatus

logger = logging.getLogger("notification_registry")


class ChannelRegistry:
    """
    Tracks whether each channel is initialized and enabled.

    Not locked itself; the NotificationManager serializes access.
    """

    def __init__(self):
        self._status: dict[ChannelKind, ChannelStatus] = {
            kind: ChannelStatus() for kind in ChannelKind
        }
        self._status[ChannelKind.EMAIL] = ChannelStatus(initialized=True, enabled=True)

    def get(self, kind: ChannelKind) -> ChannelStatus:
        """Get a copy of one channel's status."""
        return replace(self._status[kind])

    def is_initialized(self, kind: ChannelKind) -> bool:
        return self._status[kind].initialized

    def set_initialized(
        self,
        kind: ChannelKind,
        initialized: bool,
        error: Optional[str] = None,
    ) -> ChannelStatus:
        """
        Record the outcome of an adapter initialization.

        ``enabled`` always follows ``initialized``. A successful
        initialization clears any earlier error.
        """
        status = ChannelStatus(
            initialized=initialized,
            enabled=initialized,
            error=None if initialized else error,
        )
        self._status[kind] = status
        if initialized:
            logger.info(f"Channel {kind.value} ready")
        else:
            logger.warning(f"Channel {kind.value} not ready: {error}")
        return replace(status)

    def snapshot(self) -> dict[ChannelKind, ChannelStatus]:
        """Copy of every channel's status, safe to hand to callers."""
        return {kind: replace(status) for kind, status in self._status.items()}
