"""
Error types for the notification core.

Only NotFoundError is expected to cross the NotificationManager's public
boundary. Configuration problems surface as ``initialize()`` returning False
and delivery problems as a failed DeliveryResult.
"""


class NotificationError(Exception):
    """Base class for notification core errors."""


class NotFoundError(NotificationError, LookupError):
    """Raised when a household member or subscription does not exist."""


class CredentialError(NotificationError, ValueError):
    """Raised when a channel credential has the wrong shape."""


class DeliveryError(NotificationError):
    """
    Raised by a provider call that did not accept a message.

    Adapters convert this into a failed DeliveryResult at their ``send``
    boundary; it carries the channel for logging.
    """

    def __init__(self, channel: str, message: str):
        super().__init__(message)
        self.channel = channel
