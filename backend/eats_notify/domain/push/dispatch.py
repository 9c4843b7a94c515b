"""Push dispatch seam.

send_push_notification hands the stored subscription to a PushDispatcher.
The default LocalDisplayDispatcher only shows the alert on the current
device; a server-side gateway that delivers to every device behind the
subscription endpoint can be injected instead.
"""
from typing import TYPE_CHECKING, Protocol

from eats_notify.domain.push.models import PushOptions, PushSubscription

if TYPE_CHECKING:
    from eats_notify.domain.push.services import PushNotificationService


class PushDispatcher(Protocol):
    """Delivers a push message for a stored subscription."""

    async def dispatch(self, subscription: PushSubscription, title: str, options: PushOptions) -> bool:
        """Returns True if the message was handed to the platform."""
        ...


class LocalDisplayDispatcher:
    """Same-device only: shows the alert through the local push transport."""

    def __init__(self, push_service: "PushNotificationService"):
        self.push_service = push_service

    async def dispatch(self, subscription: PushSubscription, title: str, options: PushOptions) -> bool:
        return await self.push_service.show_notification(title, options)
