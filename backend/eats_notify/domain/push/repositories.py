"""Push domain repository protocols."""
from typing import Optional, Protocol

from eats_notify.domain.push.models import PushSubscription


class PushSubscriptionStore(Protocol):
    """Push subscriptions keyed by user."""

    async def upsert(self, subscription: PushSubscription) -> PushSubscription:
        """Insert or overwrite the user's subscription."""
        ...

    async def get_by_user(self, user_id: str) -> Optional[PushSubscription]:
        ...


class AppSettingsStore(Protocol):
    """Server-held key/value settings (e.g. the VAPID public key)."""

    async def get_value(self, key: str) -> Optional[str]:
        ...
