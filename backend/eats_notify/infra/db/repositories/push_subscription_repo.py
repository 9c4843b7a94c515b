"""Push subscription repository."""
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from eats_notify.domain.push.models import PushSubscription
from eats_notify.infra.db.base import translate_errors
from eats_notify.infra.db.models.app_setting import AppSettingModel
from eats_notify.infra.db.models.push_subscription import PushSubscriptionModel


class PushSubscriptionRepository:
    """Push subscriptions keyed by user id."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def upsert(self, subscription: PushSubscription) -> PushSubscription:
        """Insert or update by user_id. A new subscription for the same user overwrites."""
        async with translate_errors("push_subscriptions.upsert"):
            async with self.session_factory() as session:
                row = await session.get(PushSubscriptionModel, subscription.user_id)
                if row is None:
                    row = PushSubscriptionModel(user_id=subscription.user_id)
                    session.add(row)
                row.endpoint = subscription.endpoint
                row.p256dh_key = subscription.p256dh_key
                row.auth_key = subscription.auth_key
                row.updated_at = subscription.updated_at
                await session.commit()
                await session.refresh(row)
                return PushSubscription.model_validate(row)

    async def get_by_user(self, user_id: str) -> Optional[PushSubscription]:
        async with translate_errors("push_subscriptions.get_by_user"):
            async with self.session_factory() as session:
                result = await session.execute(
                    select(PushSubscriptionModel).where(PushSubscriptionModel.user_id == user_id)
                )
                row = result.scalar_one_or_none()
                return PushSubscription.model_validate(row) if row else None


class AppSettingsRepository:
    """Reads server-held key/value settings."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get_value(self, key: str) -> Optional[str]:
        async with translate_errors("app_settings.get_value"):
            async with self.session_factory() as session:
                row = await session.get(AppSettingModel, key)
                return row.value if row else None

    async def set_value(self, key: str, value: Optional[str]) -> None:
        async with translate_errors("app_settings.set_value"):
            async with self.session_factory() as session:
                row = await session.get(AppSettingModel, key)
                if row is None:
                    session.add(AppSettingModel(key=key, value=value))
                else:
                    row.value = value
                await session.commit()
