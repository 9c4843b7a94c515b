"""Push subscription database model."""
from sqlalchemy import Column, DateTime, String, Text

from eats_notify.domain.common.types import utcnow
from eats_notify.infra.db.base import Base


class PushSubscriptionModel(Base):
    """Browser push subscription; one row per user, overwritten on re-subscribe."""

    __tablename__ = "push_subscriptions"

    user_id = Column(String, primary_key=True)
    endpoint = Column(String(1024), nullable=False)
    p256dh_key = Column(Text, nullable=True)
    auth_key = Column(Text, nullable=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
