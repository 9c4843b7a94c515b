"""Notification database model."""
from sqlalchemy import JSON, Boolean, Column, DateTime, Index, String, Text

from eats_notify.domain.common.types import utcnow
from eats_notify.infra.db.base import Base


class NotificationModel(Base):
    """User notification: order status, delivery, promotion, system."""

    __tablename__ = "notifications"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    type = Column(String, nullable=False)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    # "metadata" is reserved on declarative classes
    meta = Column("metadata", JSON, nullable=True)
    read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    __table_args__ = (Index("ix_notifications_user_id_created_at", "user_id", "created_at"),)
