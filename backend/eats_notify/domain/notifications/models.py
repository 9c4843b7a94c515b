"""Notification domain models."""
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from eats_notify.domain.common.types import as_utc


class NotificationType(str, Enum):
    """Closed set of notification types. Never changes after creation."""

    ORDER_STATUS = "order_status"
    DELIVERY = "delivery"
    PROMOTION = "promotion"
    SYSTEM = "system"


# Metadata key each type is allowed to carry
_METADATA_KEYS: dict[NotificationType, tuple[str, ...]] = {
    NotificationType.ORDER_STATUS: ("order_id",),
    NotificationType.DELIVERY: ("delivery_id",),
    NotificationType.PROMOTION: ("promotion_id",),
    NotificationType.SYSTEM: (),
}


class NotificationMetadata(BaseModel):
    """Type-dependent payload attached to a notification."""

    model_config = ConfigDict(extra="ignore")

    order_id: Optional[str] = None
    delivery_id: Optional[str] = None
    promotion_id: Optional[str] = None


def metadata_for(type: NotificationType, **ids: Optional[str]) -> Optional[dict[str, str]]:
    """Build the metadata dict for a type, dropping keys that don't belong to it."""
    allowed = _METADATA_KEYS[NotificationType(type)]
    payload = {k: v for k, v in ids.items() if k in allowed and v is not None}
    return payload or None


class NotificationDraft(BaseModel):
    """Input for creating a notification; the store assigns id and created_at."""

    user_id: str
    title: str
    message: str
    type: NotificationType
    metadata: Optional[dict[str, Any]] = None


class Notification(BaseModel):
    """Persisted user-facing notification."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    user_id: str
    title: str
    message: str
    type: NotificationType
    metadata: Optional[dict[str, Any]] = None
    read: bool = False
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def _created_at_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    @property
    def typed_metadata(self) -> NotificationMetadata:
        return NotificationMetadata.model_validate(self.metadata or {})


class ChangeKind(str, Enum):
    """Kind of store change delivered on the live feed."""

    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class ChangeEvent(BaseModel):
    """A single insert/update/delete on a user's notifications."""

    kind: ChangeKind
    user_id: str
    notification_id: str
    record: Optional[Notification] = None  # absent for deletes

    @classmethod
    def inserted(cls, record: Notification) -> "ChangeEvent":
        return cls(kind=ChangeKind.INSERT, user_id=record.user_id, notification_id=record.id, record=record)

    @classmethod
    def updated(cls, record: Notification) -> "ChangeEvent":
        return cls(kind=ChangeKind.UPDATE, user_id=record.user_id, notification_id=record.id, record=record)

    @classmethod
    def deleted(cls, user_id: str, notification_id: str) -> "ChangeEvent":
        return cls(kind=ChangeKind.DELETE, user_id=user_id, notification_id=notification_id)


def channel_for(user_id: str) -> str:
    """Live channel name for a user's notifications."""
    return f"notifications:{user_id}"
