"""Push domain models."""
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from eats_notify.domain.common.types import as_utc, utcnow


class PushPermission(str, Enum):
    """Platform notification permission."""

    DEFAULT = "default"
    GRANTED = "granted"
    DENIED = "denied"


class PushOptions(BaseModel):
    """Display options for a platform notification."""

    model_config = ConfigDict(extra="allow")

    body: Optional[str] = None
    icon: Optional[str] = None
    badge: Optional[str] = None
    vibrate: Optional[list[int]] = None
    tag: Optional[str] = None
    require_interaction: Optional[bool] = None
    data: Optional[dict[str, Any]] = None
    actions: Optional[list[dict[str, Any]]] = None

    def merged_over(self, defaults: "PushOptions") -> "PushOptions":
        """Return defaults with every option explicitly set here taking precedence."""
        return defaults.model_copy(update=self.model_dump(exclude_none=True))


class SubscriptionKeys(BaseModel):
    p256dh: Optional[str] = None
    auth: Optional[str] = None


class SubscriptionDescriptor(BaseModel):
    """What the transport hands back after subscribing a background agent."""

    endpoint: str
    keys: SubscriptionKeys = Field(default_factory=SubscriptionKeys)


class PushSubscription(BaseModel):
    """One push subscription per user, upserted by user id."""

    model_config = ConfigDict(from_attributes=True)

    user_id: str
    endpoint: str
    p256dh_key: Optional[str] = None
    auth_key: Optional[str] = None
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("updated_at")
    @classmethod
    def _updated_at_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    @classmethod
    def from_descriptor(cls, user_id: str, descriptor: SubscriptionDescriptor) -> "PushSubscription":
        return cls(
            user_id=user_id,
            endpoint=descriptor.endpoint,
            p256dh_key=descriptor.keys.p256dh,
            auth_key=descriptor.keys.auth,
            updated_at=utcnow(),
        )
