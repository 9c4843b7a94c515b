"""Database models."""
from eats_notify.infra.db.models.app_setting import AppSettingModel
from eats_notify.infra.db.models.notification import NotificationModel
from eats_notify.infra.db.models.push_subscription import PushSubscriptionModel

__all__ = ["AppSettingModel", "NotificationModel", "PushSubscriptionModel"]
