"""Key/value application settings held server-side (e.g. VAPID public key)."""
from sqlalchemy import Column, String, Text

from eats_notify.infra.db.base import Base


class AppSettingModel(Base):
    __tablename__ = "app_settings"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=True)
