from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z


# Singleton primary key: there is exactly one AppSettings row
APP_SETTINGS_ID = 1


class AppSettings(db.Model):
    """
    Application-wide settings (singleton row, id=APP_SETTINGS_ID).

    notification_rules: {status: {"enabled": bool, "days": int}}. Consumed
    only by alert_service; the order engine never reads settings.
    """
    __tablename__ = "app_settings"

    id = db.Column(db.Integer, primary_key=True)
    store_name = db.Column(db.String(255), nullable=False)
    notification_rules = db.Column(db.JSON, nullable=False, default=dict)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self):
        return {
            "store_name": self.store_name,
            "notification_rules": dict(self.notification_rules or {}),
            "updated_at": to_utc_z(self.updated_at),
        }
