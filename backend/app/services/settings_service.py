# Overview: Service-layer operations for the application settings singleton.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import APP_SETTINGS_ID, AppSettings
from ..validation import ValidationError
from .concurrency import run_in_transaction
from .order_status import ORDER_STATUSES, normalize_status


SETTINGS_MUTABLE_FIELDS = {"store_name", "notification_rules"}


def get_settings() -> AppSettings:
    """Return the settings row, creating it with defaults on first read."""
    settings = db.session.get(AppSettings, APP_SETTINGS_ID)
    if settings is not None:
        return settings

    settings = AppSettings(
        id=APP_SETTINGS_ID,
        store_name=current_app.config.get("DEFAULT_STORE_NAME") or "My Store",
        notification_rules={},
    )
    db.session.add(settings)
    db.session.commit()
    return settings


def validate_notification_rules(raw) -> dict:
    """
    Normalize {status: {"enabled": bool, "days": int}}.

    Keys may be status codes or legacy labels; they are stored as codes.
    """
    if not isinstance(raw, dict):
        raise ValidationError("notification_rules must be an object")

    rules: dict[str, dict] = {}
    for key, rule in raw.items():
        status = normalize_status(key)
        if status not in ORDER_STATUSES:
            raise ValidationError(f"Unknown status in notification_rules: {key!r}")
        if not isinstance(rule, dict):
            raise ValidationError(f"notification rule for {status} must be an object")

        enabled = rule.get("enabled", False)
        if not isinstance(enabled, bool):
            raise ValidationError(f"notification rule for {status}: enabled must be a boolean")
        days = rule.get("days", 0)
        if isinstance(days, bool) or not isinstance(days, int):
            raise ValidationError(f"notification rule for {status}: days must be an integer")
        if days < 0:
            raise ValidationError(f"notification rule for {status}: days must be >= 0")

        rules[status] = {"enabled": enabled, "days": days}
    return rules


def update_settings(patch: dict) -> AppSettings:
    if not isinstance(patch, dict):
        raise ValidationError("JSON body must be an object")
    unknown = set(patch) - SETTINGS_MUTABLE_FIELDS
    if unknown:
        raise ValidationError(f"Unknown settings field(s): {', '.join(sorted(unknown))}")

    changes: dict = {}
    if "store_name" in patch:
        name = str(patch["store_name"] or "").strip()
        if not name:
            raise ValidationError("store_name cannot be blank")
        changes["store_name"] = name
    if "notification_rules" in patch:
        changes["notification_rules"] = validate_notification_rules(patch["notification_rules"])

    def _op():
        settings = get_settings()
        for k, v in changes.items():
            setattr(settings, k, v)
        db.session.commit()
        return settings

    return run_in_transaction(_op)
