# backend/app/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/dropship.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///dropship.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Seed value for the AppSettings singleton on first read
    DEFAULT_STORE_NAME = os.environ.get("STORE_NAME", "My Store")

    # How often `flask alerts scan --watch` re-scans orders and products
    ALERT_SCAN_INTERVAL_SECONDS = int(os.environ.get("ALERT_SCAN_INTERVAL_SECONDS", "1800"))
