import unittest
from flask import Flask

from app.extensions import db
from app.models import AppSettings
from app.services import settings_service
from app.validation import ValidationError


class SettingsServiceTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = Flask(__name__)
        cls.app.config.update(
            SECRET_KEY="test",
            SQLALCHEMY_DATABASE_URI="sqlite:///:memory:",
            SQLALCHEMY_TRACK_MODIFICATIONS=False,
            TESTING=True,
            DEFAULT_STORE_NAME="Nile Store",
        )
        db.init_app(cls.app)
        cls.ctx = cls.app.app_context()
        cls.ctx.push()
        from app import models  # noqa: F401
        db.create_all()

    @classmethod
    def tearDownClass(cls):
        db.session.remove()
        db.drop_all()
        cls.ctx.pop()

    def setUp(self):
        db.session.query(AppSettings).delete()
        db.session.commit()

    def test_first_read_creates_singleton_with_default_name(self):
        settings = settings_service.get_settings()
        self.assertEqual(settings.store_name, "Nile Store")
        self.assertEqual(settings.notification_rules, {})
        self.assertEqual(db.session.query(AppSettings).count(), 1)

        settings_service.get_settings()
        self.assertEqual(db.session.query(AppSettings).count(), 1)

    def test_update_store_name_and_rules(self):
        settings = settings_service.update_settings({
            "store_name": "  Delta Shop ",
            "notification_rules": {"shipped": {"enabled": True, "days": 4}},
        })
        self.assertEqual(settings.store_name, "Delta Shop")
        self.assertEqual(settings.notification_rules, {"SHIPPED": {"enabled": True, "days": 4}})

    def test_legacy_status_labels_stored_as_codes(self):
        settings = settings_service.update_settings({
            "notification_rules": {"تحت المراجعة": {"enabled": True, "days": 1}},
        })
        self.assertIn("UNDER_REVIEW", settings.notification_rules)

    def test_rejects_unknown_status(self):
        with self.assertRaises(ValidationError):
            settings_service.update_settings({"notification_rules": {"LOST": {"enabled": True, "days": 1}}})

    def test_rejects_negative_days(self):
        with self.assertRaises(ValidationError):
            settings_service.update_settings({"notification_rules": {"SHIPPED": {"enabled": True, "days": -1}}})

    def test_rejects_blank_store_name(self):
        with self.assertRaises(ValidationError):
            settings_service.update_settings({"store_name": "   "})

    def test_rejects_unknown_field(self):
        with self.assertRaises(ValidationError):
            settings_service.update_settings({"theme": "dark"})
