# Overview: Pytest coverage for the flask CLI command groups.

from app.models import AppSettings


class TestCli:
    def test_system_init_creates_settings(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["system", "init"])

        assert result.exit_code == 0, result.output
        assert "Test Store" in result.output
        assert db_session.query(AppSettings).count() == 1

    def test_alerts_scan_once(self, app, db_session, make_product):
        make_product("Low", stock=1, stock_threshold=3)

        result = app.test_cli_runner().invoke(args=["alerts", "scan"])

        assert result.exit_code == 0, result.output
        assert "[low_stock] Low is low on stock" in result.output

    def test_alerts_scan_quiet(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["alerts", "scan"])

        assert result.exit_code == 0, result.output
        assert "No alerts" in result.output
