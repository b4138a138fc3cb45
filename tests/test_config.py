"""Tests for configuration loading."""

import pytest
from decimal import Decimal

from commute_ledger.config import get_settings, validate_all_settings


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestValidateAllSettings:
    """Tests for the startup settings check."""

    def test_missing_google_sheets(self, monkeypatch):
        """Test that unconfigured Sheets is reported, not raised."""
        monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
        monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)

        status = validate_all_settings()

        assert status["google_sheets"] is False
        assert "google_sheets_error" in status
        assert status["app"] is True

    def test_configured_google_sheets(self, monkeypatch, tmp_path):
        """Test a complete Sheets configuration."""
        credentials = tmp_path / "credentials.json"
        credentials.write_text("{}")
        monkeypatch.setenv("GOOGLE_SHEETS_CREDENTIALS_PATH", str(credentials))
        monkeypatch.setenv("GOOGLE_SHEETS_SPREADSHEET_ID", "sheet-123")

        status = validate_all_settings()

        assert status["google_sheets"] is True
        assert get_settings().google_sheets.counters_sheet_name == "Counters"

    def test_invalid_app_settings(self, monkeypatch):
        """Test that a bad threshold is reported."""
        monkeypatch.setenv("MAX_ROUNDTRIP_COST", "-5")

        status = validate_all_settings()

        assert status["app"] is False
        assert "app_error" in status


class TestAppSettings:
    """Tests for application defaults."""

    def test_defaults(self, monkeypatch):
        """Test default presentation and validation values."""
        for name in ("CURRENCY_SYMBOL", "FUTURE_DATE_TOLERANCE_DAYS", "MAX_ROUNDTRIP_COST"):
            monkeypatch.delenv(name, raising=False)

        app = get_settings().app

        assert app.currency_symbol == "€"
        assert app.future_date_tolerance_days == 31
        assert app.max_roundtrip_cost == Decimal("500")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
