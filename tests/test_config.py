"""
Tests for configuration loading.
"""

import pytest

from mealshare.config import AppSettings, GoogleSheetsSettings, get_settings, validate_all_settings


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestAppSettings:
    """Tests for AppSettings."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("CURRENCY", raising=False)
        monkeypatch.delenv("MAX_CSV_ROWS", raising=False)
        settings = AppSettings(_env_file=None)
        assert settings.currency == "AED"
        assert settings.max_csv_rows == 5000
        assert settings.future_date_tolerance_days == 7

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("CURRENCY", "EUR")
        assert AppSettings(_env_file=None).currency == "EUR"

    def test_rejects_unknown_log_level(self):
        with pytest.raises(ValueError):
            AppSettings(_env_file=None, log_level="LOUD")


class TestGoogleSheetsSettings:
    """Tests for GoogleSheetsSettings."""

    def test_missing_credentials_file_warns(self, monkeypatch, tmp_path):
        """Test a missing credentials file warns instead of failing."""
        monkeypatch.setenv("GOOGLE_SHEETS_CREDENTIALS_PATH", str(tmp_path / "missing.json"))
        monkeypatch.setenv("GOOGLE_SHEETS_SPREADSHEET_ID", "sheet-123")

        with pytest.warns(UserWarning, match="credentials file not found"):
            settings = GoogleSheetsSettings()
        assert settings.spreadsheet_id == "sheet-123"
        assert settings.groceries_sheet_name == "Groceries"


class TestValidateAllSettings:
    """Tests for the startup check."""

    def test_reports_unconfigured_sheets(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
        monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)

        results = validate_all_settings()
        assert results["app"] is True
        assert results["google_sheets"] is False
        assert "google_sheets_error" in results


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
