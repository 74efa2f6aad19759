"""Tests for configuration loading."""

import pytest

from ledger.config import (
    LedgerSettings,
    LoggingSettings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestLedgerSettings:
    """Tests for business-rule settings."""

    def test_defaults(self):
        """Test the documented defaults."""
        settings = LedgerSettings()
        assert settings.fallback_category == "Other"
        assert settings.transfer_category == "Transfer"
        assert settings.salary_cutoff_day == 25
        assert settings.salary_keywords_list == ["gehalt", "lohn", "salary"]

    def test_environment_overrides(self, monkeypatch):
        """Test reading LEDGER_* variables."""
        monkeypatch.setenv("LEDGER_SALARY_CUTOFF_DAY", "20")
        monkeypatch.setenv("LEDGER_SALARY_KEYWORDS", " Payroll , ,WAGE ")
        settings = get_settings().ledger
        assert settings.salary_cutoff_day == 20
        assert settings.salary_keywords_list == ["payroll", "wage"]

    def test_cutoff_day_range(self):
        """Test that the cutoff must be a day of month."""
        with pytest.raises(ValueError):
            LedgerSettings(salary_cutoff_day=32)


class TestStorageAndLogging:
    """Tests for the remaining sections."""

    def test_storage_defaults(self):
        """Test storage defaults."""
        settings = StorageSettings()
        assert settings.backend == "memory"
        assert settings.key_prefix == "aurimea_"
        assert settings.write_retry_attempts == 3

    def test_data_dir_must_not_be_a_file(self, tmp_path):
        """Test that a regular file is not accepted as data directory."""
        target = tmp_path / "file.txt"
        target.write_text("x")
        with pytest.raises(ValueError):
            StorageSettings(data_dir=str(target))

    def test_logging_environment(self, monkeypatch):
        """Test reading LEDGER_LOG_* variables."""
        monkeypatch.setenv("LEDGER_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("LEDGER_LOG_JSON_OUTPUT", "false")
        settings = LoggingSettings()
        assert settings.level == "DEBUG"
        assert settings.json_output is False


class TestValidateAllSettings:
    """Tests for the settings health check."""

    def test_all_valid(self):
        """Test that defaults validate."""
        assert validate_all_settings() == {"ledger": True, "storage": True, "logging": True}

    def test_invalid_section_reported(self, monkeypatch):
        """Test that a broken section is reported with its error."""
        monkeypatch.setenv("LEDGER_LOG_LEVEL", "LOUD")
        results = validate_all_settings()
        assert results["logging"] is False
        assert "logging_error" in results
        assert results["ledger"] is True
