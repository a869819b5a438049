"""Tests for settings and logging configuration."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
import structlog

from transcript_bridge.config import Settings, _get_bool_env, configure_logging


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self):
        """Test default values."""
        settings = Settings()

        assert settings.port == 8080
        assert settings.webhook_secret == ""
        assert settings.local_storage_enabled is True
        assert settings.language_code == "en-US"

    def test_from_env(self):
        """Test loading settings from environment."""
        env = {
            "SE_API_URL": "https://api.test",
            "SE_CLIENT_ID": "cid",
            "SE_CLIENT_SECRET": "csecret",
            "SE_OWNER": "owner-1",
            "SE_WEBHOOK_SECRET": "whsec",
            "STORAGE_PATH": "/tmp/out",
            "PORT": "9000",
            "REDACT_PII": "yes",
            "LOG_LEVEL": "DEBUG",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = Settings.from_env()

        assert settings.api_url == "https://api.test"
        assert settings.client_id == "cid"
        assert settings.owner == "owner-1"
        assert settings.webhook_secret == "whsec"
        assert settings.storage_path == Path("/tmp/out")
        assert settings.port == 9000
        assert settings.redact_pii is True
        assert settings.log_level == "DEBUG"

    def test_invalid_port_falls_back(self):
        """Test a non-numeric port uses the default."""
        with patch.dict(os.environ, {"PORT": "http"}, clear=True):
            assert Settings.from_env().port == 8080

    def test_gcp_project_selects_link_only(self):
        """Test GCP_PROJECT disables local storage."""
        with patch.dict(os.environ, {"GCP_PROJECT": "proj"}, clear=True):
            settings = Settings.from_env()

        assert settings.gcp_project == "proj"
        assert settings.local_storage_enabled is False

    def test_empty_gcp_project_ignored(self):
        """Test an empty GCP_PROJECT keeps local storage."""
        with patch.dict(os.environ, {"GCP_PROJECT": ""}, clear=True):
            assert Settings.from_env().local_storage_enabled is True

    def test_storage_dir_absolute(self):
        """Test the storage directory resolves to an absolute path."""
        assert Settings(storage_path=Path("out")).storage_dir.is_absolute()


class TestBoolEnv:
    """Tests for _get_bool_env."""

    @pytest.mark.parametrize(
        "value,expected",
        [("true", True), ("1", True), ("ON", True), ("false", False), ("no", False)],
    )
    def test_values(self, value, expected):
        """Test recognised values."""
        with patch.dict(os.environ, {"FLAG": value}):
            assert _get_bool_env("FLAG") is expected

    def test_unrecognised_uses_default(self):
        """Test unrecognised values fall back to the default."""
        with patch.dict(os.environ, {"FLAG": "maybe"}):
            assert _get_bool_env("FLAG", default=True) is True


class TestConfigureLogging:
    """Tests for configure_logging."""

    def teardown_method(self):
        structlog.reset_defaults()

    @pytest.mark.parametrize("json_output", [False, True])
    def test_logs_to_stderr(self, capsys, json_output):
        """Test log lines go to stderr, never stdout."""
        configure_logging("INFO", json_output=json_output)

        structlog.get_logger("test").info("config_test_event", key="value")

        captured = capsys.readouterr()
        assert "config_test_event" in captured.err
        assert captured.out == ""
