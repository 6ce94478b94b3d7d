"""
Tests for environment and YAML configuration.
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from logshipper.config import (
    CredentialSettings,
    DeliverySettings,
    DestinationSettings,
    load_config_file,
    reload_settings,
)


class TestDestinationSettings:
    """Listener address and log type."""

    def test_prefixed_environment(self, monkeypatch):
        monkeypatch.setenv("LOGSHIPPER_DESTINATION_HOST_NAME", "listener-eu.example.com")
        monkeypatch.setenv("LOGSHIPPER_DESTINATION_HOST_PORT", "8081")
        monkeypatch.setenv("LOGSHIPPER_DESTINATION_LOG_TYPE", "lambda")

        settings = DestinationSettings()

        assert settings.host_name == "listener-eu.example.com"
        assert settings.host_port == 8081
        assert settings.log_type == "lambda"

    def test_legacy_environment_names(self, monkeypatch):
        monkeypatch.setenv("logzioHostName", "listener.logz.io")
        monkeypatch.setenv("logzioHostPort", "8071")
        monkeypatch.setenv("logzioLogType", "CloudWatch2logzio")

        settings = DestinationSettings()

        assert settings.host_name == "listener.logz.io"
        assert settings.host_port == 8071
        assert settings.log_type == "CloudWatch2logzio"

    def test_scheme_validation(self):
        assert DestinationSettings(scheme="HTTP").scheme == "http"
        with pytest.raises(ValidationError):
            DestinationSettings(scheme="ftp")


class TestCredentialSettings:

    def test_legacy_encrypted_token_name(self, monkeypatch):
        monkeypatch.setenv("kmsEncryptedCustomerToken", "Y2lwaGVy")

        assert CredentialSettings().encrypted_token == "Y2lwaGVy"


class TestDeliverySettings:
    """Delivery timing."""

    def test_defaults(self, monkeypatch):
        for name in ("POLL_INTERVAL_MS", "CREDENTIAL_TIMEOUT_SECONDS", "REQUEST_TIMEOUT_SECONDS"):
            monkeypatch.delenv(f"LOGSHIPPER_DELIVERY_{name}", raising=False)

        settings = DeliverySettings()

        assert settings.poll_interval_ms == 100
        assert settings.poll_interval_seconds == 0.1
        assert settings.credential_timeout_seconds == 10.0

    @pytest.mark.parametrize("value", [0, -1])
    def test_non_positive_timeout_disables_deadline(self, value):
        assert DeliverySettings(credential_timeout_seconds=value).credential_timeout_seconds is None

    def test_poll_interval_must_be_positive(self):
        with pytest.raises(ValidationError):
            DeliverySettings(poll_interval_ms=0)


class TestConfigFile:
    """YAML defaults below environment variables."""

    def test_missing_file(self, tmp_path: Path):
        assert load_config_file(str(tmp_path / "absent.yaml")) == {}

    def test_file_values_become_defaults(self, tmp_path: Path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            "destination:\n"
            "  host_name: listener.example.com\n"
            "  log_type: from-file\n"
            "delivery:\n"
            "  poll_interval_ms: 250\n"
        )

        with patch.dict(os.environ, {
            "LOGSHIPPER_CONFIG_FILE": str(config_file),
            "LOGSHIPPER_DESTINATION_LOG_TYPE": "from-env",
        }):
            os.environ.pop("LOGSHIPPER_DESTINATION_HOST_NAME", None)
            os.environ.pop("LOGSHIPPER_DELIVERY_POLL_INTERVAL_MS", None)
            os.environ.pop("logzioHostName", None)
            os.environ.pop("logzioLogType", None)

            settings = reload_settings()

        assert settings.destination.host_name == "listener.example.com"
        assert settings.destination.log_type == "from-env"
        assert settings.delivery.poll_interval_ms == 250
