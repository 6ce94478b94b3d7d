"""
Configuration management.

Uses Pydantic Settings for environment variable handling and validation.
An optional ``config.yaml`` provides defaults; environment variables win.
"""

import json
import os
from functools import lru_cache
from typing import Any, Dict, Optional

import yaml
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings


def load_config_file(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML file."""
    if config_path is None:
        config_path = os.environ.get("LOGSHIPPER_CONFIG_FILE")

    if config_path is None:
        possible_paths = [
            "config.yaml",
            "../../config.yaml",
        ]

        for path in possible_paths:
            if os.path.exists(path):
                config_path = path
                break
        else:
            return {}

    if os.path.exists(config_path):
        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f) or {}
            return config_data
    return {}


class DestinationSettings(BaseSettings):
    """Remote bulk listener the batches are delivered to."""

    host_name: str = Field(
        default="listener.logz.io",
        validation_alias=AliasChoices("LOGSHIPPER_DESTINATION_HOST_NAME", "logzioHostName"),
        description="Listener hostname",
    )
    host_port: int = Field(
        default=8071,
        validation_alias=AliasChoices("LOGSHIPPER_DESTINATION_HOST_PORT", "logzioHostPort"),
        description="Listener port",
    )
    log_type: str = Field(
        default="cloudwatch",
        validation_alias=AliasChoices("LOGSHIPPER_DESTINATION_LOG_TYPE", "logzioLogType"),
        description="Log type tag sent as the 'type' query parameter",
    )
    scheme: str = Field(default="https", description="http or https")

    @field_validator("scheme")
    def validate_scheme(cls, v: str) -> str:
        """Only plain HTTP and TLS listeners are supported."""
        v = v.lower()
        if v not in ("http", "https"):
            raise ValueError("scheme must be 'http' or 'https'")
        return v

    class Config:
        env_prefix = "LOGSHIPPER_DESTINATION_"
        populate_by_name = True


class CredentialSettings(BaseSettings):
    """Encrypted customer token and the KMS access used to decrypt it."""

    encrypted_token: str = Field(
        default="",
        validation_alias=AliasChoices("LOGSHIPPER_CREDENTIAL_ENCRYPTED_TOKEN", "kmsEncryptedCustomerToken"),
        description="Base64 KMS ciphertext of the customer token",
    )
    aws_region: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("LOGSHIPPER_CREDENTIAL_AWS_REGION", "AWS_REGION"),
        description="Region of the KMS key (defaults to the boto3 resolution chain)",
    )

    class Config:
        env_prefix = "LOGSHIPPER_CREDENTIAL_"
        populate_by_name = True


class DeliverySettings(BaseSettings):
    """Delivery engine timing."""

    poll_interval_ms: int = Field(default=100, ge=1, description="Credential readiness poll interval")
    credential_timeout_seconds: Optional[float] = Field(
        default=10.0,
        description="Deadline for the credential to become ready; 0 or less waits forever",
    )
    request_timeout_seconds: float = Field(default=30.0, gt=0, description="HTTP request timeout")

    @field_validator("credential_timeout_seconds")
    def disable_non_positive_timeout(cls, v: Optional[float]) -> Optional[float]:
        """Non-positive deadlines mean no deadline."""
        if v is not None and v <= 0:
            return None
        return v

    @property
    def poll_interval_seconds(self) -> float:
        return self.poll_interval_ms / 1000.0

    class Config:
        env_prefix = "LOGSHIPPER_DELIVERY_"


class Settings(BaseSettings):
    """Main application settings."""

    # HTTP host (container/local mode)
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(default="json", description="'json' or 'console' log rendering")

    destination: DestinationSettings = Field(default_factory=DestinationSettings)
    credential: CredentialSettings = Field(default_factory=CredentialSettings)
    delivery: DeliverySettings = Field(default_factory=DeliverySettings)

    class Config:
        env_prefix = "LOGSHIPPER_"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance with config file and env support."""
    config_data = load_config_file()

    # Config file provides defaults, env vars override
    if config_data:
        _set_env_from_config(config_data)

    return Settings()


def _set_env_from_config(config_data: Dict[str, Any]) -> None:
    """Set environment variables from config file if not already set."""
    mappings = {
        ("server", "host"): "LOGSHIPPER_HOST",
        ("server", "port"): "LOGSHIPPER_PORT",
        ("server", "debug"): "LOGSHIPPER_DEBUG",
        ("server", "log_level"): "LOGSHIPPER_LOG_LEVEL",
        ("server", "log_format"): "LOGSHIPPER_LOG_FORMAT",
        ("destination", "host_name"): "LOGSHIPPER_DESTINATION_HOST_NAME",
        ("destination", "host_port"): "LOGSHIPPER_DESTINATION_HOST_PORT",
        ("destination", "log_type"): "LOGSHIPPER_DESTINATION_LOG_TYPE",
        ("destination", "scheme"): "LOGSHIPPER_DESTINATION_SCHEME",
        ("credential", "encrypted_token"): "LOGSHIPPER_CREDENTIAL_ENCRYPTED_TOKEN",
        ("credential", "aws_region"): "LOGSHIPPER_CREDENTIAL_AWS_REGION",
        ("delivery", "poll_interval_ms"): "LOGSHIPPER_DELIVERY_POLL_INTERVAL_MS",
        ("delivery", "credential_timeout_seconds"): "LOGSHIPPER_DELIVERY_CREDENTIAL_TIMEOUT_SECONDS",
        ("delivery", "request_timeout_seconds"): "LOGSHIPPER_DELIVERY_REQUEST_TIMEOUT_SECONDS",
    }

    for (section, key), env_var in mappings.items():
        if env_var not in os.environ:
            value = (config_data.get(section) or {}).get(key)
            if value is None:
                continue
            if isinstance(value, (dict, list)):
                os.environ[env_var] = json.dumps(value)
            else:
                os.environ[env_var] = str(value)


def reload_settings() -> Settings:
    """Reload settings (clears cache)."""
    get_settings.cache_clear()
    return get_settings()
