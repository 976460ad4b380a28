"""vcluster API configuration models."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, field_validator

from vcluster_ops.integrations.vcluster.exceptions import VClusterConfigError
from vcluster_ops.integrations.vcluster.retry import RetryPolicy

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "vcluster-ops" / "config.yaml"

# Environment variable -> config key
ENV_OVERRIDES: dict[str, str] = {
    "VCLUSTER_BASE_URL": "base_url",
    "VCLUSTER_USERNAME": "username",
    "VCLUSTER_PASSWORD": "password",
    "VCLUSTER_TIMEOUT": "timeout",
    "VCLUSTER_MAX_RETRIES": "max_retries",
}


class PollPolicy(BaseModel):
    """Fixed-interval polling budget used while waiting for convergence."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    interval: float = 10.0
    max_attempts: int = 60

    @field_validator("max_attempts")
    @classmethod
    def validate_max_attempts(cls, v: int) -> int:
        """Validate at least one poll is made."""
        if v < 1:
            raise ValueError("max_attempts must be at least 1")
        return v


class VClusterConfig(BaseModel):
    """Connection, credential and resilience settings.

    Built once at setup and read-only afterwards; every client created
    from it shares the same base URL, credentials and retry policy.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    base_url: str = Field(..., description="Base URL of the vcluster API")
    username: str = Field(..., description="Username for /login")
    password: SecretStr = Field(..., description="Password for /login")
    timeout: int = Field(default=300, description="HTTP client timeout in seconds")
    max_retries: int = Field(default=3, description="Retries for failed requests")
    verify_ssl: bool = True
    initial_delay: float = 1.0
    max_delay: float = 30.0
    backoff_multiplier: float = 2.0
    poll_interval: float = 10.0
    poll_max_attempts: int = 60
    delete_grace_interval: float = 2.0

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate base URL format."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        """Validate timeout is positive."""
        if v <= 0:
            raise ValueError("timeout must be positive")
        return v

    @field_validator("max_retries")
    @classmethod
    def validate_retries(cls, v: int) -> int:
        """Validate retries is non-negative."""
        if v < 0:
            raise ValueError("max_retries must be non-negative")
        return v

    @field_validator("delete_grace_interval", "poll_interval")
    @classmethod
    def validate_interval(cls, v: float) -> float:
        """Validate intervals are non-negative."""
        if v < 0:
            raise ValueError("intervals must be non-negative")
        return v

    def retry_policy(self) -> RetryPolicy:
        """Return the retry policy shared by every call of this client."""
        return RetryPolicy(
            max_attempts=self.max_retries,
            initial_delay=self.initial_delay,
            max_delay=self.max_delay,
            multiplier=self.backoff_multiplier,
        )

    def poll_policy(self) -> PollPolicy:
        """Return the convergence polling budget."""
        return PollPolicy(interval=self.poll_interval, max_attempts=self.poll_max_attempts)

    @classmethod
    def from_env(cls, base_config: dict[str, Any] | None = None) -> VClusterConfig:
        """Create configuration with environment variable overrides.

        Environment variables take precedence over base_config values.

        Supported environment variables:
            VCLUSTER_BASE_URL: Base URL of the API
            VCLUSTER_USERNAME: Login username
            VCLUSTER_PASSWORD: Login password
            VCLUSTER_TIMEOUT: HTTP timeout in seconds
            VCLUSTER_MAX_RETRIES: Retry budget per request

        Raises:
            VClusterConfigError: If the merged configuration is invalid.
        """
        config_dict = base_config.copy() if base_config else {}
        for env_var, key in ENV_OVERRIDES.items():
            if value := os.environ.get(env_var):
                config_dict[key] = value

        try:
            return cls.model_validate(config_dict)
        except ValidationError as e:
            raise VClusterConfigError("Invalid vcluster configuration", details=str(e)) from e

    @classmethod
    def load(cls, path: Path | None = None) -> VClusterConfig:
        """Load configuration from a YAML file, then apply environment overrides.

        A missing file is accepted when the environment supplies the
        required settings.

        Raises:
            VClusterConfigError: If the file is malformed or settings are missing.
        """
        config_path = path or DEFAULT_CONFIG_PATH
        data: dict[str, Any] = {}
        if config_path.exists():
            try:
                with config_path.open() as f:
                    loaded = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise VClusterConfigError("Invalid config file format", details=str(e)) from e
            if loaded is not None and not isinstance(loaded, dict):
                raise VClusterConfigError(
                    "Invalid config file format",
                    details=f"{config_path} must contain a mapping",
                )
            data = loaded or {}
        elif path is not None:
            raise VClusterConfigError(
                "Config file not found",
                details=str(config_path),
            )
        return cls.from_env(data)
