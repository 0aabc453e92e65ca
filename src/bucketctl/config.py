"""Configuration loading and Pydantic models for bucketctl.

Configuration comes from an optional YAML file, then environment variables
(which the CLI may populate from a ``.env`` file). Environment values win.
"""

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, SecretStr

from bucketctl.errors import ConfigurationInvalid

# Environment variable -> (section, field)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "API_URL": ("storage", "endpoint_url"),
    "ACCESS_KEY": ("storage", "access_key"),
    "SECRET_KEY": ("storage", "secret_key"),
    "BUCKET_NAME": ("storage", "bucket_name"),
    "REGION": ("storage", "region"),
    "LOG_LEVEL": ("logging", "level"),
    "LOG_FORMAT": ("logging", "format"),
}


class StorageCredentials(BaseModel):
    """Endpoint, credentials and default bucket. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    endpoint_url: str = ""
    region: str = "us-east-1"
    access_key: str = ""
    secret_key: SecretStr = SecretStr("")
    bucket_name: str = ""
    path_style: bool | None = None

    @property
    def uses_path_style(self) -> bool:
        """Path-style addressing; defaults to on for custom endpoints."""
        if self.path_style is not None:
            return self.path_style
        return bool(self.endpoint_url)

    def missing_fields(self) -> list[str]:
        """Names of required fields that are empty."""
        missing = []
        if not self.access_key:
            missing.append("access_key")
        if not self.secret_key.get_secret_value():
            missing.append("secret_key")
        if not self.bucket_name:
            missing.append("bucket_name")
        return missing

    def require_complete(self) -> None:
        """Raise ConfigurationInvalid unless keys and bucket are all set."""
        missing = self.missing_fields()
        if missing:
            raise ConfigurationInvalid(f"missing configuration: {', '.join(missing)}")

    def with_bucket(self, bucket: str | None) -> "StorageCredentials":
        """Return a copy targeting ``bucket`` (unchanged when bucket is empty)."""
        if not bucket:
            return self
        return self.model_copy(update={"bucket_name": bucket})


class LoggingConfig(BaseModel):
    """Log level and output format."""

    level: str = "WARNING"
    format: str = "text"


class AppConfig(BaseModel):
    """Top-level bucketctl configuration."""

    storage: StorageCredentials = Field(default_factory=StorageCredentials)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def require_complete(self) -> None:
        """Raise ConfigurationInvalid if required storage settings are missing."""
        self.storage.require_complete()


def _parse_storage(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the storage section from YAML data.

    Accepts ``endpoint`` as an alias of ``endpoint_url`` and ``bucket`` as
    an alias of ``bucket_name``.
    """
    if data is None:
        return {}
    result: dict[str, Any] = {}
    for key, target in (
        ("endpoint_url", "endpoint_url"),
        ("endpoint", "endpoint_url"),
        ("region", "region"),
        ("access_key", "access_key"),
        ("secret_key", "secret_key"),
        ("bucket_name", "bucket_name"),
        ("bucket", "bucket_name"),
        ("path_style", "path_style"),
    ):
        if data.get(key) is not None:
            result[target] = data[key]
    return result


def _parse_logging(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the logging section from YAML data."""
    if data is None:
        return {}
    return {k: data[k] for k in ("level", "format") if data.get(k) is not None}


def load_config(path: Path | None = None, environ: Mapping[str, str] | None = None) -> AppConfig:
    """Build an AppConfig from an optional YAML file and the environment.

    Args:
        path: YAML configuration file. A path that does not exist is an error;
            None skips the file entirely.
        environ: Environment mapping (default: ``os.environ``).

    Returns:
        A validated AppConfig. Completeness is not checked here; call
        ``require_complete()`` before connecting.

    Raises:
        FileNotFoundError: If ``path`` is given but missing.
        yaml.YAMLError: If the file is not valid YAML.
    """
    raw: dict[str, Any] = {}
    if path is not None:
        with open(path, "r") as fh:
            raw = yaml.safe_load(fh) or {}

    sections: dict[str, dict[str, Any]] = {
        "storage": _parse_storage(raw.get("storage")),
        "logging": _parse_logging(raw.get("logging")),
    }

    env = os.environ if environ is None else environ
    for var, (section, field) in ENV_OVERRIDES.items():
        value = env.get(var, "")
        if value:
            sections[section][field] = value

    return AppConfig(
        storage=StorageCredentials(**sections["storage"]),
        logging=LoggingConfig(**sections["logging"]),
    )
