"""
Configuration loading.

The configuration is a YAML file whose path comes from
``CONFIGURATION_FILE_PATH`` (default ``configuration.yaml``). A ``.env`` file
is loaded first and ``${VAR}`` references in the YAML are expanded from the
environment, so access tokens can stay out of the file::

    persons:
      - name: alice
        access_token: ${OURA_TOKEN_ALICE}
    poller_interval: 300
    influxdb:
      url: http://localhost:8086
      token: ${INFLUXDB_TOKEN}
      organization: home
      bucket: oura
    pubsub:
      topic_arn_prefix: arn:aws:sns:eu-west-1:123456789012:oura-
"""

import os
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from .client import OURA_API_BASE
from .exceptions import ConfigurationError

DEFAULT_CONFIGURATION_FILE = "configuration.yaml"


class Person(BaseModel):
    """Someone whose Oura data is polled."""

    name: str = Field(..., min_length=1)
    access_token: str = Field(..., min_length=1)

    @property
    def masked_token(self) -> str:
        """Access token with all but the last four characters hidden."""
        return "*" * max(len(self.access_token) - 4, 0) + self.access_token[-4:]


class InfluxDBConfig(BaseModel):
    """Time-series sink connection."""

    url: str
    token: str
    organization: str
    bucket: str


class PubSubConfig(BaseModel):
    """SNS topics used as the pub/sub sink; topic ARN = prefix + topic name."""

    topic_arn_prefix: str
    region: str = "us-east-1"


class Config(BaseModel):
    """Complete, validated exporter configuration."""

    persons: list[Person] = Field(..., min_length=1)
    poller_interval: int = Field(..., gt=0, description="Seconds between poll cycles")
    influxdb: InfluxDBConfig | None = None
    pubsub: PubSubConfig | None = None
    api_base_url: str = OURA_API_BASE
    export_batch_size: int = Field(100, gt=0)
    initial_lookback_hours: int = Field(64, ge=0)


def resolve_config_path(path: str | Path | None = None) -> Path:
    """Explicit path, else ``CONFIGURATION_FILE_PATH``, else the default."""
    if path:
        return Path(path)
    return Path(os.getenv("CONFIGURATION_FILE_PATH", DEFAULT_CONFIGURATION_FILE))


def load_config(path: str | Path | None = None) -> Config:
    """
    Load and validate the configuration.

    Args:
        path: Optional explicit file path

    Returns:
        Validated Config

    Raises:
        ConfigurationError: If the file is missing, unreadable, or invalid
    """
    load_dotenv()
    config_path = resolve_config_path(path)

    try:
        raw_text = config_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read configuration file {config_path}: {e}") from e

    try:
        data = yaml.safe_load(os.path.expandvars(raw_text)) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file {config_path} must contain a mapping")

    try:
        return Config.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration in {config_path}:\n{e}") from e
