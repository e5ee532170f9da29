"""
Core Module - Configuration.

============================================================
RESPONSIBILITY
============================================================
Loads and validates pipeline configuration from the environment.

- .env support via python-dotenv
- Service account credentials parsed once at startup
- Missing or invalid settings fail the process immediately

============================================================
ENVIRONMENT
============================================================
GOOGLE_APPLICATION_CREDENTIALS_JSON   (required)
GCS_ANALYTICS_BUCKET                  cht-analytics-data-lake
BIGQUERY_DATASET_ID                   cht_analytics
GCP_LOCATION                          US
EXPORT_SCHEDULE_HOUR                  2
EXPORT_SCHEDULE_MINUTE                0
EXPORT_MAX_RETRIES                    3
EXPORT_RETRY_BACKOFF_SECONDS          1.0
LOG_LEVEL                             INFO
LOG_FORMAT                            text
API_HOST                              0.0.0.0
API_PORT                              8000

============================================================
"""

import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from dotenv import load_dotenv

from .constants import (
    DEFAULT_BUCKET,
    DEFAULT_DATASET,
    DEFAULT_LOCATION,
    DEFAULT_SCHEDULE_HOUR,
    DEFAULT_SCHEDULE_MINUTE,
)
from .exceptions import InvalidConfigError, MissingConfigError


CREDENTIALS_ENV = "GOOGLE_APPLICATION_CREDENTIALS_JSON"

REQUIRED_SERVICE_ACCOUNT_FIELDS = (
    "type",
    "project_id",
    "private_key_id",
    "private_key",
    "client_email",
    "client_id",
    "auth_uri",
    "token_uri",
)


def parse_credentials(raw: Optional[str]) -> Dict[str, Any]:
    """Parse service account JSON, requiring at least a project_id."""
    if not raw:
        raise MissingConfigError(CREDENTIALS_ENV)

    try:
        info = json.loads(raw)
    except json.JSONDecodeError as e:
        raise InvalidConfigError(CREDENTIALS_ENV, f"not valid JSON ({e.msg})", cause=e)

    if not isinstance(info, dict):
        raise InvalidConfigError(CREDENTIALS_ENV, "expected a JSON object")

    if not info.get("project_id"):
        raise InvalidConfigError(CREDENTIALS_ENV, "project_id not found in service account credentials")

    return info


def missing_service_account_fields(info: Mapping[str, Any]) -> List[str]:
    """Return required service account fields absent from the credentials."""
    return [name for name in REQUIRED_SERVICE_ACCOUNT_FIELDS if not info.get(name)]


def _int_env(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise InvalidConfigError(key, f"expected an integer, got {raw!r}")


def _float_env(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise InvalidConfigError(key, f"expected a number, got {raw!r}")


@dataclass
class ExportConfig:
    """Configuration for the analytics export pipeline."""

    project_id: str
    credentials_info: Dict[str, Any] = field(repr=False)

    bucket_name: str = DEFAULT_BUCKET
    dataset_id: str = DEFAULT_DATASET
    location: str = DEFAULT_LOCATION

    schedule_hour: int = DEFAULT_SCHEDULE_HOUR
    schedule_minute: int = DEFAULT_SCHEDULE_MINUTE

    max_retries: int = 3
    """Attempts per I/O call, including the first."""

    retry_backoff_seconds: float = 1.0
    """Base delay, doubled after each failed attempt."""

    log_level: str = "INFO"
    log_format: str = "text"

    api_host: str = "0.0.0.0"
    api_port: int = 8000

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "ExportConfig":
        """
        Load configuration from environment variables.

        Raises:
            ConfigurationError: on missing credentials or invalid values
        """
        if env is None:
            load_dotenv()
            env = os.environ

        credentials_info = parse_credentials(env.get(CREDENTIALS_ENV))

        config = cls(
            project_id=credentials_info["project_id"],
            credentials_info=credentials_info,
            bucket_name=env.get("GCS_ANALYTICS_BUCKET") or DEFAULT_BUCKET,
            dataset_id=env.get("BIGQUERY_DATASET_ID") or DEFAULT_DATASET,
            location=env.get("GCP_LOCATION") or DEFAULT_LOCATION,
            schedule_hour=_int_env(env, "EXPORT_SCHEDULE_HOUR", DEFAULT_SCHEDULE_HOUR),
            schedule_minute=_int_env(env, "EXPORT_SCHEDULE_MINUTE", DEFAULT_SCHEDULE_MINUTE),
            max_retries=_int_env(env, "EXPORT_MAX_RETRIES", 3),
            retry_backoff_seconds=_float_env(env, "EXPORT_RETRY_BACKOFF_SECONDS", 1.0),
            log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
            log_format=(env.get("LOG_FORMAT") or "text").lower(),
            api_host=env.get("API_HOST") or "0.0.0.0",
            api_port=_int_env(env, "API_PORT", 8000),
        )

        errors = config.validate()
        if errors:
            raise InvalidConfigError("environment", "; ".join(errors))

        return config

    def validate(self) -> List[str]:
        """Validate configuration, return list of errors."""
        errors = []

        if not self.bucket_name:
            errors.append("bucket_name must not be empty")

        if not self.dataset_id:
            errors.append("dataset_id must not be empty")

        if not 0 <= self.schedule_hour <= 23:
            errors.append("schedule_hour must be between 0 and 23")

        if not 0 <= self.schedule_minute <= 59:
            errors.append("schedule_minute must be between 0 and 59")

        if self.max_retries < 1:
            errors.append("max_retries must be at least 1")

        if self.retry_backoff_seconds < 0:
            errors.append("retry_backoff_seconds must not be negative")

        if self.log_format not in ("json", "text"):
            errors.append("log_format must be 'json' or 'text'")

        if not 0 < self.api_port < 65536:
            errors.append("api_port must be between 1 and 65535")

        return errors
