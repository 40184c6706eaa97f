# =============================================================================
# Cache Control Worker - Configuration
# =============================================================================
"""
Application configuration using Pydantic Settings.

Settings are read from environment variables (and an optional ``.env``
file). Command-line flags take precedence over the environment. The topic,
cache-control directive and project ID have no defaults: the worker refuses
to start without them.
"""

import argparse
import math
import re
from typing import Literal, Optional, Sequence, Union

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


class ConfigurationError(Exception):
    """Raised when required settings are missing or invalid."""
    pass


def parse_duration(value: Union[str, int, float]) -> float:
    """
    Parse a duration into seconds.

    Accepts plain numbers (seconds) or unit strings such as ``"30s"``,
    ``"1m30s"``, ``"500ms"`` and ``"2h"``.

    Raises:
        ValueError: If the value is not a valid, finite, non-negative duration
    """
    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        text = value.strip()
        try:
            seconds = float(text)
        except ValueError:
            pos = 0
            seconds = 0.0
            for match in _DURATION_PART.finditer(text):
                if match.start() != pos:
                    break
                seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
                pos = match.end()
            if not text or pos != len(text):
                raise ValueError(f"invalid duration: {value!r}")
    if not math.isfinite(seconds):
        raise ValueError(f"duration must be finite: {value!r}")
    if seconds < 0:
        raise ValueError(f"duration must not be negative: {value!r}")
    return seconds


class Settings(BaseSettings):
    """
    Worker settings loaded from environment variables.

    Attributes:
        topic: Pub/Sub subscription the bucket notifications arrive on
            (bare ID or full ``projects/<p>/subscriptions/<s>`` path)
        cache_control: Cache-Control directive to set on each object
        gcp_project_id: Google Cloud project identifier
        shutdown_timeout: Seconds to wait for in-flight messages on shutdown
        request_timeout: Seconds allowed for a single storage update call
        max_messages: Upper bound on messages handled concurrently
        delivery_mode: ``pull`` (streaming pull) or ``push`` (HTTP endpoint)
        host: Bind address for push mode
        port: Listen port for push mode
        log_level: Logging verbosity level
        service_name: Name of this service for logging
    """

    # Required
    topic: str
    cache_control: str
    gcp_project_id: str

    # Lifecycle
    shutdown_timeout: float = 60.0
    request_timeout: float = 30.0
    max_messages: int = Field(default=100, ge=1)

    # Delivery
    delivery_mode: Literal["pull", "push"] = "pull"
    host: str = "0.0.0.0"
    port: int = 8080

    # Application Configuration
    log_level: str = "INFO"
    service_name: str = "cache-control-worker"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    @field_validator("topic", "cache_control", "gcp_project_id")
    @classmethod
    def _require_non_empty(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("shutdown_timeout", "request_timeout", mode="before")
    @classmethod
    def _parse_duration(cls, value):
        return parse_duration(value)

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level {value!r}")
        return level


def build_parser() -> argparse.ArgumentParser:
    """Command-line flags. Unset flags fall back to the environment."""
    parser = argparse.ArgumentParser(
        prog="cache-control-worker",
        description="Set Cache-Control on Cloud Storage objects from bucket notifications.",
    )
    parser.add_argument("--topic", help="Pub/Sub subscription to listen to bucket events")
    parser.add_argument("--cache-control", dest="cache_control", help="Cache-Control string to set")
    parser.add_argument("--project-id", dest="gcp_project_id", help="Google Cloud project ID")
    parser.add_argument(
        "--shutdown-timeout",
        dest="shutdown_timeout",
        help="Shutdown timeout, in seconds or as a duration like 1m30s (default: 1m)",
    )
    parser.add_argument(
        "--delivery-mode",
        dest="delivery_mode",
        choices=["pull", "push"],
        help="Streaming pull (default) or HTTP push endpoint",
    )
    parser.add_argument("--max-messages", dest="max_messages", type=int)
    parser.add_argument("--port", type=int, help="Listen port in push mode")
    parser.add_argument("--log-level", dest="log_level")
    return parser


def load_settings(argv: Optional[Sequence[str]] = None, **kwargs) -> Settings:
    """
    Build settings from flags layered over the environment.

    Args:
        argv: Command-line arguments (``sys.argv[1:]`` if None)
        **kwargs: Extra keyword arguments passed to ``Settings``

    Raises:
        ConfigurationError: If a required setting is missing or invalid
    """
    args = build_parser().parse_args(argv)
    overrides = {key: value for key, value in vars(args).items() if value is not None}
    try:
        return Settings(**overrides, **kwargs)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigurationError(f"invalid configuration: {problems}") from e

