from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from ecs_task_protection.application.errors import ConfigurationError

METADATA_URI_ENV_VAR = "ECS_CONTAINER_METADATA_URI_V4"


def _float_env(env: Mapping[str, str], name: str, default: float) -> float:
    value = env.get(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number of seconds, got {value!r}") from e


@dataclass(frozen=True)
class Settings:
    """Runtime settings sourced from environment variables."""

    log_level: str = "INFO"
    # Task metadata endpoint v4, injected by the ECS agent into every container
    metadata_uri: Optional[str] = None
    metadata_timeout_seconds: float = 5.0
    # ECS API client settings
    aws_region: Optional[str] = None
    ecs_endpoint_url: Optional[str] = None
    ecs_connect_timeout_seconds: float = 5.0
    ecs_read_timeout_seconds: float = 10.0
    protection_adapter: str = "ecs"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            log_level=env.get("LOG_LEVEL", cls.log_level),
            metadata_uri=env.get(METADATA_URI_ENV_VAR) or None,
            metadata_timeout_seconds=_float_env(env, "METADATA_TIMEOUT_SECONDS", cls.metadata_timeout_seconds),
            aws_region=env.get("AWS_REGION") or env.get("AWS_DEFAULT_REGION") or None,
            ecs_endpoint_url=env.get("ECS_ENDPOINT_URL") or None,
            ecs_connect_timeout_seconds=_float_env(env, "ECS_CONNECT_TIMEOUT_SECONDS", cls.ecs_connect_timeout_seconds),
            ecs_read_timeout_seconds=_float_env(env, "ECS_READ_TIMEOUT_SECONDS", cls.ecs_read_timeout_seconds),
            protection_adapter=env.get("TASK_PROTECTION_ADAPTER", cls.protection_adapter).lower(),
        )


def get_settings(_cache: dict[str, Settings] = {}) -> Settings:
    """Provide a simple cached settings object."""

    if "settings" not in _cache:
        _cache["settings"] = Settings.from_env()
    return _cache["settings"]
