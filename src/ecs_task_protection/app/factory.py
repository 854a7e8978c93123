from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ecs_task_protection.ports.task_metadata_source import TaskMetadataSource
    from ecs_task_protection.ports.task_protection_api import TaskProtectionApi

from ecs_task_protection.adapters.ecs.boto3_api import Boto3TaskProtectionApi
from ecs_task_protection.adapters.ecs.dry_run_api import DryRunTaskProtectionApi
from ecs_task_protection.adapters.metadata.http_metadata_source import HttpTaskMetadataSource
from ecs_task_protection.application.errors import ConfigurationError
from ecs_task_protection.settings import Settings, get_settings

PROTECTION_ADAPTERS = ("ecs", "dry_run")


def create_protection_api(settings: Optional[Settings] = None, dry_run: bool = False) -> "TaskProtectionApi":
    """
    Create the TaskProtectionApi selected by TASK_PROTECTION_ADAPTER.

    ``ecs`` (default) talks to the ECS API through boto3; ``dry_run`` never
    leaves the process. ``dry_run=True`` forces the latter.
    """
    settings = settings or get_settings()
    adapter = "dry_run" if dry_run else settings.protection_adapter

    if adapter == "dry_run":
        return DryRunTaskProtectionApi()
    if adapter == "ecs":
        return Boto3TaskProtectionApi.from_settings(settings)
    raise ConfigurationError(
        f"Unknown TASK_PROTECTION_ADAPTER {adapter!r}, expected one of: {', '.join(PROTECTION_ADAPTERS)}"
    )


def create_metadata_source(
    settings: Optional[Settings] = None, endpoint_override: Optional[str] = None
) -> "TaskMetadataSource":
    settings = settings or get_settings()
    return HttpTaskMetadataSource(
        endpoint=endpoint_override or settings.metadata_uri,
        timeout_seconds=settings.metadata_timeout_seconds,
    )
