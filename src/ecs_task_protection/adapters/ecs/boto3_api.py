from __future__ import annotations

import logging
from typing import Any, Callable, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ConnectTimeoutError, NoRegionError, ReadTimeoutError

from ecs_task_protection.application.call_context import CallContext
from ecs_task_protection.application.errors import ConfigurationError, OperationCancelledError
from ecs_task_protection.domain.protection import (
    ProtectedTask,
    ProtectionFailure,
    ProtectionResult,
    UpdateProtectionRequest,
)
from ecs_task_protection.ports.task_protection_api import TaskProtectionApi
from ecs_task_protection.settings import Settings

logger = logging.getLogger(__name__)

MIN_CALL_TIMEOUT_SECONDS = 0.01


class Boto3TaskProtectionApi(TaskProtectionApi):
    """TaskProtectionApi backed by a boto3 ECS client.

    ``client_factory`` builds an ECS client from a Config; when set, a call made
    under a deadline uses a fresh client whose connect/read timeouts are capped
    by the time remaining.
    """

    def __init__(self, ecs_client: Any, client_factory: Optional[Callable[[Config], Any]] = None) -> None:
        self.ecs_client = ecs_client
        self.client_factory = client_factory

    @classmethod
    def from_settings(cls, settings: Settings, session: Optional[boto3.session.Session] = None) -> "Boto3TaskProtectionApi":
        """
        Build an ECS client from settings.

        Botocore retries are disabled so each protection update is a single attempt.
        Credentials and region otherwise follow the normal boto3 resolution chain
        (task role inside ECS).
        """
        base_config = Config(
            connect_timeout=settings.ecs_connect_timeout_seconds,
            read_timeout=settings.ecs_read_timeout_seconds,
            retries={"total_max_attempts": 1, "mode": "standard"},
        )
        client_kwargs: dict[str, Any] = {}
        if settings.aws_region:
            client_kwargs["region_name"] = settings.aws_region
        if settings.ecs_endpoint_url:
            client_kwargs["endpoint_url"] = settings.ecs_endpoint_url

        session = session or boto3.session.Session()

        def client_factory(config: Config) -> Any:
            return session.client("ecs", config=base_config.merge(config), **client_kwargs)

        try:
            return cls(client_factory(Config()), client_factory=client_factory)
        except NoRegionError as e:
            raise ConfigurationError("ECS client requires AWS_REGION or AWS_DEFAULT_REGION") from e

    def _client_for(self, ctx: CallContext) -> Any:
        remaining = ctx.remaining()
        if remaining is None or self.client_factory is None:
            return self.ecs_client
        remaining = max(remaining, MIN_CALL_TIMEOUT_SECONDS)
        config = self.ecs_client.meta.config
        return self.client_factory(
            Config(
                connect_timeout=min(config.connect_timeout, remaining),
                read_timeout=min(config.read_timeout, remaining),
            )
        )

    def update_task_protection(self, request: UpdateProtectionRequest, ctx: CallContext) -> ProtectionResult:
        params: dict[str, Any] = {
            "cluster": request.cluster,
            "tasks": list(request.tasks),
            "protectionEnabled": request.protection_enabled,
        }
        if request.expires_in_minutes is not None:
            params["expiresInMinutes"] = request.expires_in_minutes

        logger.debug(f"Calling ecs:UpdateTaskProtection with {params}")
        try:
            response = self._client_for(ctx).update_task_protection(**params)
        except (ConnectTimeoutError, ReadTimeoutError) as e:
            if ctx.deadline_exceeded():
                raise OperationCancelledError("UpdateTaskProtection cancelled: deadline exceeded") from e
            raise
        return _to_result(response)


def _to_result(response: dict[str, Any]) -> ProtectionResult:
    protected = tuple(
        ProtectedTask(
            task_arn=item.get("taskArn"),
            protection_enabled=bool(item.get("protectionEnabled", False)),
            expiration_date=item.get("expirationDate"),
        )
        for item in response.get("protectedTasks", [])
    )
    failures = tuple(
        ProtectionFailure(arn=item.get("arn"), reason=item.get("reason"), detail=item.get("detail"))
        for item in response.get("failures", [])
    )
    return ProtectionResult(protected_tasks=protected, failures=failures)
