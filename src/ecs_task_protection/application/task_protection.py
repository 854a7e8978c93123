"""Enable or disable ECS task scale-in protection for the calling task.

See https://docs.aws.amazon.com/AmazonECS/latest/developerguide/task-scale-in-protection.html
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from ecs_task_protection.adapters.metadata.http_metadata_source import HttpTaskMetadataSource
from ecs_task_protection.application.call_context import CallContext
from ecs_task_protection.application.errors import (
    IdentityError,
    OperationCancelledError,
    ProtectionFailedError,
    RemoteError,
)
from ecs_task_protection.domain.metadata import TaskMetadata
from ecs_task_protection.domain.protection import ProtectionIntent, ProtectionResult, UpdateProtectionRequest
from ecs_task_protection.ports.task_metadata_source import TaskMetadataSource
from ecs_task_protection.ports.task_protection_api import TaskProtectionApi

logger = logging.getLogger(__name__)

ResultInterpreter = Callable[[ProtectionResult, bool], None]


def return_result(result: ProtectionResult, protect: bool) -> None:
    """Leave the result for the caller to inspect."""
    return None


def raise_for_protection_failure(result: ProtectionResult, protect: bool) -> None:
    """Fail when ECS rejected an enable request; failures on disable are not fatal."""
    if not result.failures:
        return
    if protect:
        raise ProtectionFailedError(result.failures[0])
    logger.warning(f"Disabling task protection reported failures: {[f.reason for f in result.failures]}")


def apply_protection(
    api: TaskProtectionApi,
    intent: ProtectionIntent,
    ctx: CallContext,
    metadata_source: Optional[TaskMetadataSource],
    interpret: ResultInterpreter,
) -> ProtectionResult:
    metadata = intent.metadata
    if metadata is None:
        try:
            source = metadata_source or HttpTaskMetadataSource.from_env()
            metadata = source.get_task_metadata(ctx)
        except OperationCancelledError:
            raise
        except Exception as e:
            raise IdentityError(f"unable to resolve task identity: {e}") from e

    request = UpdateProtectionRequest.for_task(metadata, intent)

    ctx.raise_if_cancelled("UpdateTaskProtection")
    try:
        result = api.update_task_protection(request, ctx)
    except OperationCancelledError:
        raise
    except Exception as e:
        raise RemoteError(f"UpdateTaskProtection failed: {e}") from e
    ctx.raise_if_cancelled("UpdateTaskProtection")

    logger.info(
        f"UpdateTaskProtection protect={intent.protect} task={metadata.task_arn!r}: "
        f"{len(result.protected_tasks)} updated, {len(result.failures)} failed"
    )
    interpret(result, intent.protect)
    return result


class TaskProtectionClient:
    """Value-returning entry point around an already constructed TaskProtectionApi.

    Per-task failures are returned in ``ProtectionResult.failures`` rather than raised.
    """

    def __init__(self, api: TaskProtectionApi, metadata_source: Optional[TaskMetadataSource] = None) -> None:
        self.api = api
        self.metadata_source = metadata_source

    def get_task_metadata(self, ctx: Optional[CallContext] = None) -> TaskMetadata:
        source = self.metadata_source or HttpTaskMetadataSource.from_env()
        return source.get_task_metadata(ctx or CallContext())

    def update_task_protection(
        self, intent: ProtectionIntent, ctx: Optional[CallContext] = None
    ) -> ProtectionResult:
        return apply_protection(self.api, intent, ctx or CallContext(), self.metadata_source, return_result)


@dataclass(frozen=True)
class UpdateTaskProtectionInput:
    """Parameters for update_task_protection.

    ``expires_in_minutes`` must be between 1 and 2880 when set; None uses the
    default protection period. The range is checked by ECS, not here.
    """

    client: TaskProtectionApi
    protect: bool = False
    expires_in_minutes: Optional[int] = None
    context: Optional[CallContext] = None
    metadata: Optional[TaskMetadata] = None
    metadata_source: Optional[TaskMetadataSource] = None


def update_task_protection(params: UpdateTaskProtectionInput) -> None:
    """
    Enable or disable protection for the calling task.

    Resolves the cluster and task ARN from the metadata endpoint unless
    ``params.metadata`` is set, then calls UpdateTaskProtection once.

    Raises:
        IdentityError: the task identity could not be resolved
        RemoteError: the UpdateTaskProtection call failed
        ProtectionFailedError: ECS reported a failure while enabling protection
        OperationCancelledError: the context was cancelled or its deadline passed
    """
    intent = ProtectionIntent(
        protect=params.protect,
        expires_in_minutes=params.expires_in_minutes,
        metadata=params.metadata,
    )
    apply_protection(
        params.client,
        intent,
        params.context or CallContext(),
        params.metadata_source,
        raise_for_protection_failure,
    )
