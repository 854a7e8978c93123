from __future__ import annotations

import logging

from ecs_task_protection.application.call_context import CallContext
from ecs_task_protection.domain.protection import ProtectedTask, ProtectionResult, UpdateProtectionRequest
from ecs_task_protection.ports.task_protection_api import TaskProtectionApi

logger = logging.getLogger(__name__)


class DryRunTaskProtectionApi(TaskProtectionApi):
    """Reports every requested task as updated without calling ECS."""

    def update_task_protection(self, request: UpdateProtectionRequest, ctx: CallContext) -> ProtectionResult:
        logger.info(
            f"Dry run: would set protection_enabled={request.protection_enabled} "
            f"for {len(request.tasks)} task(s) in cluster {request.cluster!r}"
        )
        return ProtectionResult(
            protected_tasks=tuple(
                ProtectedTask(task_arn=task, protection_enabled=request.protection_enabled) for task in request.tasks
            )
        )
