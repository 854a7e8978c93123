from __future__ import annotations

from typing import Protocol

from ecs_task_protection.application.call_context import CallContext
from ecs_task_protection.domain.protection import ProtectionResult, UpdateProtectionRequest


class TaskProtectionApi(Protocol):
    def update_task_protection(self, request: UpdateProtectionRequest, ctx: CallContext) -> ProtectionResult: ...
