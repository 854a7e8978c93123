from __future__ import annotations

from typing import Protocol

from ecs_task_protection.application.call_context import CallContext
from ecs_task_protection.domain.metadata import TaskMetadata


class TaskMetadataSource(Protocol):
    def get_task_metadata(self, ctx: CallContext) -> TaskMetadata: ...
