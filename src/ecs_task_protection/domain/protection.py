from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from ecs_task_protection.domain.metadata import TaskMetadata

# Bounds enforced by the ECS API, not checked locally
MIN_EXPIRES_IN_MINUTES = 1
MAX_EXPIRES_IN_MINUTES = 2880


@dataclass(frozen=True)
class ProtectionIntent:
    """What the caller wants: enable or disable protection, optionally for a bounded time.

    When ``metadata`` is None the task identity is resolved from the metadata endpoint.
    ``expires_in_minutes`` of None means the ECS default protection period.
    """

    protect: bool = False
    expires_in_minutes: Optional[int] = None
    metadata: Optional[TaskMetadata] = None


@dataclass(frozen=True)
class UpdateProtectionRequest:
    cluster: str
    tasks: tuple[str, ...]
    protection_enabled: bool
    expires_in_minutes: Optional[int] = None

    @classmethod
    def for_task(cls, metadata: TaskMetadata, intent: ProtectionIntent) -> "UpdateProtectionRequest":
        return cls(
            cluster=metadata.cluster,
            tasks=(metadata.task_arn,),
            protection_enabled=intent.protect,
            expires_in_minutes=intent.expires_in_minutes,
        )


@dataclass(frozen=True)
class ProtectedTask:
    task_arn: Optional[str]
    protection_enabled: bool
    expiration_date: Optional[datetime] = None


@dataclass(frozen=True)
class ProtectionFailure:
    arn: Optional[str]
    reason: Optional[str]
    detail: Optional[str] = None


@dataclass(frozen=True)
class ProtectionResult:
    """Raw outcome of an UpdateTaskProtection call, in the order ECS returned it."""

    protected_tasks: tuple[ProtectedTask, ...] = field(default_factory=tuple)
    failures: tuple[ProtectionFailure, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "protected_tasks": [
                {
                    "task_arn": t.task_arn,
                    "protection_enabled": t.protection_enabled,
                    "expiration_date": t.expiration_date.isoformat() if t.expiration_date else None,
                }
                for t in self.protected_tasks
            ],
            "failures": [{"arn": f.arn, "reason": f.reason, "detail": f.detail} for f in self.failures],
        }
