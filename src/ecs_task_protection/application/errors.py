from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_task_protection.domain.protection import ProtectionFailure


class TaskProtectionError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(TaskProtectionError):
    """Raised when the metadata endpoint cannot be discovered or a setting is invalid."""


class MetadataError(TaskProtectionError):
    """Raised when the task metadata endpoint cannot provide the task identity."""


class NetworkError(MetadataError):
    pass


class DecodeError(MetadataError):
    pass


class IdentityError(TaskProtectionError):
    """Raised by the coordinator when the task identity could not be resolved.

    The underlying MetadataError is available as ``__cause__``.
    """


class RemoteError(TaskProtectionError):
    """Raised when the UpdateTaskProtection call itself fails."""


class ProtectionFailedError(TaskProtectionError):
    """Raised when ECS reports a per-task failure while enabling protection."""

    def __init__(self, failure: "ProtectionFailure") -> None:
        super().__init__("failed to protect task: " + (failure.reason or ""))
        self.failure = failure


class OperationCancelledError(TaskProtectionError):
    pass
