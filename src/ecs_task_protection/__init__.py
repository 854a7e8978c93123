"""Enable and disable ECS task scale-in protection from inside the task.

See https://docs.aws.amazon.com/AmazonECS/latest/developerguide/task-scale-in-protection.html
"""

from ecs_task_protection.adapters.ecs.boto3_api import Boto3TaskProtectionApi
from ecs_task_protection.adapters.metadata.http_metadata_source import HttpTaskMetadataSource, resolve_task_metadata
from ecs_task_protection.application.call_context import CallContext
from ecs_task_protection.application.errors import (
    ConfigurationError,
    DecodeError,
    IdentityError,
    MetadataError,
    NetworkError,
    OperationCancelledError,
    ProtectionFailedError,
    RemoteError,
    TaskProtectionError,
)
from ecs_task_protection.application.task_protection import (
    TaskProtectionClient,
    UpdateTaskProtectionInput,
    update_task_protection,
)
from ecs_task_protection.domain.metadata import TaskMetadata
from ecs_task_protection.domain.protection import (
    MAX_EXPIRES_IN_MINUTES,
    MIN_EXPIRES_IN_MINUTES,
    ProtectedTask,
    ProtectionFailure,
    ProtectionIntent,
    ProtectionResult,
    UpdateProtectionRequest,
)

__all__ = [
    "Boto3TaskProtectionApi",
    "CallContext",
    "ConfigurationError",
    "DecodeError",
    "HttpTaskMetadataSource",
    "IdentityError",
    "MAX_EXPIRES_IN_MINUTES",
    "MIN_EXPIRES_IN_MINUTES",
    "MetadataError",
    "NetworkError",
    "OperationCancelledError",
    "ProtectedTask",
    "ProtectionFailedError",
    "ProtectionFailure",
    "ProtectionIntent",
    "ProtectionResult",
    "RemoteError",
    "TaskMetadata",
    "TaskProtectionClient",
    "TaskProtectionError",
    "UpdateProtectionRequest",
    "UpdateTaskProtectionInput",
    "resolve_task_metadata",
    "update_task_protection",
]
