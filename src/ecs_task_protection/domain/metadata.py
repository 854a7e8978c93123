"""Task identity as reported by the ECS task metadata endpoint v4."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TaskMetadata(BaseModel):
    """Cluster and task ARN of the running task.

    Only the two fields needed to address the task are kept; the rest of the
    ``/task`` document is ignored. Empty or null values are accepted as "".
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    cluster: str = Field("", alias="Cluster")
    task_arn: str = Field("", alias="TaskARN")

    @field_validator("cluster", "task_arn", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value
