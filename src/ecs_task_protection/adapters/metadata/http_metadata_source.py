from __future__ import annotations

import logging
from typing import Mapping, Optional

import httpx
from pydantic import ValidationError

from ecs_task_protection.application.call_context import CallContext
from ecs_task_protection.application.errors import (
    ConfigurationError,
    DecodeError,
    NetworkError,
    OperationCancelledError,
)
from ecs_task_protection.domain.metadata import TaskMetadata
from ecs_task_protection.ports.task_metadata_source import TaskMetadataSource
from ecs_task_protection.settings import METADATA_URI_ENV_VAR, Settings

logger = logging.getLogger(__name__)


class HttpTaskMetadataSource(TaskMetadataSource):
    """Reads the task identity from ``<endpoint>/task`` of the ECS task metadata endpoint v4."""

    def __init__(
        self,
        endpoint: Optional[str],
        http_client: Optional[httpx.Client] = None,
        timeout_seconds: float = Settings.metadata_timeout_seconds,
    ) -> None:
        self.endpoint = endpoint
        self.http_client = http_client
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_env(
        cls,
        endpoint_override: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
        http_client: Optional[httpx.Client] = None,
    ) -> "HttpTaskMetadataSource":
        """Use the override when non-empty, otherwise ``ECS_CONTAINER_METADATA_URI_V4``."""
        settings = Settings.from_env(environ)
        return cls(
            endpoint=endpoint_override or settings.metadata_uri,
            http_client=http_client,
            timeout_seconds=settings.metadata_timeout_seconds,
        )

    def _request_timeout(self, ctx: CallContext) -> float:
        remaining = ctx.remaining()
        if remaining is None:
            return self.timeout_seconds
        return min(self.timeout_seconds, remaining)

    def get_task_metadata(self, ctx: CallContext) -> TaskMetadata:
        if not self.endpoint:
            raise ConfigurationError(
                f"unable to retrieve Task ARN - can't get Metadata URI (set {METADATA_URI_ENV_VAR})"
            )

        url = self.endpoint.rstrip("/") + "/task"
        ctx.raise_if_cancelled("task metadata request")
        logger.debug(f"Fetching task metadata from {url}")

        try:
            if self.http_client is not None:
                response = self.http_client.get(url, timeout=self._request_timeout(ctx))
            else:
                with httpx.Client() as client:
                    response = client.get(url, timeout=self._request_timeout(ctx))
            response.raise_for_status()
        except httpx.TimeoutException as e:
            if ctx.deadline_exceeded():
                raise OperationCancelledError("task metadata request cancelled: deadline exceeded") from e
            raise NetworkError(f"task metadata request to {url} timed out: {e}") from e
        except httpx.HTTPError as e:
            raise NetworkError(f"task metadata request to {url} failed: {e}") from e
        except httpx.InvalidURL as e:
            raise ConfigurationError(f"invalid task metadata URI {self.endpoint!r}: {e}") from e

        ctx.raise_if_cancelled("task metadata request")

        try:
            metadata = TaskMetadata.model_validate_json(response.content)
        except ValidationError as e:
            raise DecodeError(f"unable to decode task metadata response: {e}") from e

        logger.debug(f"Resolved task {metadata.task_arn!r} in cluster {metadata.cluster!r}")
        return metadata


def resolve_task_metadata(
    ctx: Optional[CallContext] = None,
    endpoint_override: Optional[str] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
    http_client: Optional[httpx.Client] = None,
) -> TaskMetadata:
    """
    Retrieve the current cluster and task ARN from the task metadata endpoint.

    Args:
        ctx: Cancellation/deadline signal for the request
        endpoint_override: Metadata base URI to use instead of ECS_CONTAINER_METADATA_URI_V4
        environ: Environment mapping to read instead of os.environ
        http_client: httpx client to issue the request with

    Raises:
        ConfigurationError: neither an override nor the environment variable is available
        NetworkError: the endpoint was unreachable or answered with a non-2xx status
        DecodeError: the response body could not be decoded
    """
    source = HttpTaskMetadataSource.from_env(endpoint_override, environ=environ, http_client=http_client)
    return source.get_task_metadata(ctx or CallContext())
