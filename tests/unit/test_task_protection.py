"""Unit tests for the protection coordinator and its two entry points."""

import threading
from unittest.mock import Mock

import httpx
import pytest

from ecs_task_protection.adapters.metadata.http_metadata_source import HttpTaskMetadataSource
from ecs_task_protection.application.call_context import CallContext
from ecs_task_protection.application.errors import (
    ConfigurationError,
    DecodeError,
    IdentityError,
    NetworkError,
    OperationCancelledError,
    ProtectionFailedError,
    RemoteError,
)
from ecs_task_protection.application.task_protection import (
    TaskProtectionClient,
    UpdateTaskProtectionInput,
    raise_for_protection_failure,
    update_task_protection,
)
from ecs_task_protection.domain.metadata import TaskMetadata
from ecs_task_protection.domain.protection import (
    ProtectedTask,
    ProtectionFailure,
    ProtectionIntent,
    ProtectionResult,
    UpdateProtectionRequest,
)

TEST_METADATA = TaskMetadata(cluster="test_cluster", task_arn="test")


class SuccessfulApi:
    def __init__(self):
        self.requests = []

    def update_task_protection(self, request, ctx):
        self.requests.append(request)
        return ProtectionResult(
            protected_tasks=tuple(
                ProtectedTask(task_arn=task, protection_enabled=request.protection_enabled) for task in request.tasks
            )
        )


class FailureApi:
    def __init__(self, reason="failed"):
        self.reason = reason
        self.requests = []

    def update_task_protection(self, request, ctx):
        self.requests.append(request)
        return ProtectionResult(
            failures=tuple(ProtectionFailure(arn=task, reason=self.reason) for task in request.tasks)
        )


class RaisingApi:
    def __init__(self, exc):
        self.exc = exc
        self.calls = 0

    def update_task_protection(self, request, ctx):
        self.calls += 1
        raise self.exc


class StaticMetadataSource:
    def __init__(self, metadata=TEST_METADATA, exc=None):
        self.metadata = metadata
        self.exc = exc
        self.calls = 0

    def get_task_metadata(self, ctx):
        self.calls += 1
        if self.exc is not None:
            raise self.exc
        return self.metadata


# Value-returning mode


@pytest.mark.parametrize("protect", [True, False])
def test_client_returns_result_unchanged(protect):
    """Test that the raw ECS result is returned regardless of the protect flag."""
    client = TaskProtectionClient(SuccessfulApi())

    result = client.update_task_protection(ProtectionIntent(protect=protect, metadata=TaskMetadata(task_arn="test")))

    assert result == ProtectionResult(protected_tasks=(ProtectedTask(task_arn="test", protection_enabled=protect),))


def test_client_returns_failures_without_raising():
    client = TaskProtectionClient(FailureApi())

    result = client.update_task_protection(ProtectionIntent(protect=True, metadata=TaskMetadata(task_arn="test")))

    assert result.protected_tasks == ()
    assert result.failures == (ProtectionFailure(arn="test", reason="failed"),)


def test_client_builds_single_task_request():
    api = SuccessfulApi()
    client = TaskProtectionClient(api)

    client.update_task_protection(ProtectionIntent(protect=True, expires_in_minutes=60, metadata=TEST_METADATA))

    assert api.requests == [
        UpdateProtectionRequest(
            cluster="test_cluster", tasks=("test",), protection_enabled=True, expires_in_minutes=60
        )
    ]


def test_expiry_is_not_validated_locally():
    """Test that out-of-range expiries are forwarded for ECS to reject."""
    api = SuccessfulApi()

    TaskProtectionClient(api).update_task_protection(
        ProtectionIntent(protect=True, expires_in_minutes=10_000, metadata=TEST_METADATA)
    )

    assert api.requests[0].expires_in_minutes == 10_000


def test_absent_expiry_is_passed_through_as_none():
    api = SuccessfulApi()

    TaskProtectionClient(api).update_task_protection(ProtectionIntent(protect=True, metadata=TEST_METADATA))

    assert api.requests[0].expires_in_minutes is None


def test_supplied_metadata_skips_metadata_source():
    source = StaticMetadataSource()
    client = TaskProtectionClient(SuccessfulApi(), metadata_source=source)

    client.update_task_protection(ProtectionIntent(protect=True, metadata=TEST_METADATA))

    assert source.calls == 0


def test_supplied_metadata_makes_no_metadata_request(monkeypatch):
    """Test that no HTTP request reaches the metadata endpoint when identity is supplied."""
    requests = []
    http_client = httpx.Client(transport=httpx.MockTransport(lambda r: requests.append(r) or httpx.Response(200)))
    source = HttpTaskMetadataSource("http://metadata.local", http_client=http_client)

    TaskProtectionClient(SuccessfulApi(), metadata_source=source).update_task_protection(
        ProtectionIntent(protect=True, metadata=TEST_METADATA)
    )

    assert requests == []


def test_metadata_is_resolved_when_not_supplied():
    api = SuccessfulApi()
    source = StaticMetadataSource(TaskMetadata(cluster="resolved", task_arn="resolved-arn"))

    TaskProtectionClient(api, metadata_source=source).update_task_protection(ProtectionIntent(protect=False))

    assert source.calls == 1
    assert api.requests[0].cluster == "resolved"
    assert api.requests[0].tasks == ("resolved-arn",)


def test_default_metadata_source_reads_environment(monkeypatch):
    monkeypatch.delenv("ECS_CONTAINER_METADATA_URI_V4", raising=False)
    api = SuccessfulApi()

    with pytest.raises(IdentityError) as exc_info:
        TaskProtectionClient(api).update_task_protection(ProtectionIntent(protect=True))

    assert isinstance(exc_info.value.__cause__, ConfigurationError)
    assert api.requests == []


@pytest.mark.parametrize(
    "inner",
    [
        ConfigurationError("can't get Metadata URI"),
        NetworkError("unreachable"),
        DecodeError("bad body"),
    ],
)
def test_identity_failures_are_wrapped_and_remote_is_not_called(inner):
    api = SuccessfulApi()
    client = TaskProtectionClient(api, metadata_source=StaticMetadataSource(exc=inner))

    with pytest.raises(IdentityError) as exc_info:
        client.update_task_protection(ProtectionIntent(protect=True))

    assert exc_info.value.__cause__ is inner
    assert api.requests == []


def test_unexpected_identity_source_exception_is_wrapped():
    cause = RuntimeError("boom")
    api = SuccessfulApi()
    client = TaskProtectionClient(api, metadata_source=StaticMetadataSource(exc=cause))

    with pytest.raises(IdentityError, match="boom") as exc_info:
        client.update_task_protection(ProtectionIntent(protect=True))

    assert exc_info.value.__cause__ is cause
    assert api.requests == []


def test_identity_source_cancellation_is_not_wrapped():
    api = SuccessfulApi()
    source = StaticMetadataSource(exc=OperationCancelledError("task metadata request cancelled"))

    with pytest.raises(OperationCancelledError):
        TaskProtectionClient(api, metadata_source=source).update_task_protection(ProtectionIntent(protect=True))

    assert api.requests == []


def test_malformed_metadata_uri_is_identity_error():
    api = SuccessfulApi()
    source = HttpTaskMetadataSource("http://[::1/v4")

    with pytest.raises(IdentityError) as exc_info:
        update_task_protection(UpdateTaskProtectionInput(client=api, protect=True, metadata_source=source))

    assert isinstance(exc_info.value.__cause__, ConfigurationError)
    assert api.requests == []


def test_remote_exception_is_wrapped_and_not_retried():
    cause = RuntimeError("AccessDeniedException")
    api = RaisingApi(cause)

    with pytest.raises(RemoteError) as exc_info:
        TaskProtectionClient(api).update_task_protection(ProtectionIntent(protect=True, metadata=TEST_METADATA))

    assert exc_info.value.__cause__ is cause
    assert api.calls == 1


def test_remote_cancellation_is_not_wrapped():
    api = RaisingApi(OperationCancelledError("cancelled"))

    with pytest.raises(OperationCancelledError):
        TaskProtectionClient(api).update_task_protection(ProtectionIntent(protect=True, metadata=TEST_METADATA))


def test_cancelled_context_aborts_before_remote_call():
    api = SuccessfulApi()
    ctx = CallContext(cancellation_check=lambda: True)

    with pytest.raises(OperationCancelledError):
        TaskProtectionClient(api).update_task_protection(ProtectionIntent(protect=True, metadata=TEST_METADATA), ctx)

    assert api.requests == []


def test_cancellation_during_remote_call_is_not_success():
    cancelled = threading.Event()
    api = Mock()
    api.update_task_protection.side_effect = lambda request, ctx: cancelled.set() or ProtectionResult()

    with pytest.raises(OperationCancelledError):
        TaskProtectionClient(api).update_task_protection(
            ProtectionIntent(protect=True, metadata=TEST_METADATA), CallContext(cancellation_check=cancelled.is_set)
        )

    assert api.update_task_protection.call_count == 1


def test_context_is_passed_to_metadata_source_and_remote():
    ctx = CallContext(timeout_seconds=30)
    api = Mock()
    api.update_task_protection.return_value = ProtectionResult()
    source = Mock()
    source.get_task_metadata.return_value = TEST_METADATA

    TaskProtectionClient(api, metadata_source=source).update_task_protection(ProtectionIntent(protect=True), ctx)

    source.get_task_metadata.assert_called_once_with(ctx)
    assert api.update_task_protection.call_args[0][1] is ctx


def test_client_get_task_metadata_uses_source():
    source = StaticMetadataSource()

    assert TaskProtectionClient(SuccessfulApi(), metadata_source=source).get_task_metadata() == TEST_METADATA
    assert source.calls == 1


# Imperative mode


def test_update_task_protection_enable_success_returns_none():
    api = SuccessfulApi()

    result = update_task_protection(UpdateTaskProtectionInput(client=api, protect=True, metadata=TEST_METADATA))

    assert result is None
    assert api.requests[0].protection_enabled is True


def test_update_task_protection_enable_failure_raises_with_reason():
    with pytest.raises(ProtectionFailedError) as exc_info:
        update_task_protection(
            UpdateTaskProtectionInput(client=FailureApi("X"), protect=True, metadata=TEST_METADATA)
        )

    assert str(exc_info.value) == "failed to protect task: X"
    assert exc_info.value.failure.reason == "X"


def test_update_task_protection_uses_first_failure_reason():
    api = Mock()
    api.update_task_protection.return_value = ProtectionResult(
        failures=(ProtectionFailure(arn="a", reason="first"), ProtectionFailure(arn="b", reason="second"))
    )

    with pytest.raises(ProtectionFailedError, match="^failed to protect task: first$"):
        update_task_protection(UpdateTaskProtectionInput(client=api, protect=True, metadata=TEST_METADATA))


def test_update_task_protection_disable_failure_is_not_fatal():
    api = FailureApi("TASK_NOT_VALID")

    update_task_protection(UpdateTaskProtectionInput(client=api, protect=False, metadata=TEST_METADATA))

    assert len(api.requests) == 1


def test_update_task_protection_resolves_metadata_from_source():
    api = SuccessfulApi()
    source = StaticMetadataSource()

    update_task_protection(
        UpdateTaskProtectionInput(client=api, protect=True, expires_in_minutes=5, metadata_source=source)
    )

    assert source.calls == 1
    assert api.requests[0] == UpdateProtectionRequest(
        cluster="test_cluster", tasks=("test",), protection_enabled=True, expires_in_minutes=5
    )


def test_update_task_protection_wraps_remote_errors():
    with pytest.raises(RemoteError):
        update_task_protection(
            UpdateTaskProtectionInput(client=RaisingApi(RuntimeError("boom")), protect=False, metadata=TEST_METADATA)
        )


def test_update_task_protection_honours_context():
    api = SuccessfulApi()

    with pytest.raises(OperationCancelledError):
        update_task_protection(
            UpdateTaskProtectionInput(
                client=api, protect=True, metadata=TEST_METADATA, context=CallContext(timeout_seconds=0)
            )
        )

    assert api.requests == []


def test_raise_for_protection_failure_with_missing_reason():
    result = ProtectionResult(failures=(ProtectionFailure(arn="a", reason=None),))

    with pytest.raises(ProtectionFailedError, match="^failed to protect task: $"):
        raise_for_protection_failure(result, True)


def test_raise_for_protection_failure_ignores_empty_failures():
    assert raise_for_protection_failure(ProtectionResult(), True) is None
