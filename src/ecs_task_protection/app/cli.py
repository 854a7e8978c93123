from __future__ import annotations

import argparse
import json
import logging
import signal
import sys
import threading
from contextlib import contextmanager
from typing import Iterator, Optional, Sequence

from ecs_task_protection.app.factory import create_metadata_source, create_protection_api
from ecs_task_protection.application.call_context import CallContext
from ecs_task_protection.application.errors import (
    ConfigurationError,
    IdentityError,
    MetadataError,
    OperationCancelledError,
    ProtectionFailedError,
    RemoteError,
)
from ecs_task_protection.application.task_protection import TaskProtectionClient, raise_for_protection_failure
from ecs_task_protection.domain.metadata import TaskMetadata
from ecs_task_protection.domain.protection import MAX_EXPIRES_IN_MINUTES, MIN_EXPIRES_IN_MINUTES, ProtectionIntent
from ecs_task_protection.observability.logging import configure_logging
from ecs_task_protection.settings import Settings

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_PROTECTION_FAILED = 1
EXIT_CONFIGURATION = 2
EXIT_REMOTE = 3
EXIT_CANCELLED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ecs-task-protection",
        description="Toggle ECS task scale-in protection for the current task",
    )
    parser.add_argument("--metadata-uri", help="Task metadata endpoint (default: $ECS_CONTAINER_METADATA_URI_V4)")
    parser.add_argument("--cluster", help="Cluster of the task; skips the metadata endpoint with --task-arn")
    parser.add_argument("--task-arn", help="ARN of the task; skips the metadata endpoint with --cluster")
    parser.add_argument("--timeout", type=float, dest="timeout_seconds", help="Overall deadline in seconds")
    parser.add_argument("--dry-run", action="store_true", help="Do not call the ECS API")
    parser.add_argument("--log-level", help="Override LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("whoami", help="Print the cluster and task ARN of the current task")

    protect_parser = subparsers.add_parser("protect", help="Enable scale-in protection")
    protect_parser.add_argument(
        "--expires-in-minutes",
        type=int,
        help=f"Protection period ({MIN_EXPIRES_IN_MINUTES}-{MAX_EXPIRES_IN_MINUTES}); ECS default when omitted",
    )

    subparsers.add_parser("unprotect", help="Disable scale-in protection")
    return parser


@contextmanager
def _cancel_on_sigterm(event: threading.Event) -> Iterator[None]:
    """Set ``event`` when the ECS agent stops the task."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return
    previous = signal.signal(signal.SIGTERM, lambda signum, frame: event.set())
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous)


def _explicit_metadata(args: argparse.Namespace) -> Optional[TaskMetadata]:
    if args.cluster is None and args.task_arn is None:
        return None
    return TaskMetadata(cluster=args.cluster, task_arn=args.task_arn)


def _run(args: argparse.Namespace, settings: Settings, ctx: CallContext) -> int:
    metadata_source = create_metadata_source(settings, args.metadata_uri)

    if args.command == "whoami":
        metadata = _explicit_metadata(args) or metadata_source.get_task_metadata(ctx)
        print(json.dumps(metadata.model_dump(by_alias=True)))
        return EXIT_OK

    protect = args.command == "protect"
    intent = ProtectionIntent(
        protect=protect,
        expires_in_minutes=getattr(args, "expires_in_minutes", None),
        metadata=_explicit_metadata(args),
    )
    client = TaskProtectionClient(create_protection_api(settings, dry_run=args.dry_run), metadata_source)
    result = client.update_task_protection(intent, ctx)
    print(json.dumps(result.to_dict()))
    raise_for_protection_failure(result, protect)
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        settings = Settings.from_env()
    except ConfigurationError as e:
        configure_logging(args.log_level or "INFO")
        logger.error(str(e))
        return EXIT_CONFIGURATION
    configure_logging(args.log_level or settings.log_level)

    if args.command is None:
        parser.print_help()
        return EXIT_OK
    if (args.cluster is None) != (args.task_arn is None):
        parser.error("--cluster and --task-arn must be given together")

    stopped = threading.Event()
    ctx = CallContext.from_args(timeout_seconds=args.timeout_seconds, cancellation_check=stopped.is_set)

    try:
        with _cancel_on_sigterm(stopped):
            return _run(args, settings, ctx)
    except ProtectionFailedError as e:
        logger.error(str(e))
        return EXIT_PROTECTION_FAILED
    except (ConfigurationError, IdentityError, MetadataError) as e:
        logger.error(str(e))
        return EXIT_CONFIGURATION
    except RemoteError as e:
        logger.error(str(e))
        return EXIT_REMOTE
    except (OperationCancelledError, KeyboardInterrupt) as e:
        logger.error(f"Cancelled: {e}")
        return EXIT_CANCELLED


if __name__ == "__main__":
    sys.exit(main())
