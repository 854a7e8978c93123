from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from ecs_task_protection.application.errors import OperationCancelledError


@dataclass(frozen=True)
class CallContext:
    """Cancellation and deadline signal carried through a single protection call.

    ``timeout_seconds`` is measured from the moment the context is created.
    ``cancellation_check`` is polled around every network call; returning True
    aborts the operation.
    """

    timeout_seconds: Optional[float] = None
    cancellation_check: Optional[Callable[[], bool]] = None
    created_at: float = field(default_factory=time.monotonic)

    @classmethod
    def from_args(
        cls,
        timeout_seconds: Optional[float] = None,
        cancellation_check: Optional[Callable[[], bool]] = None,
    ) -> "CallContext":
        return cls(timeout_seconds=timeout_seconds, cancellation_check=cancellation_check)

    @property
    def has_deadline(self) -> bool:
        return self.timeout_seconds is not None

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None when there is no deadline."""
        if self.timeout_seconds is None:
            return None
        return max(0.0, self.timeout_seconds - (time.monotonic() - self.created_at))

    def deadline_exceeded(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0.0

    def is_cancelled(self) -> bool:
        if self.cancellation_check is not None and self.cancellation_check():
            return True
        return self.deadline_exceeded()

    def raise_if_cancelled(self, operation: str) -> None:
        if self.cancellation_check is not None and self.cancellation_check():
            raise OperationCancelledError(f"{operation} cancelled")
        if self.deadline_exceeded():
            raise OperationCancelledError(f"{operation} cancelled: deadline of {self.timeout_seconds}s exceeded")
