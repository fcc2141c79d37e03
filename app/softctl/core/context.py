"""Per-operation cancellation context.

An OperationContext unifies the caller-driven cancel flag and the
absolute wall-clock deadline of one install or uninstall. It is passed
explicitly through every call boundary; long-running steps poll it
between sub-steps.
"""

import logging
import threading
import time
import uuid
from enum import Enum

from softctl.core.errors import OperationCancelledError, OperationTimeoutError

logger = logging.getLogger(__name__)

# Recommended lifetime of a single operation (15 minutes)
DEFAULT_DEADLINE_SECONDS: float = 900.0


class CancelReason(str, Enum):
    """Why an operation context was cancelled."""

    DISCONNECTED = "disconnected"
    DEADLINE = "deadline"
    REQUESTED = "requested"


class OperationContext:
    """Cancellation flag and deadline for a single operation.

    Attributes:
        operation_id: Short unique identifier used in logs and scratch paths.
        deadline: Monotonic timestamp after which the operation is timed out.
    """

    def __init__(
        self,
        deadline_seconds: float = DEFAULT_DEADLINE_SECONDS,
        operation_id: str | None = None,
    ) -> None:
        self.operation_id = operation_id or uuid.uuid4().hex[:12]
        self.deadline = time.monotonic() + deadline_seconds
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._reason: CancelReason | None = None

    @property
    def reason(self) -> CancelReason | None:
        """Reason recorded by the first cancellation, if any."""
        return self._reason

    @property
    def remaining(self) -> float:
        """Seconds left before the deadline (never negative)."""
        return max(0.0, self.deadline - time.monotonic())

    def cancel(self, reason: CancelReason = CancelReason.REQUESTED) -> None:
        """Set the cancellation flag.

        Only the first reason is kept; later calls are no-ops.
        """
        with self._lock:
            if self._reason is None:
                self._reason = reason
                logger.info("Operation %s cancelled (%s)", self.operation_id, reason.value)
            self._event.set()

    def is_cancelled(self) -> bool:
        """Check the flag, folding an expired deadline into it."""
        if not self._event.is_set() and time.monotonic() >= self.deadline:
            self.cancel(CancelReason.DEADLINE)
        return self._event.is_set()

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``, waking early on cancellation.

        Returns:
            True if the context was cancelled while waiting.
        """
        end = time.monotonic() + seconds
        while True:
            if self.is_cancelled():
                return True
            left = min(end, self.deadline) - time.monotonic()
            if left <= 0:
                return self.is_cancelled()
            if self._event.wait(timeout=left):
                return True

    def check(self) -> None:
        """Raise if the operation has been cancelled or timed out.

        Raises:
            OperationTimeoutError: If the deadline expired.
            OperationCancelledError: If the caller cancelled.
        """
        if not self.is_cancelled():
            return
        raise self.cancellation_error()

    def cancellation_error(self) -> OperationCancelledError | OperationTimeoutError:
        """Build the error that represents this context's cancellation."""
        if self._reason == CancelReason.DEADLINE:
            return OperationTimeoutError("Operation timed out", details=self.operation_id)
        return OperationCancelledError("Operation cancelled", details=self.operation_id)
