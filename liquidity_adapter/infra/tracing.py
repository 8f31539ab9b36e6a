"""
Refresh tracing

Correlation ids for log lines of one refresh, and the epoch counter used to
discard results of a refresh that a newer one has superseded.
"""

import logging
import uuid
import contextvars
from typing import Optional

logger = logging.getLogger(__name__)

# Context variable for correlation ID (task-local under asyncio)
_correlation_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    'correlation_id', default=None
)


def generate_correlation_id() -> str:
    """Generate a unique correlation ID for refresh tracing."""
    return uuid.uuid4().hex[:12]


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID from context."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: Optional[str]) -> contextvars.Token:
    """Set the correlation ID in context. Returns token for reset."""
    return _correlation_id.set(correlation_id)


class CorrelationContext:
    """
    Context manager for correlation ID scoping.

    Usage:
        with CorrelationContext("refresh") as cid:
            logger.info(f"[{cid}] Starting refresh")
            snapshot = await adapters.refresh(holder)
    """

    def __init__(self, prefix: Optional[str] = None):
        """
        Args:
            prefix: Optional prefix for the correlation ID (e.g., "refresh")
        """
        self.correlation_id = generate_correlation_id()
        if prefix:
            self.correlation_id = f"{prefix}_{self.correlation_id}"
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> str:
        self._token = set_correlation_id(self.correlation_id)
        return self.correlation_id

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._token is not None:
            _correlation_id.reset(self._token)


def log_with_correlation(
    level: int,
    message: str,
    operation_name: str,
    epoch: Optional[int] = None,
    target_logger: Optional[logging.Logger] = None,
    **extra
):
    """
    Log message with correlation ID and structured context.

    Renders as "[cid] [operation] [epoch N] message"; the same fields are
    passed in ``extra`` for structured logging systems.
    """
    cid = get_correlation_id()

    parts = []
    if cid:
        parts.append(f"[{cid}]")
    parts.append(f"[{operation_name}]")
    if epoch is not None:
        parts.append(f"[epoch {epoch}]")
    parts.append(message)

    extra_context = {
        "correlation_id": cid,
        "operation": operation_name,
        "epoch": epoch,
        **extra
    }

    (target_logger or logger).log(level, " ".join(parts), extra=extra_context)


class EpochCounter:
    """
    Monotonic refresh epoch

    Each refresh calls ``next()`` before fanning out its reads and checks
    ``is_current`` when they come back; a mismatch means a newer refresh
    started and the late results must be dropped.
    """

    def __init__(self, start: int = 0):
        self._current = start

    @property
    def current(self) -> int:
        return self._current

    def next(self) -> int:
        self._current += 1
        return self._current

    def is_current(self, epoch: int) -> bool:
        return epoch == self._current
