"""Shared utilities for container operations.

Blocking waits used by the provisioner and the executor. They poll so a
caller-supplied cancel event is honoured promptly.
"""

import threading
import time
from typing import Iterator, Optional

import structlog

from ...models.errors import ExecutionCancelledError

logger = structlog.get_logger(__name__)


def wait_for_event(
    done: threading.Event,
    timeout: Optional[float],
    stage: str,
    cancel_event: Optional[threading.Event] = None,
    interval: float = 0.1,
) -> bool:
    """
    Wait for an event to be set, a deadline to pass, or cancellation.

    Args:
        done: Event set by the worker thread when it finishes
        timeout: Wall-clock seconds to wait, None waits forever
        stage: Stage name used in the cancellation error
        cancel_event: Optional event the caller sets to abandon the wait
        interval: Polling interval in seconds

    Returns:
        True if the event was set, False if the deadline passed

    Raises:
        ExecutionCancelledError: If cancel_event was set first
    """
    deadline = None if timeout is None else time.monotonic() + timeout

    while True:
        if cancel_event is not None and cancel_event.is_set():
            raise ExecutionCancelledError(stage=stage)

        if deadline is None:
            wait_for = interval
        else:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return done.is_set()
            wait_for = min(interval, remaining)

        if done.wait(wait_for):
            return True


def disable_socket_timeout(sock) -> None:
    """
    Remove the client read timeout from a raw exec socket.

    The API client timeout applies to every socket read, which would cut
    off commands that stay silent longer than it. The run deadline is
    enforced by the caller instead.

    Args:
        sock: Socket or SocketIO returned by exec_start(socket=True)
    """
    for candidate in (sock, getattr(sock, "_sock", None)):
        if candidate is None or not hasattr(candidate, "settimeout"):
            continue
        if hasattr(candidate, "gettimeout") and candidate.gettimeout() in (None, 0.0):
            continue
        candidate.settimeout(None)


def backoff_delays(attempts: int, base: float, cap: float) -> Iterator[float]:
    """
    Yield exponential backoff delays.

    Args:
        attempts: Number of delays to yield
        base: First delay in seconds
        cap: Maximum delay in seconds

    Yields:
        base, 2*base, 4*base, ... capped at cap
    """
    delay = base
    for _ in range(attempts):
        yield min(delay, cap)
        delay *= 2
