"""Command execution inside running action containers.

Each command is an exec instance in the container. Output is read on a
reader thread into separate stdout and stderr buffers while the calling
thread waits for completion, the wall-clock deadline, or cancellation.
"""

import socket
import threading
import time
from typing import List, Optional, Sequence, Tuple

import docker
import structlog
from docker.errors import DockerException
from docker.utils.socket import STDERR, STDOUT, frames_iter

from ...config import settings
from ...models.container import ContainerHandle, ContainerState
from ...models.errors import (
    ExecAttachError,
    ExecCreateError,
    ExecutionCancelledError,
    ExitCodeUnavailableError,
)
from ...models.execution import ExecutionOutcome, ExecutionStatus
from .utils import backoff_delays, disable_socket_timeout, wait_for_event

logger = structlog.get_logger(__name__)


class OutputCapture:
    """Thread-safe stdout/stderr buffers filled by the reader thread.

    Also owns the exec socket so a run that is abandoned can unblock the
    reader by closing it.
    """

    def __init__(self):
        self._stdout = bytearray()
        self._stderr = bytearray()
        self._lock = threading.Lock()
        self._sock = None
        self._closed = False
        self.done = threading.Event()
        self.error: Optional[BaseException] = None

    def append(self, stream_id: int, data: bytes) -> None:
        """Append a frame to the buffer of its stream."""
        if not data:
            return
        with self._lock:
            if stream_id == STDERR:
                self._stderr.extend(data)
            else:
                self._stdout.extend(data)

    def snapshot(self) -> Tuple[bytes, bytes]:
        """Return (stdout, stderr) captured so far."""
        with self._lock:
            return bytes(self._stdout), bytes(self._stderr)

    def attach(self, sock) -> bool:
        """Register the exec socket. Returns False if the capture is already closed."""
        with self._lock:
            if self._closed:
                return False
            self._sock = sock
            return True

    def close(self) -> None:
        """Shut down and close the exec socket, waking a blocked reader."""
        with self._lock:
            self._closed = True
            sock, self._sock = self._sock, None
        if sock is None:
            return

        raw = getattr(sock, "_sock", None) or sock
        try:
            if hasattr(raw, "shutdown"):
                raw.shutdown(socket.SHUT_RDWR)
            sock.close()
        except OSError as e:
            logger.debug("Exec socket close failed", error=str(e))


class ContainerExecutor:
    """Runs a command in a started container and collects its result."""

    def __init__(
        self,
        client: docker.APIClient,
        poll_interval: Optional[float] = None,
        exit_code_attempts: Optional[int] = None,
        exit_code_backoff: Optional[float] = None,
        exit_code_backoff_max: Optional[float] = None,
    ):
        """Initialize the executor.

        Args:
            client: Shared Docker API client
            poll_interval: Cancellation polling interval in seconds
            exit_code_attempts: Exit code inspections before giving up
            exit_code_backoff: First retry delay in seconds
            exit_code_backoff_max: Maximum retry delay in seconds
        """
        self._client = client
        self._poll_interval = poll_interval or settings.wait_poll_interval_seconds
        self._exit_code_attempts = exit_code_attempts or settings.exit_code_retry_attempts
        self._exit_code_backoff = exit_code_backoff or settings.exit_code_retry_backoff_seconds
        self._exit_code_backoff_max = (
            exit_code_backoff_max or settings.exit_code_retry_backoff_max_seconds
        )

    def run(
        self,
        handle: ContainerHandle,
        arguments: Sequence[str],
        timeout: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ExecutionOutcome:
        """Run a command in the container and wait for it.

        A run that exceeds the deadline is not an error: it returns a
        TIMED_OUT outcome with whatever output was captured so far. The
        command keeps running until the container is removed.

        Args:
            handle: Started container to run in
            arguments: Command argument vector, passed as-is (no shell)
            timeout: Wall-clock deadline in seconds
            cancel_event: Optional event the caller sets to abandon the run

        Returns:
            ExecutionOutcome with status, exit code and captured output

        Raises:
            ExecCreateError: If the exec instance cannot be created
            ExecAttachError: If the output stream fails before completion
            ExitCodeUnavailableError: If the exit code never becomes available
            ExecutionCancelledError: If cancelled while waiting
        """
        if timeout is None:
            timeout = settings.default_execution_timeout_seconds

        exec_id = self._create_exec(handle, arguments)
        handle.transition(ContainerState.EXECUTING)

        capture = OutputCapture()
        started = time.monotonic()
        reader = threading.Thread(
            target=self._stream_output,
            args=(exec_id, capture),
            name=f"exec-output-{exec_id[:12]}",
            daemon=True,
        )
        reader.start()

        try:
            finished = wait_for_event(
                capture.done,
                timeout=timeout,
                stage="command run",
                cancel_event=cancel_event,
                interval=self._poll_interval,
            )
        except ExecutionCancelledError:
            capture.close()
            raise
        execution_time_ms = (time.monotonic() - started) * 1000
        stdout, stderr = capture.snapshot()

        if not finished:
            capture.close()
            logger.warning(
                "Command timed out",
                container_id=handle.short_id,
                exec_id=exec_id[:12],
                timeout=timeout,
                stdout_bytes=len(stdout),
                stderr_bytes=len(stderr),
            )
            return ExecutionOutcome(
                status=ExecutionStatus.TIMED_OUT,
                stdout=stdout,
                stderr=stderr,
                execution_time_ms=execution_time_ms,
            )

        if capture.error is not None:
            raise ExecAttachError(
                message=f"Failed to read exec output: {capture.error}",
                stdout=stdout,
                stderr=stderr,
                container_id=handle.container_id,
            ) from capture.error

        handle.transition(ContainerState.EXITED)
        exit_code = self._inspect_exit_code(
            exec_id, handle, stdout, stderr, cancel_event
        )

        logger.debug(
            "Command finished",
            container_id=handle.short_id,
            exec_id=exec_id[:12],
            exit_code=exit_code,
            execution_time_ms=round(execution_time_ms, 2),
        )
        return ExecutionOutcome(
            status=ExecutionStatus.COMPLETED,
            exit_code=exit_code,
            stdout=stdout,
            stderr=stderr,
            execution_time_ms=execution_time_ms,
        )

    def _create_exec(self, handle: ContainerHandle, arguments: Sequence[str]) -> str:
        """Create the exec instance and return its id."""
        cmd: List[str] = list(arguments)
        try:
            response = self._client.exec_create(
                handle.container_id,
                cmd=cmd,
                stdout=True,
                stderr=True,
                stdin=False,
                tty=False,
            )
        except (DockerException, OSError) as e:
            raise ExecCreateError(
                message=f"Failed to create exec for {cmd[0]}: {e}",
                container_id=handle.container_id,
            ) from e

        exec_id = response["Id"]
        logger.debug(
            "Created exec",
            container_id=handle.short_id,
            exec_id=exec_id[:12],
            argv0=cmd[0],
            argc=len(cmd),
        )
        return exec_id

    def _stream_output(self, exec_id: str, capture: OutputCapture) -> None:
        """Start the exec and demultiplex its output. Runs on the reader thread."""
        try:
            sock = self._client.exec_start(exec_id, tty=False, socket=True)
            if not capture.attach(sock):
                sock.close()
                return
            disable_socket_timeout(sock)
            try:
                for stream_id, data in frames_iter(sock, tty=False):
                    capture.append(stream_id if stream_id in (STDOUT, STDERR) else STDOUT, data)
            finally:
                sock.close()
        except Exception as e:
            capture.error = e
        finally:
            capture.done.set()

    def _inspect_exit_code(
        self,
        exec_id: str,
        handle: ContainerHandle,
        stdout: bytes,
        stderr: bytes,
        cancel_event: Optional[threading.Event],
    ) -> int:
        """Query the exit code, retrying while the runtime has not recorded it."""
        delays = list(
            backoff_delays(
                self._exit_code_attempts, self._exit_code_backoff, self._exit_code_backoff_max
            )
        )
        for attempt, delay in enumerate(delays, start=1):
            try:
                info = self._client.exec_inspect(exec_id)
            except (DockerException, OSError) as e:
                logger.debug(
                    "Exec inspect failed",
                    exec_id=exec_id[:12],
                    attempt=attempt,
                    error=str(e),
                )
                info = {}

            exit_code = info.get("ExitCode")
            if exit_code is not None and not info.get("Running", False):
                return exit_code

            if attempt < len(delays):
                if cancel_event is None:
                    time.sleep(delay)
                elif cancel_event.wait(delay):
                    raise ExecutionCancelledError(
                        stage="exit code inspection", container_id=handle.container_id
                    )

        raise ExitCodeUnavailableError(
            exec_id=exec_id,
            attempts=len(delays),
            stdout=stdout,
            stderr=stderr,
            container_id=handle.container_id,
        )
