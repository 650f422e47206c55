"""Status codes and exception classes for the Docker action executor."""

from enum import Enum, IntEnum
from typing import Any, Dict, Optional


class StatusCode(IntEnum):
    """Canonical status codes returned to the worker.

    Values match the gRPC canonical codes so the worker can forward them
    unchanged.
    """

    OK = 0
    CANCELLED = 1
    UNKNOWN = 2
    INVALID_ARGUMENT = 3
    DEADLINE_EXCEEDED = 4
    NOT_FOUND = 5
    FAILED_PRECONDITION = 9
    INTERNAL = 13
    UNAVAILABLE = 14


class ErrorType(str, Enum):
    """Error type enumeration."""

    IMAGE_UNAVAILABLE = "image_unavailable"
    IMAGE_PULL_TIMEOUT = "image_pull_timeout"
    CONTAINER_CREATE = "container_create"
    CONTAINER_START = "container_start"
    EXEC_CREATE = "exec_create"
    EXEC_ATTACH = "exec_attach"
    EXIT_CODE_UNAVAILABLE = "exit_code_unavailable"
    CLEANUP = "cleanup"
    CANCELLED = "cancelled"
    RUNTIME_UNAVAILABLE = "runtime_unavailable"
    INTERNAL = "internal"


# Custom Exception Classes


class DockerExecutorException(Exception):
    """Base exception for the Docker action executor."""

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.INTERNAL,
        code: StatusCode = StatusCode.INTERNAL,
        container_id: Optional[str] = None,
    ):
        self.message = message
        self.error_type = error_type
        self.code = code
        self.container_id = container_id
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a log/response friendly mapping."""
        data: Dict[str, Any] = {
            "error": self.message,
            "error_type": self.error_type.value,
            "code": self.code.name,
        }
        if self.container_id:
            data["container_id"] = self.container_id[:12]
        return data


class ImageUnavailableError(DockerExecutorException):
    """Image is not present locally and cannot be pulled."""

    def __init__(self, image: str, message: str = None, **kwargs):
        self.image = image
        super().__init__(
            message=message or f"Image {image} is not available",
            error_type=ErrorType.IMAGE_UNAVAILABLE,
            code=StatusCode.NOT_FOUND,
            **kwargs,
        )


class ImagePullTimeoutError(DockerExecutorException):
    """Image pull did not finish within the configured ceiling."""

    def __init__(self, image: str, timeout: float, **kwargs):
        self.image = image
        self.timeout = timeout
        super().__init__(
            message=f"Pulling image {image} did not complete within {timeout:g}s",
            error_type=ErrorType.IMAGE_PULL_TIMEOUT,
            code=StatusCode.DEADLINE_EXCEEDED,
            **kwargs,
        )


class ContainerCreateError(DockerExecutorException):
    """Runtime rejected the container configuration."""

    def __init__(self, message: str = "Failed to create container", **kwargs):
        super().__init__(
            message=message,
            error_type=ErrorType.CONTAINER_CREATE,
            code=StatusCode.FAILED_PRECONDITION,
            **kwargs,
        )


class ContainerStartError(DockerExecutorException):
    """Runtime could not start a created container."""

    def __init__(self, message: str = "Failed to start container", **kwargs):
        super().__init__(
            message=message,
            error_type=ErrorType.CONTAINER_START,
            code=StatusCode.INTERNAL,
            **kwargs,
        )


class ExecCreateError(DockerExecutorException):
    """Runtime could not create an exec instance in the container.

    stdout and stderr are always empty since nothing ran.
    """

    def __init__(self, message: str = "Failed to create exec instance", **kwargs):
        self.stdout = b""
        self.stderr = b""
        super().__init__(
            message=message,
            error_type=ErrorType.EXEC_CREATE,
            code=StatusCode.INTERNAL,
            **kwargs,
        )


class ExecAttachError(DockerExecutorException):
    """Output stream of an exec instance broke before the command exited.

    Carries the output read before the stream broke.
    """

    def __init__(
        self,
        message: str = "Failed to read exec output",
        stdout: bytes = b"",
        stderr: bytes = b"",
        **kwargs,
    ):
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(
            message=message,
            error_type=ErrorType.EXEC_ATTACH,
            code=StatusCode.INTERNAL,
            **kwargs,
        )


class ExitCodeUnavailableError(DockerExecutorException):
    """Exec finished but the runtime never reported an exit code.

    Carries the output captured before the failure so callers can still
    surface it for diagnostics.
    """

    def __init__(
        self,
        exec_id: str,
        attempts: int,
        stdout: bytes = b"",
        stderr: bytes = b"",
        **kwargs,
    ):
        self.exec_id = exec_id
        self.attempts = attempts
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(
            message=f"Exit code for exec {exec_id[:12]} unavailable after {attempts} attempts",
            error_type=ErrorType.EXIT_CODE_UNAVAILABLE,
            code=StatusCode.INTERNAL,
            **kwargs,
        )


class CleanupError(DockerExecutorException):
    """Container removal failed. Logged, never propagated to callers."""

    def __init__(self, message: str = "Failed to remove container", **kwargs):
        super().__init__(
            message=message,
            error_type=ErrorType.CLEANUP,
            code=StatusCode.INTERNAL,
            **kwargs,
        )


class ExecutionCancelledError(DockerExecutorException):
    """Caller cancelled the orchestration while it was blocked."""

    def __init__(self, stage: str, **kwargs):
        self.stage = stage
        super().__init__(
            message=f"Execution cancelled during {stage}",
            error_type=ErrorType.CANCELLED,
            code=StatusCode.CANCELLED,
            **kwargs,
        )


class RuntimeUnavailableError(DockerExecutorException):
    """Docker daemon cannot be reached."""

    def __init__(self, message: str = None, **kwargs):
        super().__init__(
            message=message or "Docker runtime is currently unavailable",
            error_type=ErrorType.RUNTIME_UNAVAILABLE,
            code=StatusCode.UNAVAILABLE,
            **kwargs,
        )
