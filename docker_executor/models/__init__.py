"""Data models for the Docker action executor."""

from .execution import (
    ActionExecution,
    ActionResult,
    ContainerSettings,
    CpuLimits,
    ExecutionOutcome,
    ExecutionRequest,
    ExecutionStatus,
    MemoryLimits,
    ResourceLimits,
)
from .container import ContainerHandle, ContainerState
from .errors import (
    StatusCode,
    ErrorType,
    DockerExecutorException,
    ImageUnavailableError,
    ImagePullTimeoutError,
    ContainerCreateError,
    ContainerStartError,
    ExecCreateError,
    ExecAttachError,
    ExitCodeUnavailableError,
    CleanupError,
    ExecutionCancelledError,
    RuntimeUnavailableError,
)

__all__ = [
    # Execution models
    "ActionExecution",
    "ActionResult",
    "ContainerSettings",
    "CpuLimits",
    "ExecutionOutcome",
    "ExecutionRequest",
    "ExecutionStatus",
    "MemoryLimits",
    "ResourceLimits",
    # Container models
    "ContainerHandle",
    "ContainerState",
    # Error models
    "StatusCode",
    "ErrorType",
    "DockerExecutorException",
    "ImageUnavailableError",
    "ImagePullTimeoutError",
    "ContainerCreateError",
    "ContainerStartError",
    "ExecCreateError",
    "ExecAttachError",
    "ExitCodeUnavailableError",
    "CleanupError",
    "ExecutionCancelledError",
    "RuntimeUnavailableError",
]
