"""Action execution request, outcome and result models."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import StatusCode


class ExecutionStatus(str, Enum):
    """Terminal status of one command run."""

    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    FAILED_TO_START = "failed_to_start"
    FAILED_TO_EXECUTE = "failed_to_execute"


class ContainerSettings(BaseModel):
    """Image and network choice for the action container."""

    model_config = ConfigDict(frozen=True)

    container_image: str = Field(..., min_length=1, description="Image reference to run in")
    network: bool = Field(default=False, description="Allow network access inside the container")


class CpuLimits(BaseModel):
    """CPU bounds in cores. Zero means unbounded."""

    model_config = ConfigDict(frozen=True)

    min: float = Field(default=0, ge=0)
    max: float = Field(default=0, ge=0)


class MemoryLimits(BaseModel):
    """Memory bound in bytes. Zero means unbounded."""

    model_config = ConfigDict(frozen=True)

    limit_bytes: int = Field(default=0, ge=0)


class ResourceLimits(BaseModel):
    """Constraints applied to the container at creation time."""

    model_config = ConfigDict(frozen=True)

    container_settings: ContainerSettings
    cpu: CpuLimits = Field(default_factory=CpuLimits)
    memory: MemoryLimits = Field(default_factory=MemoryLimits)

    @property
    def image(self) -> str:
        return self.container_settings.container_image

    @property
    def network(self) -> bool:
        return self.container_settings.network


class ExecutionRequest(BaseModel):
    """Everything needed to run one action in a fresh container.

    The execution directory must already exist and hold the staged inputs.
    It is bind-mounted at the same absolute path and used as the working
    directory of the command.
    """

    model_config = ConfigDict(frozen=True)

    execution_directory: Path
    resource_limits: ResourceLimits
    timeout_seconds: Optional[int] = Field(
        default=None, ge=1, description="Wall-clock deadline for the command run"
    )
    arguments: List[str] = Field(..., min_length=1, description="Command argument vector")
    environment: Dict[str, str] = Field(default_factory=dict)

    @field_validator("execution_directory")
    @classmethod
    def resolve_directory(cls, v: Path) -> Path:
        """Bind mounts and working directories need absolute, resolved paths."""
        return v.expanduser().resolve()

    @property
    def image(self) -> str:
        return self.resource_limits.image

    def environment_list(self) -> List[str]:
        """Flatten the environment mapping into KEY=VALUE entries."""
        return [f"{key}={value}" for key, value in self.environment.items()]


@dataclass
class ExecutionOutcome:
    """Raw result accumulated while running a command."""

    status: ExecutionStatus = ExecutionStatus.COMPLETED
    exit_code: Optional[int] = None
    stdout: bytes = b""
    stderr: bytes = b""
    execution_time_ms: float = 0.0


class ActionResult(BaseModel):
    """Result handed back to the worker for one action."""

    model_config = ConfigDict(frozen=True)

    exit_code: Optional[int] = Field(default=None, description="Command exit code, unset if unknown")
    stdout_raw: bytes = Field(default=b"", description="Captured standard output")
    stderr_raw: bytes = Field(default=b"", description="Captured standard error")
    status: ExecutionStatus = Field(default=ExecutionStatus.COMPLETED)
    execution_time_ms: float = Field(default=0.0, ge=0)


@dataclass
class ActionExecution:
    """Status code plus result returned by one orchestration."""

    code: StatusCode
    result: Optional[ActionResult] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.code == StatusCode.OK

    @property
    def exit_code(self) -> Optional[int]:
        return self.result.exit_code if self.result else None

    @property
    def stdout(self) -> bytes:
        return self.result.stdout_raw if self.result else b""

    @property
    def stderr(self) -> bytes:
        return self.result.stderr_raw if self.result else b""

    def as_tuple(self) -> Tuple[StatusCode, Optional[int], bytes, bytes]:
        """Return (code, exit_code, stdout, stderr)."""
        return self.code, self.exit_code, self.stdout, self.stderr
