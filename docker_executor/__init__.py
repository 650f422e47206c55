"""Run build actions in isolated Docker containers.

Typical worker usage:

    from docker_executor import DockerClientFactory, ExecutionOrchestrator, setup_logging

    setup_logging()
    client = DockerClientFactory().create()
    orchestrator = ExecutionOrchestrator(client)
    execution = orchestrator.run_action(request)
"""

from .models import (
    ActionExecution,
    ActionResult,
    ContainerSettings,
    CpuLimits,
    ExecutionRequest,
    ExecutionStatus,
    MemoryLimits,
    ResourceLimits,
    StatusCode,
)
from .services import ExecutionOrchestrator, run_action
from .services.container import DockerClientFactory
from .utils import setup_logging

__version__ = "0.1.0"

__all__ = [
    "ActionExecution",
    "ActionResult",
    "ContainerSettings",
    "CpuLimits",
    "ExecutionRequest",
    "ExecutionStatus",
    "MemoryLimits",
    "ResourceLimits",
    "StatusCode",
    "ExecutionOrchestrator",
    "run_action",
    "DockerClientFactory",
    "setup_logging",
]
