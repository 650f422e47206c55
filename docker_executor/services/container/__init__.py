"""Container management services.

This package provides Docker container management functionality split into:
- client.py: Docker client factory and availability check
- images.py: Image provisioning (inspect, bounded pull)
- manager.py: Container lifecycle management
- executor.py: Command execution in containers
- utils.py: Shared waiting and retry helpers
"""

from .client import DockerClientFactory, ping
from .images import ImageProvisioner
from .manager import ContainerManager
from .executor import ContainerExecutor, OutputCapture
from .utils import wait_for_event, backoff_delays, disable_socket_timeout

__all__ = [
    "DockerClientFactory",
    "ping",
    "ImageProvisioner",
    "ContainerManager",
    "ContainerExecutor",
    "OutputCapture",
    "wait_for_event",
    "backoff_delays",
    "disable_socket_timeout",
]
