"""Container lifecycle management for action execution."""

from datetime import datetime, timezone
from typing import Any, Dict

import docker
import structlog
from docker.errors import APIError, DockerException, NotFound

from ...config import settings
from ...models.container import ContainerHandle, ContainerState
from ...models.errors import (
    CleanupError,
    ContainerCreateError,
    ContainerStartError,
    RuntimeUnavailableError,
)
from ...models.execution import ExecutionRequest

logger = structlog.get_logger(__name__)

NANO_CPUS_PER_CORE = 1_000_000_000
CPU_SHARES_PER_CORE = 1024
MIN_CPU_SHARES = 2


class ContainerManager:
    """Creates, starts and removes one container per action.

    The execution directory is bind-mounted read-write at its own absolute
    path and used as the working directory, so paths staged by the worker
    resolve identically inside the container.
    """

    def __init__(self, client: docker.APIClient):
        """Initialize the container manager.

        Args:
            client: Shared Docker API client
        """
        self._client = client

    def build_labels(self, request: ExecutionRequest) -> Dict[str, str]:
        """Labels marking a container as executor-managed."""
        prefix = settings.container_label_prefix
        return {
            f"{prefix}.managed": "true",
            f"{prefix}.type": "action",
            f"{prefix}.execution-dir": str(request.execution_directory),
            f"{prefix}.image": request.image,
            f"{prefix}.created-at": datetime.now(timezone.utc).isoformat(),
        }

    def build_host_config(self, request: ExecutionRequest) -> Dict[str, Any]:
        """Build the host config: bind mount, network mode and resource limits."""
        exec_dir = str(request.execution_directory)
        limits = request.resource_limits

        host_kwargs: Dict[str, Any] = {
            "binds": {exec_dir: {"bind": exec_dir, "mode": "rw"}},
        }
        if not limits.network:
            host_kwargs["network_mode"] = "none"
        if limits.cpu.max > 0:
            host_kwargs["nano_cpus"] = int(limits.cpu.max * NANO_CPUS_PER_CORE)
        if limits.cpu.min > 0:
            host_kwargs["cpu_shares"] = max(
                MIN_CPU_SHARES, int(limits.cpu.min * CPU_SHARES_PER_CORE)
            )
        if limits.memory.limit_bytes > 0:
            host_kwargs["mem_limit"] = limits.memory.limit_bytes

        return self._client.create_host_config(**host_kwargs)

    def create(self, request: ExecutionRequest) -> ContainerHandle:
        """Create the action container.

        Args:
            request: Execution request carrying image, limits, env and directory

        Returns:
            ContainerHandle in the CREATED state

        Raises:
            ContainerCreateError: If the runtime rejects the configuration
            RuntimeUnavailableError: If the daemon cannot be reached
        """
        exec_dir = str(request.execution_directory)
        labels = self.build_labels(request)

        try:
            host_config = self.build_host_config(request)
            response = self._client.create_container(
                image=request.image,
                entrypoint=list(settings.container_keepalive_command),
                environment=request.environment_list(),
                working_dir=exec_dir,
                volumes=[exec_dir],
                host_config=host_config,
                network_disabled=not request.resource_limits.network,
                tty=False,
                stdin_open=False,
                labels=labels,
                use_config_proxy=False,
            )
        except APIError as e:
            logger.error(
                "Container creation rejected",
                image=request.image,
                execution_dir=exec_dir,
                error=str(e),
            )
            raise ContainerCreateError(
                message=f"Failed to create container from {request.image}: {e.explanation or e}"
            ) from e
        except DockerException as e:
            # Client-side validation, e.g. a limit the API version cannot express
            raise ContainerCreateError(
                message=f"Invalid container configuration: {e}"
            ) from e
        except OSError as e:
            raise RuntimeUnavailableError(
                message=f"Failed to create container: {e}"
            ) from e

        warnings = list(response.get("Warnings") or [])
        handle = ContainerHandle(
            container_id=response["Id"],
            execution_directory=request.execution_directory,
            image=request.image,
            created_at=datetime.now(timezone.utc),
            warnings=warnings,
            labels=labels,
        )

        for warning in warnings:
            logger.warning("Container create warning", container_id=handle.short_id, warning=warning)

        logger.info(
            "Created container",
            container_id=handle.short_id,
            image=request.image,
            network=request.resource_limits.network,
            execution_dir=exec_dir,
        )
        return handle

    def start(self, handle: ContainerHandle) -> None:
        """Start a created container.

        Raises:
            ContainerStartError: If the runtime cannot start it
        """
        try:
            self._client.start(handle.container_id)
        except (DockerException, OSError) as e:
            detail = e.explanation if isinstance(e, APIError) and e.explanation else str(e)
            raise ContainerStartError(
                message=f"Failed to start container: {detail}",
                container_id=handle.container_id,
            ) from e

        handle.transition(ContainerState.STARTED)
        logger.debug("Started container", container_id=handle.short_id)

    def remove(self, handle: ContainerHandle) -> bool:
        """Force-remove the container and its anonymous volumes.

        Safe to call in any state and more than once. Never raises: a
        missing container counts as removed and any other failure is logged.

        Returns:
            True if the container is gone, False if removal failed
        """
        if handle.removed:
            return True

        try:
            self._client.remove_container(handle.container_id, v=True, force=True)
            logger.debug("Removed container", container_id=handle.short_id)
            return True
        except NotFound:
            logger.debug("Container already gone", container_id=handle.short_id)
            return True
        except (DockerException, OSError) as e:
            error = CleanupError(
                message=f"Failed to remove container: {e}",
                container_id=handle.container_id,
            )
            logger.error("Container cleanup failed", **error.to_dict())
            return False
        finally:
            handle.transition(ContainerState.REMOVED)
