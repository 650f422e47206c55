"""Docker client factory.

The worker builds one APIClient at process start and passes it to every
orchestrator. The client keeps an HTTP connection pool and is safe to share
between threads running independent actions.
"""

from typing import Optional

import docker
import structlog
from docker.errors import DockerException
from docker.utils import kwargs_from_env

from ...config import DockerConfig, settings
from ...models.errors import RuntimeUnavailableError

logger = structlog.get_logger(__name__)


class DockerClientFactory:
    """Builds the low-level Docker API client from settings."""

    def __init__(self, config: Optional[DockerConfig] = None):
        """Initialize the factory.

        Args:
            config: Docker connection settings, defaults to settings.docker
        """
        self._config = config or settings.docker

    def create(self) -> docker.APIClient:
        """Create a connected API client.

        The daemon is pinged once before the client is handed out.

        Returns:
            docker.APIClient ready for use

        Raises:
            RuntimeUnavailableError: If the daemon cannot be reached
        """
        kwargs = kwargs_from_env()
        if self._config.docker_base_url:
            kwargs["base_url"] = self._config.docker_base_url
        if self._config.docker_tls_verify and not kwargs.get("tls"):
            kwargs["tls"] = True

        try:
            client = docker.APIClient(
                version=self._config.docker_api_version,
                timeout=self._config.docker_api_timeout_seconds,
                max_pool_size=self._config.docker_max_pool_size,
                **kwargs,
            )
        except DockerException as e:
            logger.error(
                "Docker client initialization failed",
                base_url=kwargs.get("base_url"),
                error=str(e),
            )
            raise RuntimeUnavailableError(
                message=f"Failed to connect to Docker daemon: {e}"
            ) from e

        if not ping(client):
            client.close()
            raise RuntimeUnavailableError(
                message=f"Docker daemon not reachable at {client.base_url}. "
                "Ensure Docker is running and the worker can access its socket."
            )

        logger.info(
            "Docker client initialized",
            base_url=client.base_url,
            api_version=client.api_version,
        )
        return client


def ping(client: docker.APIClient) -> bool:
    """Check that the daemon answers."""
    try:
        return bool(client.ping())
    except (DockerException, OSError) as e:
        logger.warning("Docker ping failed", error=str(e))
        return False
