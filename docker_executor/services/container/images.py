"""Image provisioning for action containers."""

import threading
from typing import List, Optional

import docker
import structlog
from docker.errors import APIError, DockerException, ImageNotFound

from ...config import settings
from ...models.errors import (
    ImagePullTimeoutError,
    ImageUnavailableError,
    RuntimeUnavailableError,
)
from .utils import wait_for_event

logger = structlog.get_logger(__name__)


class ImageProvisioner:
    """Makes sure an image exists in the local image store.

    Present images are never pulled again. Missing images are pulled on a
    background thread so the wait can be bounded and cancelled; a pull that
    outlives the ceiling keeps running in the daemon but the action fails
    with ImagePullTimeoutError.
    """

    def __init__(
        self,
        client: docker.APIClient,
        pull_timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
    ):
        """Initialize the provisioner.

        Args:
            client: Shared Docker API client
            pull_timeout: Pull ceiling in seconds, defaults to settings
            poll_interval: Cancellation polling interval in seconds
        """
        self._client = client
        self._pull_timeout = (
            pull_timeout if pull_timeout is not None else settings.image_pull_timeout_seconds
        )
        self._poll_interval = poll_interval or settings.wait_poll_interval_seconds

    def is_present(self, image: str) -> bool:
        """Check the local image inventory.

        Raises:
            RuntimeUnavailableError: If the daemon cannot be queried
        """
        try:
            self._client.inspect_image(image)
            return True
        except ImageNotFound:
            return False
        except (DockerException, OSError) as e:
            raise RuntimeUnavailableError(
                message=f"Failed to inspect image {image}: {e}"
            ) from e

    def ensure_image(
        self, image: str, cancel_event: Optional[threading.Event] = None
    ) -> None:
        """Ensure the image exists locally, pulling it if absent.

        Args:
            image: Image reference, e.g. "alpine" or "gcr.io/proj/img:tag"
            cancel_event: Optional event the caller sets to abandon the wait

        Raises:
            ImageUnavailableError: If the image cannot be found or pulled
            ImagePullTimeoutError: If the pull exceeds the ceiling
            ExecutionCancelledError: If cancelled while waiting on the pull
        """
        if self.is_present(image):
            logger.debug("Image present locally", image=image)
            return

        logger.info("Image missing locally, pulling", image=image, timeout=self._pull_timeout)

        done = threading.Event()
        failures: List[Exception] = []

        def _pull_in_background() -> None:
            try:
                self._pull(image)
            except Exception as e:
                failures.append(e)
            finally:
                done.set()

        thread = threading.Thread(
            target=_pull_in_background, name=f"image-pull-{image}", daemon=True
        )
        thread.start()

        finished = wait_for_event(
            done,
            timeout=self._pull_timeout,
            stage="image pull",
            cancel_event=cancel_event,
            interval=self._poll_interval,
        )
        if not finished:
            logger.warning("Image pull timed out", image=image, timeout=self._pull_timeout)
            raise ImagePullTimeoutError(image, self._pull_timeout)

        if failures:
            raise failures[0]

        # Pull can report success for a reference that resolves elsewhere
        if not self.is_present(image):
            raise ImageUnavailableError(
                image, message=f"Image {image} not found locally after pull"
            )

        logger.info("Image pulled", image=image)

    def _pull(self, image: str) -> None:
        """Pull the image and drain the progress stream."""
        try:
            for event in self._client.pull(image, stream=True, decode=True):
                if "error" in event:
                    raise ImageUnavailableError(
                        image,
                        message=f"Failed to pull image {image}: {event['error']}",
                    )
                if "progress" not in event and event.get("status"):
                    logger.debug("Image pull progress", image=image, status=event["status"])
        except APIError as e:
            raise ImageUnavailableError(
                image, message=f"Failed to pull image {image}: {e.explanation or e}"
            ) from e
        except (DockerException, OSError) as e:
            raise RuntimeUnavailableError(
                message=f"Failed to pull image {image}: {e}"
            ) from e
