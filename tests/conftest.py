"""Pytest configuration and shared fixtures."""

import threading
from datetime import datetime, timezone
from typing import Iterator, List, Tuple
from unittest.mock import MagicMock

import docker
import pytest
import structlog

from docker_executor.models import (
    ContainerHandle,
    ContainerSettings,
    ContainerState,
    ExecutionRequest,
    ResourceLimits,
)

CONTAINER_ID = "c0ffee" * 8
EXEC_ID = "e7ec" * 16

STDOUT = 1
STDERR = 2


@pytest.fixture
def mock_client():
    """Mock Docker API client with a happy-path configuration."""
    client = MagicMock(spec=docker.APIClient)
    client.base_url = "http+docker://localhost"

    client.ping.return_value = True
    client.inspect_image.return_value = {"Id": "sha256:abc123"}
    client.pull.return_value = iter([])
    client.create_host_config.side_effect = lambda **kwargs: dict(kwargs)
    client.create_container.return_value = {"Id": CONTAINER_ID, "Warnings": []}
    client.start.return_value = None
    client.exec_create.return_value = {"Id": EXEC_ID}
    client.exec_start.return_value = MagicMock(name="exec-socket")
    client.exec_inspect.return_value = {"ExitCode": 0, "Running": False}
    client.remove_container.return_value = None

    return client


@pytest.fixture
def exec_frames(monkeypatch):
    """Control the frames the exec output reader sees.

    Returns a list; tests append (stream_id, data) tuples before running.
    """
    frames: List[Tuple[int, bytes]] = []

    def fake_frames_iter(sock, tty) -> Iterator[Tuple[int, bytes]]:
        return iter(list(frames))

    monkeypatch.setattr(
        "docker_executor.services.container.executor.frames_iter", fake_frames_iter
    )
    return frames


@pytest.fixture
def hanging_exec_output(monkeypatch):
    """Make the exec output stream yield one frame per stream and then block.

    Yields the release event; it is set on teardown so reader threads exit.
    """
    release = threading.Event()

    def blocking_frames_iter(sock, tty):
        yield STDOUT, b"partial out"
        yield STDERR, b"partial err"
        release.wait(10)

    monkeypatch.setattr(
        "docker_executor.services.container.executor.frames_iter", blocking_frames_iter
    )
    yield release
    release.set()


@pytest.fixture
def exec_dir(tmp_path):
    """Staged execution directory."""
    directory = (tmp_path / "operations" / "action-1").resolve()
    directory.mkdir(parents=True)
    (directory / "input.txt").write_text("input")
    return directory


@pytest.fixture
def resource_limits():
    """Alpine image with networking disabled."""
    return ResourceLimits(
        container_settings=ContainerSettings(container_image="alpine", network=False)
    )


@pytest.fixture
def sample_request(exec_dir, resource_limits):
    """The canonical `echo hi` request."""
    return ExecutionRequest(
        execution_directory=exec_dir,
        resource_limits=resource_limits,
        timeout_seconds=5,
        arguments=["echo", "hi"],
        environment={},
    )


@pytest.fixture
def started_handle(exec_dir):
    """Container handle in the STARTED state."""
    return ContainerHandle(
        container_id=CONTAINER_ID,
        execution_directory=exec_dir,
        image="alpine",
        created_at=datetime.now(timezone.utc),
        state=ContainerState.STARTED,
    )


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo any structlog configuration a test applied."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def container_id():
    """Id the mock client assigns to created containers."""
    return CONTAINER_ID


@pytest.fixture
def exec_id():
    """Id the mock client assigns to exec instances."""
    return EXEC_ID
