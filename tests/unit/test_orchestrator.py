"""Unit tests for the execution orchestrator."""

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from unittest.mock import patch

import pytest
from docker.errors import APIError, DockerException, ImageNotFound

from docker_executor.models import (
    ExecutionRequest,
    ExecutionStatus,
    StatusCode,
)
from docker_executor.services import ExecutionOrchestrator, run_action
from docker_executor.services.container import ContainerExecutor, ImageProvisioner

STDOUT = 1
STDERR = 2


@pytest.fixture
def orchestrator(mock_client):
    """Orchestrator over the mock client with fast polling and retries."""
    return ExecutionOrchestrator(
        mock_client,
        provisioner=ImageProvisioner(mock_client, pull_timeout=5, poll_interval=0.01),
        executor=ContainerExecutor(
            mock_client,
            poll_interval=0.01,
            exit_code_attempts=3,
            exit_code_backoff=0.001,
            exit_code_backoff_max=0.005,
        ),
    )


class TestSuccessfulRun:
    """Tests for actions that run to completion."""

    def test_echo_hi(self, orchestrator, mock_client, sample_request, exec_frames):
        """Test the basic action returns OK, exit 0 and its stdout."""
        exec_frames.append((STDOUT, b"hi\n"))

        execution = orchestrator.run_action(sample_request)

        assert execution.as_tuple() == (StatusCode.OK, 0, b"hi\n", b"")
        assert execution.result.status == ExecutionStatus.COMPLETED
        mock_client.remove_container.assert_called_once()

    def test_present_image_not_pulled(
        self, orchestrator, mock_client, sample_request, exec_frames
    ):
        """Test no pull happens when the image is already local."""
        orchestrator.run_action(sample_request)
        orchestrator.run_action(sample_request)

        mock_client.pull.assert_not_called()

    def test_missing_image_pulled_first(
        self, orchestrator, mock_client, sample_request, exec_frames
    ):
        """Test a missing image is pulled before the container is created."""
        mock_client.inspect_image.side_effect = [
            ImageNotFound("No such image: alpine"),
            {"Id": "sha256:abc123"},
        ]

        execution = orchestrator.run_action(sample_request)

        assert execution.code == StatusCode.OK
        mock_client.pull.assert_called_once()

    def test_nonzero_exit_is_ok(self, orchestrator, mock_client, sample_request, exec_frames):
        """Test a failing command still returns StatusCode.OK."""
        exec_frames.append((STDERR, b"no such file\n"))
        mock_client.exec_inspect.return_value = {"ExitCode": 2, "Running": False}

        execution = orchestrator.run_action(sample_request)

        assert execution.as_tuple() == (StatusCode.OK, 2, b"", b"no such file\n")

    def test_environment_reaches_container(
        self, orchestrator, mock_client, exec_dir, resource_limits, exec_frames
    ):
        """Test request environment is set on the container."""
        request = ExecutionRequest(
            execution_directory=exec_dir,
            resource_limits=resource_limits,
            timeout_seconds=5,
            arguments=["printenv", "KEY"],
            environment={"KEY": "VALUE"},
        )

        orchestrator.run_action(request)

        env = mock_client.create_container.call_args.kwargs["environment"]
        assert env == ["KEY=VALUE"]

    def test_concurrent_actions(self, orchestrator, mock_client, sample_request, exec_frames):
        """Test one orchestrator serves concurrent actions."""
        exec_frames.append((STDOUT, b"hi\n"))

        with ThreadPoolExecutor(max_workers=4) as pool:
            executions = list(pool.map(orchestrator.run_action, [sample_request] * 4))

        assert all(e.code == StatusCode.OK for e in executions)
        assert len(mock_client.remove_container.call_args_list) == 4


class TestTimeout:
    """Tests for actions exceeding their deadline."""

    def test_timeout_returns_partial_output(
        self, orchestrator, mock_client, exec_dir, resource_limits, hanging_exec_output
    ):
        """Test a timed out action is OK with TIMED_OUT status and partial output."""
        request = ExecutionRequest(
            execution_directory=exec_dir,
            resource_limits=resource_limits,
            timeout_seconds=1,
            arguments=["sleep", "60"],
        )

        execution = orchestrator.run_action(request)

        assert execution.code == StatusCode.OK
        assert execution.result.status == ExecutionStatus.TIMED_OUT
        assert execution.exit_code is None
        assert execution.stdout == b"partial out"
        assert execution.stderr == b"partial err"
        mock_client.remove_container.assert_called_once()


class TestFailures:
    """Tests for failures at each stage."""

    def test_image_unavailable(self, orchestrator, mock_client, sample_request):
        """Test an unpullable image fails with NOT_FOUND and creates nothing."""
        mock_client.inspect_image.side_effect = ImageNotFound("No such image")
        mock_client.pull.return_value = iter([{"error": "pull access denied"}])

        execution = orchestrator.run_action(sample_request)

        assert execution.code == StatusCode.NOT_FOUND
        assert execution.result is None
        mock_client.create_container.assert_not_called()
        mock_client.remove_container.assert_not_called()

    def test_runtime_unavailable(self, orchestrator, mock_client, sample_request):
        """Test an unreachable daemon fails with UNAVAILABLE."""
        mock_client.inspect_image.side_effect = DockerException("connection refused")

        execution = orchestrator.run_action(sample_request)

        assert execution.code == StatusCode.UNAVAILABLE

    def test_create_failure_skips_removal(self, orchestrator, mock_client, sample_request):
        """Test a rejected create fails with FAILED_PRECONDITION and removes nothing."""
        mock_client.create_container.side_effect = APIError("invalid mount config")

        execution = orchestrator.run_action(sample_request)

        assert execution.code == StatusCode.FAILED_PRECONDITION
        assert execution.error
        mock_client.remove_container.assert_not_called()

    def test_start_failure_removes_container(
        self, orchestrator, mock_client, sample_request, container_id
    ):
        """Test a start failure reports FAILED_TO_START and still removes."""
        mock_client.start.side_effect = APIError("OCI runtime create failed")

        execution = orchestrator.run_action(sample_request)

        assert execution.code == StatusCode.INTERNAL
        assert execution.result.status == ExecutionStatus.FAILED_TO_START
        assert execution.exit_code is None
        mock_client.remove_container.assert_called_once_with(container_id, v=True, force=True)
        mock_client.exec_create.assert_not_called()

    def test_exec_failure_removes_container(self, orchestrator, mock_client, sample_request):
        """Test an exec creation failure reports FAILED_TO_EXECUTE and still removes."""
        mock_client.exec_create.side_effect = APIError("container is paused")

        execution = orchestrator.run_action(sample_request)

        assert execution.code == StatusCode.INTERNAL
        assert execution.result.status == ExecutionStatus.FAILED_TO_EXECUTE
        assert execution.exit_code is None
        assert execution.stdout == b""
        mock_client.remove_container.assert_called_once()

    def test_broken_stream_keeps_partial_output(
        self, orchestrator, mock_client, sample_request, monkeypatch
    ):
        """Test a stream that breaks mid-run returns the output read so far."""

        def broken_frames_iter(sock, tty):
            yield STDOUT, b"diagnostic"
            yield STDERR, b"warning"
            raise ConnectionResetError("connection reset by peer")

        monkeypatch.setattr(
            "docker_executor.services.container.executor.frames_iter", broken_frames_iter
        )

        execution = orchestrator.run_action(sample_request)

        assert execution.code == StatusCode.INTERNAL
        assert execution.result.status == ExecutionStatus.FAILED_TO_EXECUTE
        assert execution.exit_code is None
        assert execution.stdout == b"diagnostic"
        assert execution.stderr == b"warning"
        mock_client.remove_container.assert_called_once()

    def test_exit_code_unavailable(
        self, orchestrator, mock_client, sample_request, exec_frames
    ):
        """Test missing exit code reports INTERNAL with the captured output."""
        exec_frames.append((STDOUT, b"hi\n"))
        mock_client.exec_inspect.return_value = {"ExitCode": None, "Running": True}

        execution = orchestrator.run_action(sample_request)

        assert execution.code == StatusCode.INTERNAL
        assert execution.result.status == ExecutionStatus.FAILED_TO_EXECUTE
        assert execution.stdout == b"hi\n"
        mock_client.remove_container.assert_called_once()

    def test_translate_failure_removes_container(
        self, orchestrator, mock_client, sample_request, exec_frames
    ):
        """Test an unexpected failure after the run still removes once."""
        with patch(
            "docker_executor.services.orchestrator.translate_outcome",
            side_effect=RuntimeError("boom"),
        ):
            execution = orchestrator.run_action(sample_request)

        assert execution.code == StatusCode.INTERNAL
        assert "boom" in execution.error
        mock_client.remove_container.assert_called_once()

    def test_removal_failure_does_not_mask_result(
        self, orchestrator, mock_client, sample_request, exec_frames
    ):
        """Test a failed removal is logged and the result still returned."""
        exec_frames.append((STDOUT, b"hi\n"))
        mock_client.remove_container.side_effect = APIError("device or resource busy")

        execution = orchestrator.run_action(sample_request)

        assert execution.as_tuple() == (StatusCode.OK, 0, b"hi\n", b"")


class TestCancellation:
    """Tests for caller cancellation and interrupts."""

    def test_cancelled_run_removes_container(
        self, orchestrator, mock_client, sample_request, hanging_exec_output
    ):
        """Test cancelling during the run reports CANCELLED and removes."""
        cancel = threading.Event()
        timer = threading.Timer(0.1, cancel.set)
        timer.start()
        try:
            execution = orchestrator.run_action(sample_request, cancel_event=cancel)
        finally:
            timer.cancel()

        assert execution.code == StatusCode.CANCELLED
        mock_client.remove_container.assert_called_once()

    def test_keyboard_interrupt_propagates_after_cleanup(
        self, orchestrator, mock_client, sample_request
    ):
        """Test KeyboardInterrupt is re-raised once the container is removed."""
        with patch.object(orchestrator.executor, "run", side_effect=KeyboardInterrupt):
            with pytest.raises(KeyboardInterrupt):
                orchestrator.run_action(sample_request)

        mock_client.remove_container.assert_called_once()


class TestRunActionFunction:
    """Tests for the module-level run_action entry point."""

    def test_timedelta_timeout(self, mock_client, exec_dir, resource_limits, exec_frames):
        """Test the function form accepts a timedelta deadline."""
        exec_frames.append((STDOUT, b"hi\n"))

        execution = run_action(
            mock_client,
            exec_dir,
            resource_limits,
            timedelta(seconds=5),
            ["echo", "hi"],
        )

        assert execution.as_tuple() == (StatusCode.OK, 0, b"hi\n", b"")

    def test_string_directory(self, mock_client, exec_dir, resource_limits, exec_frames):
        """Test the execution directory may be passed as a string."""
        run_action(mock_client, str(exec_dir), resource_limits, 5, ["true"])

        kwargs = mock_client.create_container.call_args.kwargs
        assert kwargs["working_dir"] == str(exec_dir)

    def test_empty_arguments_invalid(self, mock_client, exec_dir, resource_limits):
        """Test invalid requests fail with INVALID_ARGUMENT before touching docker."""
        execution = run_action(mock_client, exec_dir, resource_limits, 5, [])

        assert execution.code == StatusCode.INVALID_ARGUMENT
        mock_client.inspect_image.assert_not_called()

    def test_zero_timeout_invalid(self, mock_client, exec_dir, resource_limits):
        """Test a sub-second timedelta is rejected."""
        execution = run_action(
            mock_client, exec_dir, resource_limits, timedelta(milliseconds=500), ["true"]
        )

        assert execution.code == StatusCode.INVALID_ARGUMENT
