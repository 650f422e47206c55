"""Execution Orchestrator - Runs one action in a fresh container.

This module sequences the container services into one blocking operation:

    ensure image -> create -> start -> run -> translate -> remove

Removal is bound right after a successful create and runs on every exit
path: normal return, any failure, cancellation, and KeyboardInterrupt.

Usage:
    client = DockerClientFactory().create()
    orchestrator = ExecutionOrchestrator(client)
    execution = orchestrator.run_action(request)
"""

import threading
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Dict, Optional, Sequence, Union

import docker
import structlog
from pydantic import ValidationError

from ..models import (
    ActionExecution,
    ActionResult,
    ContainerHandle,
    ContainerStartError,
    DockerExecutorException,
    ExecAttachError,
    ExecCreateError,
    ExecutionOutcome,
    ExecutionRequest,
    ExecutionStatus,
    ExitCodeUnavailableError,
    ResourceLimits,
    StatusCode,
)
from ..utils.logging import log_stage
from .container import ContainerExecutor, ContainerManager, ImageProvisioner
from .translator import translate_outcome, translate_result

logger = structlog.get_logger(__name__)


@dataclass
class ExecutionContext:
    """Context object passed through the execution pipeline."""

    request: ExecutionRequest
    cancel_event: Optional[threading.Event] = None
    handle: Optional[ContainerHandle] = None
    outcome: Optional[ExecutionOutcome] = None
    result: Optional[ActionResult] = None


class ExecutionOrchestrator:
    """Coordinates the single-action execution workflow.

    This orchestrator follows a pipeline pattern:
    1. Ensure image
    2. Create container
    3. Start container
    4. Run command
    5. Translate result
    6. Remove container (always, once a container exists)

    One instance can serve concurrent orchestrations on different threads;
    it holds no per-action state.
    """

    def __init__(
        self,
        client: docker.APIClient,
        provisioner: Optional[ImageProvisioner] = None,
        container_manager: Optional[ContainerManager] = None,
        executor: Optional[ContainerExecutor] = None,
    ):
        self.client = client
        self.provisioner = provisioner or ImageProvisioner(client)
        self.container_manager = container_manager or ContainerManager(client)
        self.executor = executor or ContainerExecutor(client)

    def run_action(
        self,
        request: ExecutionRequest,
        cancel_event: Optional[threading.Event] = None,
    ) -> ActionExecution:
        """Run one action and return its status code and result.

        Any run that produced a translated result returns StatusCode.OK,
        including non-zero exit codes and timed out runs (see
        result.status). Failures before the command ran return the error's
        code; failures before a container existed carry no result.

        Args:
            request: The execution request
            cancel_event: Optional event the caller sets to abandon the action

        Returns:
            ActionExecution with code, result and error message
        """
        ctx = ExecutionContext(request=request, cancel_event=cancel_event)
        log = logger.bind(
            image=request.image,
            execution_dir=str(request.execution_directory),
        )

        try:
            self._execute(ctx, log)
        except ContainerStartError as e:
            return self._failure(
                e, translate_result(None, b"", b"", ExecutionStatus.FAILED_TO_START)
            )
        except (ExecCreateError, ExecAttachError, ExitCodeUnavailableError) as e:
            return self._failure(
                e, translate_result(None, e.stdout, e.stderr, ExecutionStatus.FAILED_TO_EXECUTE)
            )
        except DockerExecutorException as e:
            return self._failure(e)
        except Exception as e:
            logger.error(
                "Action execution failed unexpectedly",
                image=request.image,
                error=str(e),
                exc_info=True,
            )
            return ActionExecution(
                code=StatusCode.INTERNAL,
                error=f"Unexpected error during action execution: {e}",
            )

        log.info(
            "Action finished",
            status=ctx.result.status.value,
            exit_code=ctx.result.exit_code,
            execution_time_ms=round(ctx.result.execution_time_ms, 2),
        )
        return ActionExecution(code=StatusCode.OK, result=ctx.result)

    def _execute(self, ctx: ExecutionContext, log) -> None:
        """Run the pipeline, populating ctx. Raises on failure."""
        request = ctx.request

        # Step 1: Ensure image
        with log_stage(log, "ensure_image"):
            self.provisioner.ensure_image(request.image, ctx.cancel_event)

        # Step 2: Create container
        with log_stage(log, "create_container"):
            ctx.handle = self.container_manager.create(request)

        log = log.bind(container_id=ctx.handle.short_id)
        try:
            # Step 3: Start container
            with log_stage(log, "start_container"):
                self.container_manager.start(ctx.handle)

            # Step 4: Run command
            with log_stage(log, "run_command", timeout=request.timeout_seconds):
                ctx.outcome = self.executor.run(
                    ctx.handle,
                    request.arguments,
                    timeout=request.timeout_seconds,
                    cancel_event=ctx.cancel_event,
                )

            # Step 5: Translate result
            ctx.result = translate_outcome(ctx.outcome)
        finally:
            # Step 6: Cleanup
            with log_stage(log, "remove_container"):
                self.container_manager.remove(ctx.handle)

    def _failure(
        self, error: DockerExecutorException, result: Optional[ActionResult] = None
    ) -> ActionExecution:
        """Log a domain failure and convert it to an ActionExecution."""
        logger.warning("Action execution failed", **error.to_dict())
        return ActionExecution(code=error.code, result=result, error=error.message)


def run_action(
    client: docker.APIClient,
    execution_directory: Union[str, Path],
    resource_limits: ResourceLimits,
    timeout: Union[int, timedelta, None],
    arguments: Sequence[str],
    environment: Optional[Dict[str, str]] = None,
    cancel_event: Optional[threading.Event] = None,
) -> ActionExecution:
    """Run one action with docker.

    Args:
        client: Shared Docker API client
        execution_directory: Staged action directory on the host
        resource_limits: Image, network and CPU/memory limits
        timeout: Run deadline in seconds or as a timedelta
        arguments: Command argument vector
        environment: Environment variables for the command
        cancel_event: Optional event the caller sets to abandon the action

    Returns:
        ActionExecution; use as_tuple() for (code, exit_code, stdout, stderr)
    """
    if isinstance(timeout, timedelta):
        timeout = int(timeout.total_seconds())

    try:
        request = ExecutionRequest(
            execution_directory=Path(execution_directory),
            resource_limits=resource_limits,
            timeout_seconds=timeout,
            arguments=list(arguments),
            environment=dict(environment or {}),
        )
    except ValidationError as e:
        logger.error("Invalid execution request", error=str(e))
        return ActionExecution(code=StatusCode.INVALID_ARGUMENT, error=str(e))

    return ExecutionOrchestrator(client).run_action(request, cancel_event)
