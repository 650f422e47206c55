"""Translation of raw execution output into the worker's result model."""

from typing import Optional

from ..models.execution import ActionResult, ExecutionOutcome, ExecutionStatus

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1


def narrow_exit_code(exit_code: Optional[int]) -> Optional[int]:
    """Keep an exit code only if it fits a signed 32-bit field."""
    if exit_code is None:
        return None
    if INT32_MIN <= exit_code <= INT32_MAX:
        return int(exit_code)
    return None


def translate_result(
    exit_code: Optional[int],
    stdout: bytes,
    stderr: bytes,
    status: ExecutionStatus,
    execution_time_ms: float = 0.0,
) -> ActionResult:
    """Build the action result from raw command output.

    Output bytes are passed through untouched, no decoding happens here.
    """
    return ActionResult(
        exit_code=narrow_exit_code(exit_code),
        stdout_raw=bytes(stdout),
        stderr_raw=bytes(stderr),
        status=status,
        execution_time_ms=max(0.0, execution_time_ms),
    )


def translate_outcome(outcome: ExecutionOutcome) -> ActionResult:
    """Build the action result from an ExecutionOutcome."""
    return translate_result(
        outcome.exit_code,
        outcome.stdout,
        outcome.stderr,
        outcome.status,
        outcome.execution_time_ms,
    )
