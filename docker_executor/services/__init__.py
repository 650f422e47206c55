"""Action execution services."""

from .orchestrator import ExecutionOrchestrator, ExecutionContext, run_action
from .translator import translate_result, translate_outcome

__all__ = [
    "ExecutionOrchestrator",
    "ExecutionContext",
    "run_action",
    "translate_result",
    "translate_outcome",
]
