"""Container handle for one action run.

ContainerHandle is the reference to a created container. It lives exactly
as long as one orchestration and is never reused.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List


class ContainerState(str, Enum):
    """Lifecycle state of an action container."""

    CREATED = "created"
    STARTED = "started"
    EXECUTING = "executing"
    EXITED = "exited"
    REMOVED = "removed"


# Removal is allowed from every state; everything else moves forward only.
_TRANSITIONS: Dict[ContainerState, frozenset] = {
    ContainerState.CREATED: frozenset({ContainerState.STARTED, ContainerState.REMOVED}),
    ContainerState.STARTED: frozenset({ContainerState.EXECUTING, ContainerState.REMOVED}),
    ContainerState.EXECUTING: frozenset({ContainerState.EXITED, ContainerState.REMOVED}),
    ContainerState.EXITED: frozenset({ContainerState.REMOVED}),
    ContainerState.REMOVED: frozenset(),
}


@dataclass
class ContainerHandle:
    """Represents a container created for one action."""

    container_id: str
    execution_directory: Path
    image: str
    created_at: datetime
    state: ContainerState = ContainerState.CREATED
    warnings: List[str] = field(default_factory=list)
    labels: Dict[str, str] = field(default_factory=dict)

    @property
    def short_id(self) -> str:
        return self.container_id[:12]

    @property
    def removed(self) -> bool:
        return self.state == ContainerState.REMOVED

    def transition(self, new_state: ContainerState) -> None:
        """Move to a new lifecycle state.

        Raises:
            ValueError: If the transition is not allowed from the current state
        """
        if new_state not in _TRANSITIONS[self.state]:
            raise ValueError(
                f"Invalid container state transition {self.state.value} -> {new_state.value}"
            )
        self.state = new_state
