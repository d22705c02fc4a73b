"""
Workflow state for a reconciliation run.

The state is an immutable snapshot. Every transition goes through
reduce_workflow(), which returns a new WorkflowState and never mutates
the one it was given. The reconciliation engine does not depend on this
module.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Tuple, Union, Dict, Any

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_STEPS: Tuple[str, ...] = (
    "Loading documents",
    "Classifying documents",
    "Building comparison matrix",
    "Analyzing results",
    "Publishing report",
)


class StepStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class WorkflowStep(BaseModel):
    """One step of the run as shown to the user."""
    model_config = ConfigDict(frozen=True)

    step: int
    title: str
    status: StepStatus = StepStatus.PENDING
    message: str = "Waiting..."
    progress: int = Field(default=0, ge=0, le=100)
    timestamp: Optional[datetime] = None


class WorkflowLogEntry(BaseModel):
    """A single entry in the workflow log."""
    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    step: Optional[int]
    message: str


# Events

class StepStarted(BaseModel):
    model_config = ConfigDict(frozen=True)

    step: int
    message: str = "Processing..."
    progress: int = 0


class StepProgressed(BaseModel):
    model_config = ConfigDict(frozen=True)

    step: int
    progress: int
    message: Optional[str] = None


class StepCompleted(BaseModel):
    model_config = ConfigDict(frozen=True)

    step: int
    message: str = "Completed"


class StepFailed(BaseModel):
    model_config = ConfigDict(frozen=True)

    error: str
    step: Optional[int] = None  # None fails whatever is currently processing


WorkflowEvent = Union[StepStarted, StepProgressed, StepCompleted, StepFailed]


class WorkflowState(BaseModel):
    """Immutable snapshot of a reconciliation run."""
    model_config = ConfigDict(frozen=True)

    workflow_id: str
    steps: Tuple[WorkflowStep, ...]
    log: Tuple[WorkflowLogEntry, ...] = ()

    def get_step(self, step: int) -> WorkflowStep:
        for s in self.steps:
            if s.step == step:
                return s
        raise ValueError(f"Unknown workflow step: {step}")

    @property
    def current_step(self) -> Optional[WorkflowStep]:
        for s in self.steps:
            if s.status == StepStatus.PROCESSING:
                return s
        return None

    @property
    def is_complete(self) -> bool:
        return all(s.status == StepStatus.COMPLETED for s in self.steps)

    @property
    def has_failed(self) -> bool:
        return any(s.status == StepStatus.ERROR for s in self.steps)

    def get_log_text(self) -> str:
        """Get a human-readable summary of the run."""
        if not self.log:
            return "No workflow events."

        lines = []
        for entry in self.log:
            prefix = f"[step {entry.step}] " if entry.step is not None else ""
            lines.append(f"{prefix}{entry.message}")
        return "\n".join(lines)

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of the current state."""
        return {
            "workflow_id": self.workflow_id,
            "completed_steps": sum(1 for s in self.steps if s.status == StepStatus.COMPLETED),
            "total_steps": len(self.steps),
            "current_step": self.current_step.title if self.current_step else None,
            "failed": self.has_failed,
        }


def initial_workflow_state(workflow_id: str, titles: Tuple[str, ...] = DEFAULT_STEPS) -> WorkflowState:
    """Build a state with every step pending."""
    return WorkflowState(
        workflow_id=workflow_id,
        steps=tuple(WorkflowStep(step=i, title=title) for i, title in enumerate(titles, 1)),
    )


def _replace_step(state: WorkflowState, step: int, **changes) -> Tuple[WorkflowStep, ...]:
    state.get_step(step)  # raises on unknown step numbers
    return tuple(
        s.model_copy(update=changes) if s.step == step else s
        for s in state.steps
    )


def reduce_workflow(
    state: WorkflowState,
    event: WorkflowEvent,
    now: Optional[datetime] = None,
) -> WorkflowState:
    """
    Apply one event and return the next snapshot.

    Raises:
        ValueError: for unknown step numbers or event types
    """
    now = now or datetime.now(timezone.utc)

    if isinstance(event, StepStarted):
        steps = _replace_step(
            state,
            event.step,
            status=StepStatus.PROCESSING,
            message=event.message,
            progress=max(0, min(100, event.progress)),
        )
        message = event.message

    elif isinstance(event, StepProgressed):
        current = state.get_step(event.step)
        steps = _replace_step(
            state,
            event.step,
            progress=max(0, min(100, event.progress)),
            message=event.message or current.message,
        )
        message = event.message or f"{current.title}: {event.progress}%"

    elif isinstance(event, StepCompleted):
        steps = _replace_step(
            state,
            event.step,
            status=StepStatus.COMPLETED,
            message=event.message,
            progress=100,
            timestamp=now,
        )
        message = event.message

    elif isinstance(event, StepFailed):
        if event.step is not None:
            state.get_step(event.step)
        failure = f"Step failed: {event.error}"
        steps = tuple(
            s.model_copy(update={"status": StepStatus.ERROR, "message": failure, "timestamp": now})
            if s.status == StepStatus.PROCESSING or s.step == event.step
            else s
            for s in state.steps
        )
        message = failure

    else:
        raise ValueError(f"Unknown workflow event: {type(event).__name__}")

    step_number = getattr(event, "step", None)
    return state.model_copy(
        update={
            "steps": steps,
            "log": state.log + (WorkflowLogEntry(timestamp=now, step=step_number, message=message),),
        }
    )
