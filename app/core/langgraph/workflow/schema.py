"""Data model for workflow runs: topologies, outcomes, transcript and progress events."""

import uuid
from dataclasses import (
    dataclass,
    field,
)
from enum import Enum
from typing import (
    List,
    Optional,
    Tuple,
)

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)

from app.core.langgraph.workflow.errors import TranscriptError

SYSTEM_AGENT = "system"
NO_OUTPUT_PLACEHOLDER = "(no output)"
CANCELLATION_MARKER = "Workflow cancelled"


class WorkflowTopology(str, Enum):
    """Execution pattern governing worker ordering and concurrency for one run."""

    ROUND_ROBIN = "round_robin"
    SEQUENTIAL = "sequential"
    CONCURRENT = "concurrent"
    HANDOFF = "handoff"

    @classmethod
    def parse(cls, value: Optional[str]) -> "WorkflowTopology":
        """Map a query-style mode name to a topology.

        Matching is case-insensitive; unspecified or unrecognized names fall back
        to round-robin.
        """
        if not value or not value.strip():
            return cls.ROUND_ROBIN
        match value.strip().lower():
            case "sequential":
                return cls.SEQUENTIAL
            case "concurrent":
                return cls.CONCURRENT
            case "handoff":
                return cls.HANDOFF
            case _:
                return cls.ROUND_ROBIN


class OutcomeKind(str, Enum):
    """How a single worker step ended."""

    SUCCESS = "success"
    TIMEOUT = "timeout"
    FAILURE = "failure"


class StepOutcome(BaseModel):
    """Normalized result of one worker call.

    Attributes:
        worker: Name of the worker that produced the outcome.
        output: Worker text, or the degraded fallback text.
        elapsed: Seconds between dispatch and outcome.
        kind: Success, timeout or failure.
    """

    model_config = ConfigDict(frozen=True)

    worker: str
    output: str
    elapsed: float = Field(..., ge=0)
    kind: OutcomeKind


class TranscriptEntry(BaseModel):
    """A single attributed line of the run transcript."""

    model_config = ConfigDict(frozen=True)

    agent: str
    text: str
    step: Optional[int] = None
    elapsed: Optional[float] = None
    kind: Optional[OutcomeKind] = None

    def render(self, with_elapsed: bool = False) -> str:
        """Format the entry as it appears in the aggregated result."""
        if with_elapsed and self.elapsed is not None:
            return f"[{self.agent}] ({self.elapsed:.1f}s) {self.text}"
        return f"[{self.agent}] {self.text}"


class Transcript:
    """Append-only record of step outputs for one run.

    Entries can be added but never replaced or removed; readers always see a
    stable prefix.
    """

    def __init__(self):
        """Initialize an empty transcript."""
        self._entries: List[TranscriptEntry] = []

    def append(self, entry: TranscriptEntry) -> None:
        """Append an entry, enforcing strictly increasing step indices."""
        if entry.step is not None:
            last_step = max((e.step for e in self._entries if e.step is not None), default=0)
            if entry.step <= last_step:
                raise TranscriptError(f"Step {entry.step} for '{entry.agent}' does not follow step {last_step}")
        self._entries.append(entry)

    @property
    def entries(self) -> Tuple[TranscriptEntry, ...]:
        """Immutable snapshot of the current entries."""
        return tuple(self._entries)

    @property
    def step_count(self) -> int:
        """Number of entries that came from worker steps."""
        return sum(1 for e in self._entries if e.step is not None)

    def output_of(self, agent: str) -> Optional[str]:
        """Return the most recent output attributed to an agent, if any."""
        for entry in reversed(self._entries):
            if entry.agent == agent:
                return entry.text
        return None

    def render(self, with_elapsed: bool = False) -> str:
        """Join the entries into the plain-text transcript block."""
        return "\n\n".join(e.render(with_elapsed=with_elapsed) for e in self._entries)

    def __len__(self) -> int:
        return len(self._entries)


@dataclass
class RunContext:
    """State owned by exactly one orchestrator invocation.

    Attributes:
        request: The original request text.
        topology: The selected topology.
        approval_required: Whether approval checkpoints are inserted.
        diagnostics: Whether per-step debug timing events are emitted.
        roster: Worker instances built for this run, in pipeline order.
        transcript: Append-only step history.
        cancelled: Set once an approval checkpoint resolves to cancel.
        run_id: Generated identifier used for log correlation.
    """

    request: str
    topology: WorkflowTopology = WorkflowTopology.ROUND_ROBIN
    approval_required: bool = False
    diagnostics: bool = False
    roster: list = field(default_factory=list)
    transcript: Transcript = field(default_factory=Transcript)
    cancelled: bool = False
    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def render_result(self, with_elapsed: bool = False) -> str:
        """Build the final aggregated text delivered with the complete event."""
        body = self.transcript.render(with_elapsed=with_elapsed)
        return f"User request: {self.request}\n\n{body}".rstrip() + "\n"


class EventKind(str, Enum):
    """Kinds of progress events published during a run."""

    WORKING = "working"
    STEP_COMPLETE = "step_complete"
    AWAITING_INPUT = "awaiting_input"
    RESUMED = "resumed"
    CANCELLED = "cancelled"
    COMPLETE = "complete"
    ERROR = "error"


TERMINAL_EVENT_KINDS = frozenset({EventKind.COMPLETE, EventKind.ERROR})


class ProgressEvent(BaseModel):
    """Structured description of run progress, serialized by the transport.

    Attributes:
        kind: The event discriminator.
        agent: Worker name, or ``system`` for orchestrator events.
        step: Step index for step_complete events.
        message: Short, possibly truncated, human-readable text.
        checkpoint_id: Id to submit a decision against (awaiting_input only).
        result: Final aggregated text (complete only).
        seq: Per-run emission sequence number, assigned by the emitter.
    """

    kind: EventKind
    agent: str = SYSTEM_AGENT
    step: Optional[int] = None
    message: Optional[str] = None
    checkpoint_id: Optional[str] = None
    result: Optional[str] = None
    seq: int = 0

    @property
    def is_terminal(self) -> bool:
        """Whether this event ends the stream."""
        return self.kind in TERMINAL_EVENT_KINDS


def truncate_summary(text: str, limit: int) -> str:
    """Shorten text to at most ``limit`` characters, marking the cut with an ellipsis."""
    if len(text) <= limit:
        return text
    return text[: max(limit - 1, 0)] + "…"
