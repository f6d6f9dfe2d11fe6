"""Shared test fixtures for the test suite."""

import asyncio
import os

os.environ.setdefault("APP_ENV", "test")

from typing import (  # noqa: E402
    Callable,
    Dict,
    List,
    Optional,
)

import pytest  # noqa: E402

from app.core.config import settings  # noqa: E402
from app.core.langgraph.agents.workers import (  # noqa: E402
    BOOKING_COORDINATOR,
    BUDGET_APPROVAL,
    ITINERARY_OPTIMIZER,
    POLICY_COMPLIANCE,
    TRAVEL_RESEARCH,
    BaseWorker,
)
from app.core.langgraph.hitl import ApprovalGate  # noqa: E402
from app.core.langgraph.workflow import Orchestrator  # noqa: E402

PIPELINE_NAMES = [
    TRAVEL_RESEARCH,
    POLICY_COMPLIANCE,
    BUDGET_APPROVAL,
    ITINERARY_OPTIMIZER,
    BOOKING_COORDINATOR,
]


class ScriptedWorker(BaseWorker):
    """Worker with a fixed reply, an optional delay and an optional error."""

    def __init__(
        self,
        name: str,
        output: str = "",
        delay: float = 0.0,
        error: Optional[Exception] = None,
        fallback: str = "",
    ):
        super().__init__()
        self.name = name
        self.description = f"{name} purpose"
        self.output = output if output else f"{name} done"
        self.delay = delay
        self.error = error
        self.fallback = fallback or f"{name} fallback"
        self.contexts: List[str] = []

    async def run(self, context: str) -> str:
        self.contexts.append(context)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.output


def make_roster_factory(
    outputs: Optional[Dict[str, str]] = None,
    delays: Optional[Dict[str, float]] = None,
    errors: Optional[Dict[str, Exception]] = None,
    names: Optional[List[str]] = None,
) -> Callable[[], List[ScriptedWorker]]:
    """Build a roster factory producing fresh scripted workers on every call."""
    outputs = outputs or {}
    delays = delays or {}
    errors = errors or {}
    names = names if names is not None else PIPELINE_NAMES

    def factory() -> List[ScriptedWorker]:
        return [
            ScriptedWorker(
                name,
                output=outputs.get(name, ""),
                delay=delays.get(name, 0.0),
                error=errors.get(name),
            )
            for name in names
        ]

    return factory


@pytest.fixture
def scripted_worker():
    """The scripted worker class."""
    return ScriptedWorker


@pytest.fixture
def scripted_roster():
    """Factory for scripted worker rosters."""
    return make_roster_factory


@pytest.fixture
def offline_llm(monkeypatch):
    """Force workers into offline simulation with no delay."""
    monkeypatch.setattr(settings, "OPENAI_API_KEY", "")
    monkeypatch.setattr(settings, "SIMULATED_WORKER_DELAY_SECONDS", 0.0)


@pytest.fixture
def gate() -> ApprovalGate:
    """A fresh approval gate, isolated from the process-wide instance."""
    return ApprovalGate()


@pytest.fixture
def orchestrator(gate) -> Orchestrator:
    """Orchestrator over fast scripted workers with short timeouts."""
    return Orchestrator(
        roster_factory=make_roster_factory(),
        gate=gate,
        step_timeout=1.0,
        approval_timeout=2.0,
    )
