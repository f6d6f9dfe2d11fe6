"""Prometheus metrics for workflow runs, worker steps and approvals."""

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
)

workflow_runs_total = Counter(
    "workflow_runs_total",
    "Total workflow runs by topology and terminal status",
    ["topology", "status"],
)

workflow_run_duration_seconds = Histogram(
    "workflow_run_duration_seconds",
    "Wall-clock duration of a workflow run",
    ["topology"],
    buckets=[1, 5, 10, 30, 60, 120, 300, 600],
)

worker_step_duration_seconds = Histogram(
    "worker_step_duration_seconds",
    "Time spent in a single worker step",
    ["worker", "outcome"],
    buckets=[0.1, 0.5, 1, 2, 5, 10, 12, 20, 30],
)

approval_checkpoints_open = Gauge(
    "approval_checkpoints_open",
    "Approval checkpoints currently awaiting a decision",
)

approval_decisions_total = Counter(
    "approval_decisions_total",
    "Approval checkpoint resolutions by outcome",
    ["status"],
)
