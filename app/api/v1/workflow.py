"""Travel workflow API endpoints.

Runs the travel workers through the selected topology, either streaming
progress as Server-Sent Events or returning the aggregated result once the
run has finished.
"""

from fastapi import (
    APIRouter,
    HTTPException,
    Query,
    Request,
)
from fastapi.responses import StreamingResponse

from app.api.v1.sse import sse_event_generator
from app.core.config import settings
from app.core.langgraph.agents import list_workers
from app.core.langgraph.workflow import (
    EventKind,
    Orchestrator,
    WorkflowTopology,
)
from app.core.limiter import limiter
from app.core.logging import logger
from app.schemas.workflow import (
    WorkerInfo,
    WorkerListResponse,
    WorkflowRunResponse,
)

router = APIRouter()
orchestrator = Orchestrator()

MODE_DESCRIPTION = "Topology: round_robin (default), sequential, concurrent or handoff"


@router.get("/chat/stream")
@limiter.limit(settings.RATE_LIMIT_ENDPOINTS["chat_stream"][0])
async def workflow_chat_stream(
    request: Request,
    prompt: str = Query(..., min_length=1, description="The travel request"),
    mode: str = Query(default=None, description=MODE_DESCRIPTION),
    approval: bool = Query(default=False, description="Pause for approval after the policy step"),
    debug: bool = Query(default=False, description="Emit per-step debug timing events"),
):
    """Run the travel workflow and stream its progress.

    Args:
        request: The FastAPI request object for rate limiting.
        prompt: The user's travel request.
        mode: Query-style topology name.
        approval: Whether to insert an approval checkpoint.
        debug: Whether to emit diagnostics events.

    Returns:
        StreamingResponse: SSE stream of progress events.
    """
    topology = WorkflowTopology.parse(mode)
    logger.info(
        "workflow_stream_request_received",
        topology=topology.value,
        approval_required=approval,
        debug=debug,
        prompt_length=len(prompt),
    )

    events = orchestrator.start_run(prompt, topology, approval_required=approval, diagnostics=debug)
    return StreamingResponse(
        sse_event_generator(events, topology.value, log_event_name="workflow_stream_failed"),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )


@router.get("/chat", response_model=WorkflowRunResponse)
@limiter.limit(settings.RATE_LIMIT_ENDPOINTS["chat"][0])
async def workflow_chat(
    request: Request,
    prompt: str = Query(..., min_length=1, description="The travel request"),
    mode: str = Query(default=None, description=MODE_DESCRIPTION),
):
    """Run the travel workflow to completion.

    Args:
        request: The FastAPI request object for rate limiting.
        prompt: The user's travel request.
        mode: Query-style topology name.

    Returns:
        WorkflowRunResponse: The aggregated result and every progress event.
    """
    topology = WorkflowTopology.parse(mode)
    logger.info("workflow_request_received", topology=topology.value, prompt_length=len(prompt))

    events = await orchestrator.run(prompt, topology)
    terminal = events[-1] if events else None

    if terminal is None or terminal.kind == EventKind.ERROR:
        detail = terminal.message if terminal is not None else "Workflow produced no events"
        logger.error("workflow_request_failed", topology=topology.value, error=detail)
        raise HTTPException(status_code=500, detail=detail)

    logger.info("workflow_request_processed", topology=topology.value, event_count=len(events))
    return WorkflowRunResponse(topology=topology, result=terminal.result, events=events)


@router.get("/workers", response_model=WorkerListResponse)
@limiter.limit(settings.RATE_LIMIT_ENDPOINTS["workers"][0])
async def list_workflow_workers(request: Request):
    """List the workers of the default roster.

    Returns:
        WorkerListResponse: Worker names and purposes in pipeline order.
    """
    workers = [WorkerInfo(**w) for w in list_workers()]
    return WorkerListResponse(workers=workers, total=len(workers))
