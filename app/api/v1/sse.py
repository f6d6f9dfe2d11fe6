"""Shared SSE (Server-Sent Events) helper for streaming endpoints.

Converts a workflow's progress event stream into SSE-formatted lines.
"""

from typing import AsyncGenerator

from app.core.langgraph.workflow.schema import (
    EventKind,
    ProgressEvent,
)
from app.core.logging import logger


def format_sse(event: ProgressEvent) -> str:
    r"""Serialize one progress event as a ``data: {json}\n\n`` frame, omitting null fields."""
    return f"data: {event.model_dump_json(exclude_none=True)}\n\n"


async def sse_event_generator(
    events: AsyncGenerator[ProgressEvent, None],
    run_label: str,
    log_event_name: str = "stream_failed",
) -> AsyncGenerator[str, None]:
    r"""Convert an async progress event stream into SSE events.

    Yields ``data: {json}\n\n`` lines suitable for ``StreamingResponse``.

    Args:
        events: Async generator yielding progress events.
        run_label: Label used for error logging.
        log_event_name: Event name used in structured log on failure.

    Yields:
        SSE-formatted strings: one per event. If the stream itself breaks, a
        final ``error`` event is sent instead of silently closing.
    """
    try:
        async for event in events:
            yield format_sse(event)

    except Exception as e:
        logger.exception(log_event_name, run_label=run_label, error=str(e))
        yield format_sse(ProgressEvent(kind=EventKind.ERROR, message=str(e)))
