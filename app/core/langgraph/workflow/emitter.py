"""Progress Emitter: the ordered event channel for a single run."""

import asyncio
from typing import (
    AsyncIterator,
    List,
    Optional,
    Tuple,
)

from app.core.langgraph.workflow.schema import (
    EventKind,
    ProgressEvent,
)
from app.core.logging import logger


class EmitterClosedError(RuntimeError):
    """Raised when publishing to an emitter that has been closed."""


class ProgressEmitter:
    """Append-only, single-consumer stream of progress events.

    Events are stamped with a per-run sequence number at publish time and
    delivered in exactly that order. Publishing never blocks; the buffer is
    unbounded so a slow consumer cannot stall the run.
    """

    _CLOSED = object()

    def __init__(self, run_id: Optional[str] = None):
        """Initialize an empty emitter.

        Args:
            run_id: Run id used for log correlation.
        """
        self.run_id = run_id
        self._queue: asyncio.Queue = asyncio.Queue()
        self._history: List[ProgressEvent] = []
        self._closed = False

    def publish(self, event: ProgressEvent) -> ProgressEvent:
        """Append an event to the stream.

        Args:
            event: The event to publish; its ``seq`` is overwritten.

        Returns:
            ProgressEvent: The stamped event as delivered to the consumer.

        Raises:
            EmitterClosedError: If the emitter was already closed.
        """
        if self._closed:
            raise EmitterClosedError(f"Emitter for run '{self.run_id}' is closed")

        stamped = event.model_copy(update={"seq": len(self._history) + 1})
        self._history.append(stamped)
        self._queue.put_nowait(stamped)

        logger.debug(
            "progress_event_published",
            run_id=self.run_id,
            seq=stamped.seq,
            kind=stamped.kind.value,
            agent=stamped.agent,
        )
        return stamped

    def emit(self, kind: EventKind, agent: str = "system", **fields) -> ProgressEvent:
        """Build and publish an event in one call."""
        return self.publish(ProgressEvent(kind=kind, agent=agent, **fields))

    def close(self) -> None:
        """End the stream; the consumer stops after draining buffered events."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(self._CLOSED)

    @property
    def closed(self) -> bool:
        """Whether ``close`` has been called."""
        return self._closed

    @property
    def history(self) -> Tuple[ProgressEvent, ...]:
        """All events published so far, in order."""
        return tuple(self._history)

    async def __aiter__(self) -> AsyncIterator[ProgressEvent]:
        while True:
            item = await self._queue.get()
            if item is self._CLOSED:
                return
            yield item
