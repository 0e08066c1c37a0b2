"""Progress notifications for analysis requests.

Each request gets its own ProgressReporter. Events are queued without
blocking the request and delivered to the sink by a single background task,
so a sink always sees one request's events in the order they occurred.
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class ProgressStage(str, Enum):
    """Checkpoints reported during a request."""

    VALIDATED = "validated"
    RATE_LIMITED = "rate_limited"
    ATTEMPT_STARTED = "attempt_started"
    WAITING_RETRY = "waiting_retry"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class ProgressEvent:
    """One progress notification.

    Attributes:
        request_id: Request the event belongs to.
        stage: Checkpoint reached.
        progress: Completion percentage (0-100).
        message: Human-readable step description.
        attempt: Current attempt number, when relevant.
        max_attempts: Attempt cap, when relevant.
        delay_ms: Wait before the next attempt, for WAITING_RETRY.
    """

    request_id: str
    stage: ProgressStage
    progress: int
    message: str
    attempt: int | None = None
    max_attempts: int | None = None
    delay_ms: float | None = None


ProgressSink = Callable[[ProgressEvent], None | Awaitable[None]]

_CLOSED = object()


class ProgressReporter:
    """Ordered, fire-and-forget delivery of one request's events.

    Sink exceptions are logged and never reach the request.
    """

    def __init__(self, request_id: str, sink: ProgressSink | None):
        self.request_id = request_id
        self._sink = sink
        self._queue: asyncio.Queue | None = None
        self._task: asyncio.Task | None = None
        if sink is not None:
            self._queue = asyncio.Queue()
            loop = asyncio.get_running_loop()
            self._task = loop.create_task(self._deliver(self._queue))

    def emit(
        self,
        stage: ProgressStage,
        progress: int,
        message: str,
        **fields,
    ) -> None:
        """Queue an event without waiting for delivery."""
        if self._queue is None:
            return
        event = ProgressEvent(
            request_id=self.request_id,
            stage=stage,
            progress=progress,
            message=message,
            **fields,
        )
        self._queue.put_nowait(event)

    def close(self) -> asyncio.Task | None:
        """Stop accepting events. Returns the delivery task, if any."""
        if self._queue is not None:
            self._queue.put_nowait(_CLOSED)
            self._queue = None
        return self._task

    async def _deliver(self, queue: asyncio.Queue) -> None:
        while True:
            event = await queue.get()
            if event is _CLOSED:
                return
            try:
                result = self._sink(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.warning(
                    f"Progress sink failed for {self.request_id} ({event.stage}): {e}"
                )


__all__ = ["ProgressEvent", "ProgressReporter", "ProgressSink", "ProgressStage"]
