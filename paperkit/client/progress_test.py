"""Unit tests for progress reporting."""

import asyncio

import pytest

from .progress import ProgressReporter, ProgressStage


class TestProgressReporter:
    """Tests for ordered fire-and-forget delivery."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_events_delivered_in_order(self):
        """Events reach the sink in emission order."""
        received = []
        reporter = ProgressReporter("req_1", received.append)

        reporter.emit(ProgressStage.VALIDATED, 10, "ok")
        reporter.emit(ProgressStage.ATTEMPT_STARTED, 20, "try", attempt=1, max_attempts=3)
        reporter.emit(ProgressStage.SUCCEEDED, 100, "done")
        await reporter.close()

        assert [e.stage for e in received] == [
            ProgressStage.VALIDATED,
            ProgressStage.ATTEMPT_STARTED,
            ProgressStage.SUCCEEDED,
        ]
        assert received[1].attempt == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_emit_does_not_wait_for_sink(self):
        """A slow sink does not block emit."""
        release = asyncio.Event()
        received = []

        async def slow_sink(event):
            await release.wait()
            received.append(event)

        reporter = ProgressReporter("req_2", slow_sink)
        reporter.emit(ProgressStage.VALIDATED, 10, "ok")
        task = reporter.close()

        assert received == []
        release.set()
        await task
        assert len(received) == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_without_sink(self):
        """Reporters without a sink accept events and return no task."""
        reporter = ProgressReporter("req_3", None)
        reporter.emit(ProgressStage.VALIDATED, 10, "ok")
        assert reporter.close() is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_emit_after_close_is_ignored(self):
        """Events emitted after close are dropped."""
        received = []
        reporter = ProgressReporter("req_4", received.append)
        task = reporter.close()
        reporter.emit(ProgressStage.FAILED, 100, "late")
        await task
        assert received == []
