"""
Progress Channel - Forwards one job's progress events to one SSE client.
"""
import asyncio
import json
import logging
from typing import AsyncIterator, Awaitable, Callable, Optional

from ...services.pipeline.contracts import ProgressEvent
from .job_service import Job, Subscription

logger = logging.getLogger(__name__)

DEFAULT_HEARTBEAT_S = 15.0


def format_sse(data: object, event: Optional[str] = None) -> str:
    """Encode data as an SSE message (one `data:` line, blank-line terminated)."""
    lines = []
    if event is not None:
        lines.append(f"event: {event}")
    if isinstance(data, str):
        lines.append(f"data: {data}")
    else:
        lines.append(f"data: {json.dumps(data, ensure_ascii=False)}")
    lines.append("")
    lines.append("")
    return "\n".join(lines)


class ProgressChannel:
    """
    Per-connection subscription to a job.

    The listener runs synchronously inside Job.emit() and only serializes
    and enqueues, so message order matches emit order. Each channel has its
    own listener and queue; duplicate tabs get independent copies.
    """

    def __init__(self, job: Job, heartbeat_s: float = DEFAULT_HEARTBEAT_S):
        self.job = job
        self._heartbeat_s = heartbeat_s
        self._queue: "asyncio.Queue[tuple[str, bool]]" = asyncio.Queue()
        self._subscription: Optional[Subscription] = None
        self.closed = False

    def open(self) -> None:
        if self._subscription is None:
            self._subscription = self.job.subscribe(self._on_progress)

    def close(self) -> None:
        """Unsubscribe the forwarding listener. Idempotent."""
        if self._subscription is not None:
            self.job.unsubscribe(self._subscription)
            self._subscription = None
        self.closed = True

    def _on_progress(self, event: ProgressEvent) -> None:
        try:
            message = format_sse(event.to_wire())
        except (TypeError, ValueError):
            # Skip unserializable payloads; keep the stream alive
            logger.warning(
                "Job %s: dropped unserializable %s event", self.job.id, event.type.value
            )
            return
        self._queue.put_nowait((message, event.type.is_terminal))

    async def messages(
        self,
        is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
    ) -> AsyncIterator[str]:
        """
        Yield SSE messages until the terminal event or client disconnect.

        Sends a keep-alive comment every `heartbeat_s` seconds of silence.
        The subscription is always released on exit, including cancellation.

        Known limitation: events are not replayed, so a channel opened on a
        job that already emitted `finished` (during the retention window)
        never sees a terminal event. It sends keep-alives until the client
        disconnects and holds its subscription on the evicted job until then.
        """
        self.open()
        try:
            while True:
                if is_disconnected is not None and await is_disconnected():
                    break
                try:
                    message, terminal = await asyncio.wait_for(
                        self._queue.get(), timeout=self._heartbeat_s
                    )
                except asyncio.TimeoutError:
                    yield ": keep-alive\n\n"
                    continue

                yield message
                if terminal:
                    break
        except asyncio.CancelledError:
            logger.info("Job %s: client stream cancelled", self.job.id)
            raise
        finally:
            self.close()
