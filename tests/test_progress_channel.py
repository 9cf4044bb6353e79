"""
SSE progress channel: formatting, ordering, termination and cleanup.

Run with: pytest tests/test_progress_channel.py
"""

import asyncio
import json

from backend.visa_eval.services.pipeline import ProgressEventType
from backend.visa_eval.web.services.job_service import JobRegistry
from backend.visa_eval.web.services.progress_channel import ProgressChannel, format_sse


async def _drain(channel, is_disconnected=None):
    return [m async for m in channel.messages(is_disconnected)]


def _decode(messages):
    return [json.loads(m[len("data: "):]) for m in messages if m.startswith("data: ")]


def test_format_sse():
    assert format_sse({"type": "received", "payload": None}) == (
        'data: {"type": "received", "payload": null}\n\n'
    )
    assert format_sse("ping", event="status") == "event: status\ndata: ping\n\n"


def test_stream_ends_after_finished_and_unsubscribes():
    async def scenario():
        job = JobRegistry().create()
        channel = ProgressChannel(job, heartbeat_s=1)
        channel.open()
        assert job.subscriber_count == 1

        job.emit(ProgressEventType.received, {"message": "Submission received"})
        job.emit(ProgressEventType.invalid_documents, {"issues": []})
        job.emit(ProgressEventType.finished, {"ok": False})
        job.emit(ProgressEventType.error, {"message": "late"})

        messages = await _drain(channel)
        return job, channel, messages

    job, channel, messages = asyncio.run(scenario())
    events = _decode(messages)

    assert [e["type"] for e in events] == ["received", "invalid_documents", "finished"]
    assert events[-1]["payload"] == {"ok": False}
    assert job.subscriber_count == 0
    assert channel.closed


def test_heartbeat_on_idle_stream():
    async def scenario():
        job = JobRegistry().create()
        channel = ProgressChannel(job, heartbeat_s=0.02)
        gen = channel.messages()
        first = await gen.__anext__()
        job.emit(ProgressEventType.finished, {"ok": True})
        rest = [m async for m in gen]
        return first, rest

    first, rest = asyncio.run(scenario())
    assert first == ": keep-alive\n\n"
    assert _decode(rest)[-1]["type"] == "finished"


def test_unserializable_payload_is_dropped():
    async def scenario():
        job = JobRegistry().create()
        channel = ProgressChannel(job, heartbeat_s=1)
        channel.open()
        job.emit(ProgressEventType.validated, {"details": object()})
        job.emit(ProgressEventType.finished, {"ok": True})
        return await _drain(channel)

    events = _decode(asyncio.run(scenario()))
    assert [e["type"] for e in events] == ["finished"]


def test_client_disconnect_releases_subscription():
    async def scenario():
        job = JobRegistry().create()
        channel = ProgressChannel(job, heartbeat_s=1)
        channel.open()
        job.emit(ProgressEventType.received)

        async def disconnected():
            return True

        messages = await _drain(channel, disconnected)
        return job, messages

    job, messages = asyncio.run(scenario())
    assert messages == []
    assert job.subscriber_count == 0


def test_two_channels_get_independent_copies():
    async def scenario():
        job = JobRegistry().create()
        first = ProgressChannel(job, heartbeat_s=1)
        second = ProgressChannel(job, heartbeat_s=1)
        first.open()
        job.emit(ProgressEventType.received)
        second.open()
        job.emit(ProgressEventType.validated)
        job.emit(ProgressEventType.finished, {"ok": True})
        return await _drain(first), await _drain(second)

    first, second = asyncio.run(scenario())
    assert [e["type"] for e in _decode(first)] == ["received", "validated", "finished"]
    assert [e["type"] for e in _decode(second)] == ["validated", "finished"]


def test_close_is_idempotent():
    job = JobRegistry().create()
    channel = ProgressChannel(job)
    channel.open()
    channel.open()
    assert job.subscriber_count == 1
    channel.close()
    channel.close()
    assert job.subscriber_count == 0
