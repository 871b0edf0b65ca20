"""Tests for push-channel fan-out."""

import asyncio
import json

import pytest

from chat_hitl.fanout import QUEUE_SIZE, Broadcaster, event_stream


@pytest.mark.asyncio
async def test_publish_reaches_every_subscriber():
    broadcaster = Broadcaster()
    first = broadcaster.subscribe()
    second = broadcaster.subscribe()
    assert first.id != second.id
    assert len(broadcaster) == 2

    broadcaster.publish({"id": 1})
    assert first.queue.get_nowait() == {"id": 1}
    assert second.queue.get_nowait() == {"id": 1}


@pytest.mark.asyncio
async def test_unsubscribe_is_idempotent():
    broadcaster = Broadcaster()
    subscriber = broadcaster.subscribe()
    broadcaster.unsubscribe(subscriber)
    broadcaster.unsubscribe(subscriber)
    assert subscriber not in broadcaster
    broadcaster.publish({"id": 1})
    assert subscriber.queue.empty()


@pytest.mark.asyncio
async def test_stalled_subscriber_is_dropped():
    broadcaster = Broadcaster()
    stalled = broadcaster.subscribe()
    for i in range(QUEUE_SIZE):
        broadcaster.publish({"id": i})
    healthy = broadcaster.subscribe()

    broadcaster.publish({"id": "overflow"})

    assert stalled not in broadcaster
    assert healthy in broadcaster
    assert healthy.queue.get_nowait() == {"id": "overflow"}


@pytest.mark.asyncio
async def test_event_stream_frames():
    broadcaster = Broadcaster()
    stream = event_stream(broadcaster, "http://127.0.0.1:23987/messages", keepalive=5)

    assert await anext(stream) == "event: endpoint\ndata: http://127.0.0.1:23987/messages\n\n"
    assert await anext(stream) == ": connected\n\n"
    assert len(broadcaster) == 1

    broadcaster.publish({"jsonrpc": "2.0", "id": 1, "result": {}})
    frame = await anext(stream)
    assert frame.startswith("event: message\n")
    assert json.loads(frame.split("data: ", 1)[1]) == {"jsonrpc": "2.0", "id": 1, "result": {}}

    await stream.aclose()
    assert len(broadcaster) == 0


@pytest.mark.asyncio
async def test_event_stream_keepalive():
    broadcaster = Broadcaster()
    stream = event_stream(broadcaster, "http://x/messages", keepalive=0.01)
    await anext(stream)
    await anext(stream)
    assert await asyncio.wait_for(anext(stream), timeout=1) == ": ping\n\n"
    await stream.aclose()


@pytest.mark.asyncio
async def test_event_stream_ends_when_dropped():
    broadcaster = Broadcaster()
    stream = event_stream(broadcaster, "http://x/messages", keepalive=0.01)
    await anext(stream)
    await anext(stream)
    for subscriber in list(broadcaster._subscribers.values()):
        broadcaster.unsubscribe(subscriber)
    with pytest.raises(StopAsyncIteration):
        while True:
            await asyncio.wait_for(anext(stream), timeout=1)
