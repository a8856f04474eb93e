import pytest
from fastapi.responses import StreamingResponse

from agents import EventStringifierAgent
from api.v1.events_router import stream_events
from services.agent_runtime import AgentRuntime
from services.event_bus import EventBus, EventMessage


def test_event_message_sse_format():
    message = EventMessage(type="agent_event", data={"agent": "onecall", "payload": {"lat": 1}}, id="7", retry=500)

    assert message.to_sse() == (
        b"retry: 500\n"
        b"id: 7\n"
        b"event: agent_event\n"
        b'data: {"agent":"onecall","payload":{"lat":1}}\n\n'
    )


@pytest.mark.anyio
async def test_bus_assigns_sequential_ids():
    bus = EventBus()
    subscription = await bus.subscribe()

    await bus.publish("agent_event", {"n": 1})
    await bus.publish("agent_event", {"n": 2})

    assert [(await subscription.get()).id for _ in range(2)] == ["1", "2"]
    await subscription.close()
    assert bus.subscriber_count == 0


@pytest.mark.anyio
async def test_event_stream_returns_initial_snapshot():
    runtime = AgentRuntime(bus=EventBus())
    runtime.add(EventStringifierAgent("stringifier", {"mode": "Merge"}))

    response = await stream_events(runtime=runtime)
    assert isinstance(response, StreamingResponse)
    body_iter = response.body_iterator
    chunk = await anext(body_iter)
    text = chunk.decode("utf-8") if isinstance(chunk, bytes) else chunk
    assert "event: init" in text
    assert '"name":"stringifier"' in text
    if hasattr(body_iter, "aclose"):
        await body_iter.aclose()  # type: ignore[attr-defined]


@pytest.mark.anyio
async def test_event_stream_reads_from_runtime_bus():
    runtime = AgentRuntime(bus=EventBus())
    runtime.add(EventStringifierAgent("stringifier", {"mode": "Clean"}))

    response = await stream_events(runtime=runtime)
    body_iter = response.body_iterator
    await anext(body_iter)
    await runtime.receive("stringifier", [{"lat": 5}])
    chunk = await anext(body_iter)
    text = chunk.decode("utf-8") if isinstance(chunk, bytes) else chunk
    assert "event: agent_event" in text
    assert "lat=5" in text
    if hasattr(body_iter, "aclose"):
        await body_iter.aclose()  # type: ignore[attr-defined]
