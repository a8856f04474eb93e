from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from services.agent_runtime import AgentRuntime
from services.event_bus import EventMessage

from .dependencies import get_runtime

logger = logging.getLogger("owm.hub.events")

router = APIRouter(prefix="/events", tags=["events"])

KEEPALIVE_SECONDS = 20.0


@router.get(
    "/stream",
    response_class=StreamingResponse,
    summary="Server-sent events stream of agent events",
)
async def stream_events(runtime: AgentRuntime = Depends(get_runtime)) -> StreamingResponse:
    logger.debug("Event stream requested")

    async def _event_source() -> AsyncIterator[bytes]:
        subscription = await runtime.bus.subscribe()
        try:
            yield EventMessage(type="init", data=_build_initial_snapshot(runtime)).to_sse()
            while True:
                try:
                    message = await asyncio.wait_for(subscription.get(), timeout=KEEPALIVE_SECONDS)
                    yield message.to_sse()
                except asyncio.TimeoutError:
                    yield b": keep-alive\n\n"
        except asyncio.CancelledError:  # pragma: no cover - server shutdown
            raise
        finally:
            await subscription.close()

    headers = {
        "Cache-Control": "no-cache",
        "X-Accel-Buffering": "no",
    }
    return StreamingResponse(_event_source(), media_type="text/event-stream", headers=headers)


def _build_initial_snapshot(runtime: AgentRuntime) -> dict[str, object]:
    return {"agents": [agent.describe() for agent in runtime.list()]}


__all__ = ["router"]
