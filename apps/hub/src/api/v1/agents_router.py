from __future__ import annotations

import logging
from typing import Any, Dict, List

import httpx
from fastapi import APIRouter, Body, Depends, HTTPException, status
from pydantic import BaseModel, Field

from agents.base import Agent, AgentEvent
from services.agent_runtime import AgentCapabilityError, AgentRuntime

from .dependencies import get_agent_or_404, get_runtime

router = APIRouter(prefix="/agents", tags=["agents"])
logger = logging.getLogger("owm.hub.agents_api")


class AgentEventModel(BaseModel):
    id: int
    agent: str
    payload: Dict[str, Any]
    created_at: str = Field(description="Creation time (ISO-8601).")


class AgentSummaryModel(BaseModel):
    name: str
    type: str
    options: Dict[str, Any]
    working: bool
    last_event_at: str | None = None
    last_error_log_at: str | None = None


class AgentDetailModel(AgentSummaryModel):
    receivers: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list, description="Messages from the agent's error log.")
    events: List[AgentEventModel] = Field(default_factory=list)


class ReceiveRequest(BaseModel):
    payloads: List[Dict[str, Any]] = Field(min_length=1, description="Event payloads to deliver in order.")


def _event_model(event: AgentEvent) -> AgentEventModel:
    return AgentEventModel(**event.to_dict())


@router.get("", response_model=List[AgentSummaryModel])
async def list_agents(runtime: AgentRuntime = Depends(get_runtime)) -> List[AgentSummaryModel]:
    return [AgentSummaryModel(**agent.describe()) for agent in runtime.list()]


@router.get("/{name}", response_model=AgentDetailModel)
async def get_agent(
    agent: Agent = Depends(get_agent_or_404),
    runtime: AgentRuntime = Depends(get_runtime),
) -> AgentDetailModel:
    return AgentDetailModel(
        **agent.describe(),
        receivers=runtime.receivers_of(agent.name),
        errors=[entry.message for entry in agent.error_logs],
        events=[_event_model(event) for event in runtime.recent_events(agent.name)],
    )


@router.post("/{name}/check", response_model=AgentEventModel | None)
async def check_agent(
    agent: Agent = Depends(get_agent_or_404),
    runtime: AgentRuntime = Depends(get_runtime),
) -> AgentEventModel | None:
    try:
        event = await runtime.run_check(agent.name)
    except AgentCapabilityError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("Check of agent %s failed: %s", agent.name, exc)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Upstream request failed") from exc
    return _event_model(event) if event is not None else None


@router.post("/{name}/receive", response_model=List[AgentEventModel])
async def receive_events(
    request: ReceiveRequest = Body(...),
    agent: Agent = Depends(get_agent_or_404),
    runtime: AgentRuntime = Depends(get_runtime),
) -> List[AgentEventModel]:
    try:
        emitted = await runtime.receive(agent.name, request.payloads)
    except AgentCapabilityError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return [_event_model(event) for event in emitted]


__all__ = ["router"]
