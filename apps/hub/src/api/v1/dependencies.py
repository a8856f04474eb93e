from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status

from agents.base import Agent
from services.agent_runtime import AgentNotFound, AgentRuntime


def get_runtime(request: Request) -> AgentRuntime:
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Agent runtime not started")
    return runtime


def get_agent_or_404(name: str, runtime: AgentRuntime = Depends(get_runtime)) -> Agent:
    try:
        return runtime.get(name)
    except AgentNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Agent not found") from None
