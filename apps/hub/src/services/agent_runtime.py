from __future__ import annotations

import logging
from collections import deque
from typing import Any, Deque, Dict, Iterable, List, Mapping

import httpx

from agents import AgentEvent, EventStringifierAgent, OneCallAgent
from agents.base import Agent

from .event_bus import EventBus, event_bus as default_event_bus

logger = logging.getLogger("owm.hub.runtime")


class AgentNotFound(KeyError):
    """Raised when no agent is registered under the requested name."""


class AgentCapabilityError(RuntimeError):
    """Raised when an agent is asked to do something it does not support."""


class AgentRuntime:
    """In-process host for configured agents.

    Events created by an agent are published on the event bus and handed, in
    creation order, to every agent linked as a receiver of that source.
    """

    def __init__(self, *, bus: EventBus | None = None, history_limit: int = 50) -> None:
        self._bus = bus or default_event_bus
        self._history_limit = max(1, history_limit)
        self._agents: Dict[str, Agent] = {}
        self._receivers: Dict[str, List[str]] = {}
        self._history: Dict[str, Deque[AgentEvent]] = {}
        self._pending: Deque[AgentEvent] = deque()

    @property
    def bus(self) -> EventBus:
        return self._bus

    def add(self, agent: Agent, *, sources: Iterable[str] = ()) -> Agent:
        if agent.name in self._agents:
            raise ValueError(f"Agent {agent.name!r} is already registered")
        agent.validate_options()
        source_names = list(sources)
        if source_names and not agent.can_receive_events:
            raise AgentCapabilityError(f"Agent {agent.name!r} cannot receive events")
        for source in source_names:
            self.get(source)
        agent.sink = self._pending.append
        self._agents[agent.name] = agent
        self._history[agent.name] = deque(maxlen=self._history_limit)
        for source in source_names:
            self._receivers.setdefault(source, []).append(agent.name)
        logger.info("Registered agent %s (%s)", agent.name, type(agent).__name__)
        return agent

    def get(self, name: str) -> Agent:
        try:
            return self._agents[name]
        except KeyError:
            raise AgentNotFound(name) from None

    def list(self) -> List[Agent]:
        return list(self._agents.values())

    def receivers_of(self, name: str) -> List[str]:
        return list(self._receivers.get(name, []))

    def recent_events(self, name: str) -> List[AgentEvent]:
        self.get(name)
        return list(self._history.get(name, ()))

    async def run_check(self, name: str) -> AgentEvent | None:
        agent = self.get(name)
        if not isinstance(agent, OneCallAgent):
            raise AgentCapabilityError(f"Agent {name!r} cannot be checked")
        try:
            event = await agent.check()
        except (httpx.HTTPError, ValueError) as exc:
            agent.log_error(f"Check failed: {exc}")
            raise
        await self._drain()
        return event

    async def receive(self, name: str, payloads: Iterable[Mapping[str, Any]]) -> List[AgentEvent]:
        agent = self.get(name)
        if not isinstance(agent, EventStringifierAgent):
            raise AgentCapabilityError(f"Agent {name!r} cannot receive events")
        emitted = agent.receive(payloads)
        await self._drain()
        return emitted

    async def close(self) -> None:
        for agent in self._agents.values():
            if isinstance(agent, OneCallAgent):
                await agent.close()

    async def _drain(self) -> None:
        while self._pending:
            event = self._pending.popleft()
            self._history[event.agent].append(event)
            await self._bus.publish("agent_event", event.to_dict())
            for receiver_name in self._receivers.get(event.agent, []):
                receiver = self._agents[receiver_name]
                if not isinstance(receiver, EventStringifierAgent):
                    continue
                try:
                    receiver.receive([event])
                except Exception as exc:  # noqa: BLE001 - a failing receiver must not block the others
                    logger.warning("Agent %s failed to receive event %s", receiver_name, event.id, exc_info=True)
                    receiver.log_error(f"Failed to receive event {event.id}: {exc}")


def build_runtime(config: Any, *, bus: EventBus | None = None) -> AgentRuntime:
    """Register the default OneCall -> stringifier pipeline from hub settings."""
    runtime = AgentRuntime(bus=bus, history_limit=config.event_history_limit)
    sources: List[str] = []
    if config.owm_api_key:
        runtime.add(
            OneCallAgent(
                "onecall",
                {
                    "api_key": config.owm_api_key,
                    "latitude": config.owm_latitude,
                    "longitude": config.owm_longitude,
                    "units": config.owm_units,
                    "language": config.owm_language,
                    "expected_update_period_in_days": str(config.owm_expected_update_period_in_days),
                },
                base_url=config.owm_base_url,
                timeout=config.owm_request_timeout,
                error_log_limit=config.error_log_limit,
            )
        )
        sources.append("onecall")
    else:
        logger.info("OWM_API_KEY not set; OneCall agent disabled.")
    runtime.add(
        EventStringifierAgent(
            "stringifier",
            {"mode": config.stringifier_mode},
            error_log_limit=config.error_log_limit,
        ),
        sources=sources,
    )
    return runtime


__all__ = ["AgentCapabilityError", "AgentNotFound", "AgentRuntime", "build_runtime"]
