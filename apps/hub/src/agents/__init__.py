"""Hub agents for the OpenWeatherMap OneCall API."""

from .base import Agent, AgentEvent, AgentLog, AgentOptionsError
from .onecall import OneCallAgent
from .stringifier import EventStringifierAgent, OutputGroup, StringifierMode, transform

__all__ = [
    "Agent",
    "AgentEvent",
    "AgentLog",
    "AgentOptionsError",
    "EventStringifierAgent",
    "OneCallAgent",
    "OutputGroup",
    "StringifierMode",
    "transform",
]
