from __future__ import annotations

import itertools
import logging
import re
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Deque, Dict, List, Mapping, Optional

logger = logging.getLogger("owm.hub.agents")

ERROR_LOG_GRACE = timedelta(minutes=2)
_PLACEHOLDER = re.compile(r"\{\{\s*([A-Za-z0-9_.\-]+)\s*\}\}")
_event_ids = itertools.count(1)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _isoformat(value: datetime) -> str:
    iso = value.astimezone(timezone.utc).isoformat(timespec="seconds")
    if iso.endswith("+00:00"):
        return iso[:-6] + "Z"
    return iso


def is_present(value: Any) -> bool:
    """Return False for None, False, blank strings and empty collections."""
    if value is None or value is False:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) > 0
    return True


def leading_int(value: Any) -> int:
    """Integer conversion that keeps only the leading digits of a string ("33.9" -> 33, "abc" -> 0)."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return int(value)
    if value is None:
        return 0
    match = re.match(r"\s*([+-]?\d+)", str(value))
    return int(match.group(1)) if match else 0


class AgentOptionsError(ValueError):
    """Raised when an agent's options fail validation."""

    def __init__(self, agent: str, errors: List[str]) -> None:
        self.agent = agent
        self.errors = list(errors)
        super().__init__(f"{agent}: " + "; ".join(self.errors))


@dataclass(frozen=True, slots=True)
class AgentEvent:
    agent: str
    payload: Dict[str, Any]
    id: int = field(default_factory=lambda: next(_event_ids))
    created_at: datetime = field(default_factory=_utc_now)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["created_at"] = _isoformat(self.created_at)
        return data


@dataclass(frozen=True, slots=True)
class AgentLog:
    message: str
    level: int = logging.ERROR
    created_at: datetime = field(default_factory=_utc_now)


EventSink = Callable[[AgentEvent], None]


def interpolate(value: Any, context: Mapping[str, Any]) -> Any:
    """Substitute ``{{ name }}`` placeholders in option values from ``context``."""
    if isinstance(value, str):
        return _PLACEHOLDER.sub(lambda match: _lookup(context, match.group(1)), value)
    if isinstance(value, dict):
        return {key: interpolate(item, context) for key, item in value.items()}
    if isinstance(value, list):
        return [interpolate(item, context) for item in value]
    return value


def _lookup(context: Mapping[str, Any], path: str) -> str:
    data: Any = context
    for key in path.split("."):
        if isinstance(data, Mapping) and key in data:
            data = data[key]
        elif isinstance(data, list) and key.isdigit() and int(key) < len(data):
            data = data[int(key)]
        else:
            return ""
    return "" if data is None else str(data)


class Agent:
    """Base class for hub agents.

    Subclasses declare which side of the event stream they sit on and
    implement ``default_options`` / ``validate_options``.
    """

    can_be_scheduled = True
    can_receive_events = True
    description = ""

    def __init__(
        self,
        name: str,
        options: Optional[Mapping[str, Any]] = None,
        *,
        credentials: Optional[Mapping[str, Any]] = None,
        sink: Optional[EventSink] = None,
        error_log_limit: int = 100,
    ) -> None:
        self.name = name
        merged = self.default_options()
        if options:
            merged.update(options)
        self.options: Dict[str, Any] = merged
        self.credentials: Dict[str, Any] = dict(credentials or {})
        self.sink = sink
        self.last_event_at: datetime | None = None
        self._error_log: Deque[AgentLog] = deque(maxlen=max(1, error_log_limit))

    def default_options(self) -> Dict[str, Any]:
        return {}

    def validate_options(self) -> None:
        errors = self.option_errors()
        if errors:
            raise AgentOptionsError(self.name, errors)

    def option_errors(self) -> List[str]:
        return []

    def interpolated(self, context: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        scope: Dict[str, Any] = dict(self.credentials)
        if context:
            scope.update(context)
        return interpolate(self.options, scope)

    def create_event(self, payload: Dict[str, Any]) -> AgentEvent:
        event = AgentEvent(agent=self.name, payload=payload)
        self.last_event_at = event.created_at
        logger.debug("Agent %s created event %s", self.name, event.id)
        if self.sink is not None:
            self.sink(event)
        return event

    # -- Error log ----------------------------------------------------------
    def log_error(self, message: str) -> AgentLog:
        entry = AgentLog(message=message)
        self._error_log.append(entry)
        logger.error("Agent %s: %s", self.name, message)
        return entry

    @property
    def error_logs(self) -> List[AgentLog]:
        return list(self._error_log)

    @property
    def last_error_log_at(self) -> datetime | None:
        return self._error_log[-1].created_at if self._error_log else None

    def clear_error_logs(self) -> None:
        self._error_log.clear()

    # -- Liveness -----------------------------------------------------------
    def event_created_within(self, days: int, now: datetime | None = None) -> bool:
        if self.last_event_at is None:
            return False
        now = now or _utc_now()
        return self.last_event_at > now - timedelta(days=days)

    def recent_error_logs(self) -> bool:
        last_error = self.last_error_log_at
        if last_error is None:
            return False
        if self.last_event_at is None:
            return True
        return last_error > self.last_event_at - ERROR_LOG_GRACE

    def working(self, now: datetime | None = None) -> bool:
        return not self.recent_error_logs()

    def describe(self, now: datetime | None = None) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": type(self).__name__,
            "options": dict(self.options),
            "working": self.working(now),
            "last_event_at": _isoformat(self.last_event_at) if self.last_event_at else None,
            "last_error_log_at": _isoformat(self.last_error_log_at) if self.last_error_log_at else None,
        }


__all__ = [
    "Agent",
    "AgentEvent",
    "AgentLog",
    "AgentOptionsError",
    "EventSink",
    "interpolate",
    "is_present",
    "leading_int",
]
