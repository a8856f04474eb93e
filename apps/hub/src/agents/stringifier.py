"""Flatten OneCall payloads into grouped ``key=value`` strings.

Every weather point (``current``, each ``hourly`` and each ``daily`` entry) is
reduced to a handful of comma-joined strings so downstream consumers can
filter on them without reaching into nested objects.
"""
from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping

from .base import Agent, AgentEvent, is_present

logger = logging.getLogger("owm.hub.agents.stringifier")

META_KEYS = ("lat", "lon", "timezone", "timezone_offset")
SUN_MOON_KEYS = ("sunrise", "sunset", "moonrise", "moonset", "moon_phase")
TEMPERATURE_KEYS = ("temp", "feels_like", "dew_point")
TEMPERATURE_PERIODS = ("morn", "day", "eve", "night", "min", "max")
PRECIPITATION_KEYS = ("rain", "snow", "pop")
WIND_KEYS = ("wind_speed", "wind_deg", "wind_gust")
WEATHER_KEYS = ("id", "main", "icon")
OTHER_KEYS = ("pressure", "humidity", "clouds", "visibility", "uvi")
MINUTELY_KEYS = ("dt", "precipitation")
ALERT_KEYS = ("start", "end")
ALERT_TEXT_KEYS = ("sender_name", "event", "description")

STRINGIFIED_KEYS = ("str_meta", "str_current", "str_minutely", "str_hourly", "str_daily", "str_alerts")


class OutputGroup(str, Enum):
    DT = "dt"
    SUN_MOON = "sun_moon"
    TEMPERATURE = "temperature"
    PRECIPITATION = "precipitation"
    WIND = "wind"
    WEATHER = "weather"
    OTHER = "other"


class StringifierMode(str, Enum):
    MERGE = "Merge"
    CLEAN = "Clean"


def _quote(value: Any) -> str:
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _pairs(data: Mapping[str, Any], keys: Iterable[str], *, quoted: bool = False) -> List[str]:
    items: List[str] = []
    for key in keys:
        value = data.get(key)
        if is_present(value):
            items.append(f"{key}={_quote(value)}" if quoted else f"{key}={value}")
    return items


def _as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _as_list(value: Any) -> List[Any]:
    return list(value) if isinstance(value, (list, tuple)) else []


def _temperature_items(data: Mapping[str, Any]) -> List[str]:
    items: List[str] = []
    for key in TEMPERATURE_KEYS:
        value = data.get(key)
        if not is_present(value):
            continue
        if isinstance(value, Mapping):
            for period in TEMPERATURE_PERIODS:
                if is_present(value.get(period)):
                    items.append(f"{key}_{period}={value[period]}")
        else:
            items.append(f"{key}={value}")
    return items


def _precipitation_items(data: Mapping[str, Any]) -> List[str]:
    items: List[str] = []
    for key in PRECIPITATION_KEYS:
        value = data.get(key)
        if isinstance(value, Mapping):
            # rain/snow arrive as {"1h": <mm>} on current and hourly points
            hourly = value.get("1h")
            items.append(f"{key}={hourly}" if is_present(hourly) else f"{key}=0")
        elif is_present(value):
            items.append(f"{key}={value}")
        else:
            items.append(f"{key}=0")
    return items


def _weather_items(data: Mapping[str, Any]) -> List[str]:
    conditions = _as_list(data.get("weather"))
    if not conditions:
        return []
    first = _as_mapping(conditions[0])
    return _pairs(first, WEATHER_KEYS) + _pairs(first, ("description",), quoted=True)


def stringify_point(point: Any) -> Dict[str, Any]:
    """Group one weather point into its string representations.

    Groups without entries are left out; ``precipitation`` is always present.
    """
    data = _as_mapping(point)
    groups: Dict[str, Any] = {}
    if is_present(data.get("dt")):
        groups[OutputGroup.DT.value] = data["dt"]

    collected = (
        (OutputGroup.SUN_MOON, _pairs(data, SUN_MOON_KEYS)),
        (OutputGroup.TEMPERATURE, _temperature_items(data)),
        (OutputGroup.PRECIPITATION, _precipitation_items(data)),
        (OutputGroup.WIND, _pairs(data, WIND_KEYS)),
        (OutputGroup.WEATHER, _weather_items(data)),
        (OutputGroup.OTHER, _pairs(data, OTHER_KEYS)),
    )
    for group, items in collected:
        if items:
            groups[group.value] = ",".join(items)
    return groups


def stringify_meta(payload: Mapping[str, Any]) -> str:
    return ",".join(_pairs(payload, META_KEYS))


def stringify_current(payload: Mapping[str, Any]) -> Dict[str, Any]:
    current = payload.get("current")
    if not is_present(current):
        return {}
    return stringify_point(current)


def stringify_minutely(payload: Mapping[str, Any]) -> List[Dict[str, str]]:
    return [
        {OutputGroup.PRECIPITATION.value: ",".join(_pairs(_as_mapping(point), MINUTELY_KEYS))}
        for point in _as_list(payload.get("minutely"))
    ]


def stringify_hourly(payload: Mapping[str, Any]) -> List[Dict[str, Any]]:
    return [stringify_point(point) for point in _as_list(payload.get("hourly"))]


def stringify_daily(payload: Mapping[str, Any]) -> List[Dict[str, Any]]:
    return [stringify_point(point) for point in _as_list(payload.get("daily"))]


def stringify_alerts(payload: Mapping[str, Any]) -> List[str]:
    alerts: List[str] = []
    for alert in _as_list(payload.get("alerts")):
        data = _as_mapping(alert)
        alerts.append(",".join(_pairs(data, ALERT_KEYS) + _pairs(data, ALERT_TEXT_KEYS, quoted=True)))
    return alerts


def transform(payload: Mapping[str, Any], mode: StringifierMode | str = StringifierMode.MERGE) -> Dict[str, Any]:
    """Build the stringified event for ``payload``.

    ``Merge`` overlays the ``str_*`` keys on a copy of the payload; any other
    mode returns only them.
    """
    merge = mode == StringifierMode.MERGE
    stringified: Dict[str, Any] = {
        "str_meta": stringify_meta(payload),
        "str_current": stringify_current(payload),
        "str_minutely": stringify_minutely(payload),
        "str_hourly": stringify_hourly(payload),
        "str_daily": stringify_daily(payload),
        "str_alerts": stringify_alerts(payload),
    }
    formatted: Dict[str, Any] = dict(payload) if merge else {}
    formatted.update(stringified)
    return formatted


class EventStringifierAgent(Agent):
    """Converts OneCall events to categorised string representations."""

    can_be_scheduled = False
    description = "Converts the results of the OneCall agent to categorised string representations."

    def default_options(self) -> Dict[str, Any]:
        return {"mode": StringifierMode.MERGE.value}

    def option_errors(self) -> List[str]:
        errors: List[str] = []
        if not is_present(self.options.get("mode")):
            errors.append("mode is required")
        if self.interpolated().get("mode") not in {mode.value for mode in StringifierMode}:
            errors.append("mode must be valid value")
        return errors

    def receive(self, events: Iterable[AgentEvent | Mapping[str, Any]]) -> List[AgentEvent]:
        emitted: List[AgentEvent] = []
        for event in events:
            payload = event.payload if isinstance(event, AgentEvent) else event
            mode = self.interpolated(payload)["mode"]
            emitted.append(self.create_event(transform(payload, mode)))
        return emitted

    def working(self, now: datetime | None = None) -> bool:
        return not self.recent_error_logs()


__all__ = [
    "EventStringifierAgent",
    "OutputGroup",
    "StringifierMode",
    "STRINGIFIED_KEYS",
    "stringify_alerts",
    "stringify_current",
    "stringify_daily",
    "stringify_hourly",
    "stringify_meta",
    "stringify_minutely",
    "stringify_point",
    "transform",
]
