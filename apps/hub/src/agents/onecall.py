from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from .base import Agent, AgentEvent, is_present, leading_int

logger = logging.getLogger("owm.hub.agents.onecall")

OWM_BASE_URI = "https://api.openweathermap.org/data/2.5"
OWM_ONECALL_ENDPOINT = "/onecall"
UNITS = ("metric", "standard", "imperial")
DEFAULT_EXPECTED_UPDATE_PERIOD_IN_DAYS = 10
_HEX_KEY = re.compile(r"^[0-9a-fA-F]+$")


class OneCallAgent(Agent):
    """Queries the OpenWeatherMap OneCall API for one location and emits the response."""

    can_receive_events = False
    description = (
        "Queries the OneCall API of OpenWeatherMap for a location given by latitude and longitude. "
        "The response covers current weather, minutely, hourly and daily forecasts and national alerts."
    )

    def __init__(
        self,
        name: str,
        options: Optional[Dict[str, Any]] = None,
        *,
        base_url: str = OWM_BASE_URI,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(name, options, **kwargs)
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    def default_options(self) -> Dict[str, Any]:
        return {
            "api_key": "",
            "latitude": "",
            "longitude": "",
            "units": "metric",
            "language": "en",
            "expected_update_period_in_days": "1",
        }

    def option_errors(self) -> List[str]:
        options = self.options
        resolved = self.interpolated()
        errors: List[str] = []

        if not is_present(options.get("api_key")):
            errors.append("api_key is required")
        if not _HEX_KEY.match(str(resolved.get("api_key") or "")):
            errors.append("api_key must be valid (hex string)")

        if not is_present(options.get("latitude")):
            errors.append("latitude is required")
        if not -90 < leading_int(resolved.get("latitude")) < 90:
            errors.append("latitude value is invalid")

        if not is_present(options.get("longitude")):
            errors.append("longitude is required")
        if not -180 < leading_int(resolved.get("longitude")) < 180:
            errors.append("longitude value is invalid")

        if is_present(options.get("units")) and resolved.get("units") not in UNITS:
            errors.append("units contains invalid value")

        period = options.get("expected_update_period_in_days")
        if not (is_present(period) and leading_int(period) > 0):
            errors.append(
                "Please provide 'expected_update_period_in_days' to indicate how many days can pass "
                "without an update before this Agent is considered to not be working"
            )
        return errors

    def working(self, now: datetime | None = None) -> bool:
        period = self.interpolated().get("expected_update_period_in_days")
        days = leading_int(period) if is_present(period) else DEFAULT_EXPECTED_UPDATE_PERIOD_IN_DAYS
        return self.event_created_within(days, now) and not self.recent_error_logs()

    def build_url(self) -> str:
        resolved = self.interpolated()
        return (
            f"{self.base_url}{OWM_ONECALL_ENDPOINT}"
            f"?lat={resolved.get('latitude')}"
            f"&lon={resolved.get('longitude')}"
            f"&units={resolved.get('units')}"
            f"&lang={resolved.get('language')}"
            f"&APPID={resolved.get('api_key')}"
        )

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def check(self) -> AgentEvent | None:
        client = await self._get_client()
        url = self.build_url()
        logger.debug("Querying OneCall for agent %s", self.name)
        response = await client.get(url)
        if not response.is_success:
            logger.warning(
                "OneCall request for agent %s returned %s; no event emitted",
                self.name,
                response.status_code,
            )
            return None
        payload = response.json()
        if not isinstance(payload, dict):
            raise ValueError(f"OneCall response is not a JSON object (got {type(payload).__name__})")
        return self.create_event(payload)

    def describe(self, now: datetime | None = None) -> Dict[str, Any]:
        data = super().describe(now)
        if is_present(data["options"].get("api_key")):
            data["options"]["api_key"] = "***"
        return data


__all__ = ["OneCallAgent", "OWM_BASE_URI", "OWM_ONECALL_ENDPOINT", "UNITS"]
