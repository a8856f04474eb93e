import sys
from pathlib import Path
from typing import Any, Callable, Dict

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from fastapi.testclient import TestClient  # noqa: E402

from config import settings  # noqa: E402
from main import create_app  # noqa: E402

API_KEY = "0123456789abcdef0123456789abcdef"


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def onecall_payload() -> Dict[str, Any]:
    return {
        "lat": 33.44,
        "lon": -94.04,
        "timezone": "America/Chicago",
        "timezone_offset": -21600,
        "current": {
            "dt": 1673633298,
            "sunrise": 1673616025,
            "sunset": 1673652524,
            "temp": 9.89,
            "feels_like": 7.66,
            "pressure": 1028,
            "humidity": 40,
            "dew_point": -2.71,
            "uvi": 2.98,
            "clouds": 0,
            "visibility": 10000,
            "wind_speed": 4.47,
            "wind_deg": 303,
            "wind_gust": 7.15,
            "weather": [{"id": 800, "main": "Clear", "description": "clear sky", "icon": "01d"}],
        },
        "minutely": [
            {"dt": 1673633340, "precipitation": 0},
            {"dt": 1673633400, "precipitation": 0.21},
        ],
        "hourly": [
            {
                "dt": 1673632800,
                "temp": 9.89,
                "feels_like": 8.07,
                "pressure": 1028,
                "humidity": 40,
                "dew_point": -2.71,
                "uvi": 2.98,
                "clouds": 0,
                "visibility": 10000,
                "wind_speed": 3.58,
                "wind_deg": 326,
                "wind_gust": 5.03,
                "weather": [{"id": 800, "main": "Clear", "description": "clear sky", "icon": "01d"}],
                "pop": 0,
            },
            {
                "dt": 1673636400,
                "temp": 8.1,
                "rain": {"1h": 0.38},
                "pop": 0.57,
                "weather": [{"id": 500, "main": "Rain", "description": "light rain", "icon": "10d"}],
            },
        ],
        "daily": [
            {
                "dt": 1673632800,
                "sunrise": 1673616025,
                "sunset": 1673652524,
                "moonrise": 1673675220,
                "moonset": 1673630040,
                "moon_phase": 0.71,
                "temp": {"day": 9.89, "min": 0.26, "max": 10.39, "night": 2.15, "eve": 5.89, "morn": 0.6},
                "feels_like": {"day": 8.07, "night": -0.01, "eve": 3.46, "morn": -3.21},
                "pressure": 1028,
                "humidity": 40,
                "dew_point": -2.71,
                "wind_speed": 4.25,
                "wind_deg": 327,
                "wind_gust": 9.97,
                "weather": [{"id": 800, "main": "Clear", "description": "clear sky", "icon": "01d"}],
                "clouds": 0,
                "pop": 0,
                "uvi": 2.98,
            }
        ],
        "alerts": [
            {
                "sender_name": "Example name",
                "event": "wind gusts",
                "start": 1673564400,
                "end": 1673636400,
                "description": "Example example example",
                "tags": ["Wind", "Wind"],
            }
        ],
    }


@pytest.fixture
def settings_override() -> Callable[..., None]:
    original: Dict[str, Any] = {}

    def _apply(**overrides: Any) -> None:
        for key, value in overrides.items():
            if key not in original:
                original[key] = getattr(settings, key)
            setattr(settings, key, value)

    yield _apply

    for key, value in original.items():
        setattr(settings, key, value)


@pytest.fixture
def onecall_settings(settings_override: Callable[..., None]) -> None:
    settings_override(
        owm_api_key=API_KEY,
        owm_latitude="33.44",
        owm_longitude="-94.04",
        owm_units="metric",
        owm_language="en",
        owm_expected_update_period_in_days=1,
        stringifier_mode="Merge",
    )
    yield


@pytest.fixture
def client(onecall_settings: None) -> TestClient:
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client
