from pathlib import Path
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Load apps/hub/.env and accept env keys in any case
    _env_file = Path(__file__).resolve().parent.parent / ".env"
    model_config = SettingsConfigDict(env_file=str(_env_file), extra="ignore", case_sensitive=False)

    app_name: str = "OWM OneCall Hub"
    app_version: str = "0.1.0"
    debug: bool = True
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

    # OpenWeatherMap OneCall
    owm_base_url: str = Field(
        default="https://api.openweathermap.org/data/2.5",
        description="Base URL for the OpenWeatherMap API.",
    )
    owm_request_timeout: float = Field(default=10.0, ge=1.0, description="Timeout in seconds for OneCall HTTP calls")
    owm_api_key: str = Field(default="", description="API key (hex string) sent as APPID.")
    owm_latitude: str = Field(default="", description="Latitude of the polled location.")
    owm_longitude: str = Field(default="", description="Longitude of the polled location.")
    owm_units: str = Field(default="metric", description="standard, metric or imperial.")
    owm_language: str = Field(default="en", description="Language passed through as lang.")
    owm_expected_update_period_in_days: int = Field(
        default=1,
        description="Days without a new event before the OneCall agent is reported as not working.",
    )

    # Event stringifier
    stringifier_mode: str = Field(default="Merge", description="Merge or Clean.")

    # Hub runtime
    event_history_limit: int = Field(
        default=50,
        ge=1,
        description="Max number of recent events retained per agent for diagnostics.",
    )
    error_log_limit: int = Field(
        default=100,
        ge=1,
        description="Max number of error log entries retained per agent.",
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def normalize_cors(cls, v):
        if isinstance(v, str):
            s = v.strip()
            if s.startswith("["):
                import json
                return json.loads(s)
            if s in ("", "*"):
                return ["*"]
            return [p.strip() for p in s.split(",")]
        return v

settings = Settings()
