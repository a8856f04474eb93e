from config import Settings


def test_settings_defaults():
    settings = Settings(_env_file=None)
    assert settings.app_name == "OWM OneCall Hub"
    assert settings.owm_base_url == "https://api.openweathermap.org/data/2.5"
    assert settings.owm_units == "metric"
    assert settings.owm_language == "en"
    assert settings.owm_expected_update_period_in_days == 1
    assert settings.stringifier_mode == "Merge"


def test_settings_normalizes_cors_from_string():
    settings = Settings(cors_origins="http://example.com, http://localhost")
    assert settings.cors_origins == ["http://example.com", "http://localhost"]


def test_settings_handles_case_insensitive_env(monkeypatch):
    monkeypatch.setenv("owm_language", "de")
    monkeypatch.setenv("OWM_LATITUDE", "52.52")
    settings = Settings()
    assert settings.owm_language == "de"
    assert settings.owm_latitude == "52.52"
