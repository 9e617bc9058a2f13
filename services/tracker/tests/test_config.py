"""Settings loading from environment variables."""

import pytest
from pydantic import ValidationError

from services.tracker.config import Settings


class TestSettings:
    def test_defaults(self):
        s = Settings(_env_file=None)
        assert s.snapshot_hours_back == 24
        assert s.grid_degrees == 1.0
        assert s.weather_batch_size == 50
        assert s.weather_cache_ttl_seconds == 900
        assert s.weather_cache_namespace == "wx"
        assert s.weather_retry_max_attempts == 5

    def test_cache_ttl_from_env(self, monkeypatch):
        monkeypatch.setenv("WEATHER_CACHE_TTL_SECONDS", "120")
        assert Settings(_env_file=None).weather_cache_ttl_seconds == 120

    def test_legacy_cache_ttl_name(self, monkeypatch):
        monkeypatch.delenv("WEATHER_CACHE_TTL_SECONDS", raising=False)
        monkeypatch.setenv("REDIS_WEATHER_TTL_SECONDS", "300")
        assert Settings(_env_file=None).weather_cache_ttl_seconds == 300

    def test_hours_back_is_bounded(self, monkeypatch):
        monkeypatch.setenv("SNAPSHOT_HOURS_BACK", "48")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_unknown_environment_rejected(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "qa")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)
