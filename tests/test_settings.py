"""Tests for environment-driven control-plane settings."""

import pytest
from pydantic import ValidationError

from src.control_plane.config import RateLimitConfig
from src.control_plane.gateway import create_gateway
from src.control_plane.models import GatewayRequest
from src.settings import Settings, get_settings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "CONTROL_PLANE_DEFAULT_PROVIDERS",
        "CONTROL_PLANE_REQUESTS_PER_MINUTE",
        "CONTROL_PLANE_PII_DETECTION",
        "CONTROL_PLANE_ENFORCE_DAILY_LIMIT",
    ):
        monkeypatch.delenv(name, raising=False)


class TestSettings:
    """Tests for defaults and environment overrides."""

    def test_defaults(self):
        s = Settings(_env_file=None)
        assert s.default_providers == ["gemini", "openai", "claude", "copilot"]
        assert s.requests_per_minute == 60
        assert s.requests_per_hour == 1000
        assert s.requests_per_day == 10000
        assert s.rate_limiting_enabled is True
        assert s.enforce_daily_limit is False
        assert s.max_input_length == 50_000

    def test_security_config_defaults(self):
        assert Settings(_env_file=None).security_config() == {
            "threat_detection": True,
            "content_filtering": True,
            "pii_detection": True,
            "malicious_prompt_detection": True,
        }

    def test_env_override_scalar(self, monkeypatch):
        monkeypatch.setenv("CONTROL_PLANE_REQUESTS_PER_MINUTE", "5")
        monkeypatch.setenv("CONTROL_PLANE_PII_DETECTION", "false")
        s = Settings(_env_file=None)
        assert s.requests_per_minute == 5
        assert s.pii_detection is False

    def test_env_override_provider_list(self, monkeypatch):
        monkeypatch.setenv("CONTROL_PLANE_DEFAULT_PROVIDERS", '["local", " mistral "]')
        assert Settings(_env_file=None).default_providers == ["local", "mistral"]

    def test_blank_provider_ids_dropped(self):
        s = Settings(_env_file=None, default_providers=["a", "  ", ""])
        assert s.default_providers == ["a"]

    def test_negative_quota_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, requests_per_minute=-1)

    def test_zero_input_length_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, max_input_length=0)

    def test_get_settings_cached(self):
        get_settings.cache_clear()
        assert get_settings() is get_settings()
        get_settings.cache_clear()


class TestGatewayUsesSettings:
    """Tests that a gateway honours the settings it was built with."""

    def test_custom_input_length(self, clock):
        s = Settings(_env_file=None, max_input_length=10)
        with create_gateway(settings=s, clock=clock) as gw:
            assert gw.assess_request_security("x" * 11).detected_threats == [
                "excessive_input_length"
            ]

    def test_rate_limiting_disabled(self, clock):
        s = Settings(_env_file=None, requests_per_minute=1, rate_limiting_enabled=False)
        with create_gateway(settings=s, clock=clock) as gw:
            gw.record_request("gemini")
            gw.record_request("gemini")
            assert gw.check_rate_limit("gemini") is True

    def test_daily_limit_from_env(self, monkeypatch, clock):
        monkeypatch.setenv("CONTROL_PLANE_ENFORCE_DAILY_LIMIT", "true")
        with create_gateway(settings=Settings(_env_file=None), clock=clock) as gw:
            gw.configure_rate_limit("gemini", RateLimitConfig(requests_per_hour=100, requests_per_day=2))
            gw.record_request("gemini")
            gw.record_request("gemini")
            assert gw.check_rate_limit("gemini") is False

    def test_anomaly_thresholds(self, clock):
        s = Settings(_env_file=None, anomaly_length_threshold=10, oversized_request_length=20)
        with create_gateway(settings=s, clock=clock) as gw:
            detection = gw.security_manager.detect_behavioral_anomaly(
                GatewayRequest(input_text="y" * 25)
            )
            assert detection.anomaly_type == "oversized_request"
