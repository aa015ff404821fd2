"""Centralized settings for the AI provider control plane.

Uses pydantic-settings to load from environment variables (prefixed
CONTROL_PLANE_) with defaults matching the gateway's built-in quotas.
"""

from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Control-plane settings loaded from environment variables."""

    # --- Providers configured by initialize() ---
    default_providers: List[str] = Field(default_factory=lambda: ["gemini", "openai", "claude", "copilot"])

    # --- Default rate limit ---
    requests_per_minute: int = Field(default=60, ge=0)
    requests_per_hour: int = Field(default=1000, ge=0)
    requests_per_day: int = Field(default=10000, ge=0)
    rate_limiting_enabled: bool = True
    enforce_daily_limit: bool = False  # keep 24h of history and check requests_per_day

    # --- Security feature toggles ---
    threat_detection: bool = True
    content_filtering: bool = True
    pii_detection: bool = True
    malicious_prompt_detection: bool = True
    max_input_length: int = Field(default=50_000, gt=0)

    # --- Behavioral anomaly thresholds ---
    anomaly_length_threshold: int = Field(default=5_000, gt=0)
    oversized_request_length: int = Field(default=10_000, gt=0)

    # --- Routing ---
    slow_routing_ms: float = 50.0

    model_config = {
        "env_prefix": "CONTROL_PLANE_",
        "env_file": ".env",
        "extra": "ignore",
    }

    @field_validator("default_providers")
    @classmethod
    def _strip_provider_ids(cls, value: List[str]) -> List[str]:
        return [p.strip() for p in value if p.strip()]

    def security_config(self) -> dict:
        return {
            "threat_detection": self.threat_detection,
            "content_filtering": self.content_filtering,
            "pii_detection": self.pii_detection,
            "malicious_prompt_detection": self.malicious_prompt_detection,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton."""
    return Settings()
