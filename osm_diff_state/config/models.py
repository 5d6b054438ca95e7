"""
Pydantic models for configuration validation.
"""

from pydantic import BaseModel, Field, field_validator

from osm_diff_state.constants import (
    DEFAULT_URL,
    FETCH_TIMEOUT,
    MAX_REDIRECTS,
    PROBE_RETRIES,
    PROBE_TIMEOUT,
    RESULT_PROBE_RETRIES,
    RESULT_PROBE_TIMEOUT,
    USER_AGENT,
)

LOG_LEVELS = ("debug", "info", "warn", "error", "fatal")


class LocatorConfigModel(BaseModel):
    """
    Main configuration model for the locator.
    Validates input from defaults.toml.
    """
    # Replication server
    default_url: str = DEFAULT_URL
    osm_like: bool = True

    # Descriptor fetches
    fetch_timeout: float = Field(default=FETCH_TIMEOUT, gt=0)
    max_redirects: int = Field(default=MAX_REDIRECTS, ge=0)
    verify_ssl: bool = True
    user_agent: str = USER_AGENT

    # Accessibility probes (base directory first, selected descriptor last)
    base_probe_timeout: float = Field(default=PROBE_TIMEOUT, gt=0)
    base_probe_retries: int = Field(default=PROBE_RETRIES, ge=0)
    result_probe_timeout: float = Field(default=RESULT_PROBE_TIMEOUT, gt=0)
    result_probe_retries: int = Field(default=RESULT_PROBE_RETRIES, ge=0)

    # Search
    clamp_low_bound: bool = True

    # Logging
    log_level: str = "info"

    @field_validator("log_level")
    @classmethod
    def check_log_level(cls, value: str) -> str:
        level = value.strip().lower()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of: {', '.join(LOG_LEVELS)}")
        return level
