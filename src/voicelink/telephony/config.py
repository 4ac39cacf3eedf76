"""
Telephony provider settings (``TELEPHONY_*`` environment variables).
"""

from enum import Enum

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProviderType(str, Enum):
    TWILIO = "twilio"
    MOCK = "mock"


class TelephonyConfig(BaseSettings):
    """Which provider to use and how to reach it."""

    model_config = SettingsConfigDict(
        env_prefix="TELEPHONY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    provider_type: ProviderType = Field(
        default=ProviderType.TWILIO,
        description="'mock' records calls and messages in memory instead of dialing out.",
    )

    twilio_account_sid: str = Field(default="", description="Twilio account SID (AC...)")
    twilio_auth_token: str = Field(default="", description="Signs REST calls and webhooks")
    twilio_from_number: str = Field(default="", description="Caller id / SMS sender, E.164")

    # Fallback public URL for TwiML links when PUBLIC_BASE_URL is not set
    webhook_base_url: str = Field(default="http://localhost:8000")

    request_timeout_seconds: float = Field(default=30.0, gt=0, le=300)

    @field_validator("webhook_base_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return (v or "").strip().rstrip("/")

    @property
    def is_configured(self) -> bool:
        """True when calls and SMS can actually be sent through Twilio."""
        return all((self.twilio_account_sid, self.twilio_auth_token, self.twilio_from_number))


def get_telephony_config() -> TelephonyConfig:
    return TelephonyConfig()
