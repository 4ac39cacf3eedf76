"""
Telephony provider factory.

Configuration always comes from TelephonyConfig (OS env + .env); adapters
never read raw ``os.getenv("TWILIO_*")``.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from voicelink.telephony.config import ProviderType, TelephonyConfig
from voicelink.telephony.config import get_telephony_config as _load_telephony_config
from voicelink.telephony.interface import TelephonyProvider
from voicelink.telephony.mock_adapter import MockTelephonyAdapter
from voicelink.telephony.twilio_adapter import TwilioAdapter

logger = logging.getLogger(__name__)


def _redact(secret: str, visible: int = 6) -> str:
    """Keep a short prefix of ``secret`` for log correlation."""
    if len(secret) <= visible:
        return "*" * len(secret)
    return secret[:visible] + "***"


@lru_cache(maxsize=1)
def get_telephony_config() -> TelephonyConfig:
    return _load_telephony_config()


def build_telephony_provider(cfg: TelephonyConfig) -> TelephonyProvider:
    if cfg.provider_type == ProviderType.TWILIO:
        return TwilioAdapter(cfg)

    if cfg.provider_type == ProviderType.MOCK:
        return MockTelephonyAdapter(from_number=cfg.twilio_from_number or "+15005550006")

    raise ValueError(f"No telephony adapter for provider {cfg.provider_type!r}")


@lru_cache(maxsize=1)
def get_telephony_provider() -> TelephonyProvider:
    """Create and cache the telephony provider using TelephonyConfig."""
    cfg = get_telephony_config()

    logger.info(
        "Building telephony provider",
        extra={
            "provider_type": cfg.provider_type.value,
            "twilio_account_sid": _redact(cfg.twilio_account_sid),
            "twilio_from_number": cfg.twilio_from_number,
            "twilio_configured": cfg.is_configured,
        },
    )

    return build_telephony_provider(cfg)


def close_telephony_provider() -> None:
    """Close the cached provider (if one was built) and forget it."""
    if get_telephony_provider.cache_info().currsize:
        get_telephony_provider().close()
    get_telephony_provider.cache_clear()
    get_telephony_config.cache_clear()
