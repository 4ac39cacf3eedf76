"""
Guards shared by the voice, SMS and campaign routes.

- fixed-window rate limiting per caller (user id, else client IP)
- input validation for phone numbers, SMS bodies and TwiML URLs
- activity logging
"""

from __future__ import annotations

import math
import re
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Annotated, Any
from urllib.parse import urlparse

from fastapi import Depends, Request

from voicelink.auth.tokens import CurrentUser, get_voice_caller
from voicelink.config import Settings, get_settings
from voicelink.shared.exceptions import RateLimitExceededError, ValidationError
from voicelink.shared.logging import get_logger

logger = get_logger(__name__)

E164_PATTERN = re.compile(r"^\+?[1-9]\d{1,14}$")
MAX_SMS_LENGTH = 1600


# ----------------------------
# Rate limiting
# ----------------------------

@dataclass
class RateWindow:
    count: int
    reset_at: float


class RateLimiter:
    """Fixed-window counter per key.

    The first hit opens a window of ``window_seconds`` with count 1. Hits
    inside the window are allowed until ``max_calls``; after that they raise
    RateLimitExceededError until the window expires and a new one opens.
    """

    def __init__(
        self,
        max_calls: int,
        window_seconds: float = 3600,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_calls = max_calls
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, RateWindow] = {}

    def hit(self, key: str) -> int:
        """Count a request for ``key``; returns the remaining allowance."""
        now = self._clock()
        window = self._windows.get(key)

        if window is None or now > window.reset_at:
            self._windows[key] = RateWindow(count=1, reset_at=now + self.window_seconds)
            return self.max_calls - 1

        if window.count >= self.max_calls:
            retry_after = math.ceil(window.reset_at - now)
            raise RateLimitExceededError(
                message=f"Rate limit exceeded. Maximum {self.max_calls} calls per hour.",
                details={"retry_after": retry_after, "key": key},
            )

        window.count += 1
        return self.max_calls - window.count

    def reset(self) -> None:
        self._windows.clear()


_limiters: dict[str, RateLimiter] = {}


def get_rate_limiter(name: str, max_calls: int, window_seconds: float) -> RateLimiter:
    limiter = _limiters.get(name)
    if limiter is None:
        limiter = RateLimiter(max_calls=max_calls, window_seconds=window_seconds)
        _limiters[name] = limiter
    return limiter


def reset_rate_limiters() -> None:
    _limiters.clear()


def caller_key(request: Request, user: CurrentUser | None) -> str:
    if user is not None:
        return user.uid
    if request.client and request.client.host:
        return request.client.host
    return "anonymous"


def rate_limit(name: str, limit_setting: str) -> Callable[..., Any]:
    """Build a dependency enforcing the limit named by ``limit_setting``."""

    async def _dependency(
        request: Request,
        settings: Annotated[Settings, Depends(get_settings)],
        user: Annotated[CurrentUser | None, Depends(get_voice_caller)],
    ) -> None:
        limiter = get_rate_limiter(
            name,
            max_calls=getattr(settings, limit_setting),
            window_seconds=settings.rate_limit_window_seconds,
        )
        limiter.hit(caller_key(request, user))

    return _dependency


# ----------------------------
# Activity logging
# ----------------------------

async def log_voice_activity(
    request: Request,
    user: Annotated[CurrentUser | None, Depends(get_voice_caller)],
) -> None:
    logger.info(
        "Voice API request",
        extra={
            "method": request.method,
            "endpoint": request.url.path,
            "user_id": user.uid if user else "anonymous",
            "client_ip": request.client.host if request.client else "unknown",
        },
    )


# ----------------------------
# Validation
# ----------------------------

def is_valid_phone_number(value: str) -> bool:
    digits = re.sub(r"\D", "", value)
    return bool(E164_PATTERN.match(digits))


def validate_phone_number(value: Any, field: str = "toNumber") -> str:
    if not value or not isinstance(value, str):
        raise ValidationError(message=f"{field} is required")

    if not is_valid_phone_number(value):
        raise ValidationError(
            message="Invalid phone number format. Use E.164 format (e.g., +9779862478859)",
        )
    return value


def validate_sms_content(value: Any) -> str:
    if not value or not isinstance(value, str):
        raise ValidationError(message="Message content is required and must be a string")

    if not value.strip():
        raise ValidationError(message="Message cannot be empty")

    if len(value) > MAX_SMS_LENGTH:
        raise ValidationError(message=f"Message cannot exceed {MAX_SMS_LENGTH} characters")
    return value


def validate_twiml_url(value: Any) -> str:
    if not value or not isinstance(value, str):
        raise ValidationError(message="twimlUrl is required")

    parsed = urlparse(value)
    if not parsed.scheme or not parsed.netloc:
        raise ValidationError(message="Invalid TwiML URL format")
    return value
