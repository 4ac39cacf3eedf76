"""
Shared application exceptions.

Each subclass carries the HTTP status it maps to; the handlers registered in
``voicelink.main`` render them as ``{"success": false, "message": ...}``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Optional


@dataclass
class AppError(Exception):
    message: str = "Application error"
    details: Optional[dict[str, Any]] = None

    status_code: ClassVar[int] = 500

    def __str__(self) -> str:
        return self.message


class NotFoundError(AppError):
    status_code = 404


class ValidationError(AppError):
    status_code = 400

    @property
    def errors(self) -> list[str]:
        return list((self.details or {}).get("errors", []))


class AuthenticationError(AppError):
    status_code = 401


class PermissionDeniedError(AppError):
    status_code = 403


class RateLimitExceededError(AppError):
    status_code = 429

    @property
    def retry_after(self) -> int:
        return int((self.details or {}).get("retry_after", 0))
