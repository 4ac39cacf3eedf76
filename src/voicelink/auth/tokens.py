"""
Bearer token verification and role checks for moderator-facing routes.

Tokens are HS256 JWTs issued by the dashboard's auth layer with the claims
``uid``, ``email`` and ``role``.
"""

from __future__ import annotations

from typing import Annotated

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, ConfigDict, Field

from voicelink.config import Settings, get_settings
from voicelink.shared.exceptions import AuthenticationError, PermissionDeniedError
from voicelink.shared.logging import get_logger

logger = get_logger(__name__)
security = HTTPBearer(auto_error=False)

MODERATOR_ROLES: tuple[str, ...] = ("moderator", "admin")


class CurrentUser(BaseModel):
    """Authenticated caller extracted from the bearer token."""

    model_config = ConfigDict(frozen=True)

    uid: str = Field(..., description="User ID")
    email: str = Field(default="", description="User email")
    role: str = Field(default="user", description="User role")


def decode_token(token: str, settings: Settings) -> CurrentUser:
    """Verify signature and expiry, then map claims onto CurrentUser."""
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except jwt.InvalidTokenError as e:
        raise AuthenticationError(
            message="Invalid or expired token",
            details={"error": str(e)},
        ) from e

    uid = payload.get("uid")
    if not uid:
        raise AuthenticationError(
            message="Invalid or expired token",
            details={"error": "missing uid claim"},
        )

    return CurrentUser(
        uid=str(uid),
        email=payload.get("email") or "",
        role=payload.get("role") or "user",
    )


async def get_optional_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> CurrentUser | None:
    """Current user when a bearer token is sent, otherwise None."""
    if credentials is None:
        return None
    return decode_token(credentials.credentials, settings)


async def get_current_user(
    request: Request,
    user: Annotated[CurrentUser | None, Depends(get_optional_user)],
) -> CurrentUser:
    if user is None:
        logger.warning(
            "Missing authentication credentials",
            extra={
                "endpoint": str(request.url.path),
                "method": request.method,
                "client_ip": request.client.host if request.client else "unknown",
            },
        )
        raise AuthenticationError(message="No authorization token provided")
    return user


class RoleChecker:
    """Dependency allowing only users whose role is in ``roles``."""

    def __init__(self, roles: tuple[str, ...] | list[str]) -> None:
        self.roles = tuple(roles)

    async def __call__(
        self,
        request: Request,
        current_user: Annotated[CurrentUser, Depends(get_current_user)],
    ) -> CurrentUser:
        if current_user.role not in self.roles:
            logger.warning(
                "Access denied",
                extra={
                    "user_id": current_user.uid,
                    "user_role": current_user.role,
                    "required_roles": list(self.roles),
                    "endpoint": str(request.url.path),
                },
            )
            raise PermissionDeniedError(
                message=f"This action requires one of the following roles: {', '.join(self.roles)}",
            )
        return current_user


require_moderator = RoleChecker(MODERATOR_ROLES)


async def get_voice_caller(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> CurrentUser | None:
    """Caller of the voice/campaign API.

    Anonymous access is allowed unless ``voice_auth_required`` is set, in
    which case a moderator or admin token is mandatory. While access is open
    a token that does not verify is ignored and the request is served (and
    rate limited) as anonymous.
    """
    if settings.voice_auth_required:
        user = await get_optional_user(credentials, settings)
        current = await get_current_user(request, user)
        return await require_moderator(request, current)

    if credentials is None:
        return None
    try:
        return decode_token(credentials.credentials, settings)
    except AuthenticationError as e:
        logger.warning(
            "Ignoring unverifiable bearer token on open route",
            extra={
                "endpoint": str(request.url.path),
                "client_ip": request.client.host if request.client else "unknown",
                "reason": (e.details or {}).get("error"),
            },
        )
        return None
