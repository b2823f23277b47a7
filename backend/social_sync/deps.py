"""
Request-scoped dependencies: database session and the authenticated owner.

Bearer tokens are issued elsewhere; here they are only decoded and the
owner id is read from the configured claim.
"""
from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from .db import get_session
from .errors import Unauthenticated
from .settings import get_settings

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def decode_owner_id(token: str) -> int:
    settings = get_settings()
    if not settings.jwt_secret:
        logger.error("JWT_SECRET not configured - rejecting token")
        raise Unauthenticated("Invalid token")
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise Unauthenticated("Invalid token", reason=str(exc)) from exc
    owner = claims.get(settings.jwt_owner_claim)
    try:
        return int(owner)
    except (TypeError, ValueError) as exc:
        raise Unauthenticated("Invalid token", reason=f"missing {settings.jwt_owner_claim} claim") from exc


async def get_owner_id(credentials: HTTPAuthorizationCredentials | None = Depends(security)) -> int:
    if not credentials or not credentials.credentials:
        raise Unauthenticated("Token required")
    return decode_owner_id(credentials.credentials)


SessionDep = Annotated[AsyncSession, Depends(get_session)]
OwnerDep = Annotated[int, Depends(get_owner_id)]
