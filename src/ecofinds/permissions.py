# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from dataclasses import dataclass
from typing import AsyncIterator, Optional

import aiosqlite
from fastapi import Request

from ecofinds.auth.session import TokenService
from ecofinds.core.logger import get_logger
from ecofinds.errors import AuthError, ForbiddenError, NotFoundError

_logger = get_logger(__name__)

BEARER_PREFIX = "bearer "


@dataclass(frozen=True)
class Identity:
    """Authenticated caller, passed explicitly to every owner-scoped call."""

    user_id: int


def bearer_token(authorization: Optional[str]) -> str:
    value = (authorization or "").strip()
    if not value:
        raise AuthError(AuthError.MISSING)
    if not value.lower().startswith(BEARER_PREFIX):
        raise AuthError(AuthError.MALFORMED)
    return value[len(BEARER_PREFIX):].strip()


def identify(tokens: TokenService, authorization: Optional[str]) -> Identity:
    try:
        session = tokens.verify(bearer_token(authorization))
    except AuthError as e:
        _logger.info(f"Rejected bearer token: {e.reason}")
        raise
    return Identity(user_id=session.user_id)


def require_identity(request: Request) -> Identity:
    """Dependency: the caller's identity, or 401 before the handler runs."""
    return identify(request.app.state.tokens, request.headers.get("Authorization"))


async def get_conn(request: Request) -> AsyncIterator[aiosqlite.Connection]:
    """Dependency: a connection scoped to the current request."""
    async with request.app.state.db.connect() as conn:
        yield conn


def ensure_profile_owner(identity: Identity, user_id: int) -> None:
    """Profiles say "forbidden" out loud when the id is not the caller's."""
    if identity.user_id != int(user_id):
        _logger.info(f"User {identity.user_id} denied access to profile {user_id}")
        raise ForbiddenError("Forbidden: You can only access your own data.")


def ensure_found(affected: int, what: str) -> None:
    """Owned-row mutations report a foreign row exactly like a missing one."""
    if affected == 0:
        raise NotFoundError(f"{what} not found.")
