# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import sqlite3
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

import aiosqlite
from argon2.exceptions import HashingError
from fastapi.concurrency import run_in_threadpool

from ecofinds.auth.passwords import burn_verify, hash_password, verify_password
from ecofinds.core.logger import get_logger
from ecofinds.errors import AuthError, ConflictError, InternalError, NotFoundError, ValidationError
from ecofinds.infra import store

_logger = get_logger(__name__)


@dataclass(frozen=True)
class UserRecord:
    """Public view of a user. Never carries the password hash."""

    id: int
    email: str
    username: str
    created_at: str

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "UserRecord":
        return cls(
            id=int(row["id"]),
            email=str(row["email"]),
            username=str(row["username"] or ""),
            created_at=str(row["created_at"] or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _require_email(email: str) -> str:
    e = normalize_email(email)
    local, _, domain = e.partition("@")
    if not local or "." not in domain or " " in e:
        raise ValidationError("A valid email is required.")
    return e


async def signup(conn: aiosqlite.Connection, *, email: str, username: str, password: str) -> UserRecord:
    e = _require_email(email)
    u = (username or "").strip()
    if not u or not password:
        raise ValidationError("Username, email, and password are required.")

    try:
        ph = await run_in_threadpool(hash_password, password)
    except (HashingError, ValueError):
        _logger.exception("Password hashing failed during signup")
        raise InternalError("Registration failed.") from None

    try:
        uid = await store.insert_user(conn, email=e, username=u, password_hash=ph)
    except sqlite3.IntegrityError:
        raise ConflictError("Email already registered.") from None

    _logger.info(f"User {uid} registered")
    row = await store.get_user(conn, uid)
    return UserRecord.from_row(row)


async def authenticate(conn: aiosqlite.Connection, *, email: str, password: str) -> UserRecord:
    """Check credentials. Unknown email and wrong password fail identically."""
    e = normalize_email(email)
    if not e or not password:
        raise ValidationError("Email and password are required.")

    row = await store.get_credentials_by_email(conn, e)
    if row is None:
        await run_in_threadpool(burn_verify, password)
        ok = False
    else:
        ok = await run_in_threadpool(verify_password, row["password_hash"], password)

    if not ok:
        _logger.info("Login rejected: invalid credentials")
        raise AuthError(AuthError.BAD_CREDENTIALS, "Invalid credentials.")
    return UserRecord.from_row(row)


async def get_profile(conn: aiosqlite.Connection, user_id: int) -> UserRecord:
    row = await store.get_user(conn, user_id)
    if row is None:
        raise NotFoundError("User not found.")
    return UserRecord.from_row(row)


async def update_profile(
    conn: aiosqlite.Connection,
    user_id: int,
    *,
    username: Optional[str] = None,
    email: Optional[str] = None,
) -> UserRecord:
    fields: Dict[str, Any] = {}
    if username is not None:
        u = username.strip()
        if not u:
            raise ValidationError("Username cannot be empty.")
        fields["username"] = u
    if email is not None:
        fields["email"] = _require_email(email)
    if not fields:
        raise ValidationError("No fields to update.")

    try:
        affected = await store.update_user(conn, user_id, fields)
    except sqlite3.IntegrityError:
        raise ConflictError("Email already registered.") from None
    if affected == 0:
        raise NotFoundError("User not found.")
    return await get_profile(conn, user_id)
