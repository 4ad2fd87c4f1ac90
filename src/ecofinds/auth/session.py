# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional

from itsdangerous import BadPayload, BadSignature, SignatureExpired, TimestampSigner, URLSafeTimedSerializer

from ecofinds.config import DEFAULT_TOKEN_TTL_SECONDS
from ecofinds.errors import AuthError

Clock = Callable[[], float]


class _ClockedSigner(TimestampSigner):
    """TimestampSigner whose notion of "now" comes from an injected clock."""

    def __init__(self, *args, clock: Clock = time.time, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._clock = clock

    def get_timestamp(self) -> int:
        return int(self._clock())


@dataclass(frozen=True)
class SessionData:
    user_id: int
    issued_at: int
    expires_at: int


class TokenService:
    """Issues and verifies stateless bearer tokens.

    A token is ``payload.timestamp.signature`` where the payload carries the
    user id. Expiry is ``issued_at + ttl_seconds``; there is no server-side
    revocation, so a token stays valid until it expires.
    """

    def __init__(
        self,
        secret_key: str,
        *,
        ttl_seconds: int = DEFAULT_TOKEN_TTL_SECONDS,
        salt: str = "ecofinds.session.v1",
        clock: Clock = time.time,
    ) -> None:
        if not secret_key:
            raise RuntimeError("Token secret key is empty")
        if ttl_seconds <= 0:
            raise ValueError("Token TTL must be positive")
        self.ttl_seconds = int(ttl_seconds)
        self._clock = clock
        self._serializer = URLSafeTimedSerializer(
            secret_key=secret_key,
            salt=salt,
            signer=_ClockedSigner,
            signer_kwargs={"clock": clock},
        )

    def issue(self, user_id: int) -> str:
        return self._serializer.dumps({"uid": int(user_id)})

    def verify(self, token: Optional[str]) -> SessionData:
        """Return the session carried by ``token`` or raise ``AuthError``."""
        token = (token or "").strip()
        if not token:
            raise AuthError(AuthError.MISSING)
        # payload.timestamp.signature
        if token.count(".") < 2 or not token.isascii():
            raise AuthError(AuthError.MALFORMED)

        # itsdangerous rejects age > max_age; a token is dead once now >= expires_at.
        try:
            data, issued = self._serializer.loads(token, max_age=self.ttl_seconds - 1, return_timestamp=True)
        except SignatureExpired:
            raise AuthError(AuthError.EXPIRED) from None
        except BadPayload:
            raise AuthError(AuthError.MALFORMED) from None
        except BadSignature:
            raise AuthError(AuthError.BAD_SIGNATURE) from None

        uid = data.get("uid") if isinstance(data, dict) else None
        if not isinstance(uid, int) or isinstance(uid, bool):
            raise AuthError(AuthError.MALFORMED)

        issued_at = int(issued.timestamp())
        return SessionData(user_id=uid, issued_at=issued_at, expires_at=issued_at + self.ttl_seconds)
