# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

DEFAULT_TOKEN_TTL_SECONDS = 28800  # 8 hours


def _truthy(value: str) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "y"}


@dataclass(frozen=True)
class Settings:
    secret_key: str
    db_path: Path = Path("data/ecofinds.sqlite")
    token_ttl_seconds: int = DEFAULT_TOKEN_TTL_SECONDS
    token_salt: str = "ecofinds.session.v1"
    cors_origins: Tuple[str, ...] = ("*",)
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        secret = os.getenv("ECOFINDS_SECRET_KEY") or os.getenv("SECRET_KEY")
        if not secret:
            raise RuntimeError("Missing ECOFINDS_SECRET_KEY (or SECRET_KEY) in environment")
        origins = tuple(
            o.strip() for o in os.getenv("ECOFINDS_CORS_ORIGINS", "*").split(",") if o.strip()
        )
        return cls(
            secret_key=secret,
            db_path=Path(os.getenv("ECOFINDS_DB_PATH", "data/ecofinds.sqlite")).resolve(),
            token_ttl_seconds=int(os.getenv("ECOFINDS_TOKEN_TTL", str(DEFAULT_TOKEN_TTL_SECONDS))),
            token_salt=os.getenv("ECOFINDS_TOKEN_SALT", "ecofinds.session.v1"),
            cors_origins=origins or ("*",),
            host=os.getenv("ECOFINDS_HOST", "0.0.0.0"),
            port=int(os.getenv("ECOFINDS_PORT", "8000")),
            reload=_truthy(os.getenv("ECOFINDS_RELOAD", "false")),
        )
