#!/usr/bin/env python3
from __future__ import annotations

import asyncio
from getpass import getpass

from ecofinds.auth.users import signup
from ecofinds.config import Settings
from ecofinds.errors import AppError
from ecofinds.infra.database import Database


async def _create(db: Database, email: str, username: str, password: str) -> int:
    async with db.connect() as conn:
        user = await signup(conn, email=email, username=username, password=password)
    return user.id


def main() -> None:
    settings = Settings.from_env()
    db = Database(settings.db_path)

    email = input("Email: ").strip()
    username = input("Username: ").strip()
    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        raise SystemExit("Passwords do not match")

    try:
        uid = asyncio.run(_create(db, email, username, pw1))
    except AppError as e:
        raise SystemExit(e.message)
    print(f"OK -> user {uid} in {settings.db_path}")


if __name__ == "__main__":
    main()
