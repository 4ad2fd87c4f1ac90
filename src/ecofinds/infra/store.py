# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Parameterised SQL for users, listings, cart items and orders.

Every statement that touches an owned row is scoped with ``owner_id = ?``;
callers learn about a foreign or missing row only through an empty result or a
zero row count.
"""

from __future__ import annotations

import sqlite3
from typing import Any, Dict, List, Optional, Tuple

import aiosqlite

PUBLIC_USER_COLUMNS = "id, email, username, created_at"
PRODUCT_COLUMNS = "id, title, description, category, price, image_url, owner_id, created_at"
EDITABLE_PRODUCT_FIELDS = ("title", "description", "category", "price", "image_url")

# Largest value a SQLite INTEGER column can hold.
MAX_ROW_ID = 2**63 - 1


def _row(row: Optional[sqlite3.Row]) -> Optional[Dict[str, Any]]:
    return dict(row) if row is not None else None


async def _fetchone(conn: aiosqlite.Connection, sql: str, params: tuple = ()) -> Optional[Dict[str, Any]]:
    cur = await conn.execute(sql, params)
    row = await cur.fetchone()
    await cur.close()
    return _row(row)


async def _fetchall(conn: aiosqlite.Connection, sql: str, params: tuple = ()) -> List[Dict[str, Any]]:
    cur = await conn.execute(sql, params)
    rows = await cur.fetchall()
    await cur.close()
    return [dict(r) for r in rows]


async def _execute(conn: aiosqlite.Connection, sql: str, params: tuple = ()) -> Tuple[int, int]:
    """Run a write statement; return (rowcount, lastrowid)."""
    cur = await conn.execute(sql, params)
    result = (cur.rowcount, cur.lastrowid or 0)
    await cur.close()
    return result


# ---------------------------
# Users
# ---------------------------


async def insert_user(conn: aiosqlite.Connection, *, email: str, username: str, password_hash: str) -> int:
    """Insert a user and commit. Raises ``sqlite3.IntegrityError`` on duplicate email."""
    _, lastrowid = await _execute(
        conn,
        "INSERT INTO users(email, username, password_hash) VALUES (?, ?, ?);",
        (email, username, password_hash),
    )
    await conn.commit()
    return int(lastrowid)


async def get_credentials_by_email(conn: aiosqlite.Connection, email: str) -> Optional[Dict[str, Any]]:
    """The only query that reads ``password_hash``."""
    return await _fetchone(
        conn,
        f"SELECT {PUBLIC_USER_COLUMNS}, password_hash FROM users WHERE email = ?;",
        (email,),
    )


async def get_user(conn: aiosqlite.Connection, user_id: int) -> Optional[Dict[str, Any]]:
    return await _fetchone(conn, f"SELECT {PUBLIC_USER_COLUMNS} FROM users WHERE id = ?;", (user_id,))


async def update_user(conn: aiosqlite.Connection, user_id: int, fields: Dict[str, Any]) -> int:
    """Update username/email of one user. Returns the affected row count."""
    fields = {k: v for k, v in fields.items() if k in ("username", "email")}
    if not fields:
        return 0
    assignments = ", ".join(f"{k} = ?" for k in fields)
    rowcount, _ = await _execute(
        conn,
        f"UPDATE users SET {assignments} WHERE id = ?;",
        (*fields.values(), user_id),
    )
    await conn.commit()
    return rowcount


# ---------------------------
# Products
# ---------------------------


async def insert_product(conn: aiosqlite.Connection, *, owner_id: int, fields: Dict[str, Any]) -> int:
    _, lastrowid = await _execute(
        conn,
        """
        INSERT INTO products(title, description, category, price, image_url, owner_id)
        VALUES (?, ?, ?, ?, ?, ?);
        """,
        (
            fields["title"],
            fields.get("description"),
            fields["category"],
            fields["price"],
            fields.get("image_url"),
            owner_id,
        ),
    )
    await conn.commit()
    return int(lastrowid)


async def get_product(conn: aiosqlite.Connection, product_id: int) -> Optional[Dict[str, Any]]:
    return await _fetchone(conn, f"SELECT {PRODUCT_COLUMNS} FROM products WHERE id = ?;", (product_id,))


async def search_products(
    conn: aiosqlite.Connection, *, q: str = "", category: str = ""
) -> List[Dict[str, Any]]:
    sql = f"SELECT {PRODUCT_COLUMNS} FROM products WHERE 1 = 1"
    params: list = []
    if q:
        sql += " AND LOWER(title) LIKE ?"
        params.append(f"%{q.lower()}%")
    if category:
        sql += " AND category = ?"
        params.append(category)
    sql += " ORDER BY id DESC;"
    return await _fetchall(conn, sql, tuple(params))


async def list_products_by_owner(conn: aiosqlite.Connection, owner_id: int) -> List[Dict[str, Any]]:
    return await _fetchall(
        conn,
        f"SELECT {PRODUCT_COLUMNS} FROM products WHERE owner_id = ? ORDER BY id DESC;",
        (owner_id,),
    )


async def update_product(
    conn: aiosqlite.Connection, *, product_id: int, owner_id: int, fields: Dict[str, Any]
) -> int:
    fields = {k: v for k, v in fields.items() if k in EDITABLE_PRODUCT_FIELDS}
    if not fields:
        # Still report whether the caller owns the row.
        row = await _fetchone(
            conn, "SELECT 1 AS ok FROM products WHERE id = ? AND owner_id = ?;", (product_id, owner_id)
        )
        return 1 if row else 0
    assignments = ", ".join(f"{k} = ?" for k in fields)
    rowcount, _ = await _execute(
        conn,
        f"UPDATE products SET {assignments} WHERE id = ? AND owner_id = ?;",
        (*fields.values(), product_id, owner_id),
    )
    await conn.commit()
    return rowcount


async def delete_product(conn: aiosqlite.Connection, *, product_id: int, owner_id: int) -> int:
    rowcount, _ = await _execute(
        conn, "DELETE FROM products WHERE id = ? AND owner_id = ?;", (product_id, owner_id)
    )
    await conn.commit()
    return rowcount


# ---------------------------
# Cart & orders
# ---------------------------


async def insert_cart_item(conn: aiosqlite.Connection, *, owner_id: int, product_id: int, quantity: int) -> int:
    _, lastrowid = await _execute(
        conn,
        "INSERT INTO cart_items(owner_id, product_id, quantity) VALUES (?, ?, ?);",
        (owner_id, product_id, quantity),
    )
    await conn.commit()
    return int(lastrowid)


async def list_cart(conn: aiosqlite.Connection, owner_id: int) -> List[Dict[str, Any]]:
    return await _fetchall(
        conn,
        """
        SELECT c.id, c.product_id, c.quantity, p.title, p.price, p.image_url
        FROM cart_items c
        JOIN products p ON p.id = c.product_id
        WHERE c.owner_id = ?
        ORDER BY c.id;
        """,
        (owner_id,),
    )


async def count_cart(conn: aiosqlite.Connection, owner_id: int) -> int:
    row = await _fetchone(conn, "SELECT COUNT(*) AS n FROM cart_items WHERE owner_id = ?;", (owner_id,))
    return int(row["n"]) if row else 0


async def delete_cart_item(conn: aiosqlite.Connection, *, item_id: int, owner_id: int) -> int:
    rowcount, _ = await _execute(
        conn, "DELETE FROM cart_items WHERE id = ? AND owner_id = ?;", (item_id, owner_id)
    )
    await conn.commit()
    return rowcount


async def copy_cart_to_orders(conn: aiosqlite.Connection, owner_id: int) -> int:
    """Snapshot the caller's cart into orders. Does not commit."""
    rowcount, _ = await _execute(
        conn,
        """
        INSERT INTO orders(owner_id, product_id, quantity, price)
        SELECT c.owner_id, c.product_id, c.quantity, p.price
        FROM cart_items c
        JOIN products p ON p.id = c.product_id
        WHERE c.owner_id = ?;
        """,
        (owner_id,),
    )
    return rowcount


async def clear_cart(conn: aiosqlite.Connection, owner_id: int) -> int:
    """Delete every cart row of the caller. Does not commit."""
    rowcount, _ = await _execute(conn, "DELETE FROM cart_items WHERE owner_id = ?;", (owner_id,))
    return rowcount


async def list_orders(conn: aiosqlite.Connection, owner_id: int) -> List[Dict[str, Any]]:
    return await _fetchall(
        conn,
        """
        SELECT o.id, o.product_id, o.quantity, o.price, o.purchased_at, p.title, p.image_url
        FROM orders o
        LEFT JOIN products p ON p.id = o.product_id
        WHERE o.owner_id = ?
        ORDER BY o.purchased_at DESC, o.id DESC;
        """,
        (owner_id,),
    )


async def count_orders(conn: aiosqlite.Connection, owner_id: int) -> int:
    row = await _fetchone(conn, "SELECT COUNT(*) AS n FROM orders WHERE owner_id = ?;", (owner_id,))
    return int(row["n"]) if row else 0
