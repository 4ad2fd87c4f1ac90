# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import math
from typing import Any, Dict, List

import aiosqlite

from ecofinds.errors import NotFoundError, ValidationError
from ecofinds.infra import store
from ecofinds.permissions import Identity, ensure_found

ALL_CATEGORIES = "All"


def _clean_price(value: Any) -> float:
    try:
        price = float(value)
    except (TypeError, ValueError):
        raise ValidationError("Price must be a number.") from None
    if not math.isfinite(price):
        raise ValidationError("Price must be a number.")
    price = round(price, 2)
    if price <= 0:
        raise ValidationError("Price must be greater than 0.")
    return price


def _clean_text(value: Any) -> str:
    return str(value or "").strip()


def _clean_fields(fields: Dict[str, Any], *, partial: bool) -> Dict[str, Any]:
    """Normalise listing input.

    On create (``partial=False``) title, category and price are required. On
    update only the fields present are checked, but a present required field
    may not be blanked.
    """
    out: Dict[str, Any] = {}
    for key in ("title", "category"):
        if key in fields or not partial:
            val = _clean_text(fields.get(key))
            if not val:
                raise ValidationError("Title, category, and price are required.")
            out[key] = val
    if "price" in fields or not partial:
        if fields.get("price") is None:
            raise ValidationError("Title, category, and price are required.")
        out["price"] = _clean_price(fields["price"])
    for key in ("description", "image_url"):
        if key in fields:
            val = _clean_text(fields.get(key))
            out[key] = val or None
    return out


async def create_listing(conn: aiosqlite.Connection, identity: Identity, fields: Dict[str, Any]) -> Dict[str, Any]:
    clean = _clean_fields(fields, partial=False)
    pid = await store.insert_product(conn, owner_id=identity.user_id, fields=clean)
    return await store.get_product(conn, pid)


async def get_listing(conn: aiosqlite.Connection, product_id: int) -> Dict[str, Any]:
    row = await store.get_product(conn, product_id)
    if row is None:
        raise NotFoundError("Product not found.")
    return row


async def search_listings(conn: aiosqlite.Connection, *, q: str = "", category: str = "") -> List[Dict[str, Any]]:
    cat = _clean_text(category)
    if cat == ALL_CATEGORIES:
        cat = ""
    return await store.search_products(conn, q=_clean_text(q), category=cat)


async def my_listings(conn: aiosqlite.Connection, identity: Identity) -> List[Dict[str, Any]]:
    return await store.list_products_by_owner(conn, identity.user_id)


async def update_listing(
    conn: aiosqlite.Connection, identity: Identity, product_id: int, fields: Dict[str, Any]
) -> Dict[str, Any]:
    """Update a listing owned by the caller; ``owner_id`` is never writable."""
    clean = _clean_fields(fields, partial=True)
    affected = await store.update_product(conn, product_id=product_id, owner_id=identity.user_id, fields=clean)
    ensure_found(affected, "Product")
    return await store.get_product(conn, product_id)


async def delete_listing(conn: aiosqlite.Connection, identity: Identity, product_id: int) -> None:
    affected = await store.delete_product(conn, product_id=product_id, owner_id=identity.user_id)
    ensure_found(affected, "Product")
