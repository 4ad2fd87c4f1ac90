# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from typing import Any, Dict, List

import aiosqlite

from ecofinds.core.logger import get_logger
from ecofinds.errors import NotFoundError, ValidationError
from ecofinds.infra import store
from ecofinds.infra.database import transaction
from ecofinds.permissions import Identity, ensure_found

_logger = get_logger(__name__)


async def add_item(
    conn: aiosqlite.Connection, identity: Identity, *, product_id: Any, quantity: Any = 1
) -> Dict[str, Any]:
    try:
        pid = int(product_id)
        qty = int(1 if quantity is None else quantity)
    except (TypeError, ValueError):
        raise ValidationError("product_id and quantity must be integers.") from None
    if qty < 1:
        raise ValidationError("Quantity must be at least 1.")
    if qty > store.MAX_ROW_ID:
        raise ValidationError("Quantity is too large.")
    if not 1 <= pid <= store.MAX_ROW_ID or await store.get_product(conn, pid) is None:
        raise NotFoundError("Product not found.")

    item_id = await store.insert_cart_item(conn, owner_id=identity.user_id, product_id=pid, quantity=qty)
    return {"id": item_id, "product_id": pid, "quantity": qty}


async def list_items(conn: aiosqlite.Connection, identity: Identity) -> List[Dict[str, Any]]:
    return await store.list_cart(conn, identity.user_id)


async def remove_item(conn: aiosqlite.Connection, identity: Identity, item_id: int) -> None:
    affected = await store.delete_cart_item(conn, item_id=item_id, owner_id=identity.user_id)
    ensure_found(affected, "Cart item")


async def checkout(conn: aiosqlite.Connection, identity: Identity) -> int:
    """Move the caller's cart into orders as one transaction.

    Returns the number of order rows created. Either every cart row becomes an
    order and the cart is emptied, or nothing changes.
    """
    async with transaction(conn):
        # Counted under the write lock.
        if await store.count_cart(conn, identity.user_id) == 0:
            raise ValidationError("Cart is empty.")
        created = await store.copy_cart_to_orders(conn, identity.user_id)
        await store.clear_cart(conn, identity.user_id)

    _logger.info(f"User {identity.user_id} checked out {created} item(s)")
    return created


async def list_orders(conn: aiosqlite.Connection, identity: Identity) -> List[Dict[str, Any]]:
    return await store.list_orders(conn, identity.user_id)
