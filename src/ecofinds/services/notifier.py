# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import asyncio
from typing import Any, Dict, Set

from fastapi import WebSocket

from ecofinds.core.logger import get_logger

_logger = get_logger(__name__)


class Notifier:
    """Fan-out of marketplace events to every connected websocket."""

    def __init__(self) -> None:
        self._clients: Set[WebSocket] = set()

    @property
    def client_count(self) -> int:
        return len(self._clients)

    async def connect(self, ws: WebSocket) -> None:
        await ws.accept()
        self._clients.add(ws)

    def disconnect(self, ws: WebSocket) -> None:
        self._clients.discard(ws)

    async def broadcast(self, event: str, data: Dict[str, Any]) -> int:
        """Send ``{"event": event, **data}`` to all clients; returns deliveries.

        Clients whose send fails are dropped.
        """
        message = {"event": event, **data}
        clients = list(self._clients)
        results = await asyncio.gather(*(c.send_json(message) for c in clients), return_exceptions=True)
        delivered = 0
        for client, result in zip(clients, results):
            if isinstance(result, Exception):
                _logger.debug(f"Dropping notification client: {type(result).__name__}")
                self.disconnect(client)
            else:
                delivered += 1
        return delivered
