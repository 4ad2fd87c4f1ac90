# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
import os
from typing import Optional

from rich.logging import RichHandler

_FORMAT = "[%(name)s]  %(message)s"


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a logger writing through a RichHandler.

    Level is DEBUG when the ``DEBUG`` environment variable is set, INFO
    otherwise. Handlers are attached once per logger name.
    """
    logger = logging.getLogger(name or "ecofinds")
    level = logging.DEBUG if os.getenv("DEBUG") else logging.INFO
    logger.setLevel(level)

    if not logger.handlers:
        handler = RichHandler(
            show_time=True,
            show_level=True,
            show_path=False,
            rich_tracebacks=True,
            log_time_format="[%X]",
        )
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler.setLevel(level)
        logger.addHandler(handler)
        logger.propagate = False

    return logger
