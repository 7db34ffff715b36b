from __future__ import annotations

import logging
import sys

_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def setup_logging(level: str = "INFO") -> None:
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        numeric = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_FORMAT))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(numeric)

    # discord.py is chatty at DEBUG/INFO (gateway heartbeats, HTTP buckets).
    logging.getLogger("discord").setLevel(max(numeric, logging.WARNING))
    logging.getLogger("discord.http").setLevel(max(numeric, logging.WARNING))
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
