"""Logging setup for the engine and the API server.

Every record is stamped with the tick of the currently bound world loop,
so lines written from the engine thread and from HTTP handlers line up
with the event feed.
"""

from __future__ import annotations

import logging
import sys
from typing import Callable, TextIO

_tick_source: Callable[[], int] | None = None


def bind_tick_source(source: Callable[[], int] | None) -> None:
    """Use *source* to stamp ``record.tick``; ``None`` unbinds."""
    global _tick_source
    _tick_source = source


class TickFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        source = _tick_source
        record.tick = source() if source is not None else "-"
        return True


def setup_logging(level: str = "INFO", stream: TextIO | None = None) -> None:
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
    handler.addFilter(TickFilter())
    handler.setFormatter(logging.Formatter(
        fmt="%(asctime)s %(levelname)-7s t=%(tick)-6s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    ))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(numeric_level)

    # Pollers hit /state several times a second
    logging.getLogger("uvicorn.access").setLevel(max(numeric_level, logging.WARNING))
