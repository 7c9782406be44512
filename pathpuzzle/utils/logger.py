"""Logging utilities tailored for puzzle generation."""

from __future__ import annotations

import logging
from typing import IO, Optional, Union


LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"


def configure_logging(level: Union[int, str] = logging.INFO, stream: Optional[IO[str]] = None) -> None:
    """Configure root logging with a sensible formatter.

    Generators run many seeded attempts per symbol kind, so per-attempt
    chatter is emitted at DEBUG while accepted placements and infeasible
    kinds surface at INFO. ``level`` accepts either a numeric level or a
    name such as ``"debug"`` so the CLI can pass its flag straight through.
    """

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt="%H:%M:%S"))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a namespaced logger, configuring defaults if needed."""

    if not logging.getLogger().handlers:
        configure_logging(logging.WARNING)
    return logging.getLogger(name or "pathpuzzle")
