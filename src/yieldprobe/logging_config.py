"""Shared logging setup.

Call ``configure_logging()`` once at an entry point (CLI, API startup).
It is idempotent: if the root logger already has handlers it does nothing,
so pytest's and uvicorn's own handlers are left alone.
"""

from __future__ import annotations

import logging

from yieldprobe.config.settings import settings


def configure_logging(level: int | str | None = None) -> None:
    root = logging.getLogger()
    if root.handlers:
        return

    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    root.addHandler(console)

    level = level if level is not None else settings.log_level
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    root.setLevel(level)
