"""Process-wide loguru setup: rich console output plus a rotating debug file.

Levels and the debug file location can be changed through ``SPLIT_LOG_LEVEL``
and ``SPLIT_LOG_FILE``; set ``SPLIT_LOG_FILE`` to an empty string to disable
the file sink. Modules simply do ``from spreadsplit.utils.log_utils import logger``.
"""

from __future__ import annotations

import os
from pathlib import Path

from loguru import logger
from rich.logging import RichHandler


CONSOLE_LEVEL_ENV = "SPLIT_LOG_LEVEL"
LOG_FILE_ENV = "SPLIT_LOG_FILE"

_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{line} | {message}"


def configure_logging(
    console_level: str | None = None,
    log_file: str | os.PathLike[str] | None = None,
) -> None:
    """(Re)install the console and file sinks, replacing any previous configuration."""
    # Also drops loguru's default stderr sink so messages are not printed twice.
    logger.remove()

    level = (console_level or os.getenv(CONSOLE_LEVEL_ENV) or "INFO").upper()
    logger.add(
        RichHandler(markup=False, show_time=False, rich_tracebacks=True),
        level=level,
        format="{message}",
    )

    target = log_file if log_file is not None else os.getenv(LOG_FILE_ENV, "spreadsplit_debug.log")
    if target:
        path = Path(target).expanduser().resolve()
        path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(path),
            level="DEBUG",
            format=_FILE_FORMAT,
            rotation="5 MB",
            retention=2,
            enqueue=True,
        )


configure_logging()

__all__ = ["configure_logging", "logger"]
