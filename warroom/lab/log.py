"""Logging configuration using loguru.

Every record carries a ``pipeline`` field.  ``PipelineStateMachine`` binds it
with ``logger.contextualize`` for the duration of a run, so lines from
parallel agent runs of one pipeline stay attributable; outside a run it
reads ``-``.  Stdlib logging (anyio, executor adapter libraries) is routed
into loguru as well.
"""

from __future__ import annotations

import logging
import sys

from loguru import logger

NO_PIPELINE = "-"

LOG_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> "
    "<level>{level: <7}</level> "
    "<magenta>[{extra[pipeline_id]}]</magenta> "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> "
    "<level>{message}</level>"
)


class _StdlibBridge(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip logging's own frames so the call site is reported.
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str = "INFO") -> None:
    """Make loguru the only sink, writing to stderr.

    ``warroom run`` keeps stdout for JSON event lines.
    """
    level = level.upper()

    logger.configure(
        handlers=[{"sink": sys.stderr, "level": level, "format": LOG_FORMAT}],
        extra={"pipeline_id": NO_PIPELINE},
    )
    logging.basicConfig(handlers=[_StdlibBridge()], level=0, force=True)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    logger.debug("Logging initialised (level={})", level)
