"""Logging setup: one readable line per record, structured extras appended as JSON."""

import json
import logging
import sys

_STANDARD_RECORD_ATTRS = frozenset(
    logging.LogRecord("x", logging.INFO, __file__, 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}

# Per-request INFO lines from the HTTP client drown out pipeline events.
_NOISY_LOGGERS = ("httpx", "httpcore")


class JSONExtrasFormatter(logging.Formatter):
    """Render ``extra={...}`` fields after the message.

    Example:
        2026-01-15 10:30:45 | INFO     | trendpipe.services.trend_scout | Scout finished {"candidates": 4}
    """

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()
        line = f"{self.formatTime(record, self.datefmt)} | {record.levelname:<8} | {record.name} | {record.message}"

        extras = {k: v for k, v in record.__dict__.items() if k not in _STANDARD_RECORD_ATTRS and not k.startswith("_")}
        if extras:
            try:
                line = f"{line} {json.dumps(extras, default=str, ensure_ascii=False)}"
            except (TypeError, ValueError):
                line = f"{line} {extras!r}"

        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            line = f"{line}\n{record.exc_text}"
        return line


def setup_logging(level: int | str | None = None) -> None:
    """Attach a stdout handler to the ``trendpipe`` logger.

    ``level`` defaults to the ``LOG_LEVEL`` setting. Calling again only
    adjusts the level.
    """
    if level is None:
        from trendpipe.config import settings

        level = settings.log_level
    if isinstance(level, str):
        level = level.upper()

    logger = logging.getLogger("trendpipe")
    logger.setLevel(level)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if logger.handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONExtrasFormatter(datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(handler)
    logger.propagate = False
