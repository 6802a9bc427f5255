"""key=value log lines carrying the session and tenant of a turn."""

import logging
import sys

from pydantic import ValidationError

# Record attributes promoted to their own fields when passed via ``extra``
CONTEXT_FIELDS = ("session_id", "host")


class StructuredFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        fields = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "module": record.module,
            "message": record.getMessage(),
        }
        for key in CONTEXT_FIELDS:
            if hasattr(record, key):
                fields[key] = getattr(record, key)
        fields.update(getattr(record, "extra_data", {}))

        line = " ".join(f"{k}={v}" for k, v in fields.items())
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def _level() -> int:
    from support_assistant.core.config import get_settings

    try:
        env = get_settings().ASSISTANT_ENV
    except ValidationError:
        # Settings incomplete, e.g. a tool importing the package without an environment
        return logging.INFO
    return logging.DEBUG if env == "dev" else logging.INFO


def get_logger(name: str) -> logging.Logger:
    """Logger writing structured lines to stdout, DEBUG in the dev environment."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)
        logger.setLevel(_level())
    return logger
