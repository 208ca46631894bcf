import logging
import sys
from typing import Optional

import orjson

LOGGER = "datepurge"
LOG_FORMAT = "%(asctime)s %(levelname)5s %(message)s"


class JsonFormatter(logging.Formatter):
    "One JSON object per line."

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return orjson.dumps(entry).decode()


def setup_audit(output: Optional[str] = None, fmt: str = "text", verbose: bool = False) -> logging.Logger:
    """Send the run's audit trail to `output`, appending, or to stdout.

    Replaces handlers left by an earlier call.
    """
    logger = logging.getLogger(LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    if output:
        handler = logging.FileHandler(output, mode="a", encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter() if fmt == "json" else logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    return logger
