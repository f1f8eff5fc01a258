from __future__ import annotations

import contextvars
import logging
import sys
import time

request_id_cv = contextvars.ContextVar("request_id", default="-")


class StructuredFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        ts = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(record.created))
        lvl = record.levelname.upper()
        msg = record.getMessage()

        rid = request_id_cv.get()
        rid_str = f" [{rid[:8]}]" if rid != "-" else ""

        base = f"{ts} : {lvl:<5} : {record.name}{rid_str} : {msg}"

        if record.exc_info:
            base += f"\n{self.formatException(record.exc_info)}"

        return base


def configure_logging(level: str = "INFO") -> None:
    """Configure logging for the entire application."""
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(numeric_level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(StructuredFormatter())
    root.addHandler(handler)

    # Request lines are logged by our own middleware
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("storefront").setLevel(numeric_level)

    logging.getLogger("storefront.logs").info("Logging initialized: level=%s", level.upper())


def set_request_id(value: str) -> None:
    request_id_cv.set(value)
