from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import IO, Any

# Loggers owned by the training framework and its helpers.
_FRAMEWORK_LOGGERS = ("ultralytics", "PIL", "urllib3")


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if hasattr(record, "context") and isinstance(record.context, dict):
            payload.update(record.context)
        return json.dumps(payload, ensure_ascii=True, default=str)


def configure_logging(
    level: str = "INFO",
    json_logs: bool = False,
    stream: IO[str] | None = None,
    framework_level: str | None = None,
) -> None:
    """Install a single root handler.

    Logs go to stderr by default so that stdout only carries the console report.
    """
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)

    handler = logging.StreamHandler(stream or sys.stderr)
    if json_logs:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s %(levelname)s %(name)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    root.addHandler(handler)

    quiet_level = framework_level or level
    for name in _FRAMEWORK_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)
