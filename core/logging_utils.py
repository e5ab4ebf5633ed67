from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional

from .paths import get_logs_dir

_RESERVED_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", None, None)).keys()) | {"message", "asctime"}


class JsonLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        payload: Dict[str, Any] = {
            "ts": time.time(),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        for key, value in record.__dict__.items():
            if key.startswith("_") or key in _RESERVED_ATTRS or key in payload:
                continue
            try:
                json.dumps(value)
            except TypeError:
                continue
            payload[key] = value
        return json.dumps(payload, ensure_ascii=False)


def configure_json_logging(
    working_dir: Path,
    name: str = "burbujapp",
    *,
    level: int | str = logging.INFO,
    console: bool = True,
) -> logging.Logger:
    """Attach a JSONL file handler (and optionally a console handler) to *name*."""

    logs_dir = get_logs_dir(Path(working_dir))
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_path = logs_dir / "burbujapp.log.jsonl"
    logger = logging.getLogger(name)
    logger.setLevel(level)
    existing: Optional[logging.Handler] = None
    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler) and getattr(handler, "baseFilename", None) == str(log_path):
            existing = handler
            break
    if existing is None:
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(JsonLogFormatter())
        logger.addHandler(file_handler)
        if console:
            stream = logging.StreamHandler()
            stream.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
            logger.addHandler(stream)
    logger.propagate = False
    return logger
