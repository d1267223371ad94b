from __future__ import annotations

import json
import logging
import os
import uuid
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

LOGGER_NAME = "streamrelay"


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S%z"),
            "level": record.levelname,
            "request_id": getattr(record, "request_id", ""),
            "stage": getattr(record, "stage", ""),
            "message": record.getMessage(),
        }
        extra = getattr(record, "extra_fields", None)
        if isinstance(extra, dict):
            payload.update(extra)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True)


class RequestLoggerAdapter(logging.LoggerAdapter):
    """Stamps ``request_id`` on each record; other bound context joins the event fields."""

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        context = dict(self.extra)
        request_id = context.pop("request_id", "")
        event_extra = dict(kwargs.get("extra") or {})
        fields = event_extra.get("extra_fields")
        if isinstance(fields, dict):
            context.update(fields)
        event_extra["request_id"] = request_id
        event_extra["extra_fields"] = context
        kwargs["extra"] = event_extra
        return msg, kwargs

    def bind(self, **context: Any) -> RequestLoggerAdapter:
        return RequestLoggerAdapter(self.logger, {**self.extra, **context})


def setup_logging(*, force: bool = False) -> logging.Logger:
    log_path = os.getenv("STREAMRELAY_LOG_PATH", "logs/streamrelay.log").strip() or "logs/streamrelay.log"
    log_level = os.getenv("STREAMRELAY_LOG_LEVEL", "INFO").strip().upper() or "INFO"
    max_bytes = int(os.getenv("STREAMRELAY_LOG_MAX_BYTES", "5000000"))
    backup_count = int(os.getenv("STREAMRELAY_LOG_BACKUP_COUNT", "5"))

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, log_level, logging.INFO))
    logger.propagate = False

    if force:
        for h in list(logger.handlers):
            logger.removeHandler(h)
            try:
                h.close()
            except Exception:
                pass

    if logger.handlers:
        return logger

    handler: logging.Handler
    if log_path == "-":
        # "-" means stderr.
        handler = logging.StreamHandler()
    else:
        path = Path(log_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    return logger


def new_request_id() -> str:
    return uuid.uuid4().hex[:12]


def get_request_logger(request_id: str, **context: Any) -> RequestLoggerAdapter:
    base = logging.getLogger(LOGGER_NAME)
    return RequestLoggerAdapter(base, {"request_id": request_id, **context})


def log_event(
    logger: logging.Logger | logging.LoggerAdapter,
    level: str,
    stage: str,
    message: str,
    *,
    exc_info: bool = False,
    **fields: Any,
) -> None:
    fn = getattr(logger, level.lower(), logger.info)
    fn(message, exc_info=exc_info, extra={"stage": stage, "extra_fields": fields})
