from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

from skillnet.core.config import Settings, settings

TEXT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class JsonFormatter(logging.Formatter):
    """One JSON object per line, stamped with the provider and node that wrote it."""

    def __init__(self, provider: str = "", node: str = "") -> None:
        super().__init__()
        self._stamp = {key: value for key, value in (("provider", provider), ("node", node)) if value}

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **self._stamp,
        }

        context = getattr(record, "context", None)
        if isinstance(context, dict):
            payload.update(context)

        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)

        # skill outputs and settings values are not always JSON-native
        return json.dumps(payload, ensure_ascii=False, default=str)


class ContextTextFormatter(logging.Formatter):
    """Plain-text lines with the record's ``context`` appended as key=value pairs."""

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        context = getattr(record, "context", None)
        if isinstance(context, dict) and context:
            line = f"{line} " + " ".join(f"{key}={value}" for key, value in context.items())
        return line


def build_log_handler(config: Settings | None = None) -> logging.Handler:
    cfg = config or settings
    handler = logging.StreamHandler()
    if cfg.OBS_LOG_JSON:
        handler.setFormatter(JsonFormatter(provider=cfg.PROVIDER_NAME, node=(cfg.NODE_IDENTITY or "")[:8]))
    else:
        handler.setFormatter(ContextTextFormatter(TEXT_FORMAT))
    return handler


def setup_logging(config: Settings | None = None) -> None:
    cfg = config or settings
    root_logger = logging.getLogger()
    if root_logger.handlers:
        return

    root_logger.setLevel(str(cfg.OBS_LOG_LEVEL or "INFO").upper())
    root_logger.addHandler(build_log_handler(cfg))
