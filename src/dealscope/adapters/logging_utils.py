import json
import logging
import sys
import time
from typing import Any, Dict

from .config import config

# context keys whose values never reach the log stream
_SECRET_KEYS = frozenset({"api_key", "apikey", "authorization", "token", "password"})
_REDACTED = "***"


def log_context(**fields: Any) -> Dict[str, Dict[str, Any]]:
    """
    `extra=` payload for the JSON logger:

        logger.info("market data fetched", extra=log_context(zipcode="48201"))
    """
    return {"context": fields}


def _scrub(value: Any) -> Any:
    secret = config.MARKET_API_KEY
    if secret and isinstance(value, str) and secret in value:
        return value.replace(secret, _REDACTED)
    return value


class JsonLogFormatter(logging.Formatter):
    """One JSON object per line, tagged with service and environment."""

    def format(self, record):
        payload = {
            "ts": time.time(),
            "service": "dealscope",
            "env": config.ENV,
            "level": record.levelname,
            "logger": record.name,
            "message": _scrub(record.getMessage()),
        }
        ctx = getattr(record, "context", None)
        if isinstance(ctx, dict):
            for key, value in ctx.items():
                payload[key] = _REDACTED if key.lower() in _SECRET_KEYS else _scrub(value)
        if record.exc_info:
            payload["exc"] = _scrub(self.formatException(record.exc_info))
        return json.dumps(payload, default=str)


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JsonLogFormatter())
        logger.addHandler(handler)
        logger.setLevel(config.LOG_LEVEL.upper())
        logger.propagate = False
    return logger
