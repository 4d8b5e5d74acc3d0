"""
JSON logging for the referral ledger: one object per line, with the ledger's
context (redemption, parties, event) lifted out of ``extra={...}``.
"""
import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler

from trackkal.core.config import settings

SERVICE_NAME = "trackkal-referrals"

# Context keys callers pass via extra={...}
CONTEXT_FIELDS = (
    # parties and records
    "user_id", "owner_id", "referrer_id", "referee_id", "redemption_id", "code",
    # ledger state
    "role", "amount", "status", "reason", "meals_logged",
    # fraud
    "device_fingerprint", "redemptions_count",
    # events and tasks
    "event", "event_id", "properties", "attempt", "error",
)

# Loggers that flood the worker at INFO
QUIET_LOGGERS = ("sqlalchemy.engine", "celery.worker.strategy")


class JsonFormatter(logging.Formatter):
    """Ledger record -> JSON line. Unset context keys are left out."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "service": SERVICE_NAME,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(self._context(record))

        if record.exc_info and record.exc_info[0] is not None:
            payload["exc_type"] = record.exc_info[0].__name__
            payload["exception"] = self.formatException(record.exc_info)

        # non-JSON values (datetimes, enums, Decimals) fall back to str()
        return json.dumps(payload, ensure_ascii=False, default=str)

    @staticmethod
    def _context(record: logging.LogRecord) -> dict:
        context = {}
        for key in CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                context[key] = value
        return context


def _build_handlers(formatter: logging.Formatter) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.log_file:
        handlers.append(
            RotatingFileHandler(
                settings.log_file,
                maxBytes=settings.log_max_bytes,
                backupCount=settings.log_backup_count,
            )
        )
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def configure_logging(level: str | None = None) -> None:
    """Route the root logger through JsonFormatter (stdout, plus LOG_FILE if set)."""
    root = logging.getLogger()
    root.handlers = _build_handlers(JsonFormatter())
    root.setLevel((level or settings.log_level).upper())
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
