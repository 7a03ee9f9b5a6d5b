"""Celery application configuration."""

import json
import logging
import sys
from datetime import datetime, timezone

from celery import Celery
from celery.signals import setup_logging, worker_init, worker_shutdown

from llmstxt.config import get_settings

settings = get_settings()


class JsonFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    One JSON object per line with timestamp, level, logger and message, which
    log collectors can parse to identify levels.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def configure_logging(level: str | None = None) -> None:
    """Send all logs to stdout as JSON lines."""
    level = (level or settings.log_level).upper()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.handlers.clear()  # Remove default stderr handlers
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in ("celery", "llmstxt"):
        named_logger = logging.getLogger(name)
        named_logger.handlers.clear()
        named_logger.addHandler(handler)
        named_logger.setLevel(level)
        named_logger.propagate = False

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


@setup_logging.connect
def on_setup_logging(**kwargs):
    configure_logging()


@worker_init.connect
def on_worker_init(**kwargs):
    from llmstxt.workers.runtime import get_runtime

    get_runtime().start()


@worker_shutdown.connect
def on_worker_shutdown(**kwargs):
    from llmstxt.workers.runtime import get_runtime

    get_runtime().stop()


celery_app = Celery(
    "llmstxt",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["llmstxt.workers.tasks"],
)

# Celery configuration
celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # Task execution
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    # Worker settings
    worker_pool="threads",  # Threads hand jobs to the shared event loop
    worker_prefetch_multiplier=1,
    worker_concurrency=settings.job_concurrency,
    worker_hijack_root_logger=False,  # Don't hijack root logger (we configure it ourselves)
    worker_redirect_stdouts=True,
    worker_redirect_stdouts_level="INFO",
    # Result backend
    result_expires=3600,  # 1 hour
)
