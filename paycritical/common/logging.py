"""Structured JSON logging with gateway-call context fields."""

import logging
import sys
from contextvars import ContextVar

from pythonjsonlogger.json import JsonFormatter

from paycritical.common.config import settings


operation_ctx: ContextVar[str] = ContextVar("operation", default="")
payment_id_ctx: ContextVar[str] = ContextVar("payment_id", default="")


class ContextFilter(logging.Filter):
    """Inject service name and the current gateway call into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.service_name = settings.service_name
        record.operation = operation_ctx.get()
        record.payment_id = payment_id_ctx.get()
        return True


def configure_logging(level: str | None = None, stream=None) -> None:
    """Configure root logger once per process (CLI, sandbox)."""

    handler = logging.StreamHandler(stream or sys.stdout)
    context_filter = ContextFilter()
    handler.addFilter(context_filter)
    formatter = JsonFormatter(
        "%(asctime)s %(levelname)s %(service_name)s %(operation)s %(payment_id)s %(message)s"
    )
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel((level or settings.log_level).upper())
    root.addFilter(context_filter)


logger = logging.getLogger("paycritical")
