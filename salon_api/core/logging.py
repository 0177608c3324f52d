from __future__ import annotations

import logging
import sys
from contextvars import ContextVar, Token
from typing import Optional, Union
from uuid import UUID


# Request-scoped values stamped onto every log record
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
owner_id_var: ContextVar[Optional[str]] = ContextVar("owner_id", default=None)

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | cid=%(correlation_id)s | owner=%(owner_id)s | %(message)s"

# Libraries that are chatty at INFO; they follow the app level only when it is DEBUG.
QUIET_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "passlib", "uvicorn.access")


class OwnerContextFilter(logging.Filter):
    """Copy the correlation id and the authenticated owner id onto the record ('-' when unset)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get() or "-"
        record.owner_id = owner_id_var.get() or "-"
        return True


# PUBLIC_INTERFACE
def bind_owner(owner_id: Union[UUID, str, None]) -> Token:
    """Attach the owner id to the current request context; returns the reset token."""
    return owner_id_var.set(str(owner_id) if owner_id else None)


# PUBLIC_INTERFACE
def configure_logging(level: Union[int, str, None] = None) -> None:
    """
    Install a single stdout handler on the root logger.

    The level comes from the argument, else LOG_LEVEL from the app settings.
    Handlers installed earlier (basicConfig, a previous call) are replaced.
    """
    if level is None:
        from salon_api.core.settings import get_app_settings

        level = get_app_settings().LOG_LEVEL
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT))
    handler.addFilter(OwnerContextFilter())

    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    root.addHandler(handler)
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(level if level <= logging.DEBUG else logging.WARNING)
