# backend/herbanet/core/logging_config.py
from __future__ import annotations

import logging

from herbanet.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    """
    Configure the root logger once for the service.
    Modules only ever call logging.getLogger(__name__).
    """
    root = logging.getLogger()
    resolved = (level or settings.LOG_LEVEL or "INFO").upper()

    # Avoid adding handlers multiple times (uvicorn reload, tests)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)

    root.setLevel(resolved)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
