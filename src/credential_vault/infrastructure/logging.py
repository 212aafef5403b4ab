"""Process logging configuration for the credential API."""

from __future__ import annotations

import logging

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_NOISY_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "asyncpg")


def configure_logging(*, level: str) -> None:
    """Configure root logging once and keep driver loggers at WARNING.

    Driver loggers echo statements and bound values at DEBUG, which would put
    secret digests in the log stream.
    """

    normalized_level = level.strip().upper() or "INFO"
    resolved_level = logging.getLevelNamesMapping().get(normalized_level, logging.INFO)

    logging.basicConfig(level=resolved_level, format=_LOG_FORMAT)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved_level, logging.WARNING))
