"""Logging setup shared by the parser, the CLI and the web service.

Everything logs under the ``dbs_statement`` logger. The parser only asks for
loggers through ``get_logger``; ``parse_cli.main`` and ``web.app.create_app``
call ``configure_logging`` once to decide where records go.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO, Optional, Union

PKG_LOGGER_NAME = "dbs_statement"
LOG_LEVEL_ENV = "DBS_STATEMENT_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
_CONFIGURED = False


def parse_level(level: Optional[Union[int, str]]) -> int:
    """Resolve a level given as an int, a number string or a level name.

    ``None`` reads ``DBS_STATEMENT_LOG_LEVEL``; unknown names become ``INFO``.
    """
    if level is None:
        level = os.getenv(LOG_LEVEL_ENV)
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        name = level.strip().upper()
        if name.isdigit():
            return int(name)
        resolved = logging.getLevelName(name)
        if isinstance(resolved, int):
            return resolved
    return logging.INFO


def configure_logging(
    level: Optional[Union[int, str]] = None,
    *,
    fmt: Optional[str] = None,
    stream: Optional[IO[str]] = None,
) -> None:
    global _CONFIGURED
    if _CONFIGURED:
        return

    pkg_logger = logging.getLogger(PKG_LOGGER_NAME)
    pkg_logger.handlers = [h for h in pkg_logger.handlers if not isinstance(h, logging.NullHandler)]

    resolved = parse_level(level)
    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))

    pkg_logger.setLevel(resolved)
    pkg_logger.addHandler(handler)
    # Records stop at the package logger.
    pkg_logger.propagate = False

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    # Stay silent until an entrypoint configures output.
    pkg_logger = logging.getLogger(PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)
