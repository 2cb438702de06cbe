# =============================================================================
# lab_core/logging/config.py
# Logging for the data layer, driven by LabConfig
# =============================================================================
"""
Every logger in the data layer hangs off the ``lab_core`` package logger.
setup_logging() attaches handlers there rather than on the root logger, so a
host app (Streamlit, a script) keeps its own logging setup.
"""

from __future__ import annotations
import logging
import sys
import time
from datetime import date
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from lab_core.config import LabConfig

PACKAGE_LOGGER = "lab_core"
LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

# Supabase client stack; chatty at INFO
CLIENT_LOGGERS = ("httpx", "httpcore", "hpack", "supabase", "postgrest", "realtime", "websockets")

_HANDLER_MARK = "_lab_core_handler"


def _owned_handlers(package: logging.Logger) -> List[logging.Handler]:
    return [h for h in package.handlers if getattr(h, _HANDLER_MARK, False)]


def setup_logging(config: Optional[LabConfig] = None) -> logging.Logger:
    """
    Install stderr (and optionally file) handlers on the package logger.

    Calling it again replaces the handlers it installed before.

    Args:
        config: Supplies ``log_level`` and ``log_dir``; None means INFO to
            stderr only

    Returns:
        The ``lab_core`` package logger
    """
    level = config.log_level if config else logging.INFO
    log_dir = config.log_dir if config else None

    package = logging.getLogger(PACKAGE_LOGGER)
    for handler in _owned_handlers(package):
        package.removeHandler(handler)
        handler.close()

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / f"lab_tracker_{date.today():%Y%m%d}.log"
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    formatter = logging.Formatter(LOG_FORMAT)
    for handler in handlers:
        setattr(handler, _HANDLER_MARK, True)
        handler.setFormatter(formatter)
        package.addHandler(handler)
    package.setLevel(level)

    # Wire-level client logs only when the app itself is at DEBUG
    client_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in CLIENT_LOGGERS:
        logging.getLogger(name).setLevel(client_level)

    package.debug(f"Logging at {logging.getLevelName(level)}, file: {log_dir or 'none'}")
    return package


def get_logger(name: str) -> logging.Logger:
    """
    Logger under the package namespace.

    Module names (``lab_core.offline...``) are used as-is; bare names such
    as a service class name are prefixed with ``lab_core.``.
    """
    if name == PACKAGE_LOGGER or name.startswith(PACKAGE_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")


class LogContext:
    """
    Times a block and logs its outcome.

    Usage:
        with LogContext(logger, "Approving request req-1") as ctx:
            ...
        ctx.elapsed_ms
    """

    def __init__(self, logger: logging.Logger, operation: str):
        self.logger = logger
        self.operation = operation
        self.elapsed_ms: Optional[float] = None
        self._started: Optional[float] = None

    def __enter__(self) -> LogContext:
        self._started = time.perf_counter()
        self.logger.debug(f"{self.operation}...")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.elapsed_ms = (time.perf_counter() - self._started) * 1000

        if exc_type is None:
            self.logger.info(f"{self.operation} done in {self.elapsed_ms:.0f} ms")
        else:
            self.logger.warning(
                f"{self.operation} aborted after {self.elapsed_ms:.0f} ms: {exc_val}"
            )
        return False
