"""Logging configuration for repty.

All component loggers live under the ``repty`` package logger, which owns
the handlers. Log files go to ~/.repty/logs/ unless configured otherwise.
"""

import logging
import sys
from pathlib import Path

DEFAULT_LOG_DIR = Path.home() / ".repty" / "logs"

PACKAGE_LOGGER = "repty"


def setup_logging(
    name: str,
    log_dir: Path | None = None,
    level: int = logging.INFO,
    console: bool = True,
) -> logging.Logger:
    """Attach file and console handlers to the repty package logger.

    Handlers are installed once per process, on the first call. Every
    component logger (repty.store, repty.chains, ...) propagates to them,
    so one process writes a single <name>.log file.

    Args:
        name: Entry point name, used for the logger and log filename
        log_dir: Directory for log files (defaults to ~/.repty/logs/)
        level: Logging level for the package logger
        console: Whether to also log to stderr

    Returns:
        Logger for the entry point
    """
    log_dir = log_dir or DEFAULT_LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level)
    logger = get_logger(name)

    if package_logger.handlers:
        return logger

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handlers: list[logging.Handler] = [logging.FileHandler(log_dir / f"{name}.log", encoding="utf-8")]
    if console:
        handlers.append(logging.StreamHandler(sys.stderr))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get the logger for a repty component, e.g. get_logger("store")."""
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")
