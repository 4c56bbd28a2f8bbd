"""
Centralized Logging System for value-screener
This module provides a unified loguru configuration that is imported
and used across all modules in the project.
"""

import logging
import atexit
import sys
import os
from pathlib import Path
from typing import Optional, Dict
from datetime import datetime

from loguru import logger as _loguru_logger

# One identifier per process run so each utility gets at most one log file per run.
RUN_ID = f"{datetime.now().strftime('%Y%m%d_%H%M%S')}_{os.getpid()}"

# Central logs folder at project root
LOGS_BASE_DIR = Path(__file__).parent.parent.parent.parent / "logs"

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level:<8} | {extra[utility]} | {message} | {function}:{line}"

_sinks_initialized = False
_console_sink_id: Optional[int] = None
_file_sink_ids: Dict[str, int] = {}


class InterceptHandler(logging.Handler):
    """Intercepts stdlib logging (urllib3, requests) and routes it to Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = _loguru_logger.level(record.levelname).name
        except (ValueError, AttributeError):
            level = record.levelno

        # Find caller from where logging was called
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        _loguru_logger.bind(utility="stdlib").opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def _initialize_sinks_once() -> None:
    """Initialize console sink and stdlib intercept once per process."""
    global _sinks_initialized, _console_sink_id
    if _sinks_initialized:
        return

    _loguru_logger.remove()
    _loguru_logger.configure(extra={"utility": "general"})

    level = os.getenv("LOG_LEVEL", "INFO").upper()
    _console_sink_id = _loguru_logger.add(sys.stdout, level=level, enqueue=True, format=LOG_FORMAT)

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    _sinks_initialized = True


def get_logger(name: str, utility: Optional[str] = None):
    """Return a Loguru logger bound to the module name and utility.

    The utility defaults to the second component of the dotted module name
    (``src.value_screener.pipeline.workers`` -> ``value_screener``).
    """
    if utility is None:
        parts = name.split(".")
        utility = parts[1] if len(parts) > 1 and parts[0] == "src" else "general"

    _initialize_sinks_once()

    return _loguru_logger.bind(name=name, utility=utility)


def enable_file_logging(utility: str) -> Path:
    """Add a rotating file sink under ``logs/<utility>/`` for this process run.

    Returns the path of the log file. Calling it twice for the same utility
    is a no-op.
    """
    _initialize_sinks_once()

    util_dir = LOGS_BASE_DIR / utility
    log_file = util_dir / f"{utility}_{RUN_ID}.log"
    if utility in _file_sink_ids:
        return log_file

    util_dir.mkdir(parents=True, exist_ok=True)
    sink_id = _loguru_logger.add(
        str(log_file),
        level="INFO",
        rotation="10 MB",
        retention="30 days",
        compression="zip",
        encoding="utf-8",
        enqueue=True,
        format=LOG_FORMAT,
    )
    _file_sink_ids[utility] = sink_id
    return log_file


def shutdown_logging() -> None:
    """Remove all Loguru sinks to flush queued messages. Safe to call multiple times."""
    global _sinks_initialized, _console_sink_id
    for sid in list(_file_sink_ids.values()):
        try:
            _loguru_logger.remove(sid)
        except ValueError as e:
            sys.stderr.write(f"Error removing file sink id={sid}: {e}\n")
    _file_sink_ids.clear()

    try:
        if _console_sink_id is not None:
            _loguru_logger.remove(_console_sink_id)
    except ValueError as e:
        sys.stderr.write(f"Error removing console sink id={_console_sink_id}: {e}\n")
    finally:
        _console_sink_id = None

    _sinks_initialized = False


# Flush enqueued sinks on graceful exit
atexit.register(shutdown_logging)
