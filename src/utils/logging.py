"""
Structured logging for scenario-fixtures.

Fixture operations log through structlog, with the operation, template and
package bound as context variables. Output goes to stderr, or to
``general.log_file`` when set, filtered at ``general.log_level``.

Logging is configured by the pytest plugin (src.fixtures.steps) at session
start, and lazily the first time a ScenarioFixtures is built.
"""

import logging
import sys
from pathlib import Path
from typing import Any, TextIO

import structlog
from structlog.typing import FilteringBoundLogger, Processor

from src.utils.config import get_settings

_configured = False
_log_file: TextIO | None = None


def _stderr_logger_factory(*args: Any) -> structlog.PrintLogger:
    # Looked up per call: pytest swaps sys.stderr while capturing
    return structlog.PrintLogger(file=sys.stderr)


def _close_log_file() -> None:
    global _log_file
    if _log_file is not None:
        _log_file.close()
        _log_file = None


def configure_logging(
    log_level: str | None = None,
    log_file: str | Path | None = None,
    log_format: str | None = None,
) -> None:
    """Configure structlog for fixture operations.

    Arguments left as None are taken from the ``general`` settings.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR. Unknown names fall back to INFO.
        log_file: File to append to. stderr when neither argument nor setting is set.
        log_format: "console" or "json".
    """
    global _configured, _log_file

    general = get_settings().general
    level_name = (log_level or general.log_level).upper()
    level = logging.getLevelNamesMapping().get(level_name, logging.INFO)
    log_file = log_file or general.log_file
    log_format = log_format or general.log_format

    _close_log_file()
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        _log_file = open(path, "a", encoding="utf-8")
        logger_factory: Any = structlog.PrintLoggerFactory(file=_log_file)
    else:
        logger_factory = _stderr_logger_factory

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if log_format == "json":
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    # Loggers are not cached so a reconfiguration reaches module-level loggers
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=logger_factory,
        cache_logger_on_first_use=False,
    )
    _configured = True


def ensure_logging_configured() -> None:
    """Configure logging from settings unless that already happened."""
    if not _configured:
        configure_logging()


def reset_logging() -> None:
    """Drop the configuration and close any log file (for testing)."""
    global _configured
    _close_log_file()
    structlog.reset_defaults()
    _configured = False


def get_logger(name: str | None = None) -> FilteringBoundLogger:
    """Get a logger for ``name`` (usually __name__)."""
    return structlog.get_logger(name)
