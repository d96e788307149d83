"""Console messages with Rich formatting and structured file logging.

Human-facing messages go to stderr through Rich so they never mix with the
process table on stdout. Machine-readable events go through structlog to a
rotating JSON Lines file once ``configure()`` has run.
"""

from __future__ import annotations

import logging
import logging.handlers
from datetime import datetime
from typing import TYPE_CHECKING

import structlog
from rich.console import Console

if TYPE_CHECKING:
    from tasktop.config import Config

_console = Console(stderr=True, highlight=False)

_LEVEL_STYLES = {
    "warn": "[yellow]\\[warn][/]",
    "error": "[bold red]\\[err][/] ",
}


def log(level: str, msg: str) -> None:
    """Print a timestamped message to stderr.

    Args:
        level: Log level (warn, error)
        msg: Message to print (can include Rich markup)
    """
    ts = datetime.now().strftime("%H:%M:%S")
    lvl = _LEVEL_STYLES.get(level, f"\\[{level}]")
    _console.print(f"[dim]{ts}[/] {lvl} {msg}")


def warn(msg: str) -> None:
    """Log a warning message."""
    log("warn", msg)


def error(msg: str) -> None:
    """Log an error message."""
    log("error", msg)


def configure(config: Config) -> None:
    """Route structlog events to a rotating JSON Lines file.

    Args:
        config: Application config with log path and rotation settings
    """
    file_handler: logging.Handler
    try:
        config.state_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            config.log_path,
            maxBytes=config.logging.log_max_bytes,
            backupCount=config.logging.log_backup_count,
            encoding="utf-8",
        )
    except OSError as e:
        warn(f"File logging disabled: {e}")
        file_handler = logging.NullHandler()
    file_handler.setLevel(config.log_level)
    file_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.TimeStamper(fmt="iso", utc=False, key="ts"),
                structlog.processors.add_log_level,
                structlog.processors.format_exc_info,
            ],
        )
    )

    root = logging.getLogger()
    root.setLevel(config.log_level)
    root.handlers.clear()
    root.addHandler(file_handler)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.processors.TimeStamper(fmt="iso", utc=False, key="ts"),
            structlog.processors.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_structlog() -> structlog.stdlib.BoundLogger:
    """Get a structlog logger for JSON file output.

    Before ``configure()`` runs this falls back to structlog's defaults.
    """
    return structlog.get_logger()
