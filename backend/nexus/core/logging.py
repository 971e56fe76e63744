"""Logging utilities for nexus.

Loggers live under the ``nexus`` hierarchy. ``ContextualLogger`` carries
key/value dimensions (source url, activity path, ...) that are appended to
every message and exposed on the log record via ``extra``.
"""

import logging
from pathlib import Path
from typing import Any, Dict, MutableMapping, Optional, Tuple

from rich.console import Console
from rich.logging import RichHandler

_LOGGER_NAME = "nexus"


class ContextualLogger(logging.LoggerAdapter):
    """Logger adapter that attaches structured dimensions to every record."""

    def __init__(self, logger: logging.Logger, dimensions: Optional[Dict[str, Any]] = None):
        """Initialize the adapter.

        Args:
            logger: Underlying stdlib logger
            dimensions: Key/value pairs attached to every message
        """
        super().__init__(logger, dict(dimensions or {}))
        self.dimensions: Dict[str, Any] = dict(dimensions or {})

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> Tuple[Any, MutableMapping[str, Any]]:
        """Append dimensions to the message and merge them into ``extra``."""
        extra = dict(self.dimensions)
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = {"dimensions": extra}
        if not extra:
            return msg, kwargs
        rendered = " ".join(f"{key}={value}" for key, value in extra.items())
        return f"{msg} [{rendered}]", kwargs

    def with_context(self, **context: Any) -> "ContextualLogger":
        """Return a child logger with additional dimensions."""
        return ContextualLogger(self.logger, {**self.dimensions, **context})


class LoggerConfigurator:
    """Factory for contextual loggers."""

    @staticmethod
    def configure_logger(
        name: str, dimensions: Optional[Dict[str, Any]] = None
    ) -> ContextualLogger:
        """Create a contextual logger.

        Args:
            name: Logger name; names outside the nexus hierarchy are nested under it
            dimensions: Initial dimensions

        Returns:
            ContextualLogger bound to the named logger
        """
        if name != _LOGGER_NAME and not name.startswith(f"{_LOGGER_NAME}."):
            name = f"{_LOGGER_NAME}.{name}"
        return ContextualLogger(logging.getLogger(name), dimensions)


def configure_logging(level: str = "INFO", log_file: Optional[Path] = None) -> logging.Logger:
    """Configure the nexus logger with a rich console handler and optional file sink.

    Args:
        level: Log level name (e.g. "INFO", "DEBUG")
        log_file: Optional path of a plain-text log file

    Returns:
        The configured ``nexus`` logger
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger(_LOGGER_NAME)
    root.setLevel(log_level)
    root.propagate = False

    # Reset handlers so repeated CLI invocations don't duplicate output
    for handler in list(root.handlers):
        root.removeHandler(handler)

    console = Console(stderr=True, width=200)
    rich_handler = RichHandler(
        console=console, show_time=True, show_path=False, markup=False, rich_tracebacks=True
    )
    rich_handler.setLevel(log_level)
    rich_handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(rich_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        root.addHandler(file_handler)

    return root


logger = LoggerConfigurator.configure_logger(_LOGGER_NAME)
