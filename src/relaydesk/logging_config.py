"""Logging setup for processes embedding the dashboard core."""

import logging
import sys

from relaydesk.config import LoggingConfig

LOG_FORMAT = "%(levelname)s:%(name)s:%(message)s"


def configure_logging(config: LoggingConfig | None = None) -> logging.Logger:
    """Route ``relaydesk`` loggers to stdout and an optional file.

    Safe to call more than once; handlers installed by a previous call are
    replaced rather than duplicated.

    Args:
        config: Logging settings. Defaults to INFO on stdout.

    Returns:
        The configured package logger.
    """
    config = config or LoggingConfig()
    level = logging.getLevelName(config.level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    package_logger = logging.getLogger("relaydesk")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if config.file:
        handlers.append(logging.FileHandler(config.file))
    for handler in handlers:
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)

    package_logger.setLevel(level)
    package_logger.propagate = False
    return package_logger
