"""stderr logging for the denv command line."""

import logging
import sys
from typing import TextIO

LOGGER_NAME = "denv"

_RESET = "\x1b[0m"
_LEVEL_COLORS = {
    logging.DEBUG: "\x1b[0;34m",
    logging.INFO: "\x1b[0;32m",
    logging.WARNING: "\x1b[0;33m",
    logging.ERROR: "\x1b[0;31m",
    logging.CRITICAL: "\x1b[0;31m",
}


class DenvFormatter(logging.Formatter):
    """Logging formatter that prefixes records with the program name and colors them by level."""

    def __init__(self, with_color: bool = True):
        super().__init__(f"[{LOGGER_NAME}] %(message)s")
        self.with_color = with_color

    def format(self, record: logging.LogRecord) -> str:
        msg = super().format(record)
        if not self.with_color:
            return msg
        color = _LEVEL_COLORS.get(record.levelno)
        if color is None:
            return msg
        return f"{color}{msg}{_RESET}"


def verbosity_to_level(verbose: int, quiet: bool) -> int | None:
    """Map `-v` occurrences and `-q` to a logging level.

    Returns:
        Logging level, or None when logging is turned off
    """
    if quiet:
        return None
    if verbose <= 0:
        return logging.WARNING
    if verbose == 1:
        return logging.INFO
    return logging.DEBUG


def setup_logging(verbose: int = 0, quiet: bool = False, with_color: bool = True, stream: TextIO | None = None) -> None:
    """Route denv logs to stderr.

    stdout is reserved for scripts the shell evaluates, so records never go there.
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = False

    level = verbosity_to_level(verbose, quiet)
    if level is None:
        logger.addHandler(logging.NullHandler())
        logger.setLevel(logging.CRITICAL + 1)
        return

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(DenvFormatter(with_color=with_color))
    logger.addHandler(handler)
    logger.setLevel(level)
