"""
Logging setup

Adds a DIAGNOSTIC level between DEBUG and INFO for messages that help an
operator follow what the package manager did without full debug output.
"""

import logging
import sys
from typing import Union

DIAGNOSTIC = 15
logging.addLevelName(DIAGNOSTIC, "DIAGNOSTIC")

LOG_FORMAT = "%(levelname)s: %(message)s"


def diagnostic(logger: logging.Logger, msg: str, *args, **kwargs) -> None:
    """Log msg at DIAGNOSTIC level"""
    logger.log(DIAGNOSTIC, msg, *args, **kwargs)


def level_for_verbosity(verbosity: int) -> int:
    """Map -q / -v / -vv style counts to a log level"""
    if verbosity < 0:
        return logging.WARNING
    if verbosity == 0:
        return logging.INFO
    if verbosity == 1:
        return DIAGNOSTIC
    return logging.DEBUG


def parse_level(name: Union[str, int]) -> int:
    """Turn a level name such as "diagnostic" or "warning" into a level number"""
    if isinstance(name, int):
        return name
    level = logging.getLevelName(name.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {name}")
    return level


def configure_logging(level: Union[str, int] = logging.INFO) -> logging.Logger:
    """Send dubpkg log records at level and above to stderr"""
    package_logger = logging.getLogger("dubpkg")
    package_logger.setLevel(parse_level(level))
    if not package_logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        package_logger.addHandler(handler)
    return package_logger
