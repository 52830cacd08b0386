"""Central logger configuration.

Why this exists:
- Consistent formatting across all modules
- One place to tune log level/handlers
"""

import logging
import sys

_level = logging.INFO
_configured: set[str] = set()


def set_log_level(level: str) -> None:
    """Apply `level` (e.g. "DEBUG") to every logger created by `setup_logger`.

    Called once by the entrypoint after settings are loaded, so loggers created
    at import time are updated in place.
    """
    global _level
    resolved = logging.getLevelName((level or "INFO").upper())
    _level = resolved if isinstance(resolved, int) else logging.INFO

    for name in _configured:
        logging.getLogger(name).setLevel(_level)


def setup_logger(name: str = "voice_relay") -> logging.Logger:
    """Create and return a configured logger.

    NOTE:
    - Every module should do: `logger = setup_logger(__name__)`.
    """
    logger = logging.getLogger(name)

    # Prevent duplicate handlers on re-import
    if logger.handlers:
        return logger

    logger.setLevel(_level)

    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # Avoid propagating to root and double-printing
    logger.propagate = False
    _configured.add(name)
    return logger
