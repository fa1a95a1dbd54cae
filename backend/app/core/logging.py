"""Logging setup for the policy engine service."""

import logging
import sys

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_initialized = False


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger once at startup."""
    global _initialized
    if _initialized:
        return

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    root.addHandler(handler)

    # SQL echo is controlled by the engine, keep the driver quiet
    logging.getLogger("asyncpg").setLevel(logging.WARNING)

    _initialized = True
