"""
Logging setup.

All modules log through loggers obtained from setup_logger so that format
and level are configured in one place.
"""

import logging
import sys

from app.core.config import get_settings

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logger(name: str = "livedesk") -> logging.Logger:
    """Get a logger with the application handler attached."""
    root = logging.getLogger("livedesk")
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_FORMAT))
        root.addHandler(handler)
        root.setLevel(get_settings().LOG_LEVEL.upper())
        root.propagate = False

    if name == "livedesk" or name.startswith("livedesk."):
        return logging.getLogger(name)
    return logging.getLogger(f"livedesk.{name}")


logger = setup_logger()
