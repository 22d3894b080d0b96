import logging
import sys
from typing import Optional

ROOT_LOGGER_NAME = "musikmatch"

_configured = False


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Install a single console handler on the application logger."""
    global _configured
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    if not _configured:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)-7s [%(name)s] %(message)s", "%Y-%m-%d %H:%M:%S")
        )
        root.addHandler(handler)
        root.propagate = False
        _configured = True
    return root


def get_logger(name: Optional[str] = None) -> logging.Logger:
    if not name:
        return logging.getLogger(ROOT_LOGGER_NAME)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
