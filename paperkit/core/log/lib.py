"""Core logging implementation for paperkit."""

import logging
import sys
from typing import Optional

__all__ = ["get_logger", "setup_logging"]

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: int = logging.INFO, stream=sys.stderr) -> None:
    """Configure basic logging.

    Args:
        level: Logging level.
        stream: Output stream.
    """
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=stream)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger under the paperkit namespace.

    Args:
        name: Child logger name. Names already under ``paperkit`` are kept.

    Returns:
        Logger instance.
    """
    if not name:
        return logging.getLogger("paperkit")
    if name == "paperkit" or name.startswith("paperkit."):
        return logging.getLogger(name)
    return logging.getLogger(f"paperkit.{name}")
