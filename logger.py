"""
Logging configuration for the catalog service.

One ``catalog`` logger writes to stdout; modules log through children of it.
The level comes from LOG_LEVEL (a local .env file is read first) and can be
changed later with ``set_level``.
"""
import logging
import os
import sys

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger("catalog")

if not logger.handlers:
    # The handler has no level of its own; the logger's level decides.
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    ))
    logger.addHandler(console_handler)

logger.propagate = False


def set_level(level: str) -> None:
    logger.setLevel(level.upper())


set_level(os.getenv("LOG_LEVEL", "INFO"))


def get_logger(name: str = None) -> logging.Logger:
    """Get a logger named ``catalog.<name>``, or the root catalog logger."""
    if name:
        return logging.getLogger(f"catalog.{name}")
    return logger
