"""Logging setup for the optimizer and its components.

Every logger lives under the ``sane-image-size`` namespace, writes to
stdout through a single handler and does not propagate to the root logger.
Level and format come from ``LOG_LEVEL`` and ``LOG_FORMAT`` unless given
explicitly.
"""

import logging
import os
import sys
from typing import Optional, Tuple

ROOT_LOGGER_NAME = "sane-image-size"

LOG_FORMATS = {
    "structured": (
        "%(asctime)s | %(name)s | %(levelname)-8s | "
        "%(filename)s:%(lineno)d | %(funcName)s() | %(message)s",
        "%Y-%m-%d %H:%M:%S",
    ),
    "simple": ("%(asctime)s - %(name)s - %(levelname)s - %(message)s", None),
}


def resolve_level(level: Optional[str] = None) -> int:
    """Map a level name (or ``LOG_LEVEL``) to a logging level; unknown names mean INFO."""
    name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    resolved = logging.getLevelName(name)
    return resolved if isinstance(resolved, int) else logging.INFO


def build_formatter(format_type: str = "structured") -> logging.Formatter:
    """
    Build the formatter for ``LOG_FORMAT`` or, if unset, ``format_type``.

    Anything other than a known format name falls back to "simple".
    """
    name = os.getenv("LOG_FORMAT", format_type).lower()
    fmt, datefmt = _format_for(name)
    return logging.Formatter(fmt, datefmt=datefmt)


def _format_for(name: str) -> Tuple[str, Optional[str]]:
    return LOG_FORMATS.get(name, LOG_FORMATS["simple"])


def setup_logger(
    name: str = ROOT_LOGGER_NAME,
    level: Optional[str] = None,
    format_type: str = "structured",
) -> logging.Logger:
    """
    Configure and return the named logger.

    Args:
        name: Logger name (defaults to "sane-image-size")
        level: Log level override (defaults to LOG_LEVEL or INFO)
        format_type: "structured" or "simple", overridden by LOG_FORMAT

    Returns:
        The configured logger; calling again only updates its level
    """
    logger = logging.getLogger(name)
    logger.setLevel(resolve_level(level))

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(build_formatter(format_type))
        logger.addHandler(handler)

    logger.propagate = False
    return logger


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    return setup_logger(name)


def get_component_logger(component: str) -> logging.Logger:
    """Logger for one pipeline component, e.g. ``get_component_logger("renderer")``."""
    return setup_logger(f"{ROOT_LOGGER_NAME}.{component}")


logger = setup_logger()
