"""Logging utilities for modelgate.

Library modules only create loggers with ``logging.getLogger(__name__)``;
applications (and the CLI) call :func:`configure_logging` once.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional, Union

ROOT_LOGGER = "modelgate"
_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Short component names accepted by set_component_level
COMPONENTS = {
    "catalog": "modelgate.catalog",
    "store": "modelgate.catalog.store",
    "refresh": "modelgate.catalog.refresh",
    "sources": "modelgate.catalog.sources",
    "credentials": "modelgate.credentials",
    "service": "modelgate.service",
    "http": "httpx",
}


def get_logger(name: str) -> logging.Logger:
    """Get a module logger by name (no prefixing)."""
    return logging.getLogger(name)


def _level_value(level: Union[str, int]) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.INFO)
    return level


def set_component_level(component: str, level: Union[str, int]) -> None:
    """Set the log level for a component alias or a full logger name."""
    logging.getLogger(COMPONENTS.get(component, component)).setLevel(_level_value(level))


def configure_logging(
    verbose: bool = False,
    level: Optional[Union[str, int]] = None,
    components: Optional[Mapping[str, Union[str, int]]] = None,
) -> None:
    """Install a single stream handler on the ``modelgate`` logger.

    Args:
        verbose: Force DEBUG level when True.
        level: Base level when not verbose. Defaults to INFO.
        components: Per-component level overrides.
    """
    root = logging.getLogger(ROOT_LOGGER)
    if not any(getattr(h, "_modelgate_handler", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._modelgate_handler = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else _level_value(level or logging.INFO))

    # httpx logs every request at INFO
    if not verbose:
        logging.getLogger("httpx").setLevel(logging.WARNING)

    for component, component_level in (components or {}).items():
        set_component_level(component, component_level)


__all__ = ["configure_logging", "get_logger", "set_component_level"]
