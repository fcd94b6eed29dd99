from .logging import configure_logging, get_logger, set_component_level  # noqa: F401
from .retry import ExponentialBackoffStrategy, IRetryStrategy  # noqa: F401

__all__ = [
    "ExponentialBackoffStrategy",
    "IRetryStrategy",
    "configure_logging",
    "get_logger",
    "set_component_level",
]
