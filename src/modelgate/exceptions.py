"""
Exception hierarchy for modelgate.

Catalog builds, credential lookups and request validation each fail with a
dedicated type so callers can apply the right policy: build failures are
surfaced, lookup failures degrade to default access, validation failures are
rejected before the cache is touched.
"""

from typing import Any, Dict, Optional


class ModelGateError(Exception):
    """Base class for all custom exceptions in modelgate."""

    def __init__(self, message: str = "An error occurred in modelgate") -> None:
        self.message = message
        self.diagnostic_context: Dict[str, Any] = {}
        super().__init__(message)

    def add_context(self, **kwargs: Any) -> None:
        """Attach diagnostic key/value pairs to the exception."""
        self.diagnostic_context.update(kwargs)

    def get_context_data(self) -> Dict[str, Any]:
        """Return a copy of the diagnostic context."""
        return self.diagnostic_context.copy()


class ConfigError(ModelGateError):
    """Raised when configuration cannot be read or fails validation."""

    pass


class ValidationError(ModelGateError):
    """Raised when caller-supplied identifiers are missing or malformed."""

    pass


class ModelNotFoundError(ModelGateError):
    """Raised when a requested model is not present in the catalog."""

    pass


class DescriptorSourceError(ModelGateError):
    """Raised by a descriptor source when the canonical model list is unavailable."""

    pass


class BuildError(ModelGateError):
    """Raised when a catalog snapshot cannot be built.

    Every caller waiting on the failed build receives the same instance.
    """

    def __init__(
        self,
        source: Optional[str] = None,
        message: str = "Failed to build model catalog",
        cause: Optional[BaseException] = None,
        **context_data: Any,
    ) -> None:
        self.source = source
        self.cause = cause
        source_msg = f" from source '{source}'" if source else ""
        full_message = f"{message}{source_msg}"
        if cause:
            full_message += f": {cause}"
        super().__init__(full_message)
        self.__cause__ = cause

        if source:
            self.add_context(source=source)
        if cause:
            self.add_context(error_type=type(cause).__name__, error_message=str(cause))
        if context_data:
            self.add_context(**context_data)


class ProviderLookupError(ModelGateError, LookupError):
    """Raised when the provider-credential store cannot be reached.

    Also a builtin ``LookupError``, so callers catching that still see it.
    """

    def __init__(
        self,
        user_id: Optional[str] = None,
        message: str = "Provider credential lookup failed",
        cause: Optional[BaseException] = None,
    ) -> None:
        self.user_id = user_id
        self.cause = cause
        full_message = message
        if cause:
            full_message += f": {cause}"
        super().__init__(full_message)
        self.__cause__ = cause
        if cause:
            self.add_context(error_type=type(cause).__name__)


__all__ = [
    "ModelGateError",
    "ConfigError",
    "ValidationError",
    "ModelNotFoundError",
    "DescriptorSourceError",
    "BuildError",
    "ProviderLookupError",
]
