"""Provider credential lookup used to resolve per-user model access."""

from .lookup import (  # noqa: F401
    DEFAULT_CREDENTIALS_PATH,
    InMemoryProviderKeyLookup,
    ProviderKeyLookup,
    ProviderSet,
    YamlProviderKeyStore,
)

__all__ = [
    "DEFAULT_CREDENTIALS_PATH",
    "InMemoryProviderKeyLookup",
    "ProviderKeyLookup",
    "ProviderSet",
    "YamlProviderKeyStore",
]
