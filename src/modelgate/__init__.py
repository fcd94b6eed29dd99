"""
modelgate: model catalog and per-user access resolution
=======================================================

modelgate keeps an in-memory, lazily built and explicitly refreshable
catalog of AI model descriptors, and answers per request which of those
models a user may actually use given the provider keys they hold.

Examples:
    from modelgate import create_service

    service = create_service()
    for model in service.list_models(user_id="user-123", is_authenticated=True):
        print(model.id, model.accessible)

    service.refresh_catalog()  # {"previous_count": ..., "new_count": ..., "timestamp": ...}
"""

from modelgate.catalog import (
    AccessFlagResolver,
    CatalogSnapshot,
    CatalogStore,
    ModelDescriptor,
    RefreshCoordinator,
    RefreshResult,
    ResolvedModel,
    StaticDescriptorSource,
    resolve,
)
from modelgate.config import ModelGateConfig, load_config
from modelgate.credentials import InMemoryProviderKeyLookup, ProviderKeyLookup, YamlProviderKeyStore
from modelgate.exceptions import (
    BuildError,
    ConfigError,
    DescriptorSourceError,
    ModelGateError,
    ModelNotFoundError,
    ProviderLookupError,
    ValidationError,
)
from modelgate.service import ModelAccessService, create_service

__version__ = "0.3.0"

__all__ = [
    "AccessFlagResolver",
    "BuildError",
    "CatalogSnapshot",
    "CatalogStore",
    "ConfigError",
    "DescriptorSourceError",
    "InMemoryProviderKeyLookup",
    "ModelAccessService",
    "ModelDescriptor",
    "ModelGateConfig",
    "ModelGateError",
    "ModelNotFoundError",
    "ProviderKeyLookup",
    "ProviderLookupError",
    "RefreshCoordinator",
    "RefreshResult",
    "ResolvedModel",
    "StaticDescriptorSource",
    "ValidationError",
    "YamlProviderKeyStore",
    "__version__",
    "create_service",
    "load_config",
    "resolve",
]
