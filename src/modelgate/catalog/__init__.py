"""Model catalog: descriptors, snapshot cache, access resolution and refresh."""

from .refresh import RefreshCoordinator, RefreshResult, RefreshState  # noqa: F401
from .resolver import AccessFlagResolver, resolve, resolve_all_accessible  # noqa: F401
from .schemas import CatalogSnapshot, ModelDescriptor, ResolvedModel  # noqa: F401
from .sources import (  # noqa: F401
    DescriptorSource,
    HttpDescriptorSource,
    StaticDescriptorSource,
    YamlFileDescriptorSource,
    descriptors_from_records,
)
from .store import CatalogStore  # noqa: F401

__all__ = [
    "AccessFlagResolver",
    "CatalogSnapshot",
    "CatalogStore",
    "DescriptorSource",
    "HttpDescriptorSource",
    "ModelDescriptor",
    "RefreshCoordinator",
    "RefreshResult",
    "RefreshState",
    "ResolvedModel",
    "StaticDescriptorSource",
    "YamlFileDescriptorSource",
    "descriptors_from_records",
    "resolve",
    "resolve_all_accessible",
]
