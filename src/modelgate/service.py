"""Model access service: the contract consumed by the HTTP boundary.

The service owns one :class:`CatalogStore` and one :class:`RefreshCoordinator`
and is injected into request handlers; nothing here lives in module globals.

Listing never fails because of the credential store. When the lookup raises
``ProviderLookupError`` the request is resolved as if the user held no keys,
and the fallback is logged and counted separately from anonymous requests.
Catalog build failures, on the other hand, always propagate.

Examples:
    >>> from modelgate.catalog import StaticDescriptorSource
    >>> from modelgate.credentials import InMemoryProviderKeyLookup
    >>> service = ModelAccessService.create(
    ...     StaticDescriptorSource([{"id": "m1", "provider": "openai"}]),
    ...     InMemoryProviderKeyLookup({"u1": ["openai"]}),
    ... )
    >>> [m.accessible for m in service.list_models("u1", is_authenticated=True)]
    [True]
"""

from __future__ import annotations

import asyncio
import functools
import logging
import threading
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple, Union

from modelgate.catalog.refresh import RefreshCoordinator
from modelgate.catalog.resolver import AccessFlagResolver
from modelgate.catalog.schemas import ModelDescriptor, ResolvedModel, normalize_provider
from modelgate.catalog.sources import (
    BUNDLED_CATALOG_PATH,
    DescriptorSource,
    HttpDescriptorSource,
    YamlFileDescriptorSource,
)
from modelgate.catalog.store import CatalogStore
from modelgate.config import DEFAULT_SUPPORTED_PROVIDERS, ModelGateConfig, load_config
from modelgate.credentials.lookup import (
    DEFAULT_CREDENTIALS_PATH,
    InMemoryProviderKeyLookup,
    ProviderKeyLookup,
    ProviderSet,
    YamlProviderKeyStore,
)
from modelgate.exceptions import (
    ConfigError,
    ModelNotFoundError,
    ProviderLookupError,
    ValidationError,
)

logger = logging.getLogger(__name__)

MAX_USER_ID_LENGTH = 256

# How a request's provider set was obtained
RESOLUTION_ANONYMOUS = "anonymous"
RESOLUTION_CREDENTIALS = "credentials"
RESOLUTION_FALLBACK = "fallback"
RESOLUTION_OPEN = "open"


def validate_user_id(user_id: Any, *, required: bool = False) -> Optional[str]:
    """Check a caller-supplied user id before any cache interaction.

    Returns:
        The stripped user id, or None when absent and not required.

    Raises:
        ValidationError: If the id is required but missing, or malformed.
    """
    if user_id is None:
        if required:
            raise ValidationError("A user id is required for authenticated requests")
        return None
    if not isinstance(user_id, str):
        raise ValidationError(f"User id must be a string, got {type(user_id).__name__}")
    cleaned = user_id.strip()
    if not cleaned:
        raise ValidationError("User id must not be empty")
    if len(cleaned) > MAX_USER_ID_LENGTH:
        raise ValidationError(f"User id exceeds {MAX_USER_ID_LENGTH} characters")
    if any(ord(ch) < 32 or ord(ch) == 127 for ch in cleaned):
        raise ValidationError("User id contains control characters")
    return cleaned


class ModelAccessService:
    """Answer which catalog models a user may use, and refresh the catalog.

    Attributes:
        store: Shared catalog cache.
        lookup: Credential lookup, or None when no credential store is configured.
        coordinator: Refresh coordinator bound to ``store``.
    """

    def __init__(
        self,
        store: CatalogStore,
        lookup: Optional[ProviderKeyLookup] = None,
        *,
        coordinator: Optional[RefreshCoordinator] = None,
        resolver: Optional[AccessFlagResolver] = None,
        lookup_timeout: Optional[float] = None,
        supported_providers: Iterable[str] = DEFAULT_SUPPORTED_PROVIDERS,
    ) -> None:
        self.store = store
        self.lookup = lookup
        self.coordinator = coordinator or RefreshCoordinator(store)
        self.resolver = resolver or AccessFlagResolver()
        self.lookup_timeout = lookup_timeout
        self.supported_providers: Tuple[str, ...] = tuple(
            normalize_provider(p) for p in supported_providers
        )
        self._executor: Optional[ThreadPoolExecutor] = None
        if lookup is not None and lookup_timeout is not None:
            self._executor = ThreadPoolExecutor(thread_name_prefix="modelgate-lookup")
        self._counts: Counter[str] = Counter()
        self._counts_lock = threading.Lock()

        if lookup is None:
            logger.warning(
                "No credential store configured; every catalog model will be reported accessible"
            )

    @classmethod
    def create(
        cls,
        source: DescriptorSource,
        lookup: Optional[ProviderKeyLookup] = None,
        **kwargs: Any,
    ) -> "ModelAccessService":
        """Build a service with a fresh store around ``source``."""
        return cls(CatalogStore(source), lookup, **kwargs)

    # ------------------------------------------------------------------
    # Contract operations
    # ------------------------------------------------------------------
    def list_models(
        self, user_id: Optional[str] = None, is_authenticated: bool = False
    ) -> Tuple[ResolvedModel, ...]:
        """Return every catalog model with its ``accessible`` flag for this caller.

        Args:
            user_id: Caller identity, if known.
            is_authenticated: Whether ``user_id`` was established by authentication.
                Unauthenticated callers are resolved with no provider keys.

        Raises:
            ValidationError: If the user id is malformed, or missing while authenticated.
            BuildError: If the catalog has to be built and the build fails.
        """
        user_id = validate_user_id(user_id, required=is_authenticated)
        snapshot = self.store.get()

        if self.lookup is None:
            self._record(RESOLUTION_OPEN)
            return self.resolver.resolve_all_accessible(snapshot)

        if not is_authenticated or user_id is None:
            self._record(RESOLUTION_ANONYMOUS)
            return self.resolver.resolve(snapshot, frozenset())

        try:
            providers = self._lookup_providers(user_id)
        except ProviderLookupError as exc:
            logger.warning(
                "Provider key lookup failed; resolving with default access only: %s", exc
            )
            self._record(RESOLUTION_FALLBACK)
            return self.resolver.resolve(snapshot, frozenset())

        self._record(RESOLUTION_CREDENTIALS)
        return self.resolver.resolve(snapshot, providers)

    def refresh_catalog(self) -> Dict[str, Any]:
        """Force a catalog rebuild and report model counts.

        Returns:
            Dict with ``previous_count``, ``new_count`` and an ISO-8601 ``timestamp``.

        Raises:
            BuildError: If the rebuild failed.
        """
        return self.coordinator.trigger_refresh().to_dict()

    # ------------------------------------------------------------------
    # Supplementary operations
    # ------------------------------------------------------------------
    def get_model_info(self, model_id: str) -> ModelDescriptor:
        if not isinstance(model_id, str) or not model_id.strip():
            raise ValidationError("Model id must be a non-empty string")
        descriptor = self.store.get().get(model_id.strip())
        if descriptor is None:
            raise ModelNotFoundError(f"Model '{model_id}' not found in catalog")
        return descriptor

    def models_for_provider(self, provider: str) -> Tuple[ModelDescriptor, ...]:
        if not isinstance(provider, str) or not normalize_provider(provider):
            raise ValidationError("Provider must be a non-empty string")
        return self.store.get().for_provider(provider)

    def provider_key_status(self, user_id: str) -> Dict[str, bool]:
        """Report, for each supported provider, whether the user holds a key.

        Unlike :meth:`list_models` this is a direct credential query, so
        lookup failures propagate.

        Raises:
            ValidationError: If ``user_id`` is missing or malformed.
            ProviderLookupError: If the credential store is unavailable.
        """
        cleaned = validate_user_id(user_id, required=True)
        if self.lookup is None:
            raise ProviderLookupError(user_id=cleaned, message="No credential store configured")
        providers = self._lookup_providers(cleaned)
        return {provider: provider in providers for provider in self.supported_providers}

    def resolution_counts(self) -> Dict[str, int]:
        """How many listings were resolved by each path since start-up."""
        with self._counts_lock:
            return dict(self._counts)

    async def alist_models(
        self, user_id: Optional[str] = None, is_authenticated: bool = False
    ) -> Tuple[ResolvedModel, ...]:
        """Asynchronous :meth:`list_models`, run on the loop's default executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, functools.partial(self.list_models, user_id, is_authenticated)
        )

    async def arefresh_catalog(self) -> Dict[str, Any]:
        """Asynchronous :meth:`refresh_catalog`."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.refresh_catalog)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

    def __enter__(self) -> "ModelAccessService":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _lookup_providers(self, user_id: str) -> ProviderSet:
        """Ask the credential store for the user's providers.

        Any failure of the store, including an expired deadline, surfaces as
        ``ProviderLookupError``.
        """
        lookup = self.lookup
        if lookup is None:
            raise ProviderLookupError(user_id=user_id, message="No credential store configured")

        if self._executor is None:
            try:
                return frozenset(lookup.list_providers(user_id))
            except ProviderLookupError:
                raise
            except Exception as exc:
                raise ProviderLookupError(user_id=user_id, cause=exc) from exc

        future = self._executor.submit(lookup.list_providers, user_id)
        try:
            return frozenset(future.result(timeout=self.lookup_timeout))
        except FutureTimeoutError as exc:
            future.cancel()
            raise ProviderLookupError(
                user_id=user_id,
                message=f"Provider lookup timed out after {self.lookup_timeout}s",
                cause=exc,
            ) from exc
        except ProviderLookupError:
            raise
        except Exception as exc:
            raise ProviderLookupError(user_id=user_id, cause=exc) from exc

    def _record(self, resolution: str) -> None:
        with self._counts_lock:
            self._counts[resolution] += 1
        logger.debug("Resolved model access via %s", resolution)


def build_source(config: ModelGateConfig) -> DescriptorSource:
    """Create the descriptor source described by ``config.catalog``."""
    catalog = config.catalog
    if catalog.source == "http":
        if catalog.url is None:
            raise ConfigError("catalog.url is required when catalog.source is 'http'")
        return HttpDescriptorSource(
            catalog.url,
            timeout=catalog.timeout,
            retries=catalog.retries,
            free_models=catalog.free_models,
        )
    if catalog.source == "file":
        if catalog.path is None:
            raise ConfigError("catalog.path is required when catalog.source is 'file'")
        return YamlFileDescriptorSource(catalog.path, free_models=catalog.free_models)
    return YamlFileDescriptorSource(
        BUNDLED_CATALOG_PATH, free_models=catalog.free_models, name="bundled"
    )


def build_lookup(config: ModelGateConfig) -> Optional[ProviderKeyLookup]:
    """Create the credential lookup described by ``config.credentials``."""
    credentials = config.credentials
    if credentials.backend == "none":
        return None
    if credentials.backend == "memory":
        return InMemoryProviderKeyLookup(credentials.keys)
    return YamlProviderKeyStore(credentials.path or DEFAULT_CREDENTIALS_PATH)


def create_service(
    config: Optional[ModelGateConfig] = None,
    config_path: Optional[Union[str, Path]] = None,
) -> ModelAccessService:
    """Composition root: build a fully wired :class:`ModelAccessService`.

    The catalog is not fetched here; the first listing builds it.

    Raises:
        ConfigError: If configuration cannot be loaded.
    """
    if config is None:
        config = load_config(config_path)
    service = ModelAccessService(
        CatalogStore(build_source(config)),
        build_lookup(config),
        lookup_timeout=config.credentials.lookup_timeout,
        supported_providers=config.providers.supported,
    )
    logger.debug(
        "Model access service created (source=%s, credentials=%s)",
        config.catalog.source,
        config.credentials.backend,
    )
    return service


__all__ = [
    "MAX_USER_ID_LENGTH",
    "ModelAccessService",
    "build_lookup",
    "build_source",
    "create_service",
    "validate_user_id",
]
