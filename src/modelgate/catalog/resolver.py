"""Per-user access resolution against a shared catalog snapshot."""

from __future__ import annotations

from typing import AbstractSet, Iterable, Tuple

from modelgate.catalog.schemas import CatalogSnapshot, ResolvedModel, normalize_provider


def resolve(snapshot: CatalogSnapshot, providers: Iterable[str]) -> Tuple[ResolvedModel, ...]:
    """Annotate every descriptor in ``snapshot`` with an ``accessible`` flag.

    A model is accessible when it is accessible by default or when its
    provider is in ``providers``. Output order matches snapshot order. The
    function is pure: nothing is cached and the snapshot is not touched.

    Args:
        snapshot: Catalog snapshot to resolve against.
        providers: Providers the user holds credentials for. Empty for
            anonymous users and for the lookup-failure fallback.

    Returns:
        Tuple[ResolvedModel, ...]: One entry per descriptor.
    """
    owned: AbstractSet[str] = frozenset(normalize_provider(p) for p in providers)
    return tuple(
        ResolvedModel(
            descriptor=descriptor,
            accessible=descriptor.accessible_default or descriptor.provider in owned,
        )
        for descriptor in snapshot.descriptors
    )


def resolve_all_accessible(snapshot: CatalogSnapshot) -> Tuple[ResolvedModel, ...]:
    """Mark every descriptor accessible (no credential store configured)."""
    return tuple(ResolvedModel(descriptor=d, accessible=True) for d in snapshot.descriptors)


class AccessFlagResolver:
    """Object wrapper around :func:`resolve` for injection into services."""

    def resolve(
        self, snapshot: CatalogSnapshot, providers: Iterable[str]
    ) -> Tuple[ResolvedModel, ...]:
        return resolve(snapshot, providers)

    def resolve_all_accessible(self, snapshot: CatalogSnapshot) -> Tuple[ResolvedModel, ...]:
        return resolve_all_accessible(snapshot)


__all__ = ["AccessFlagResolver", "resolve", "resolve_all_accessible"]
