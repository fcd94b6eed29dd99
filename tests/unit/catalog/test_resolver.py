"""Unit tests for access flag resolution."""

from itertools import combinations

import pytest

from modelgate.catalog.resolver import AccessFlagResolver, resolve, resolve_all_accessible
from modelgate.catalog.schemas import CatalogSnapshot
from modelgate.catalog.sources import descriptors_from_records


@pytest.fixture
def snapshot(two_models) -> CatalogSnapshot:
    return CatalogSnapshot(descriptors=tuple(descriptors_from_records(two_models)))


def _flags(resolved):
    return [(model.id, model.accessible) for model in resolved]


def test_resolution_with_provider_key(snapshot) -> None:
    assert _flags(resolve(snapshot, {"openai"})) == [("m1", True), ("m2", True)]


def test_resolution_for_anonymous_user(snapshot) -> None:
    assert _flags(resolve(snapshot, set())) == [("m1", False), ("m2", True)]


def test_provider_matching_is_case_insensitive(snapshot) -> None:
    assert _flags(resolve(snapshot, ["  OpenAI "])) == [("m1", True), ("m2", True)]


def test_unrelated_providers_do_not_grant_access(snapshot) -> None:
    assert _flags(resolve(snapshot, {"anthropic"})) == [("m1", False), ("m2", True)]


def test_resolution_is_idempotent(snapshot) -> None:
    first = resolve(snapshot, {"openai"})
    second = resolve(snapshot, {"openai"})
    assert first == second


def test_resolution_preserves_snapshot_order(three_models) -> None:
    reversed_snapshot = CatalogSnapshot(
        descriptors=tuple(descriptors_from_records(list(reversed(three_models))))
    )
    resolved = resolve(reversed_snapshot, {"openai"})
    assert [m.id for m in resolved] == ["m3", "m2", "m1"]


def test_resolution_is_monotonic_in_provider_set(three_models) -> None:
    snapshot = CatalogSnapshot(descriptors=tuple(descriptors_from_records(three_models)))
    universe = ["openai", "local", "anthropic", "google"]
    subsets = [set(c) for r in range(len(universe) + 1) for c in combinations(universe, r)]

    for smaller in subsets:
        for larger in subsets:
            if not smaller <= larger:
                continue
            before = dict(_flags(resolve(snapshot, smaller)))
            after = dict(_flags(resolve(snapshot, larger)))
            for model_id, accessible in before.items():
                if accessible:
                    assert after[model_id], (model_id, smaller, larger)


def test_accessible_flag_is_not_stored_on_descriptor(snapshot) -> None:
    resolve(snapshot, {"openai"})
    descriptor = snapshot.get("m1")
    assert descriptor is not None
    assert "accessible" not in descriptor.model_dump()
    assert descriptor.accessible_default is False


def test_resolve_all_accessible(snapshot) -> None:
    assert _flags(resolve_all_accessible(snapshot)) == [("m1", True), ("m2", True)]


def test_resolver_object_delegates(snapshot) -> None:
    resolver = AccessFlagResolver()
    assert resolver.resolve(snapshot, {"openai"}) == resolve(snapshot, {"openai"})


def test_resolved_model_to_dict_flattens_descriptor(snapshot) -> None:
    payload = resolve(snapshot, set())[0].to_dict()
    assert payload["id"] == "m1"
    assert payload["provider"] == "openai"
    assert payload["accessible"] is False
