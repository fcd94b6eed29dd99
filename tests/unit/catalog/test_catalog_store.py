"""Unit tests for CatalogStore.

Covers:
1. Lazy build on first access and caching afterwards
2. Single-flight builds under concurrent first access
3. Invalidation semantics
4. BuildError delivery to every waiting caller
"""

import threading
import time
from typing import List

import pytest

from modelgate.catalog.schemas import CatalogSnapshot
from modelgate.catalog.store import CatalogStore
from modelgate.exceptions import BuildError, DescriptorSourceError


def test_get_builds_once_and_caches(source) -> None:
    store = CatalogStore(source)
    assert store.peek() is None

    first = store.get()
    second = store.get()

    assert isinstance(first, CatalogSnapshot)
    assert first is second
    assert first.ids() == ("m1", "m2")
    assert source.calls == 1
    assert store.build_count == 1


def test_concurrent_first_access_builds_exactly_once(source) -> None:
    """N concurrent first-time get() calls hit the source exactly once."""
    source.gate = threading.Event()
    store = CatalogStore(source)
    results: List[CatalogSnapshot] = []
    errors: List[Exception] = []
    lock = threading.Lock()

    def worker() -> None:
        try:
            snapshot = store.get()
        except Exception as e:
            errors.append(e)
            return
        with lock:
            results.append(snapshot)

    threads = [threading.Thread(target=worker) for _ in range(16)]
    for thread in threads:
        thread.start()
    assert source.entered.wait(timeout=5)
    time.sleep(0.1)
    source.gate.set()
    for thread in threads:
        thread.join(timeout=5)

    assert not errors
    assert len(results) == 16
    assert all(snapshot is results[0] for snapshot in results)
    assert source.calls == 1


def test_invalidate_does_not_rebuild_until_next_get(source) -> None:
    store = CatalogStore(source)
    original = store.get()

    store.invalidate()
    assert source.calls == 1
    assert store.peek() is None

    rebuilt = store.get()
    assert source.calls == 2
    assert rebuilt is not original
    assert rebuilt.ids() == original.ids()


def test_snapshot_is_not_mutated_by_rebuild(source, three_models) -> None:
    store = CatalogStore(source)
    old = store.get()

    source.records = three_models
    store.invalidate()
    new = store.get()

    assert len(old) == 2
    assert len(new) == 3


def test_build_failure_raises_build_error_and_keeps_no_snapshot(source) -> None:
    source.error = DescriptorSourceError("catalog backend down")
    store = CatalogStore(source)

    with pytest.raises(BuildError) as exc_info:
        store.get()

    assert isinstance(exc_info.value.__cause__, DescriptorSourceError)
    assert exc_info.value.get_context_data()["source"] == "counting"
    assert store.peek() is None


def test_build_failure_is_shared_by_all_waiters(source) -> None:
    source.gate = threading.Event()
    source.error = DescriptorSourceError("unreachable")
    store = CatalogStore(source)
    errors: List[BaseException] = []
    lock = threading.Lock()

    def worker() -> None:
        try:
            store.get()
        except BuildError as e:
            with lock:
                errors.append(e)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    assert source.entered.wait(timeout=5)
    time.sleep(0.1)
    source.gate.set()
    for thread in threads:
        thread.join(timeout=5)

    assert source.calls == 1
    assert len(errors) == 8
    assert all(error is errors[0] for error in errors)


def test_caller_may_retry_after_failed_build(source) -> None:
    source.error = DescriptorSourceError("flaky")
    store = CatalogStore(source)
    with pytest.raises(BuildError):
        store.get()

    source.error = None
    snapshot = store.get()
    assert len(snapshot) == 2
    assert source.calls == 2


def test_duplicate_ids_fail_the_build(make_source) -> None:
    source = make_source(
        [
            {"id": "dup", "provider": "openai"},
            {"id": "dup", "provider": "anthropic"},
        ]
    )
    store = CatalogStore(source)

    with pytest.raises(BuildError, match="Duplicate model ids"):
        store.get()
    assert store.peek() is None


def test_invalidate_during_build_discards_result(source) -> None:
    """A build that started before invalidation is served to its waiters but not published."""
    source.gate = threading.Event()
    store = CatalogStore(source)
    results: List[CatalogSnapshot] = []

    thread = threading.Thread(target=lambda: results.append(store.get()))
    thread.start()
    assert source.entered.wait(timeout=5)

    store.invalidate()
    source.gate.set()
    thread.join(timeout=5)

    assert len(results) == 1
    assert store.peek() is None

    store.get()
    assert source.calls == 2


class _AbortBuild(BaseException):
    """Stands in for KeyboardInterrupt or a cancellation during a fetch."""


def test_interrupted_build_does_not_wedge_the_store(source) -> None:
    source.error = _AbortBuild()
    store = CatalogStore(source)

    with pytest.raises(_AbortBuild):
        store.get()
    assert store.peek() is None

    source.error = None
    results: List[CatalogSnapshot] = []
    thread = threading.Thread(target=lambda: results.append(store.get()), daemon=True)
    thread.start()
    thread.join(timeout=2)

    assert not thread.is_alive()
    assert len(results) == 1
    assert len(results[0]) == 2
    assert source.calls == 2


def test_interrupted_build_fails_waiters_with_build_error(source) -> None:
    source.gate = threading.Event()
    source.error = _AbortBuild()
    store = CatalogStore(source)
    builder_errors: List[BaseException] = []
    waiter_errors: List[BaseException] = []

    def builder() -> None:
        try:
            store.get()
        except _AbortBuild as e:
            builder_errors.append(e)

    def waiter() -> None:
        try:
            store.get()
        except BuildError as e:
            waiter_errors.append(e)

    first = threading.Thread(target=builder)
    first.start()
    assert source.entered.wait(timeout=5)
    second = threading.Thread(target=waiter)
    second.start()
    time.sleep(0.1)
    source.gate.set()
    first.join(timeout=5)
    second.join(timeout=5)

    assert len(builder_errors) == 1
    assert len(waiter_errors) == 1
    assert isinstance(waiter_errors[0].__cause__, _AbortBuild)
    assert source.calls == 1
