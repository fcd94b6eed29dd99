"""Shared fixtures and test doubles for the modelgate test suite."""

import sys
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import pytest

PROJECT_ROOT = Path(__file__).parent.parent.absolute()
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from modelgate.catalog.schemas import ModelDescriptor  # noqa: E402
from modelgate.catalog.sources import descriptors_from_records  # noqa: E402
from modelgate.exceptions import ProviderLookupError  # noqa: E402

TWO_MODELS: List[Dict[str, Any]] = [
    {"id": "m1", "provider": "openai", "accessible_default": False},
    {"id": "m2", "provider": "local", "accessible_default": True},
]

THREE_MODELS: List[Dict[str, Any]] = TWO_MODELS + [
    {"id": "m3", "provider": "anthropic", "accessible_default": False},
]


class CountingSource:
    """Descriptor source that counts fetches and can block or fail on demand."""

    def __init__(self, records: Iterable[Mapping[str, Any]] = TWO_MODELS, name: str = "counting") -> None:
        self.name = name
        self.records = list(records)
        self.calls = 0
        self.error: Optional[Exception] = None
        self.gate: Optional[threading.Event] = None
        self.entered = threading.Event()
        self._lock = threading.Lock()

    def fetch_all(self) -> Sequence[ModelDescriptor]:
        with self._lock:
            self.calls += 1
            records = list(self.records)
            error = self.error
        self.entered.set()
        if self.gate is not None:
            assert self.gate.wait(timeout=5), "test gate was never released"
        if error is not None:
            raise error
        return descriptors_from_records(records)


class FailingLookup:
    """Credential lookup whose backing store is always unreachable."""

    def __init__(self) -> None:
        self.calls = 0

    def list_providers(self, user_id: str) -> frozenset:
        self.calls += 1
        raise ProviderLookupError(user_id=user_id, message="credential store unreachable")


@pytest.fixture
def source() -> CountingSource:
    return CountingSource()


@pytest.fixture
def failing_lookup() -> FailingLookup:
    return FailingLookup()


@pytest.fixture
def make_source():
    """Factory for additional CountingSource instances."""
    return CountingSource


@pytest.fixture
def two_models() -> List[Dict[str, Any]]:
    return [dict(record) for record in TWO_MODELS]


@pytest.fixture
def three_models() -> List[Dict[str, Any]]:
    return [dict(record) for record in THREE_MODELS]
