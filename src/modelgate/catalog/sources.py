"""Descriptor sources feeding the catalog store.

A source exposes a single ``fetch_all()`` call returning the canonical list
of model descriptors. The store never caches anything inside a source; each
call is expected to hit the underlying origin.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional, Protocol, Sequence, Union

import httpx
import pydantic
import yaml

from modelgate.catalog.schemas import ModelDescriptor
from modelgate.exceptions import DescriptorSourceError
from modelgate.utils.retry import ExponentialBackoffStrategy

logger = logging.getLogger(__name__)

BUNDLED_CATALOG_PATH = Path(__file__).resolve().parent.parent / "data" / "catalog.yaml"

DescriptorRecord = Union[ModelDescriptor, Mapping[str, Any]]


class DescriptorSource(Protocol):
    """Minimal interface the catalog store builds from."""

    name: str

    def fetch_all(self) -> Sequence[ModelDescriptor]:
        """Return every model descriptor, in catalog order."""


def descriptors_from_records(
    records: Iterable[DescriptorRecord],
    *,
    free_models: Iterable[str] = (),
    source: str = "records",
) -> List[ModelDescriptor]:
    """Validate raw records into descriptors.

    Records that do not state ``accessible_default`` take it from membership
    in ``free_models``.

    Raises:
        DescriptorSourceError: If any record is not a mapping or fails validation.
    """
    free = frozenset(free_models)
    descriptors: List[ModelDescriptor] = []
    for position, record in enumerate(records):
        if isinstance(record, ModelDescriptor):
            descriptors.append(record)
            continue
        if not isinstance(record, Mapping):
            raise DescriptorSourceError(
                f"{source}: record #{position} must be a mapping, got {type(record).__name__}"
            )
        data = dict(record)
        if "accessible_default" not in data:
            data["accessible_default"] = data.get("id") in free
        try:
            descriptors.append(ModelDescriptor(**data))
        except pydantic.ValidationError as exc:
            error = DescriptorSourceError(
                f"{source}: record #{position} ({data.get('id', '<no id>')}) is invalid: {exc}"
            )
            error.add_context(source=source, position=position)
            raise error from exc
    return descriptors


def _extract_records(payload: Any, origin: str) -> List[Any]:
    if payload is None:
        return []
    if isinstance(payload, Mapping):
        payload = payload.get("models", [])
    if not isinstance(payload, list):
        raise DescriptorSourceError(
            f"{origin}: expected a list of models or a mapping with a 'models' list"
        )
    return payload


class StaticDescriptorSource:
    """In-process source backed by a fixed list of records.

    ``replace()`` swaps the list atomically; the change is only visible to
    readers of the catalog after the store rebuilds.
    """

    def __init__(
        self,
        records: Iterable[DescriptorRecord] = (),
        *,
        free_models: Iterable[str] = (),
        name: str = "static",
    ) -> None:
        self.name = name
        self._free_models = tuple(free_models)
        self._lock = threading.Lock()
        self._descriptors = tuple(
            descriptors_from_records(records, free_models=self._free_models, source=name)
        )

    def replace(self, records: Iterable[DescriptorRecord]) -> None:
        descriptors = tuple(
            descriptors_from_records(records, free_models=self._free_models, source=self.name)
        )
        with self._lock:
            self._descriptors = descriptors

    def fetch_all(self) -> Sequence[ModelDescriptor]:
        with self._lock:
            return list(self._descriptors)


class YamlFileDescriptorSource:
    """Source that re-reads a YAML catalog file on every fetch.

    The file holds either a top-level list of model records or a mapping
    with a ``models`` list::

        models:
          - id: gpt-4o
            provider: openai
            display_name: GPT-4o
    """

    def __init__(
        self,
        path: Union[str, Path] = BUNDLED_CATALOG_PATH,
        *,
        free_models: Iterable[str] = (),
        name: Optional[str] = None,
    ) -> None:
        self.path = Path(path).expanduser()
        self.name = name or f"file:{self.path.name}"
        self._free_models = tuple(free_models)

    def fetch_all(self) -> Sequence[ModelDescriptor]:
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                payload = yaml.safe_load(fh)
        except FileNotFoundError as exc:
            raise DescriptorSourceError(f"Catalog file {self.path} does not exist") from exc
        except yaml.YAMLError as exc:
            raise DescriptorSourceError(f"Catalog file {self.path} contains invalid YAML") from exc
        except OSError as exc:
            raise DescriptorSourceError(f"Unable to read catalog file {self.path}") from exc

        records = _extract_records(payload, str(self.path))
        descriptors = descriptors_from_records(
            records, free_models=self._free_models, source=self.name
        )
        logger.debug("Loaded %d descriptors from %s", len(descriptors), self.path)
        return descriptors


class _RetryableStatus(Exception):
    """Internal marker for HTTP responses worth retrying."""

    def __init__(self, response: httpx.Response) -> None:
        self.response = response
        super().__init__(f"HTTP {response.status_code} from {response.request.url}")


class HttpDescriptorSource:
    """Source that fetches a JSON catalog from a remote endpoint.

    Transport errors and 5xx/429 responses are retried with exponential
    backoff; other failures surface immediately as ``DescriptorSourceError``.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 10.0,
        retries: int = 3,
        free_models: Iterable[str] = (),
        headers: Optional[Mapping[str, str]] = None,
        client: Optional[httpx.Client] = None,
        retry_strategy: Optional[ExponentialBackoffStrategy[Any]] = None,
        name: Optional[str] = None,
    ) -> None:
        self.url = url
        self.name = name or f"http:{url}"
        self.timeout = timeout
        self._headers = dict(headers or {})
        self._client = client
        self._free_models = tuple(free_models)
        self._retry = retry_strategy or ExponentialBackoffStrategy(
            max_attempts=max(1, retries),
            retry_on=(httpx.TransportError, _RetryableStatus),
        )

    def _get(self) -> Any:
        if self._client is not None:
            response = self._client.get(self.url, headers=self._headers, timeout=self.timeout)
        else:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.get(self.url, headers=self._headers)
        if response.status_code == 429 or response.status_code >= 500:
            raise _RetryableStatus(response)
        response.raise_for_status()
        return response.json()

    def fetch_all(self) -> Sequence[ModelDescriptor]:
        try:
            payload = self._retry.execute(self._get)
        except _RetryableStatus as exc:
            raise DescriptorSourceError(f"Catalog endpoint unavailable: {exc}") from exc
        except httpx.HTTPError as exc:
            raise DescriptorSourceError(f"Failed to fetch catalog from {self.url}: {exc}") from exc
        except ValueError as exc:
            raise DescriptorSourceError(f"Catalog endpoint {self.url} returned invalid JSON") from exc

        records = _extract_records(payload, self.url)
        return descriptors_from_records(records, free_models=self._free_models, source=self.name)


__all__ = [
    "BUNDLED_CATALOG_PATH",
    "DescriptorSource",
    "HttpDescriptorSource",
    "StaticDescriptorSource",
    "YamlFileDescriptorSource",
    "descriptors_from_records",
]
