"""Lazily built, explicitly invalidated cache of the model catalog.

The store holds at most one published :class:`CatalogSnapshot`. Reading a
published snapshot takes no lock; the reference swap is atomic and snapshots
are never mutated. Building is single-flight: the first caller to find the
store empty becomes the builder, every concurrent caller waits on the same
future and receives the same snapshot, or the same ``BuildError``.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future
from datetime import datetime, timezone
from typing import Callable, Optional

from modelgate.catalog.schemas import CatalogSnapshot
from modelgate.catalog.sources import DescriptorSource
from modelgate.exceptions import BuildError

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CatalogStore:
    """Own the current catalog snapshot and rebuild it on demand.

    Attributes:
        source: Descriptor source the snapshot is built from.
    """

    def __init__(
        self,
        source: DescriptorSource,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.source = source
        self._clock = clock
        self._lock = threading.Lock()
        self._snapshot: Optional[CatalogSnapshot] = None
        self._inflight: Optional[Future[CatalogSnapshot]] = None
        self._generation = 0
        self._build_count = 0

    @property
    def build_count(self) -> int:
        """Number of builds started against the source."""
        return self._build_count

    @property
    def generation(self) -> int:
        """Incremented by every invalidation."""
        return self._generation

    def peek(self) -> Optional[CatalogSnapshot]:
        """Return the published snapshot without building one."""
        return self._snapshot

    def get(self) -> CatalogSnapshot:
        """Return the current snapshot, building it first if there is none.

        Raises:
            BuildError: If the build this call waited on failed.
        """
        snapshot = self._snapshot
        if snapshot is not None:
            return snapshot

        with self._lock:
            if self._snapshot is not None:
                return self._snapshot
            future = self._inflight
            is_builder = future is None
            if future is None:
                future = Future()
                self._inflight = future
                self._build_count += 1
                generation = self._generation

        if is_builder:
            self._build(future, generation)
        return future.result()

    def invalidate(self) -> None:
        """Mark the current snapshot stale; the next ``get()`` rebuilds.

        A build already in flight still completes for the callers waiting on
        it, but its result is not published.
        """
        with self._lock:
            self._generation += 1
            self._snapshot = None
            self._inflight = None
        logger.info("Model catalog invalidated (generation %d)", self._generation)

    def _build(self, future: Future[CatalogSnapshot], generation: int) -> None:
        source_name = getattr(self.source, "name", type(self.source).__name__)
        started = time.monotonic()
        try:
            descriptors = self.source.fetch_all()
            snapshot = CatalogSnapshot(descriptors=tuple(descriptors), built_at=self._clock())
        except BaseException as exc:
            error = (
                exc if isinstance(exc, BuildError) else BuildError(source=source_name, cause=exc)
            )
            logger.error("Model catalog build from %s failed: %r", source_name, exc)
            with self._lock:
                if self._inflight is future:
                    self._inflight = None
            future.set_exception(error)
            # Interrupts and cancellations still unwind the building thread
            if not isinstance(exc, Exception):
                raise
            return

        with self._lock:
            if self._generation == generation:
                self._snapshot = snapshot
            if self._inflight is future:
                self._inflight = None
        logger.info(
            "Built model catalog from %s: %d models in %.3fs",
            source_name,
            len(snapshot),
            time.monotonic() - started,
        )
        future.set_result(snapshot)


__all__ = ["CatalogStore"]
