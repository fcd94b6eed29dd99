"""Coalesced, operator-triggered catalog rebuilds."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from modelgate.catalog.schemas import CatalogSnapshot
from modelgate.catalog.store import CatalogStore
from modelgate.exceptions import BuildError

logger = logging.getLogger(__name__)


class RefreshState(Enum):
    IDLE = "idle"
    REFRESHING = "refreshing"


@dataclass(frozen=True)
class RefreshResult:
    """Outcome of one forced rebuild, shared by every coalesced caller."""

    snapshot: CatalogSnapshot
    previous_count: int
    new_count: int
    refreshed_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "previous_count": self.previous_count,
            "new_count": self.new_count,
            "timestamp": self.refreshed_at.isoformat(),
        }


class RefreshCoordinator:
    """Force synchronous rebuilds of a :class:`CatalogStore`.

    State moves ``IDLE -> REFRESHING -> IDLE``. A ``trigger_refresh()`` that
    arrives while a refresh is running does not start a second rebuild; it
    waits for the running one and returns its result (or its error).
    """

    def __init__(self, store: CatalogStore) -> None:
        self._store = store
        self._lock = threading.Lock()
        self._inflight: Optional[Future[RefreshResult]] = None
        self._refresh_count = 0

    @property
    def state(self) -> RefreshState:
        with self._lock:
            return RefreshState.IDLE if self._inflight is None else RefreshState.REFRESHING

    @property
    def refresh_count(self) -> int:
        """Number of rebuilds actually performed."""
        return self._refresh_count

    def trigger_refresh(self) -> RefreshResult:
        """Invalidate and rebuild the store, or join the rebuild in progress.

        Raises:
            BuildError: If the rebuild failed. No partial state is kept.
        """
        with self._lock:
            future = self._inflight
            is_leader = future is None
            if future is None:
                future = Future()
                self._inflight = future
                self._refresh_count += 1

        if not is_leader:
            logger.debug("Catalog refresh already running; waiting for its result")
            return future.result()

        previous = self._store.peek()
        previous_count = len(previous) if previous is not None else 0
        try:
            self._store.invalidate()
            snapshot = self._store.get()
        except BaseException as exc:
            logger.error("Catalog refresh failed: %r", exc)
            with self._lock:
                self._inflight = None
            # Coalesced callers see a BuildError even when the leader was interrupted
            future.set_exception(exc if isinstance(exc, Exception) else BuildError(cause=exc))
            raise

        result = RefreshResult(
            snapshot=snapshot,
            previous_count=previous_count,
            new_count=len(snapshot),
            refreshed_at=datetime.now(timezone.utc),
        )
        with self._lock:
            self._inflight = None
        logger.info(
            "Catalog refreshed: %d -> %d models", result.previous_count, result.new_count
        )
        future.set_result(result)
        return result


__all__ = ["RefreshCoordinator", "RefreshResult", "RefreshState"]
