"""Index manager: lifecycle and querying of named indices.

The manager is the single source of truth for which indices are open. It is
constructed once at startup and handed to the HTTP layer; nothing else holds
engine handles.

Lifecycle per name: ``ABSENT -> OPEN -> ABSENT``. A removed name can be
created again later.
"""

import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

import structlog

from libs.common.errors import (
    IndexNotFoundError,
    InvalidLocationError,
    InvalidParameterError,
    ReservedNameError,
)
from libs.common.logging import log_performance
from libs.common.metrics import MetricsCollector
from libs.index_store.base import IndexHandle, ScoredDocument, SearchEngine
from libs.index_store.location_cache import LocationCache
from .aggregation import merge_ranked

logger = structlog.get_logger("index_service.index_manager")

# Pseudo index which targets a query at every open index
META_INDEX_NAME = "_all"


class CreateOutcome(Enum):
    """Result of a successful ``create`` call."""
    CREATED = "created"
    EXISTING = "existing"
    # Name already open under another location; the open handle was kept
    LOCATION_IGNORED = "location-ignored"


@dataclass
class RestoreReport:
    """What startup replay did with each cached entry."""
    restored: List[str] = field(default_factory=list)
    purged: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)


class IndexManager:
    """Owns the set of open indices.

    Responsibilities
    - Open indices through the search engine and keep their handles by name
    - Release handles on removal and at shutdown
    - Run queries against one index or merge them across all indices
    - Replay the location cache at startup

    Mutations and reads are serialized by a re-entrant lock, so the manager
    is safe to share with threaded callers as well as the event loop.
    """

    def __init__(self, engine: SearchEngine, metrics: Optional[MetricsCollector] = None):
        """Create an empty manager.

        Parameters
        - engine: Backend used to open indices
        - metrics: Optional collector for lifecycle counters and the open gauge
        """
        self.engine = engine
        self.metrics = metrics
        self._handles: Dict[str, IndexHandle] = {}
        self._lock = threading.RLock()

    def _record(self, operation: str, outcome: str) -> None:
        if self.metrics is not None:
            self.metrics.record_index_operation(operation, outcome)
            self.metrics.set_open_indices(len(self._handles))

    @staticmethod
    def _check_limit(limit: int) -> None:
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 0:
            raise InvalidParameterError("limit must be a non-negative integer", limit=limit)

    def has(self, name: str) -> bool:
        """Return True if ``name`` has an open handle."""
        with self._lock:
            return name in self._handles

    def names(self) -> List[str]:
        """Names of open indices, in registration order."""
        with self._lock:
            return list(self._handles)

    def get_location(self, name: str) -> str:
        """Return the location of the open index ``name``."""
        with self._lock:
            handle = self._handles.get(name)
            if handle is None:
                raise IndexNotFoundError(index=name)
            return handle.location

    def create(self, name: str, location: str) -> CreateOutcome:
        """Open the index at ``location`` under ``name``.

        Idempotent: if ``name`` is already open nothing is re-validated and
        the existing handle stays authoritative, even when ``location`` differs.

        Raises
        - ``ReservedNameError`` if ``name`` is the meta-index name
        - ``InvalidLocationError`` if nothing openable exists at ``location``;
          the registry is left untouched
        """
        if name == META_INDEX_NAME:
            raise ReservedNameError(index=name)

        with self._lock:
            existing = self._handles.get(name)
            if existing is not None:
                if existing.location == location:
                    self._record("create", CreateOutcome.EXISTING.value)
                    return CreateOutcome.EXISTING

                logger.warning(
                    "Index already open under another location, keeping it",
                    index=name,
                    location=existing.location,
                    requested_location=location
                )
                self._record("create", CreateOutcome.LOCATION_IGNORED.value)
                return CreateOutcome.LOCATION_IGNORED

            try:
                handle = self.engine.open(name, location)
            except InvalidLocationError:
                self._record("create", "invalid_location")
                raise

            self._handles[name] = handle
            self._record("create", CreateOutcome.CREATED.value)

        logger.info("Index opened", index=name, location=location)
        return CreateOutcome.CREATED

    def remove(self, name: str) -> None:
        """Close and forget the index ``name``.

        Raises
        - ``ReservedNameError`` if ``name`` is the meta-index name
        - ``IndexNotFoundError`` if ``name`` is not open
        """
        if name == META_INDEX_NAME:
            raise ReservedNameError(index=name)

        with self._lock:
            handle = self._handles.pop(name, None)
            if handle is None:
                self._record("remove", "not_found")
                raise IndexNotFoundError(index=name)
            self._release(handle)
            self._record("remove", "removed")

        logger.info("Index removed", index=name, location=handle.location)

    def _release(self, handle: IndexHandle) -> None:
        try:
            handle.close()
        except Exception as e:
            # The name is already forgotten; a leaked reader is all that's left
            logger.error("Failed to close index handle", index=handle.name, error=str(e))

    def query(
        self,
        name: str,
        query_expression: Optional[str],
        collapse_key: Optional[str],
        limit: int
    ) -> List[ScoredDocument]:
        """Query a single open index; results are returned unmodified.

        Raises
        - ``IndexNotFoundError`` if ``name`` is not open
        - ``EngineFailureError`` if the engine fails
        """
        self._check_limit(limit)
        start_time = time.time()

        with self._lock:
            handle = self._handles.get(name)
            if handle is None:
                raise IndexNotFoundError(index=name)
            results = handle.search(query_expression, collapse_key, limit)

        log_performance(
            "query",
            (time.time() - start_time) * 1000,
            index=name,
            results_count=len(results)
        )
        return results

    def query_all(
        self,
        query_expression: Optional[str],
        collapse_key: Optional[str],
        limit: int
    ) -> List[ScoredDocument]:
        """Query every open index and merge the results.

        Each index is asked for ``limit`` documents; the merged list is sorted
        by descending score and cut to ``limit``. An empty registry yields an
        empty list. Any engine failure aborts the whole call.
        """
        self._check_limit(limit)
        start_time = time.time()

        # Searches stay under the lock so no handle is closed mid-query
        with self._lock:
            handles = list(self._handles.values())
            per_index = [handle.search(query_expression, collapse_key, limit) for handle in handles]

        results = merge_ranked(per_index, limit)

        log_performance(
            "query_all",
            (time.time() - start_time) * 1000,
            indices=len(handles),
            results_count=len(results)
        )
        return results

    def restore(self, cache: LocationCache) -> RestoreReport:
        """Reopen every index recorded in ``cache``.

        Entries whose location is no longer valid are purged from the cache.
        Any other failure only skips that entry. Failing to read the cache at
        all propagates as ``CacheStorageError``.
        """
        report = RestoreReport()
        entries = cache.get_entries()

        for name, location in entries.items():
            try:
                self.create(name, location)
            except InvalidLocationError:
                logger.warning("Cached index location is invalid, purging", index=name, location=location)
                try:
                    cache.remove_entry(name)
                except Exception as e:
                    logger.error("Failed to purge cache entry", index=name, error=str(e))
                    report.skipped.append(name)
                else:
                    report.purged.append(name)
            except Exception as e:
                logger.error("Failed to restore cached index, skipping", index=name, location=location, error=str(e))
                report.skipped.append(name)
            else:
                report.restored.append(name)

        logger.info(
            "Index registry restored from cache",
            restored=len(report.restored),
            purged=len(report.purged),
            skipped=len(report.skipped)
        )
        return report

    def close(self) -> None:
        """Release every open handle."""
        with self._lock:
            handles = list(self._handles.values())
            self._handles.clear()
            for handle in handles:
                self._release(handle)
            if self.metrics is not None:
                self.metrics.set_open_indices(0)

        logger.info("Index manager closed", released=len(handles))
