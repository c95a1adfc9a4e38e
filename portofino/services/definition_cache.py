"""Bounded, refresh-after-write cache for file-backed definitions.

Reads never wait for a refresh: once an entry is older than
``refresh_after`` seconds, the next read submits a background reload and
returns the current entry. The cache therefore serves data that is at most
one refresh window stale. Explicit invalidation is immediate.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from concurrent.futures import Future
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable, Hashable
    from concurrent.futures import Executor

logger = logging.getLogger(__name__)

K = TypeVar("K", bound="Hashable")
T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A cached definition together with the file timestamp it was loaded from.

    Error entries have no payload; non-error entries always have one.
    """

    payload: T | None
    last_modified: int
    error: bool = False
    payload_type: type[Any] | None = None

    def __post_init__(self) -> None:
        if self.error and self.payload is not None:
            msg = "Error cache entries must not carry a payload"
            raise ValueError(msg)
        if not self.error and self.payload is None:
            msg = "Cache entries without error must carry a payload"
            raise ValueError(msg)

    @classmethod
    def loaded(cls, payload: T, last_modified: int) -> CacheEntry[T]:
        return cls(payload, last_modified, False, type(payload))

    @classmethod
    def failed(
        cls, last_modified: int = 0, payload_type: type[Any] | None = None
    ) -> CacheEntry[T]:
        return cls(None, last_modified, True, payload_type)


@dataclass
class _Slot(Generic[T]):
    entry: CacheEntry[T]
    written_at: float


class DefinitionCache(Generic[K, T]):
    """Thread-safe LRU cache with single-flight loads and coalesced refreshes.

    ``loader`` produces the entry for a missing key on the caller's thread;
    its exceptions propagate to the caller and nothing is cached. Caches
    without a loader are filled with ``put`` and queried with
    ``get_if_present``.

    ``reloader`` receives the key and the current entry and returns the entry
    to keep (possibly the same object). It runs on ``executor``; if it raises,
    the failure is logged and the current entry stays.
    """

    def __init__(
        self,
        *,
        name: str,
        max_size: int,
        refresh_after: float | None,
        reloader: Callable[[K, CacheEntry[T]], CacheEntry[T]],
        executor: Executor,
        loader: Callable[[K], CacheEntry[T]] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size < 1:
            msg = f"max_size must be positive, got {max_size}"
            raise ValueError(msg)
        self.name = name
        self._max_size = max_size
        self._refresh_after = refresh_after
        self._reloader = reloader
        self._loader = loader
        self._executor = executor
        self._clock = clock
        self._lock = threading.Lock()
        self._slots: OrderedDict[K, _Slot[T]] = OrderedDict()
        self._loading: dict[K, Future[CacheEntry[T]]] = {}
        self._refreshing: set[K] = set()
        # Loads that started before an invalidation of their key must not
        # repopulate the cache with data read before it. Generations are kept
        # only for keys with a load in flight; the epoch covers clearing all.
        self._epoch = 0
        self._generations: dict[K, int] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._slots)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._slots

    def get(self, key: K) -> CacheEntry[T]:
        """Return the entry for ``key``, loading it on a miss.

        Raises KeyError on a miss when the cache has no loader.
        """
        if self._loader is None:
            entry = self.get_if_present(key)
            if entry is None:
                raise KeyError(key)
            return entry
        return self.get_or_load(key, self._loader)

    def get_or_load(
        self,
        key: K,
        loader: Callable[[K], CacheEntry[T]],
        accept: Callable[[CacheEntry[T]], bool] | None = None,
    ) -> CacheEntry[T]:
        """Return the cached entry if ``accept`` takes it, else load it with ``loader``.

        At most one load per key runs at a time: concurrent callers wait for
        the running load and reuse its result when they accept it. Loader
        exceptions propagate to every waiting caller and nothing is cached.
        """
        while True:
            with self._lock:
                slot = self._slots.get(key)
                if slot is not None and (accept is None or accept(slot.entry)):
                    self._slots.move_to_end(key)
                    self._schedule_refresh_locked(key, slot)
                    return slot.entry
                future = self._loading.get(key)
                owner = future is None
                if future is None:
                    future = Future()
                    self._loading[key] = future
                generation = (self._epoch, self._generations.get(key, 0))

            if owner:
                return self._run_load(key, loader, future, generation)
            entry = future.result()
            if accept is None or accept(entry):
                return entry

    def get_if_present(self, key: K) -> CacheEntry[T] | None:
        """Return the cached entry or None, scheduling a refresh if it is stale."""
        with self._lock:
            slot = self._slots.get(key)
            if slot is None:
                return None
            self._slots.move_to_end(key)
            self._schedule_refresh_locked(key, slot)
            return slot.entry

    def put(self, key: K, entry: CacheEntry[T]) -> None:
        with self._lock:
            self._store_locked(key, entry)

    def invalidate(self, key: K) -> None:
        with self._lock:
            self._slots.pop(key, None)
            self._bump_generation_locked(key)

    def invalidate_all(
        self, predicate: Callable[[K, CacheEntry[T]], bool] | None = None
    ) -> int:
        """Drop every entry, or the entries matching ``predicate``. Returns the count."""
        with self._lock:
            keys = [
                key
                for key, slot in self._slots.items()
                if predicate is None or predicate(key, slot.entry)
            ]
            for key in keys:
                del self._slots[key]
                self._bump_generation_locked(key)
            if predicate is None:
                self._epoch += 1
        return len(keys)

    def items(self) -> list[tuple[K, CacheEntry[T]]]:
        """Snapshot of the cached entries, least recently used first."""
        with self._lock:
            return [(key, slot.entry) for key, slot in self._slots.items()]

    def _run_load(
        self,
        key: K,
        loader: Callable[[K], CacheEntry[T]],
        future: Future[CacheEntry[T]],
        generation: tuple[int, int],
    ) -> CacheEntry[T]:
        try:
            entry = loader(key)
        except Exception as exc:
            with self._lock:
                self._loading.pop(key, None)
                self._generations.pop(key, None)
            future.set_exception(exc)
            raise

        with self._lock:
            self._loading.pop(key, None)
            if generation == (self._epoch, self._generations.pop(key, 0)):
                self._store_locked(key, entry)
        future.set_result(entry)
        return entry

    def _bump_generation_locked(self, key: K) -> None:
        if key in self._loading:
            self._generations[key] = self._generations.get(key, 0) + 1

    def _store_locked(self, key: K, entry: CacheEntry[T]) -> None:
        self._slots[key] = _Slot(entry, self._clock())
        self._slots.move_to_end(key)
        while len(self._slots) > self._max_size:
            evicted, _ = self._slots.popitem(last=False)
            logger.debug("Evicted %s from %s cache", evicted, self.name)

    def _schedule_refresh_locked(self, key: K, slot: _Slot[T]) -> None:
        if self._refresh_after is None or key in self._refreshing:
            return
        if self._clock() - slot.written_at < self._refresh_after:
            return
        self._refreshing.add(key)
        try:
            self._executor.submit(self._refresh, key, slot)
        except RuntimeError:
            # Executor already shut down; keep serving the current entry.
            self._refreshing.discard(key)
            logger.debug("Skipping refresh of %s in %s cache: executor closed", key, self.name)

    def _refresh(self, key: K, slot: _Slot[T]) -> None:
        new_entry: CacheEntry[T] | None
        try:
            new_entry = self._reloader(key, slot.entry)
        except Exception:
            logger.exception("Refresh of %s in %s cache failed, keeping old entry", key, self.name)
            new_entry = None

        with self._lock:
            self._refreshing.discard(key)
            if self._slots.get(key) is not slot:
                # Invalidated or replaced while the refresh was running.
                return
            if new_entry is None or new_entry is slot.entry:
                slot.written_at = self._clock()
            else:
                self._store_locked(key, new_entry)
