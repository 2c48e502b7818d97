"""Folder path resolution with a process-wide find-or-create cache."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager

from drive_uploader.client import RemoteStore
from drive_uploader.models import FolderPath

logger = logging.getLogger(__name__)

CacheKey = tuple[str, str]


class FolderCache:
    """Thread-safe map of (parent folder id, name) to folder id.

    Entries live for the life of the process; there is no eviction.
    """

    def __init__(self) -> None:
        self._entries: dict[CacheKey, str] = {}
        self._lock = threading.Lock()

    def get(self, parent_id: str, name: str) -> str | None:
        with self._lock:
            return self._entries.get((parent_id, name))

    def put(self, parent_id: str, name: str, folder_id: str) -> None:
        with self._lock:
            self._entries[(parent_id, name)] = folder_id

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries


class KeyedLock:
    """One mutex per key, dropped again once no thread holds or waits on it."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[CacheKey, threading.Lock] = {}
        self._waiters: dict[CacheKey, int] = {}

    @contextmanager
    def hold(self, key: CacheKey) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
            self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._waiters[key] -= 1
                if not self._waiters[key]:
                    del self._waiters[key]
                    del self._locks[key]


def validate_segments(segments: Sequence[str]) -> FolderPath:
    """Return segments as a FolderPath, rejecting empty paths and names."""
    path = tuple(segments)
    if not path:
        raise ValueError("Folder path must have at least one segment")
    for index, segment in enumerate(path):
        if not isinstance(segment, str) or segment == "":
            raise ValueError(f"Folder path segment {index} is empty")
    return path


class FolderPathResolver:
    """Walks a list of folder names below a root, creating what is missing.

    Lookups go cache first, then the remote store (first exact match wins),
    then a create. Remote errors propagate unchanged; folders created before
    a failure stay in place and are found again on the next call.
    """

    def __init__(
        self,
        store: RemoteStore,
        cache: FolderCache | None = None,
        *,
        serialize_creates: bool = True,
    ) -> None:
        self.store = store
        self.cache = cache if cache is not None else FolderCache()
        self._locks = KeyedLock() if serialize_creates else None

    def resolve(self, root_folder_id: str, segments: Sequence[str]) -> str:
        """Return the id of the leaf folder for segments under root_folder_id."""
        path = validate_segments(segments)
        current = root_folder_id
        for segment in path:
            current = self.resolve_child(current, segment)
        logger.debug(f"Resolved {' > '.join(path)} to folder {current}")
        return current

    def resolve_child(self, parent_id: str, name: str) -> str:
        cached = self.cache.get(parent_id, name)
        if cached is not None:
            return cached

        if self._locks is None:
            return self._find_or_create(parent_id, name)

        with self._locks.hold((parent_id, name)):
            # Another thread may have finished while we waited
            cached = self.cache.get(parent_id, name)
            if cached is not None:
                return cached
            return self._find_or_create(parent_id, name)

    def _find_or_create(self, parent_id: str, name: str) -> str:
        matches = self.store.list_folders(name, parent_id)
        if matches:
            if len(matches) > 1:
                logger.warning(
                    f"Found {len(matches)} folders named '{name}' under {parent_id}; using {matches[0].id}"
                )
            folder_id = matches[0].id
        else:
            folder_id = self.store.create_folder(name, parent_id).id
            logger.info(f"Created folder '{name}' under {parent_id} ({folder_id})")

        self.cache.put(parent_id, name, folder_id)
        return folder_id
