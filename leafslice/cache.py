"""In-memory cache of slices read through the slice directory."""

from __future__ import annotations

import threading
from dataclasses import dataclass

from leafslice.directory import SliceDirectory
from leafslice.disk import DiskManager
from leafslice.logger import Logger
from leafslice.slice import Slice


@dataclass
class _CachedSlice:
    slice: Slice
    ref_count: int
    hits: int = 1


class SliceCache:
    """Serves slices by hash, loading each from disk the first time it is asked for."""

    def __init__(self, directory: SliceDirectory, disk: DiskManager, logger: Logger) -> None:
        self._directory = directory
        self._disk = disk
        self._logger = logger
        self._cache: dict[int, _CachedSlice] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, slice_hash: object) -> bool:
        return slice_hash in self._cache

    def get_slice(self, slice_hash: int) -> Slice | None:
        """Return the slice for ``slice_hash``, or ``None`` if it cannot be found."""
        with self._lock:
            cached = self._cache.get(slice_hash)
            if cached is not None:
                cached.hits += 1
                return cached.slice
            entry = self._directory.search_slice(slice_hash)
            if entry.exists:
                found = self._disk.read_slice(entry.slice_offset, entry.slice_size)
                if found is not None:
                    self._cache[slice_hash] = _CachedSlice(found, entry.ref_count)
                    return found
        self._logger.error("Slice not found ... Aborting can't run", str(slice_hash))
        return None