"""Persistent index from slice hashes to their place in the data file."""

from __future__ import annotations

import dataclasses
import os
import struct
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from leafslice.disk import DiskManager
from leafslice.logger import Logger
from leafslice.slice import Slice

_COUNT = struct.Struct("<Q")
_ENTRY = struct.Struct("<QQQ?3xI")


@dataclass
class SliceEntry:
    """Where a slice lives in the data file and how many models share it."""

    hash_key: int = 0
    slice_offset: int = 0
    slice_size: int = 0
    exists: bool = False
    ref_count: int = 0

    def pack(self) -> bytes:
        return _ENTRY.pack(
            self.hash_key, self.slice_offset, self.slice_size, self.exists, self.ref_count
        )


class SliceDirectory:
    """Maps slice hashes to entries and keeps the map in a binary file."""

    def __init__(self, path: str | os.PathLike[str], disk: DiskManager, logger: Logger) -> None:
        self.path = Path(path)
        self._disk = disk
        self._logger = logger
        self._entries: dict[int, SliceEntry] = {}
        self.current_offset = 0
        self.load()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, slice_hash: object) -> bool:
        return slice_hash in self._entries

    def __iter__(self) -> Iterator[int]:
        return iter(self._entries)

    def __enter__(self) -> SliceDirectory:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.save()

    def load(self) -> None:
        """Read the directory file, creating an empty one if it is missing."""
        if not self.path.exists():
            self._logger.info("Slice directory does not exist. Creating it")
            self._serialize()
            return
        entries = self._deserialize()
        self._entries.update((entry.hash_key, entry) for entry in entries)
        self.current_offset = max(
            (entry.slice_offset + entry.slice_size for entry in entries), default=0
        )
        self._logger.info("Slice directory loaded")

    def save(self) -> None:
        """Write the whole directory back to its file."""
        if not self.path.exists():
            self._logger.error("Slice directory does not exist")
        self._serialize()

    def add_slice(self, slice_hash: int, slice: Slice) -> SliceEntry:
        """Register ``slice`` under ``slice_hash`` and write it to disk if it is new."""
        existing = self._entries.get(slice_hash)
        if existing is not None:
            self._logger.warn("Slice already exists in slice directory, increasing ref count")
            existing.ref_count += 1
            return dataclasses.replace(existing)
        entry = SliceEntry(
            hash_key=slice_hash,
            slice_offset=self.current_offset,
            slice_size=slice.size,
            exists=True,
            ref_count=1,
        )
        self._entries[slice_hash] = entry
        self._logger.info("Slice added to slice directory")
        self._disk.write_slice(self.current_offset, slice)
        self.current_offset += slice.size
        return dataclasses.replace(entry)

    def search_slice(self, slice_hash: int) -> SliceEntry:
        """Return a copy of the entry, or an empty entry with ``exists`` false."""
        entry = self._entries.get(slice_hash)
        return SliceEntry() if entry is None else dataclasses.replace(entry)

    def remove_slice(self, slice_hash: int) -> None:
        """Drop one reference to the slice; forget it when none remain."""
        entry = self._entries.get(slice_hash)
        if entry is None or entry.ref_count == 0:
            self._logger.error("Slice does not exist in slice directory")
            raise KeyError(slice_hash)
        entry.ref_count -= 1
        if entry.ref_count == 0:
            del self._entries[slice_hash]

    def describe(self) -> list[str]:
        """Log one line per entry and return those lines."""
        return [
            self._logger.info(
                str(entry.hash_key),
                str(entry.slice_offset),
                str(entry.slice_size),
                str(int(entry.exists)),
                str(entry.ref_count),
            )
            for entry in self._entries.values()
        ]

    def _serialize(self) -> None:
        if not self.path.exists():
            self._logger.info("Creating slice directory file")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("wb") as handle:
                handle.write(_COUNT.pack(len(self._entries)))
                handle.writelines(entry.pack() for entry in self._entries.values())
        except OSError:
            self._logger.critical(
                "Slice directory file could not be opened for write: ", str(self.path)
            )

    def _deserialize(self) -> list[SliceEntry]:
        try:
            data = self.path.read_bytes()
        except OSError:
            self._logger.critical("Page directory could not be opened: " + str(self.path))
            return []
        if len(data) < _COUNT.size:
            self._logger.critical("Slice directory file is truncated: ", str(self.path))
        (count,) = _COUNT.unpack_from(data)
        end = _COUNT.size + count * _ENTRY.size
        if len(data) < end:
            self._logger.critical("Slice directory file is truncated: ", str(self.path))
        return [SliceEntry(*fields) for fields in _ENTRY.iter_unpack(data[_COUNT.size:end])]