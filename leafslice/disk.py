"""Binary encoding of slices and the shared data file that holds them."""

from __future__ import annotations

import os
import struct
import threading
from itertools import chain
from pathlib import Path

from leafslice.logger import Logger
from leafslice.slice import Slice

UNIFIED_MODEL_FILE_NAME = "unified_model.leaf"
_HEADER = struct.Struct("<4I")
_FLOAT_SIZE = 4


def encode_slice(slice: Slice) -> bytes:
    """Encode a slice as its header (rows, cols, biases, size) followed by weights and biases."""
    header = _HEADER.pack(slice.num_rows, slice.num_cols, slice.num_biases, slice.size)
    values = list(chain(chain.from_iterable(slice.weights[: slice.num_rows]), slice.biases))
    return header + struct.pack(f"<{len(values)}f", *values)


def decode_slice(data: bytes) -> Slice:
    """Decode bytes produced by :func:`encode_slice`."""
    if len(data) < _HEADER.size:
        raise ValueError("buffer too short for a slice header")
    rows, cols, num_biases, _size = _HEADER.unpack_from(data)
    weight_count = rows * cols
    count = weight_count + num_biases
    if len(data) < _HEADER.size + count * _FLOAT_SIZE:
        raise ValueError("buffer too short for the slice it describes")
    values = struct.unpack_from(f"<{count}f", data, _HEADER.size)
    weights = [values[start:start + cols] for start in range(0, weight_count, cols or 1)]
    return Slice(weights, values[weight_count:])


class DiskManager:
    """Reads and writes encoded slices at byte offsets of the unified model file."""

    def __init__(self, directory: str | os.PathLike[str], logger: Logger) -> None:
        self.directory = Path(directory)
        self.path = self.directory / UNIFIED_MODEL_FILE_NAME
        self._logger = logger
        self._read_lock = threading.RLock()
        self._write_lock = threading.RLock()

    def write_slice(self, offset: int, slice: Slice) -> None:
        """Write ``slice`` at ``offset``, creating the file if needed."""
        buffer = encode_slice(slice)
        with self._write_lock:
            try:
                self.path.touch(exist_ok=True)
                with self.path.open("r+b") as handle:
                    handle.seek(offset)
                    handle.write(buffer)
            except OSError:
                self._logger.critical(
                    "Failed to open unifed model file for write", str(self.path)
                )

    def read_slice(self, offset: int, size: int) -> Slice | None:
        """Read the slice of ``size`` bytes at ``offset``; ``None`` if it is not there."""
        with self._read_lock:
            try:
                handle = self.path.open("rb")
            except OSError:
                self._logger.warn("Read failed ... Unable to open unified model file")
                return None
            with handle:
                handle.seek(offset)
                data = handle.read(size)
        if len(data) < size:
            self._logger.warn(
                "Read failed ... Unable to read the entire buffer", str(self.path)
            )
            return None
        return decode_slice(data)