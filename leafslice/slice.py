"""A layer's weights and biases, held as 32-bit floats, and its content hash."""

from __future__ import annotations

import struct
from array import array
from collections.abc import Iterable
from functools import reduce

_MASK = (1 << 64) - 1
_MUL = (0xC6A4A793 << 32) + 0x5BD1E995
_SEED = 0xC70F6907
_GOLDEN = 0x9E3779B9
_FLOAT_SIZE = 4
_HEADER_SIZE = 4 * 4


def _as_f32(values: Iterable[float]) -> tuple[float, ...]:
    return tuple(array("f", values).tolist())


class Slice:
    """Weights as rows of equal length plus a bias vector."""

    __slots__ = ("weights", "biases")

    def __init__(self, weights: Iterable[Iterable[float]], biases: Iterable[float]) -> None:
        rows = tuple(_as_f32(row) for row in weights)
        if rows and any(len(row) != len(rows[0]) for row in rows):
            raise ValueError("all weight rows must have the same length")
        self.weights: tuple[tuple[float, ...], ...] = rows
        self.biases: tuple[float, ...] = _as_f32(biases)

    @property
    def num_rows(self) -> int:
        return len(self.weights) if self.weights and self.weights[0] else 0

    @property
    def num_cols(self) -> int:
        return len(self.weights[0]) if self.weights and self.weights[0] else 0

    @property
    def num_biases(self) -> int:
        return len(self.biases)

    @property
    def size(self) -> int:
        """Number of bytes the slice occupies on disk, header included."""
        floats = self.num_rows * self.num_cols + self.num_biases
        return floats * _FLOAT_SIZE + _HEADER_SIZE

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Slice):
            return NotImplemented
        return self.weights == other.weights and self.biases == other.biases

    def __hash__(self) -> int:
        return slice_hash(self)

    def __repr__(self) -> str:
        return f"Slice(weights={list(map(list, self.weights))!r}, biases={list(self.biases)!r})"


def _shift_mix(value: int) -> int:
    return value ^ (value >> 47)


def _hash_bytes(data: bytes, seed: int = _SEED) -> int:
    length = len(data)
    aligned = length & ~7
    result = (seed ^ (length * _MUL)) & _MASK
    for offset in range(0, aligned, 8):
        chunk = int.from_bytes(data[offset:offset + 8], "little")
        mixed = (_shift_mix((chunk * _MUL) & _MASK) * _MUL) & _MASK
        result = ((result ^ mixed) * _MUL) & _MASK
    if length & 7:
        tail = int.from_bytes(data[aligned:], "little")
        result = ((result ^ tail) * _MUL) & _MASK
    result = (_shift_mix(result) * _MUL) & _MASK
    return _shift_mix(result)


def float_hash(value: float) -> int:
    """Hash a 32-bit float: zero for either zero, otherwise a murmur hash of its bytes."""
    packed = struct.pack("<f", value)
    if struct.unpack("<f", packed)[0] == 0.0:
        return 0
    return _hash_bytes(packed)


def _combine(seed: int, value: int) -> int:
    mixed = (value + _GOLDEN + ((seed << 6) & _MASK) + (seed >> 2)) & _MASK
    return seed ^ mixed


def _values_hash(values: Iterable[float]) -> int:
    return reduce(lambda acc, v: _combine(acc, float_hash(v)), values, 0)


def slice_hash(slice: Slice) -> int:
    """Content hash of a slice, seeded with its on-disk size."""
    result = slice.size & 0xFFFFFFFF
    for row in slice.weights:
        result = _combine(result, _values_hash(row))
    return _combine(result, _values_hash(slice.biases))