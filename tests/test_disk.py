import struct

import pytest

from leafslice.disk import DiskManager, decode_slice, encode_slice
from leafslice.logger import CriticalError, Logger
from leafslice.slice import Slice


@pytest.fixture
def logger(tmp_path):
    return Logger(tmp_path / "logs")


@pytest.fixture
def disk(tmp_path, logger):
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    return DiskManager(data_dir, logger)


SAMPLES = [
    Slice([[1.0, 2.0]], [3.0]),
    Slice([[0.1, 0.2, 0.3], [-1.0, -2.0, -3.0]], [0.5, 0.25]),
    Slice([], [4.0, 5.0]),
    Slice([], []),
]


def test_encoding_layout():
    s = Slice([[1.0, 2.0]], [3.0])
    data = encode_slice(s)
    assert len(data) == s.size
    assert data[:16] == struct.pack("<4I", 1, 2, 1, s.size)
    assert data[16:] == struct.pack("<3f", 1.0, 2.0, 3.0)


@pytest.mark.parametrize("s", SAMPLES)
def test_encode_decode_round_trip(s):
    data = encode_slice(s)
    assert len(data) == s.size
    assert decode_slice(data) == s


def test_decode_short_header_raises():
    with pytest.raises(ValueError):
        decode_slice(b"\x00" * 8)


def test_decode_truncated_body_raises():
    data = encode_slice(Slice([[1.0, 2.0]], [3.0]))
    with pytest.raises(ValueError):
        decode_slice(data[:-1])


def test_write_then_read(disk):
    first, second = SAMPLES[0], SAMPLES[1]
    disk.write_slice(0, first)
    disk.write_slice(first.size, second)
    assert disk.read_slice(0, first.size) == first
    assert disk.read_slice(first.size, second.size) == second
    assert disk.path.stat().st_size == first.size + second.size


def test_overwrite_in_place(disk):
    disk.write_slice(0, SAMPLES[0])
    replacement = Slice([[9.0, 8.0]], [7.0])
    disk.write_slice(0, replacement)
    assert disk.read_slice(0, replacement.size) == replacement


def test_read_missing_file_returns_none(disk, logger):
    assert disk.read_slice(0, 16) is None
    assert "Unable to open unified model file" in logger.log_file.read_text()


def test_read_past_end_returns_none(disk, logger):
    s = SAMPLES[0]
    disk.write_slice(0, s)
    assert disk.read_slice(s.size, s.size) is None
    assert "Unable to read the entire buffer" in logger.log_file.read_text()


def test_write_into_missing_directory_is_critical(tmp_path, logger):
    disk = DiskManager(tmp_path / "missing", logger)
    with pytest.raises(CriticalError):
        disk.write_slice(0, SAMPLES[0])
    assert "Failed to open unifed model file for write" in logger.log_file.read_text()