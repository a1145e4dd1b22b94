import pytest

from leafslice.directory import SliceDirectory, SliceEntry
from leafslice.disk import DiskManager
from leafslice.logger import CriticalError, Logger
from leafslice.slice import Slice, slice_hash


@pytest.fixture
def logger(tmp_path):
    return Logger(tmp_path / "logs")


@pytest.fixture
def disk(tmp_path, logger):
    return DiskManager(tmp_path, logger)


@pytest.fixture
def dir_path(tmp_path):
    return tmp_path / "slices.dat"


def _layer_a():
    return Slice([[1.0, 2.0], [3.0, 4.0]], [5.0, 6.0])


def _layer_b():
    return Slice([[0.5, -0.5, 1.5]], [0.25])


def test_new_directory_creates_empty_file(dir_path, disk, logger):
    directory = SliceDirectory(dir_path, disk, logger)
    assert len(directory) == 0
    assert dir_path.read_bytes() == bytes(8)


def test_add_slice_assigns_consecutive_offsets(dir_path, disk, logger):
    directory = SliceDirectory(dir_path, disk, logger)
    a, b = _layer_a(), _layer_b()
    entry_a = directory.add_slice(slice_hash(a), a)
    entry_b = directory.add_slice(slice_hash(b), b)
    assert entry_a == SliceEntry(slice_hash(a), 0, a.size, True, 1)
    assert entry_b.slice_offset == a.size
    assert directory.current_offset == a.size + b.size


def test_add_slice_writes_to_disk(dir_path, disk, logger):
    directory = SliceDirectory(dir_path, disk, logger)
    b = _layer_b()
    directory.add_slice(1, _layer_a())
    entry = directory.add_slice(2, b)
    assert disk.read_slice(entry.slice_offset, entry.slice_size) == b


def test_duplicate_add_increments_ref_count(dir_path, disk, logger):
    directory = SliceDirectory(dir_path, disk, logger)
    a = _layer_a()
    directory.add_slice(7, a)
    directory.add_slice(7, a)
    entry = directory.search_slice(7)
    assert entry.ref_count == 2
    assert directory.current_offset == a.size


def test_search_missing_returns_empty_entry(dir_path, disk, logger):
    directory = SliceDirectory(dir_path, disk, logger)
    assert directory.search_slice(42) == SliceEntry()
    assert directory.search_slice(42).exists is False


def test_search_returns_copy(dir_path, disk, logger):
    directory = SliceDirectory(dir_path, disk, logger)
    directory.add_slice(3, _layer_a())
    found = directory.search_slice(3)
    found.ref_count = 100
    assert directory.search_slice(3).ref_count == 1


def test_save_and_reload_round_trip(dir_path, disk, logger):
    directory = SliceDirectory(dir_path, disk, logger)
    a, b = _layer_a(), _layer_b()
    directory.add_slice(11, a)
    directory.add_slice(22, b)
    directory.add_slice(22, b)
    directory.save()
    assert dir_path.stat().st_size == 8 + 32 * 2

    reloaded = SliceDirectory(dir_path, disk, logger)
    assert reloaded.search_slice(11) == directory.search_slice(11)
    assert reloaded.search_slice(22) == directory.search_slice(22)
    assert reloaded.current_offset == a.size + b.size


def test_context_manager_saves(dir_path, disk, logger):
    with SliceDirectory(dir_path, disk, logger) as directory:
        directory.add_slice(5, _layer_a())
    reloaded = SliceDirectory(dir_path, disk, logger)
    assert 5 in reloaded
    assert reloaded.search_slice(5).exists is True


def test_remove_slice_decrements_then_drops(dir_path, disk, logger):
    directory = SliceDirectory(dir_path, disk, logger)
    a = _layer_a()
    directory.add_slice(9, a)
    directory.add_slice(9, a)
    directory.remove_slice(9)
    assert directory.search_slice(9).ref_count == 1
    directory.remove_slice(9)
    assert 9 not in directory
    assert directory.search_slice(9).exists is False


def test_remove_missing_raises(dir_path, disk, logger):
    directory = SliceDirectory(dir_path, disk, logger)
    with pytest.raises(KeyError):
        directory.remove_slice(123)


def test_describe_lines(dir_path, disk, logger):
    directory = SliceDirectory(dir_path, disk, logger)
    a = _layer_a()
    directory.add_slice(77, a)
    assert directory.describe() == [f"77 0 {a.size} 1 1 "]


def test_truncated_file_is_critical(dir_path, disk, logger):
    dir_path.write_bytes((3).to_bytes(8, "little") + bytes(10))
    with pytest.raises(CriticalError):
        SliceDirectory(dir_path, disk, logger)