# leafslice

leafslice takes the dense-layer weights of a trained model, cuts them into
per-layer *slices*, and stores each distinct slice once in a shared data file.
Identical layers used by several models are kept a single time and counted by
reference. An architecture file records, for each model, the ordered list of
slice hashes it is built from, so the model can later be run by fetching those
slices back and chaining them.

## Modules

- `leafslice.slice` – `Slice`, a layer held as 32-bit floats: weight rows of
  equal length (one row per output unit) and a bias vector. `Slice.size` is
  the number of bytes it takes on disk. `slice_hash(slice)` gives its content
  hash, and `float_hash(value)` the hash of a single float.
- `leafslice.mathops` – `matmul(inp, layer)` multiplies the first row of `inp`
  by each row of `layer`, adds the layer's biases and returns a one-row slice.
  Incompatible shapes raise `ShapeMismatchError`.
- `leafslice.disk` – `encode_slice` / `decode_slice` convert a slice to and
  from its binary form (a four-integer header followed by weights and biases).
  `DiskManager(directory, logger)` writes and reads encoded slices at byte
  offsets of `unified_model.leaf` in `directory`. `read_slice` returns `None`
  when the file or the bytes are not there.
- `leafslice.directory` – `SliceDirectory(path, disk, logger)` maps slice
  hashes to `SliceEntry` records (offset, size, whether it exists, reference
  count) and keeps them in a binary index file. It loads the file on creation
  and creates it if missing. `add_slice` writes new slices to disk and only
  bumps the reference count of known ones. `remove_slice` drops one reference
  and raises `KeyError` for an unknown hash. `describe` logs one line per
  entry. Used as a context manager, it saves the index on exit.
- `leafslice.cache` – `SliceCache(directory, disk, logger)` returns slices by
  hash, reading each from disk the first time and keeping it in memory.
  `get_slice` returns `None` for an unknown hash.
- `leafslice.slicer` – `ModelSlicer(model_path, model_name, arch_dir, logger)`
  reads a JSON weight dump. `slice_model()` returns one slice per layer;
  `create_model_arch(hashes)` writes `<model_name>.arch` into `arch_dir`;
  `insert_into_slice_directory(directory)` does both and registers every
  slice, returning the hashes.
- `leafslice.loader` – `ModelLoader(model_name, cache, arch_dir, logger)`
  reads an architecture file (`load_model`) and runs the model on an input
  slice (`run_model`), logging each layer and the output with
  `format_slice_layer`.
- `leafslice.logger` – `Logger(log_dir)` writes every message to stdout and to
  `logs.txt` in `log_dir`; `get_logger(log_dir)` returns one shared logger per
  directory. `Logger.critical` logs and then raises `CriticalError`.

## Input format

The weights file is JSON with a top-level `"weights"` object. Each layer is
found at `weights -> <layer> -> "sequential" -> <layer>` and may hold a
`"kernel"` (a list of input rows, each a list of output values) and a
`"bias"` list. The kernel is transposed so that each slice row belongs to one
output unit. A `"top_level_model_weights"` entry is skipped.

## Architecture file

`<model>.arch` holds the number of layers on its first line, followed by one
`layer_name:hash` line per layer. A file whose line count does not match, or
whose lines are malformed, makes `load_model` raise `ValueError`.

## Example

```python
from pathlib import Path

from leafslice.cache import SliceCache
from leafslice.directory import SliceDirectory
from leafslice.disk import DiskManager
from leafslice.loader import ModelLoader
from leafslice.logger import get_logger
from leafslice.slice import Slice
from leafslice.slicer import ModelSlicer

root = Path("/tmp/leaf-store")
logger = get_logger(root / "logs")
disk = DiskManager(root, logger)

with SliceDirectory(root / "slices.dat", disk, logger) as directory:
    ModelSlicer("model_dump.json", "my_model", root / "arch", logger) \
        .insert_into_slice_directory(directory)

    cache = SliceCache(directory, disk, logger)
    loader = ModelLoader("my_model.arch", cache, root / "arch", logger)
    output = loader.run_model(Slice([[2.0] * 16], []))
    print(output.weights[0])
```

## Errors

- `leafslice.mathops.ShapeMismatchError` from `matmul` when the input width
  and the layer width differ. Inside `run_model` such a mismatch is logged as
  critical and surfaces as `CriticalError`.
- `leafslice.loader.ModelNotFoundError` when no architecture file has the
  requested name.
- `KeyError` from `run_model` when a layer's slice cannot be found.
- `leafslice.logger.CriticalError` for problems the store cannot recover from,
  such as files that cannot be written or a weights file without `"weights"`.

## What it does not do

There is no command-line program and no built-in default location for the
store: every class takes its directories and file paths from the caller, as
in the example above.

## Tests

```
pip install .[test]
pytest
```