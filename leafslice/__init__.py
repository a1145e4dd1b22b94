"""Store model layers as deduplicated slices on disk and run models from them."""

__version__ = "0.1.0"