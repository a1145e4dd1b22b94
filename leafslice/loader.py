"""Runs a sliced model by chaining its layers through the slice cache."""

from __future__ import annotations

import itertools
import os
import threading
from pathlib import Path

from leafslice.cache import SliceCache
from leafslice.logger import Logger
from leafslice.mathops import ShapeMismatchError, matmul
from leafslice.slice import Slice

_layer_ids = itertools.count()
_layer_ids_lock = threading.Lock()


class ModelNotFoundError(LookupError):
    """No architecture file with the requested name exists."""


class ModelLoader:
    """Loads a model architecture file and evaluates it layer by layer."""

    _model_lists: dict[Path, list[str]] = {}

    def __init__(
        self,
        model_name: str,
        cache: SliceCache,
        arch_dir: str | os.PathLike[str],
        logger: Logger,
    ) -> None:
        self.model_name = model_name
        self.arch_dir = Path(arch_dir)
        self.layers: list[tuple[str, int]] = []
        self._cache = cache
        self._logger = logger

    def search_model(self) -> bool:
        """Whether an architecture file named like the model is in the architecture directory."""
        models = self._model_lists.setdefault(self.arch_dir.resolve(), [])
        if not models:
            models.extend(
                sorted(entry.name for entry in self.arch_dir.iterdir() if entry.is_file())
            )
        return self.model_name in models

    def _corrupt(self) -> ValueError:
        self._logger.error("Invalid model file ... Maybe corrupt", self.model_name)
        return ValueError(f"invalid model file: {self.model_name}")

    def load_model(self) -> list[tuple[str, int]]:
        """Read the architecture file and return its ``(layer, slice hash)`` pairs."""
        if not self.search_model():
            self._logger.error("Model not found", self.model_name)
            raise ModelNotFoundError(self.model_name)
        path = self.arch_dir / self.model_name
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            self._logger.error("Model file not found", self.model_name)
            raise ModelNotFoundError(self.model_name) from exc

        lines = text.splitlines()
        if not lines:
            raise self._corrupt()
        try:
            num_layers = int(lines[0].strip())
        except ValueError as exc:
            raise self._corrupt() from exc

        layers: list[tuple[str, int]] = []
        for line in lines[1:]:
            key, sep, value = line.partition(":")
            if not sep:
                raise self._corrupt()
            try:
                layers.append((key, int(value.strip())))
            except ValueError as exc:
                raise self._corrupt() from exc

        if len(lines) != num_layers + 1:
            raise self._corrupt()
        self.layers = layers
        return list(layers)

    def run_model(self, input_layer: Slice) -> Slice:
        """Feed ``input_layer`` through every layer of the model and return the output."""
        current = input_layer
        for _name, key in self.load_model():
            layer = self._cache.get_slice(key)
            if layer is None:
                self._logger.error("Slice not found ... Aborting can't run", str(key))
                raise KeyError(key)
            try:
                current = matmul(current, layer)
            except ShapeMismatchError:
                self._logger.critical(
                    "Model computation failed matrix size mismatch... Aborting"
                )
            self.format_slice_layer(layer)
        self.format_slice_layer(current)
        return current

    def format_slice_layer(self, slice: Slice) -> list[str]:
        """Log a numbered heading and one line per weight row; return those lines."""
        with _layer_ids_lock:
            layer_id = next(_layer_ids)
        lines = [f"Kernel Layer {layer_id}::"]
        lines.extend(
            f"row{index}->" + "".join(f"{value:.6f}" for value in row[: slice.num_cols])
            for index, row in enumerate(slice.weights[: slice.num_rows])
        )
        for line in lines:
            self._logger.info(line)
        return lines