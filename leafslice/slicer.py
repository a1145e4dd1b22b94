"""Splits a dumped model into per-layer slices and records its architecture."""

from __future__ import annotations

import json
import os
from array import array
from collections.abc import Iterable, Sequence
from pathlib import Path

from leafslice.directory import SliceDirectory
from leafslice.logger import Logger
from leafslice.slice import Slice, slice_hash

ARCH_SUFFIX = ".arch"
_TOP_LEVEL_KEY = "top_level_model_weights"


def _to_f32(values: Iterable[float]) -> list[float]:
    return array("f", values).tolist()


def _format_values(values: Iterable[float]) -> str:
    return "".join(f"{value:.6f} " for value in values)


class ModelSlicer:
    """Reads a JSON weight dump and turns each dense layer into a :class:`Slice`."""

    def __init__(
        self,
        model_path: str | os.PathLike[str],
        model_name: str,
        arch_dir: str | os.PathLike[str],
        logger: Logger,
    ) -> None:
        self._raw_path = os.fspath(model_path)
        self.model_path = Path(self._raw_path)
        self.model_name = model_name
        self.arch_dir = Path(arch_dir)
        self.layer_ids: list[str] = []
        self._logger = logger

    @property
    def arch_path(self) -> Path:
        return self.arch_dir / f"{self.model_name}{ARCH_SUFFIX}"

    def slice_model(self) -> list[Slice]:
        """Parse the model file and return one slice per layer, in file order."""
        if not self._raw_path:
            self._logger.critical("Model path is empty")
        try:
            with self.model_path.open("rb") as handle:
                model_data = json.load(handle)
        except OSError:
            self._logger.critical("Model file could not be opened")
            return []
        if not isinstance(model_data, dict) or "weights" not in model_data:
            self._logger.critical("Model file does not contain weights")
        weights = model_data["weights"]
        self.layer_ids = []
        slices: list[Slice] = []
        if not isinstance(weights, dict):
            return slices
        for layer_name, layer_data in weights.items():
            if layer_name == _TOP_LEVEL_KEY:
                continue
            self._logger.info(f"Processing layer: {layer_name}")
            sequential = layer_data.get("sequential") if isinstance(layer_data, dict) else None
            if not isinstance(sequential, dict) or layer_name not in sequential:
                continue
            self.layer_ids.append(layer_name)
            slices.append(self._build_slice(layer_name, sequential[layer_name]))
        return slices

    def _build_slice(self, layer_name: str, layer_weights: object) -> Slice:
        rows: list[list[float]] = []
        biases: list[float] = []
        if not isinstance(layer_weights, dict):
            return Slice(rows, biases)
        if "kernel" in layer_weights:
            kernel = layer_weights["kernel"]
            width = len(kernel[0]) if kernel else 0
            self._logger.info(f"Kernel shape for {layer_name}: {len(kernel)} x {width}")
            for index, column in enumerate(zip(*kernel)):
                row = _to_f32(column)
                rows.append(row)
                self._logger.info(f"Kernel[{index}]: {_format_values(row)}")
        if "bias" in layer_weights:
            biases = _to_f32(layer_weights["bias"])
            self._logger.info(f"Bias shape for {layer_name}: {len(biases)}")
            self._logger.info(f"Bias values: {_format_values(biases)}")
        return Slice(rows, biases)

    def create_model_arch(self, hashes: Sequence[int]) -> Path:
        """Write the architecture file: layer count, then ``layer:hash`` per line."""
        if len(hashes) < len(self.layer_ids):
            raise IndexError(
                f"{len(self.layer_ids)} layers but only {len(hashes)} hashes"
            )
        lines = [f"{len(self.layer_ids)}\n"]
        lines.extend(f"{layer}:{value}\n" for layer, value in zip(self.layer_ids, hashes))
        path = self.arch_path
        try:
            self.arch_dir.mkdir(parents=True, exist_ok=True)
            with path.open("w", encoding="utf-8", newline="") as handle:
                handle.writelines(lines)
        except OSError:
            self._logger.critical("Model arch file could not be opened")
        return path

    def insert_into_slice_directory(self, directory: SliceDirectory) -> list[int]:
        """Slice the model, register every slice and write the architecture file."""
        slices = self.slice_model()
        hashes = []
        for layer in slices:
            key = slice_hash(layer)
            hashes.append(key)
            directory.add_slice(key, layer)
        self.create_model_arch(hashes)
        return hashes