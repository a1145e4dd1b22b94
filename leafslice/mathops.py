"""Dense layer evaluation on slices."""

from __future__ import annotations

from leafslice.slice import Slice


class ShapeMismatchError(ValueError):
    """The input and the layer do not have compatible shapes."""


def matmul(inp: Slice, layer: Slice) -> Slice:
    """Multiply the first input row by each layer row and add the layer's biases.

    The result is a single-row slice with one value per layer row and no biases.
    """
    if inp.num_cols != layer.num_cols:
        raise ShapeMismatchError(
            f"input has {inp.num_cols} columns, layer has {layer.num_cols}"
        )
    rows = layer.weights[: layer.num_rows]
    if layer.num_biases < len(rows):
        raise ShapeMismatchError(
            f"layer has {len(rows)} rows but only {layer.num_biases} biases"
        )
    vector = inp.weights[0] if inp.weights else ()
    output = [
        sum(x * w for x, w in zip(vector, row)) + bias
        for row, bias in zip(rows, layer.biases)
    ]
    return Slice([output], [])