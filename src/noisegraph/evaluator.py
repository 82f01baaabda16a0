"""Scalar evaluation for inline numeric readouts.

The editor shows the current value next to constant and operation nodes while
the user edits them. Building a full expression tree for that would be
wasteful, so this module evaluates the constant/arithmetic subgraph directly
through the node model.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from noisegraph.ir import IRValidationError, float64, uint32

if TYPE_CHECKING:
    from noisegraph.ir import DType, NodeGraph


__all__ = ["ScalarEvaluator", "evaluate"]


class ScalarEvaluator:
    """Evaluates constant and operation nodes of one graph.

    Example:
        >>> ev = ScalarEvaluator(graph)
        >>> ev.evaluate(div_index)  # 10.0 / 0.0
        0.0
        >>> ev.readout(div_index)
        '0'
    """

    def __init__(self, graph: NodeGraph) -> None:
        self._graph = graph

    def dtype_of(self, index: int) -> DType:
        """Return the dtype a constant or operation node produces.

        Raises:
            IRValidationError: If the node is neither a constant nor an operation.
        """
        node = self._graph.node(index)
        value_node = node.as_constant() or node.as_operation()
        if value_node is None:
            raise IRValidationError(f"node #{index} ({node.kind}) has no scalar value")
        return value_node.dtype

    def evaluate(self, index: int) -> float | int | None:
        """Evaluate node `index` in its own dtype.

        Returns:
            A float for float64 nodes, an int for uint32 nodes, and None for an
            unresolved operation, which has no value yet.
        """
        dtype = self.dtype_of(index)
        if dtype is float64:
            return self.evaluate_f64(index)
        if dtype is uint32:
            return self.evaluate_u32(index)
        return None

    def evaluate_f64(self, index: int) -> float:
        return self._graph.node(index).eval_f64(self._graph)

    def evaluate_u32(self, index: int) -> int:
        return self._graph.node(index).eval_u32(self._graph)

    def readout(self, index: int, *, precision: int = 6) -> str:
        """Format the value of node `index` for display next to the node."""
        value = self.evaluate(index)
        if value is None:
            return "?"
        if isinstance(value, int):
            return str(value)
        return np.format_float_positional(value, precision=precision, trim="-")


def evaluate(graph: NodeGraph, index: int) -> float | int | None:
    return ScalarEvaluator(graph).evaluate(index)
