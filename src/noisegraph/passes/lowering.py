from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable

from noisegraph.ir import (
    Anonymous,
    DType,
    Expr,
    IRValidationError,
    Named,
    NodeGraph,
    Operation,
    Variable,
    float64,
    uint32,
)
from noisegraph.ir import expr as ex
from noisegraph.ir import nodes as nd
from noisegraph.ir.values import Literal, NodeValue, Reference

logger = logging.getLogger(__name__)


# Node kinds sharing a payload shape map onto the expression of the same shape.
_EXPR_TYPES: dict[type[nd.Node], type[Expr]] = {
    nd.OpenSimplexNode: ex.OpenSimplexExpr,
    nd.PerlinNode: ex.PerlinExpr,
    nd.PerlinSurfletNode: ex.PerlinSurfletExpr,
    nd.SimplexNode: ex.SimplexExpr,
    nd.SuperSimplexNode: ex.SuperSimplexExpr,
    nd.ValueNode: ex.ValueExpr,
    nd.BasicMultiNode: ex.BasicMultiExpr,
    nd.BillowNode: ex.BillowExpr,
    nd.FbmNode: ex.FbmExpr,
    nd.HybridMultiNode: ex.HybridMultiExpr,
    nd.AddNode: ex.AddExpr,
    nd.MaxNode: ex.MaxExpr,
    nd.MinNode: ex.MinExpr,
    nd.MultiplyNode: ex.MultiplyExpr,
    nd.PowerNode: ex.PowerExpr,
    nd.AbsNode: ex.AbsExpr,
    nd.NegateNode: ex.NegateExpr,
    nd.RotatePointNode: ex.RotatePointExpr,
    nd.ScalePointNode: ex.ScalePointExpr,
    nd.TranslatePointNode: ex.TranslatePointExpr,
}


@dataclass(frozen=True, slots=True)
class CompilerConfig:
    """Options for lowering.

    Attributes:
        disconnected_value: Constant substituted for a noise-source slot that
            has nothing wired into it.
    """

    disconnected_value: float = 0.0

    def __post_init__(self) -> None:
        if not math.isfinite(self.disconnected_value):
            raise ValueError(f"disconnected_value must be finite, got {self.disconnected_value}")


@dataclass
class LoweringPass:
    """Lowers a node and everything it depends on into an expression tree.

    Lowering is total over well-formed graphs: an unwired source slot becomes a
    constant instead of an error. Nodes are lowered children first from an
    explicit work list, each once per call; a node shared by several slots
    yields one subtree object in all of them. Nothing is kept between calls, so
    two calls on an unchanged graph return equal but distinct trees.
    """

    config: CompilerConfig = field(default_factory=CompilerConfig)

    def run(self, graph: NodeGraph, index: int) -> Expr:
        logger.debug("lowering node #%d of %r", index, graph.name)
        built: dict[int, Expr] = {}
        for i in _post_order(index, lambda i: graph.node(i).upstream()):
            built[i] = self._lower(graph, i, built)
        return built[index]

    def _lower(self, graph: NodeGraph, index: int, built: dict[int, Expr]) -> Expr:
        """Lower one node whose upstream expressions are already in `built`."""
        node = graph.node(index)
        if not node.produces_expr:
            raise IRValidationError(f"node #{index} ({node.kind}) does not produce a noise expression")

        def source(i: int | None) -> Expr:
            if i is None:
                return ex.ConstantExpr(Anonymous(self.config.disconnected_value))
            return built[i]

        def sources(indices: list[int | None]) -> tuple[Expr, Expr]:
            first, second = indices
            return source(first), source(second)

        expr_type = _EXPR_TYPES.get(type(node))
        if isinstance(node, (nd.ConstantNode, nd.OperationNode)):
            return ex.ConstantExpr(self._variable(graph, Reference(index), float64))
        if expr_type is not None and isinstance(node, nd.GeneratorNode):
            return expr_type(self._variable(graph, node.seed, uint32))
        if expr_type is not None and isinstance(node, nd.FractalNode):
            return expr_type(
                node.source_type,
                self._variable(graph, node.seed, uint32),
                self._variable(graph, node.octaves, uint32),
                self._variable(graph, node.frequency, float64),
                self._variable(graph, node.lacunarity, float64),
                self._variable(graph, node.persistence, float64),
            )
        if isinstance(node, nd.RidgedMultiNode):
            return ex.RidgedMultiExpr(
                node.source_type,
                self._variable(graph, node.seed, uint32),
                self._variable(graph, node.octaves, uint32),
                self._variable(graph, node.frequency, float64),
                self._variable(graph, node.lacunarity, float64),
                self._variable(graph, node.persistence, float64),
                self._variable(graph, node.attenuation, float64),
            )
        if expr_type is not None and isinstance(node, nd.CombinerNode):
            return expr_type(sources(node.sources))
        if expr_type is not None and isinstance(node, nd.UnaryNode):
            return expr_type(source(node.source))
        if expr_type is not None and isinstance(node, nd.TransformNode):
            axes = tuple(self._variable(graph, axis, float64) for axis in node.axes)
            return expr_type(source(node.source), axes)
        if isinstance(node, nd.BlendNode):
            return ex.BlendExpr(sources(node.sources), source(node.control))
        if isinstance(node, nd.SelectNode):
            return ex.SelectExpr(
                sources(node.sources),
                source(node.control),
                self._variable(graph, node.lower_bound, float64),
                self._variable(graph, node.upper_bound, float64),
                self._variable(graph, node.falloff, float64),
            )
        if isinstance(node, nd.ClampNode):
            return ex.ClampExpr(
                source(node.source),
                self._variable(graph, node.lower_bound, float64),
                self._variable(graph, node.upper_bound, float64),
            )
        if isinstance(node, nd.ScaleBiasNode):
            return ex.ScaleBiasExpr(
                source(node.source),
                self._variable(graph, node.scale, float64),
                self._variable(graph, node.bias, float64),
            )
        if isinstance(node, nd.ExponentNode):
            return ex.ExponentExpr(source(node.source), self._variable(graph, node.exponent, float64))
        if isinstance(node, nd.CurveNode):
            return ex.CurveExpr(source(node.source), self._curve_points(graph, node))
        if isinstance(node, nd.TerraceNode):
            points = tuple(
                self._variable(graph, Reference(i), float64) for i in node.control_points if i is not None
            )
            return ex.TerraceExpr(source(node.source), node.inverted, points)
        if isinstance(node, nd.DisplaceNode):
            axes = tuple(source(axis) for axis in node.axes)
            return ex.DisplaceExpr(source(node.source), axes)
        if isinstance(node, nd.TurbulenceNode):
            return ex.TurbulenceExpr(
                source(node.source),
                node.source_type,
                self._variable(graph, node.seed, uint32),
                self._variable(graph, node.frequency, float64),
                self._variable(graph, node.power, float64),
                self._variable(graph, node.roughness, uint32),
            )
        if isinstance(node, nd.CheckerboardNode):
            return ex.CheckerboardExpr(self._variable(graph, node.size, uint32))
        if isinstance(node, nd.CylindersNode):
            return ex.CylindersExpr(self._variable(graph, node.frequency, float64))
        if isinstance(node, nd.WorleyNode):
            return ex.WorleyExpr(
                self._variable(graph, node.seed, uint32),
                self._variable(graph, node.frequency, float64),
                node.distance_function,
                node.return_type,
            )
        raise IRValidationError(f"no lowering for {node.kind}")

    def _curve_points(self, graph: NodeGraph, node: nd.CurveNode) -> tuple[ex.ControlPoint, ...]:
        points = []
        for index in node.control_points:
            if index is None:
                continue
            point = graph.node(index).as_control_point()
            if point is None:
                raise IRValidationError(f"curve control point #{index} is not a ControlPoint node")
            points.append(
                ex.ControlPoint(
                    self._variable(graph, point.input, float64),
                    self._variable(graph, point.output, float64),
                )
            )
        return tuple(points)

    def _variable(self, graph: NodeGraph, value: NodeValue, dtype: DType) -> Variable:
        """Resolve a parameter slot to a leaf value of `dtype`."""
        if isinstance(value, Literal):
            return Anonymous(dtype.coerce(value.value))

        def operands(index: int) -> list[int]:
            op = graph.node(index).as_operation(dtype)
            return [] if op is None else [v.index for v in op.inputs if isinstance(v, Reference)]

        built: dict[int, Variable] = {}
        for index in _post_order(value.index, operands):
            node = graph.node(index)
            constant = node.as_constant(dtype)
            if constant is not None:
                built[index] = Named(constant.name, constant.value)
                continue
            op = node.as_operation(dtype)
            if op is None:
                raise IRValidationError(
                    f"{dtype.name} slot references node #{index} ({node.kind}), "
                    f"which does not produce {dtype.name}"
                )
            lhs, rhs = (
                built[v.index] if isinstance(v, Reference) else Anonymous(dtype.coerce(v.value))
                for v in op.inputs
            )
            built[index] = Operation(lhs, rhs, op.op, dtype)
        return built[value.index]


def _post_order(root: int, children: Callable[[int], list[int]]) -> list[int]:
    """Indices reachable from `root` through `children`, every node after its children.

    Uses an explicit stack: node and operation chains can be deeper than the
    interpreter's recursion limit.
    """
    order: list[int] = []
    entered: set[int] = set()
    finished: set[int] = set()
    stack: list[tuple[int, bool]] = [(root, False)]
    while stack:
        index, expanded = stack.pop()
        if expanded:
            finished.add(index)
            order.append(index)
            continue
        if index in entered:
            if index not in finished:
                raise IRValidationError(f"node #{index} depends on itself")
            continue
        entered.add(index)
        stack.append((index, True))
        stack.extend((child, False) for child in reversed(children(index)))
    return order


def compile_node(graph: NodeGraph, index: int, config: CompilerConfig | None = None) -> Expr:
    """Lower node `index` of `graph` into a fresh expression tree."""
    return LoweringPass(config or CompilerConfig()).run(graph, index)
