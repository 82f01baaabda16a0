"""Node model: the closed set of node kinds a noise graph is built from.

Nodes are plain mutable records owned by the graph store. Slots that take the
output of another noise node hold that node's index (or None when nothing is
wired in). Scalar parameter slots hold a `NodeValue`: either a literal or a
reference to a constant/operation node producing a value of the slot's dtype.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from typing import TYPE_CHECKING, TypeVar

from .dtypes import DType, float64, uint32, unresolved
from .errors import IRValidationError
from .expr import DistanceFunction, OpType, ReturnType, SourceType
from .values import Literal, NodeValue, Reference

if TYPE_CHECKING:
	from .graph import NodeGraph


# Parameter defaults, matching the noise library the evaluator is built on.
DEFAULT_SEED = 0
FRACTAL_OCTAVES = 6
FRACTAL_FREQUENCY = 2.0
FRACTAL_LACUNARITY = math.pi * 2.0 / 3.0
FRACTAL_PERSISTENCE = 0.5
RIDGED_FREQUENCY = 1.0
RIDGED_PERSISTENCE = 1.0
RIDGED_ATTENUATION = 2.0
CYLINDERS_FREQUENCY = 1.0
WORLEY_FREQUENCY = 1.0
TURBULENCE_FREQUENCY = 1.0
TURBULENCE_POWER = 1.0
TURBULENCE_ROUGHNESS = 3
CHECKERBOARD_SIZE = 0
CONSTANT_NAME = "name"

N = TypeVar("N", bound="Node")


def _source(count: int | None = None):
	"""A slot wired to another noise node's output (by index)."""
	if count is None:
		return field(default=None, metadata={"source": True})
	return field(default_factory=lambda: [None] * count, metadata={"source": True})


def _points():
	"""A list of control point pins, each wired to a point or value node (by index)."""
	return field(default_factory=list, metadata={"source": True, "points": True})


def _value(default: float | int):
	return field(default=Literal(default))


def _axes(default: float):
	return field(default_factory=lambda: [Literal(default) for _ in range(4)])


@dataclass(slots=True)
class Node:
	"""Base class for graph nodes."""

	@property
	def kind(self) -> str:
		name = self.__class__.__name__
		return name[: -len("Node")] if name.endswith("Node") else name

	@property
	def produces_expr(self) -> bool:
		"""Whether this node compiles to an expression tree of its own."""
		return True

	def references(self) -> list[int]:
		"""Indices of every node this one reads from, in field order."""
		found: list[int] = []
		for f in fields(self):
			value = getattr(self, f.name)
			items = value if isinstance(value, list) else [value]
			if f.metadata.get("source"):
				found.extend(i for i in items if i is not None)
			else:
				found.extend(v.index for v in items if isinstance(v, Reference))
		return found

	def upstream(self) -> list[int]:
		"""Indices of the noise nodes whose expressions feed this one's slots.

		Control point pins are not included: they hold points and scalar
		values, not noise expressions.
		"""
		found: list[int] = []
		for f in fields(self):
			if not f.metadata.get("source") or f.metadata.get("points"):
				continue
			value = getattr(self, f.name)
			items = value if isinstance(value, list) else [value]
			found.extend(i for i in items if i is not None)
		return found

	# -------------------------------------------------------------------------
	# Narrowing accessors: return the node when it has the requested kind,
	# None otherwise.
	# -------------------------------------------------------------------------

	def _narrow(self, cls: type[N]) -> N | None:
		return self if isinstance(self, cls) else None

	def as_blend(self) -> BlendNode | None:
		return self._narrow(BlendNode)

	def as_checkerboard(self) -> CheckerboardNode | None:
		return self._narrow(CheckerboardNode)

	def as_clamp(self) -> ClampNode | None:
		return self._narrow(ClampNode)

	def as_combiner(self) -> CombinerNode | None:
		return self._narrow(CombinerNode)

	def as_constant(self, dtype: DType | None = None) -> ConstantNode | None:
		node = self._narrow(ConstantNode)
		if node is None or (dtype is not None and node.dtype is not dtype):
			return None
		return node

	def as_operation(self, dtype: DType | None = None) -> OperationNode | None:
		node = self._narrow(OperationNode)
		if node is None or (dtype is not None and node.dtype is not dtype):
			return None
		return node

	def as_control_point(self) -> ControlPointNode | None:
		return self._narrow(ControlPointNode)

	def as_curve(self) -> CurveNode | None:
		return self._narrow(CurveNode)

	def as_cylinders(self) -> CylindersNode | None:
		return self._narrow(CylindersNode)

	def as_displace(self) -> DisplaceNode | None:
		return self._narrow(DisplaceNode)

	def as_exponent(self) -> ExponentNode | None:
		return self._narrow(ExponentNode)

	def as_fractal(self) -> FractalNode | None:
		return self._narrow(FractalNode)

	def as_generator(self) -> GeneratorNode | None:
		return self._narrow(GeneratorNode)

	def as_rigid_fractal(self) -> RidgedMultiNode | None:
		return self._narrow(RidgedMultiNode)

	def as_scale_bias(self) -> ScaleBiasNode | None:
		return self._narrow(ScaleBiasNode)

	def as_select(self) -> SelectNode | None:
		return self._narrow(SelectNode)

	def as_terrace(self) -> TerraceNode | None:
		return self._narrow(TerraceNode)

	def as_transform(self) -> TransformNode | None:
		return self._narrow(TransformNode)

	def as_turbulence(self) -> TurbulenceNode | None:
		return self._narrow(TurbulenceNode)

	def as_unary(self) -> UnaryNode | None:
		return self._narrow(UnaryNode)

	def as_worley(self) -> WorleyNode | None:
		return self._narrow(WorleyNode)

	# -------------------------------------------------------------------------
	# Direct scalar evaluation (constant and operation nodes only)
	# -------------------------------------------------------------------------

	def eval_f64(self, graph: NodeGraph) -> float:
		return self._eval(graph, float64)

	def eval_u32(self, graph: NodeGraph) -> int:
		return self._eval(graph, uint32)

	def _eval(self, graph: NodeGraph, dtype: DType):
		raise IRValidationError(f"{self.kind} node cannot be evaluated as {dtype.name}")


def resolve(value: NodeValue, graph: NodeGraph, dtype: DType) -> float | int:
	"""Resolve a parameter slot to a number: literals directly, references through the node they name."""
	if isinstance(value, Reference):
		return graph.node(value.index)._eval(graph, dtype)
	if value.value is None:
		raise IRValidationError(f"empty literal in a {dtype.name} slot")
	return value.value


# =============================================================================
# Noise sources
# =============================================================================


@dataclass(slots=True)
class GeneratorNode(Node):
	seed: NodeValue = _value(DEFAULT_SEED)


@dataclass(slots=True)
class OpenSimplexNode(GeneratorNode):
	pass


@dataclass(slots=True)
class PerlinNode(GeneratorNode):
	pass


@dataclass(slots=True)
class PerlinSurfletNode(GeneratorNode):
	pass


@dataclass(slots=True)
class SimplexNode(GeneratorNode):
	pass


@dataclass(slots=True)
class SuperSimplexNode(GeneratorNode):
	pass


@dataclass(slots=True)
class ValueNode(GeneratorNode):
	pass


@dataclass(slots=True)
class FractalNode(Node):
	source_type: SourceType = SourceType.PERLIN
	seed: NodeValue = _value(DEFAULT_SEED)
	octaves: NodeValue = _value(FRACTAL_OCTAVES)
	frequency: NodeValue = _value(FRACTAL_FREQUENCY)
	lacunarity: NodeValue = _value(FRACTAL_LACUNARITY)
	persistence: NodeValue = _value(FRACTAL_PERSISTENCE)


@dataclass(slots=True)
class BasicMultiNode(FractalNode):
	pass


@dataclass(slots=True)
class BillowNode(FractalNode):
	pass


@dataclass(slots=True)
class FbmNode(FractalNode):
	pass


@dataclass(slots=True)
class HybridMultiNode(FractalNode):
	pass


@dataclass(slots=True)
class RidgedMultiNode(Node):
	source_type: SourceType = SourceType.PERLIN
	seed: NodeValue = _value(DEFAULT_SEED)
	octaves: NodeValue = _value(FRACTAL_OCTAVES)
	frequency: NodeValue = _value(RIDGED_FREQUENCY)
	lacunarity: NodeValue = _value(FRACTAL_LACUNARITY)
	persistence: NodeValue = _value(RIDGED_PERSISTENCE)
	attenuation: NodeValue = _value(RIDGED_ATTENUATION)


@dataclass(slots=True)
class CheckerboardNode(Node):
	size: NodeValue = _value(CHECKERBOARD_SIZE)


@dataclass(slots=True)
class CylindersNode(Node):
	frequency: NodeValue = _value(CYLINDERS_FREQUENCY)


@dataclass(slots=True)
class WorleyNode(Node):
	seed: NodeValue = _value(DEFAULT_SEED)
	frequency: NodeValue = _value(WORLEY_FREQUENCY)
	distance_function: DistanceFunction = DistanceFunction.EUCLIDEAN
	return_type: ReturnType = ReturnType.VALUE


# =============================================================================
# Operators over noise sources
# =============================================================================


@dataclass(slots=True)
class CombinerNode(Node):
	sources: list[int | None] = _source(2)


@dataclass(slots=True)
class AddNode(CombinerNode):
	pass


@dataclass(slots=True)
class MaxNode(CombinerNode):
	pass


@dataclass(slots=True)
class MinNode(CombinerNode):
	pass


@dataclass(slots=True)
class MultiplyNode(CombinerNode):
	pass


@dataclass(slots=True)
class PowerNode(CombinerNode):
	pass


@dataclass(slots=True)
class UnaryNode(Node):
	source: int | None = _source()


@dataclass(slots=True)
class AbsNode(UnaryNode):
	pass


@dataclass(slots=True)
class NegateNode(UnaryNode):
	pass


@dataclass(slots=True)
class TransformNode(Node):
	source: int | None = _source()
	axes: list[NodeValue] = _axes(0.0)


@dataclass(slots=True)
class RotatePointNode(TransformNode):
	pass


@dataclass(slots=True)
class ScalePointNode(TransformNode):
	axes: list[NodeValue] = _axes(1.0)


@dataclass(slots=True)
class TranslatePointNode(TransformNode):
	pass


@dataclass(slots=True)
class BlendNode(Node):
	sources: list[int | None] = _source(2)
	control: int | None = _source()


@dataclass(slots=True)
class SelectNode(Node):
	sources: list[int | None] = _source(2)
	control: int | None = _source()
	lower_bound: NodeValue = _value(0.0)
	upper_bound: NodeValue = _value(1.0)
	falloff: NodeValue = _value(0.0)


@dataclass(slots=True)
class ClampNode(Node):
	source: int | None = _source()
	lower_bound: NodeValue = _value(0.0)
	upper_bound: NodeValue = _value(0.0)


@dataclass(slots=True)
class ScaleBiasNode(Node):
	source: int | None = _source()
	scale: NodeValue = _value(0.0)
	bias: NodeValue = _value(0.0)


@dataclass(slots=True)
class ExponentNode(Node):
	source: int | None = _source()
	exponent: NodeValue = _value(1.0)


@dataclass(slots=True)
class ControlPointNode(Node):
	"""One (input, output) pair of a curve. Only meaningful inside a CurveNode."""

	input: NodeValue = _value(0.0)
	output: NodeValue = _value(0.0)

	@property
	def produces_expr(self) -> bool:
		return False


@dataclass(slots=True)
class CurveNode(Node):
	"""Remaps its source through a curve.

	`control_points` index ControlPointNode entries; disconnected entries are
	kept in place so the editor can show empty pins, and skipped on lowering.
	"""

	source: int | None = _source()
	control_points: list[int | None] = _points()


@dataclass(slots=True)
class TerraceNode(Node):
	"""Terrace remap. `control_points` index float64 constant/operation nodes."""

	source: int | None = _source()
	inverted: bool = False
	control_points: list[int | None] = _points()


@dataclass(slots=True)
class DisplaceNode(Node):
	source: int | None = _source()
	axes: list[int | None] = _source(4)


@dataclass(slots=True)
class TurbulenceNode(Node):
	source: int | None = _source()
	source_type: SourceType = SourceType.PERLIN
	seed: NodeValue = _value(DEFAULT_SEED)
	frequency: NodeValue = _value(TURBULENCE_FREQUENCY)
	power: NodeValue = _value(TURBULENCE_POWER)
	roughness: NodeValue = _value(TURBULENCE_ROUGHNESS)


# =============================================================================
# Constants and arithmetic
# =============================================================================


@dataclass(slots=True)
class ConstantNode(Node):
	"""A user-named typed value. The name survives into compiled trees."""

	name: str = CONSTANT_NAME
	value: float | int = 0.0
	dtype: DType = float64

	def __post_init__(self) -> None:
		if not self.dtype.is_concrete:
			raise IRValidationError("constants must have a concrete dtype")
		self.value = self.dtype.coerce(self.value)

	@property
	def produces_expr(self) -> bool:
		return self.dtype is float64

	def _eval(self, graph: NodeGraph, dtype: DType):
		if self.dtype is not dtype:
			return Node._eval(self, graph, dtype)
		return self.value


@dataclass(slots=True)
class OperationNode(Node):
	"""Binary arithmetic over constants.

	An operation starts out `unresolved` and is committed to float64 or uint32
	by type propagation once its component is wired to a typed context. All
	nodes of one component always share a dtype.
	"""

	inputs: list[NodeValue] = field(default_factory=lambda: [Literal(None), Literal(None)])
	op: OpType = OpType.ADD
	dtype: DType = unresolved

	def __post_init__(self) -> None:
		if len(self.inputs) != 2:
			raise IRValidationError("Operation expects exactly 2 inputs")

	@classmethod
	def generic(cls, op: OpType = OpType.ADD) -> OperationNode:
		return cls(op=op)

	@classmethod
	def typed(cls, op: OpType, dtype: DType, lhs: NodeValue | None = None, rhs: NodeValue | None = None) -> OperationNode:
		default = Literal(dtype.default)
		return cls(inputs=[lhs or default, rhs or default], op=op, dtype=dtype)

	@property
	def is_generic(self) -> bool:
		return not self.dtype.is_concrete

	@property
	def produces_expr(self) -> bool:
		return self.dtype is float64

	def retyped(self, dtype: DType) -> OperationNode:
		"""Copy of this node declared to hold `dtype` values.

		References are kept. Literals reset to the new dtype's default, since a
		literal typed for one dtype has no meaning in another.
		"""
		inputs = [v if isinstance(v, Reference) else Literal(dtype.default) for v in self.inputs]
		return OperationNode(inputs=inputs, op=self.op, dtype=dtype)

	def _eval(self, graph: NodeGraph, dtype: DType):
		if self.dtype is not dtype:
			return Node._eval(self, graph, dtype)
		return _evaluate_operations(self, graph, dtype)


def _evaluate_operations(root: OperationNode, graph: NodeGraph, dtype: DType) -> float | int:
	"""Evaluate `root` and the operations it references, children first.

	Operation chains can be thousands of nodes deep, so this keeps an explicit
	stack instead of recursing. Each referenced node is evaluated once.
	"""
	done: dict[int, float | int] = {}
	active: set[int] = set()
	# -1 stands for `root`, which may be evaluated without being in a graph.
	stack: list[tuple[int, OperationNode]] = [(-1, root)]

	while stack:
		index, node = stack[-1]
		waiting = False
		for value in node.inputs:
			if not isinstance(value, Reference) or value.index in done:
				continue
			if value.index in active:
				raise IRValidationError(f"operation #{value.index} depends on itself")
			target = graph.node(value.index)
			op = target.as_operation(dtype)
			if op is None:
				done[value.index] = target._eval(graph, dtype)
			else:
				active.add(value.index)
				stack.append((value.index, op))
				waiting = True
				break
		if waiting:
			continue

		stack.pop()
		lhs, rhs = (done[v.index] if isinstance(v, Reference) else resolve(v, graph, dtype) for v in node.inputs)
		active.discard(index)
		done[index] = node.op.apply(lhs, rhs, dtype)

	return done[-1]


NODE_KINDS: tuple[type[Node], ...] = (
	AbsNode,
	AddNode,
	BasicMultiNode,
	BillowNode,
	BlendNode,
	CheckerboardNode,
	ClampNode,
	ConstantNode,
	ControlPointNode,
	CurveNode,
	CylindersNode,
	DisplaceNode,
	ExponentNode,
	FbmNode,
	HybridMultiNode,
	MaxNode,
	MinNode,
	MultiplyNode,
	NegateNode,
	OpenSimplexNode,
	OperationNode,
	PerlinNode,
	PerlinSurfletNode,
	PowerNode,
	RidgedMultiNode,
	RotatePointNode,
	ScaleBiasNode,
	ScalePointNode,
	SelectNode,
	SimplexNode,
	SuperSimplexNode,
	TerraceNode,
	TranslatePointNode,
	TurbulenceNode,
	ValueNode,
	WorleyNode,
)
