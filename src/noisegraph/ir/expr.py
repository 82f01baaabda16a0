"""Immutable expression trees produced by the lowering pass.

An expression tree is what the noise evaluator consumes. Every noise node kind
has exactly one `Expr` subclass here. Scalar parameters are carried as leaf
values (`Variable`):

- `Anonymous` for a literal typed into the slot,
- `Named` for a value coming from a user-named constant node, so an exporter
  can emit a readable identifier for it,
- `Operation` for nested constant arithmetic.

All classes are frozen, so trees compare and hash structurally.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, fields
from typing import Callable, Iterator, TypeVar

from .dtypes import DType, float64, uint32

T = TypeVar("T")


# =============================================================================
# Enumerations
# =============================================================================


class OpType(enum.Enum):
	ADD = "add"
	SUBTRACT = "subtract"
	MULTIPLY = "multiply"
	DIVIDE = "divide"

	@property
	def symbol(self) -> str:
		return _OP_SYMBOLS[self]

	def apply(self, lhs: float | int, rhs: float | int, dtype: DType) -> float | int:
		"""Apply the operator with the live-editing numeric policy.

		float64 division by zero is 0.0. uint32 arithmetic is checked: any
		overflow, underflow or division by zero is 0.
		"""
		if dtype is uint32:
			return self._apply_u32(int(lhs), int(rhs))
		if dtype is not float64:
			raise ValueError(f"cannot apply {self.value} to {dtype.name} operands")

		lhs, rhs = float(lhs), float(rhs)
		if self is OpType.ADD:
			return lhs + rhs
		if self is OpType.SUBTRACT:
			return lhs - rhs
		if self is OpType.MULTIPLY:
			return lhs * rhs
		return lhs / rhs if rhs != 0.0 else 0.0

	def _apply_u32(self, lhs: int, rhs: int) -> int:
		if self is OpType.DIVIDE:
			return lhs // rhs if rhs != 0 else 0
		if self is OpType.ADD:
			result = lhs + rhs
		elif self is OpType.SUBTRACT:
			result = lhs - rhs
		else:
			result = lhs * rhs
		if not 0 <= result <= uint32.max:
			return 0
		return result


_OP_SYMBOLS = {
	OpType.ADD: "+",
	OpType.SUBTRACT: "-",
	OpType.MULTIPLY: "*",
	OpType.DIVIDE: "/",
}


class SourceType(enum.Enum):
	"""Basis function a fractal or turbulence node is built from."""

	OPEN_SIMPLEX = "open_simplex"
	PERLIN = "perlin"
	PERLIN_SURFLET = "perlin_surflet"
	SIMPLEX = "simplex"
	SUPER_SIMPLEX = "super_simplex"
	VALUE = "value"
	WORLEY = "worley"


class DistanceFunction(enum.Enum):
	CHEBYSHEV = "chebyshev"
	EUCLIDEAN = "euclidean"
	EUCLIDEAN_SQUARED = "euclidean_squared"
	MANHATTAN = "manhattan"


class ReturnType(enum.Enum):
	DISTANCE = "distance"
	VALUE = "value"


# =============================================================================
# Leaf values
# =============================================================================


@dataclass(frozen=True, slots=True)
class Variable:
	def evaluate(self) -> float | int:
		raise NotImplementedError

	def walk(self) -> Iterator[Variable]:
		"""Yield this value and, for operations, every nested operand."""
		yield self


@dataclass(frozen=True, slots=True)
class Anonymous(Variable):
	value: float | int

	def evaluate(self) -> float | int:
		return self.value

	def __str__(self) -> str:
		return repr(self.value)


@dataclass(frozen=True, slots=True)
class Named(Variable):
	name: str
	value: float | int

	def evaluate(self) -> float | int:
		return self.value

	def __str__(self) -> str:
		return f"{self.name}={self.value!r}"


@dataclass(frozen=True, slots=True)
class Operation(Variable):
	"""Nested constant arithmetic.

	Operation chains in a graph can be thousands of nodes long, so every
	traversal here (evaluation, walking, rendering, comparison and hashing)
	keeps an explicit stack instead of recursing through the operands.
	"""

	lhs: Variable
	rhs: Variable
	op: OpType
	dtype: DType = float64

	def _fold(self, leaf: Callable[[Variable], T], combine: Callable[[Operation, T, T], T]) -> T:
		"""Reduce the tree bottom-up: `leaf` on non-operations, `combine` on operations."""
		results: list[T] = []
		pending: list[tuple[Variable, bool]] = [(self, False)]
		while pending:
			var, expanded = pending.pop()
			if not isinstance(var, Operation):
				results.append(leaf(var))
			elif expanded:
				rhs = results.pop()
				lhs = results.pop()
				results.append(combine(var, lhs, rhs))
			else:
				pending.append((var, True))
				pending.append((var.rhs, False))
				pending.append((var.lhs, False))
		return results[0]

	def evaluate(self) -> float | int:
		return self._fold(lambda v: v.evaluate(), lambda o, lhs, rhs: o.op.apply(lhs, rhs, o.dtype))

	def walk(self) -> Iterator[Variable]:
		pending: list[Variable] = [self]
		while pending:
			var = pending.pop()
			yield var
			if isinstance(var, Operation):
				pending.append(var.rhs)
				pending.append(var.lhs)

	def __str__(self) -> str:
		return self._fold(str, lambda o, lhs, rhs: f"({lhs} {o.op.symbol} {rhs})")

	def __eq__(self, other: object) -> bool:
		if not isinstance(other, Operation):
			return NotImplemented
		pending: list[tuple[Variable, Variable]] = [(self, other)]
		while pending:
			a, b = pending.pop()
			if a is b:
				continue
			if type(a) is not type(b):
				return False
			if isinstance(a, Operation):
				if a.op is not b.op or a.dtype != b.dtype:
					return False
				pending.append((a.lhs, b.lhs))
				pending.append((a.rhs, b.rhs))
			elif a != b:
				return False
		return True

	def __hash__(self) -> int:
		# Operands have fixed arity, so the pre-order sequence determines the tree.
		return hash(tuple((v.op, v.dtype) if isinstance(v, Operation) else v for v in self.walk()))


# =============================================================================
# Expressions
# =============================================================================


@dataclass(frozen=True, slots=True)
class Expr:
	@property
	def kind(self) -> str:
		name = self.__class__.__name__
		return name[: -len("Expr")] if name.endswith("Expr") else name


@dataclass(frozen=True, slots=True)
class ConstantExpr(Expr):
	value: Variable


@dataclass(frozen=True, slots=True)
class GeneratorExpr(Expr):
	seed: Variable


@dataclass(frozen=True, slots=True)
class OpenSimplexExpr(GeneratorExpr):
	pass


@dataclass(frozen=True, slots=True)
class PerlinExpr(GeneratorExpr):
	pass


@dataclass(frozen=True, slots=True)
class PerlinSurfletExpr(GeneratorExpr):
	pass


@dataclass(frozen=True, slots=True)
class SimplexExpr(GeneratorExpr):
	pass


@dataclass(frozen=True, slots=True)
class SuperSimplexExpr(GeneratorExpr):
	pass


@dataclass(frozen=True, slots=True)
class ValueExpr(GeneratorExpr):
	pass


@dataclass(frozen=True, slots=True)
class FractalExpr(Expr):
	source_type: SourceType
	seed: Variable
	octaves: Variable
	frequency: Variable
	lacunarity: Variable
	persistence: Variable


@dataclass(frozen=True, slots=True)
class BasicMultiExpr(FractalExpr):
	pass


@dataclass(frozen=True, slots=True)
class BillowExpr(FractalExpr):
	pass


@dataclass(frozen=True, slots=True)
class FbmExpr(FractalExpr):
	pass


@dataclass(frozen=True, slots=True)
class HybridMultiExpr(FractalExpr):
	pass


@dataclass(frozen=True, slots=True)
class RidgedMultiExpr(Expr):
	source_type: SourceType
	seed: Variable
	octaves: Variable
	frequency: Variable
	lacunarity: Variable
	persistence: Variable
	attenuation: Variable


@dataclass(frozen=True, slots=True)
class CombinerExpr(Expr):
	sources: tuple[Expr, Expr]


@dataclass(frozen=True, slots=True)
class AddExpr(CombinerExpr):
	pass


@dataclass(frozen=True, slots=True)
class MaxExpr(CombinerExpr):
	pass


@dataclass(frozen=True, slots=True)
class MinExpr(CombinerExpr):
	pass


@dataclass(frozen=True, slots=True)
class MultiplyExpr(CombinerExpr):
	pass


@dataclass(frozen=True, slots=True)
class PowerExpr(CombinerExpr):
	pass


@dataclass(frozen=True, slots=True)
class UnaryExpr(Expr):
	source: Expr


@dataclass(frozen=True, slots=True)
class AbsExpr(UnaryExpr):
	pass


@dataclass(frozen=True, slots=True)
class NegateExpr(UnaryExpr):
	pass


@dataclass(frozen=True, slots=True)
class TransformExpr(Expr):
	source: Expr
	axes: tuple[Variable, Variable, Variable, Variable]


@dataclass(frozen=True, slots=True)
class RotatePointExpr(TransformExpr):
	pass


@dataclass(frozen=True, slots=True)
class ScalePointExpr(TransformExpr):
	pass


@dataclass(frozen=True, slots=True)
class TranslatePointExpr(TransformExpr):
	pass


@dataclass(frozen=True, slots=True)
class BlendExpr(Expr):
	sources: tuple[Expr, Expr]
	control: Expr


@dataclass(frozen=True, slots=True)
class SelectExpr(Expr):
	sources: tuple[Expr, Expr]
	control: Expr
	lower_bound: Variable
	upper_bound: Variable
	falloff: Variable


@dataclass(frozen=True, slots=True)
class ClampExpr(Expr):
	source: Expr
	lower_bound: Variable
	upper_bound: Variable


@dataclass(frozen=True, slots=True)
class ScaleBiasExpr(Expr):
	source: Expr
	scale: Variable
	bias: Variable


@dataclass(frozen=True, slots=True)
class ExponentExpr(Expr):
	source: Expr
	exponent: Variable


@dataclass(frozen=True, slots=True)
class ControlPoint:
	input_value: Variable
	output_value: Variable


@dataclass(frozen=True, slots=True)
class CurveExpr(Expr):
	source: Expr
	control_points: tuple[ControlPoint, ...]


@dataclass(frozen=True, slots=True)
class TerraceExpr(Expr):
	source: Expr
	inverted: bool
	control_points: tuple[Variable, ...]


@dataclass(frozen=True, slots=True)
class DisplaceExpr(Expr):
	source: Expr
	axes: tuple[Expr, Expr, Expr, Expr]


@dataclass(frozen=True, slots=True)
class TurbulenceExpr(Expr):
	source: Expr
	source_type: SourceType
	seed: Variable
	frequency: Variable
	power: Variable
	roughness: Variable


@dataclass(frozen=True, slots=True)
class CheckerboardExpr(Expr):
	size: Variable


@dataclass(frozen=True, slots=True)
class CylindersExpr(Expr):
	frequency: Variable


@dataclass(frozen=True, slots=True)
class WorleyExpr(Expr):
	seed: Variable
	frequency: Variable
	distance_function: DistanceFunction
	return_type: ReturnType


# =============================================================================
# Traversal helpers
# =============================================================================


def iter_leaves(expr: Expr) -> Iterator[Variable]:
	"""Yield every top-level leaf value of `expr`, depth first, in field order."""
	for f in fields(expr):
		yield from _leaves_in(getattr(expr, f.name))


def _leaves_in(value: object) -> Iterator[Variable]:
	if isinstance(value, Variable):
		yield value
	elif isinstance(value, Expr):
		yield from iter_leaves(value)
	elif isinstance(value, ControlPoint):
		yield value.input_value
		yield value.output_value
	elif isinstance(value, tuple):
		for item in value:
			yield from _leaves_in(item)


def iter_variables(expr: Expr) -> Iterator[Variable]:
	"""Like `iter_leaves`, but also descends into operation operands."""
	for leaf in iter_leaves(expr):
		yield from leaf.walk()


def named_variables(expr: Expr) -> dict[str, float | int]:
	"""Map every named constant used by `expr` to its value.

	An exporter declares these once and refers to them by name. When two
	constants share a name the one visited last wins.
	"""
	return {var.name: var.value for var in iter_variables(expr) if isinstance(var, Named)}


def format_expr(expr: Expr, *, indent: str = "  ") -> str:
	"""Render `expr` as an indented multi-line string.

	Example output:
		Fbm
		  source_type: PERLIN
		  seed: 0
		  frequency: (base=2.0 * 0.5)
		  ...
	"""
	lines: list[str] = []
	_format_into(lines, expr, depth=0, indent=indent)
	return "\n".join(lines)


def _format_into(lines: list[str], expr: Expr, *, depth: int, indent: str) -> None:
	pad = indent * depth
	lines.append(f"{pad}{expr.kind}")
	for f in fields(expr):
		value = getattr(expr, f.name)
		_format_field(lines, f.name, value, depth=depth + 1, indent=indent)


def _format_field(lines: list[str], label: str, value: object, *, depth: int, indent: str) -> None:
	pad = indent * depth
	if isinstance(value, Expr):
		lines.append(f"{pad}{label}:")
		_format_into(lines, value, depth=depth + 1, indent=indent)
	elif isinstance(value, tuple):
		lines.append(f"{pad}{label}: [{len(value)}]")
		for i, item in enumerate(value):
			_format_field(lines, f"[{i}]", item, depth=depth + 1, indent=indent)
	elif isinstance(value, ControlPoint):
		lines.append(f"{pad}{label}: {value.input_value} -> {value.output_value}")
	elif isinstance(value, enum.Enum):
		lines.append(f"{pad}{label}: {value.name}")
	else:
		lines.append(f"{pad}{label}: {value}")
