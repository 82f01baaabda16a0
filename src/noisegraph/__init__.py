"""noisegraph: the compile/type-inference core of a procedural-noise node editor.

The editor owns a mutable graph of noise nodes. This package turns a node into
an immutable expression tree for the noise evaluator, keeps polymorphic
arithmetic nodes consistently typed as the user rewires them, and evaluates
constant arithmetic for inline readouts.
"""

from .evaluator import ScalarEvaluator, evaluate
from .ir.dtypes import DType, float64, uint32, unresolved
from .ir.errors import IRValidationError
from .ir.graph import NodeGraph
from .ir.values import Literal, Reference
from .passes.lowering import CompilerConfig, LoweringPass, compile_node
from .passes.propagation import demote_from_f64, demote_from_u32, promote_to_f64, promote_to_u32

__all__ = [
    "DType",
    "float64",
    "uint32",
    "unresolved",
    "IRValidationError",
    "NodeGraph",
    "Literal",
    "Reference",
    "CompilerConfig",
    "LoweringPass",
    "compile_node",
    "promote_to_f64",
    "promote_to_u32",
    "demote_from_f64",
    "demote_from_u32",
    "ScalarEvaluator",
    "evaluate",
]
