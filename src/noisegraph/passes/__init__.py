from .lowering import CompilerConfig, LoweringPass, compile_node
from .propagation import (
    F64,
    U32,
    ComponentTypeValidator,
    TypeKind,
    TypePropagation,
    demote_from_f64,
    demote_from_u32,
    find_components,
    promote_to_f64,
    promote_to_u32,
)
from .scratch import ScratchBuffers, ScratchInUseError, thread_scratch

__all__ = [
    "CompilerConfig",
    "LoweringPass",
    "compile_node",
    "TypeKind",
    "F64",
    "U32",
    "TypePropagation",
    "promote_to_f64",
    "promote_to_u32",
    "demote_from_f64",
    "demote_from_u32",
    "find_components",
    "ComponentTypeValidator",
    "ScratchBuffers",
    "ScratchInUseError",
    "thread_scratch",
]
