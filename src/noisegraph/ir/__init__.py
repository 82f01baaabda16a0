from .dtypes import DType, float64, uint32, unresolved
from .errors import IRValidationError
from .expr import (
    Anonymous,
    DistanceFunction,
    Expr,
    Named,
    Operation,
    OpType,
    ReturnType,
    SourceType,
    Variable,
    format_expr,
    iter_leaves,
    iter_variables,
    named_variables,
)
from .graph import NodeGraph, Wire
from .nodes import (
    AbsNode,
    AddNode,
    BasicMultiNode,
    BillowNode,
    BlendNode,
    CheckerboardNode,
    ClampNode,
    CombinerNode,
    ConstantNode,
    ControlPointNode,
    CurveNode,
    CylindersNode,
    DisplaceNode,
    ExponentNode,
    FbmNode,
    FractalNode,
    GeneratorNode,
    HybridMultiNode,
    MaxNode,
    MinNode,
    MultiplyNode,
    NegateNode,
    Node,
    NODE_KINDS,
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
    TransformNode,
    TranslatePointNode,
    TurbulenceNode,
    UnaryNode,
    ValueNode,
    WorleyNode,
)
from .values import Literal, NodeValue, Reference

__all__ = [
    "DType",
    "float64",
    "uint32",
    "unresolved",
    "IRValidationError",
    "NodeGraph",
    "Wire",
    "Literal",
    "Reference",
    "NodeValue",
    "Expr",
    "Variable",
    "Anonymous",
    "Named",
    "Operation",
    "OpType",
    "SourceType",
    "DistanceFunction",
    "ReturnType",
    "format_expr",
    "iter_leaves",
    "iter_variables",
    "named_variables",
    "Node",
    "NODE_KINDS",
    "GeneratorNode",
    "OpenSimplexNode",
    "PerlinNode",
    "PerlinSurfletNode",
    "SimplexNode",
    "SuperSimplexNode",
    "ValueNode",
    "FractalNode",
    "BasicMultiNode",
    "BillowNode",
    "FbmNode",
    "HybridMultiNode",
    "RidgedMultiNode",
    "CheckerboardNode",
    "CylindersNode",
    "WorleyNode",
    "CombinerNode",
    "AddNode",
    "MaxNode",
    "MinNode",
    "MultiplyNode",
    "PowerNode",
    "UnaryNode",
    "AbsNode",
    "NegateNode",
    "TransformNode",
    "RotatePointNode",
    "ScalePointNode",
    "TranslatePointNode",
    "BlendNode",
    "SelectNode",
    "ClampNode",
    "ScaleBiasNode",
    "ExponentNode",
    "ControlPointNode",
    "CurveNode",
    "TerraceNode",
    "DisplaceNode",
    "TurbulenceNode",
    "ConstantNode",
    "OperationNode",
]
