from __future__ import annotations

import logging
import sys
from pathlib import Path

repo_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(repo_root / "src"))

from noisegraph import ScalarEvaluator, compile_node
from noisegraph.ir import (
    BlendNode,
    ConstantNode,
    FbmNode,
    Literal,
    NodeGraph,
    OperationNode,
    OpType,
    PerlinNode,
    Reference,
    RidgedMultiNode,
    TerraceNode,
    float64,
    format_expr,
    named_variables,
    uint32,
)
from noisegraph.passes import ComponentTypeValidator, promote_to_f64


def build_terrain() -> tuple[NodeGraph, int]:
    g = NodeGraph(name="terrain")
    seed = g.add(ConstantNode(name="world_seed", value=1337, dtype=uint32))
    base = g.add(ConstantNode(name="base_freq", value=0.75, dtype=float64))

    # base_freq * 2, shared by both fractals
    doubled = g.add(OperationNode.generic(OpType.MULTIPLY))
    g.node(doubled).inputs[0] = Reference(base)
    g.connect(base, doubled, "inputs[0]")
    promote_to_f64(g, doubled)
    g.node(doubled).inputs[1] = Literal(2.0)

    hills = g.add(FbmNode(seed=Reference(seed), frequency=Reference(base)))
    ridges = g.add(RidgedMultiNode(seed=Reference(seed), frequency=Reference(doubled)))
    mask = g.add(PerlinNode(seed=Reference(seed)))
    for out, node, slot in (
        (seed, hills, "seed"),
        (base, hills, "frequency"),
        (seed, ridges, "seed"),
        (doubled, ridges, "frequency"),
        (seed, mask, "seed"),
    ):
        g.connect(out, node, slot)

    blend = g.add(BlendNode(sources=[hills, ridges], control=mask))
    g.connect(hills, blend, "sources[0]")
    g.connect(ridges, blend, "sources[1]")
    g.connect(mask, blend, "control")

    low = g.add(ConstantNode(name="shore", value=-0.2, dtype=float64))
    high = g.add(ConstantNode(name="peak", value=0.8, dtype=float64))
    terrace = g.add(TerraceNode(source=blend, control_points=[low, high]))
    g.connect(blend, terrace)
    g.connect(low, terrace, "control_points[0]")
    g.connect(high, terrace, "control_points[1]")
    return g, terrace


def main() -> None:
    logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    print("Building terrain graph...")
    g, out = build_terrain()
    print(g.summary())

    print("\nChecking operation components...")
    ComponentTypeValidator().run(g)
    for line in ComponentTypeValidator.describe(g):
        print(f"  {line}")

    print("\nReadouts:")
    readout = ScalarEvaluator(g)
    for index, node in g:
        if node.as_constant() is not None or node.as_operation() is not None:
            print(f"  #{index} {node.kind}: {readout.readout(index)}")

    print("\nCompiling output node...")
    tree = compile_node(g, out)
    print(format_expr(tree))
    print(f"\nNamed variables: {named_variables(tree)}")


if __name__ == "__main__":
    main()
