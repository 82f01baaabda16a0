"""Type propagation tests: promote/demote walks over operation components.

Tests cover:
1. Promotion and demotion of a component pinned by one typed slot
2. Demotion aborting while the component is still pinned elsewhere
3. Exact restoration of node contents after promote + demote
4. The one-dtype-per-component invariant after every walk
5. Scratch buffer reuse and reentry protection
"""

import pytest

from noisegraph.ir import (
    ConstantNode,
    FbmNode,
    IRValidationError,
    Literal,
    NodeGraph,
    Operation,
    OperationNode,
    OpType,
    Reference,
    float64,
    uint32,
    unresolved,
)
from noisegraph.passes import (
    F64,
    ComponentTypeValidator,
    ScratchInUseError,
    TypePropagation,
    compile_node,
    demote_from_f64,
    demote_from_u32,
    find_components,
    promote_to_f64,
    promote_to_u32,
)
from noisegraph.passes.scratch import thread_scratch


# =============================================================================
# Helpers
# =============================================================================


def feed(graph: NodeGraph, out: int, op_index: int, slot: int) -> None:
    """Wire `out` into input `slot` of the operation at `op_index`."""
    graph.node(op_index).as_operation().inputs[slot] = Reference(out)
    graph.connect(out, op_index, f"inputs[{slot}]")


def connect_frequency(graph: NodeGraph, out: int, fractal: int) -> None:
    graph.node(fractal).as_fractal().frequency = Reference(out)
    graph.connect(out, fractal, "frequency")


def disconnect_frequency(graph: NodeGraph, out: int, fractal: int) -> None:
    graph.node(fractal).as_fractal().frequency = Literal(2.0)
    graph.disconnect(out, fractal, "frequency")


def dtypes(graph: NodeGraph, *indices: int) -> list:
    return [graph.node(i).dtype for i in indices]


@pytest.fixture
def chain(graph: NodeGraph) -> tuple[NodeGraph, int, int, int]:
    """Generic op A feeding generic op B, plus an unconnected Fbm node."""
    a = graph.add(OperationNode.generic(OpType.ADD))
    b = graph.add(OperationNode.generic(OpType.MULTIPLY))
    feed(graph, a, b, 0)
    fbm = graph.add(FbmNode())
    return graph, a, b, fbm


# =============================================================================
# 1. Promote / demote round trip
# =============================================================================


class TestPinnedByOneSlot:
    def test_connecting_to_float_slot_promotes_whole_component(self, chain) -> None:
        graph, a, b, fbm = chain

        connect_frequency(graph, b, fbm)
        rewritten = promote_to_f64(graph, b)

        assert rewritten == 2
        assert dtypes(graph, a, b) == [float64, float64]
        assert graph.node(b).op is OpType.MULTIPLY
        assert graph.node(b).inputs == [Reference(a), Literal(0.0)]

        tree = compile_node(graph, fbm)
        assert isinstance(tree.frequency, Operation)
        assert tree.frequency.op is OpType.MULTIPLY
        assert tree.frequency.lhs.op is OpType.ADD
        assert tree.frequency.evaluate() == 0.0

    def test_disconnecting_the_only_anchor_demotes_component(self, chain) -> None:
        graph, a, b, fbm = chain
        connect_frequency(graph, b, fbm)
        promote_to_f64(graph, b)

        disconnect_frequency(graph, b, fbm)
        rewritten = demote_from_f64(graph, b)

        assert rewritten == 2
        assert dtypes(graph, a, b) == [unresolved, unresolved]

    def test_promotion_before_wiring_gives_same_result(self, chain) -> None:
        graph, a, b, fbm = chain

        promote_to_f64(graph, b)
        connect_frequency(graph, b, fbm)

        assert dtypes(graph, a, b) == [float64, float64]

    def test_uint32_slot_mirrors_float_behaviour(self, chain) -> None:
        graph, a, b, fbm = chain
        graph.node(fbm).as_fractal().seed = Reference(b)
        graph.connect(b, fbm, "seed")

        assert promote_to_u32(graph, b) == 2
        assert dtypes(graph, a, b) == [uint32, uint32]
        assert graph.node(a).inputs == [Literal(0), Literal(0)]

        # Wrong-kind demotion leaves a uint32 component alone.
        graph.node(fbm).as_fractal().seed = Literal(0)
        graph.disconnect(b, fbm, "seed")
        assert demote_from_f64(graph, b) == 0
        assert dtypes(graph, a, b) == [uint32, uint32]

        assert demote_from_u32(graph, b) == 2
        assert dtypes(graph, a, b) == [unresolved, unresolved]

    def test_promote_then_demote_restores_exact_nodes(self, graph: NodeGraph) -> None:
        a = graph.add(OperationNode.generic(OpType.SUBTRACT))
        b = graph.add(OperationNode.generic(OpType.DIVIDE))
        c = graph.add(OperationNode.generic(OpType.ADD))
        feed(graph, a, b, 1)
        feed(graph, b, c, 0)
        feed(graph, a, c, 1)
        fbm = graph.add(FbmNode())
        before = dict(graph.nodes)

        connect_frequency(graph, c, fbm)
        promote_to_f64(graph, c)
        disconnect_frequency(graph, c, fbm)
        demote_from_f64(graph, c)

        for index in (a, b, c):
            assert graph.node(index) == before[index]
            # Walks swap in retyped copies rather than mutating nodes in place.
            assert graph.node(index) is not before[index]


# =============================================================================
# 2. Demotion blocked by another anchor
# =============================================================================


class TestDemotionAborts:
    def test_second_typed_consumer_keeps_component_typed(self, chain) -> None:
        graph, a, b, fbm = chain
        other = graph.add(FbmNode())
        connect_frequency(graph, b, fbm)
        promote_to_f64(graph, b)
        connect_frequency(graph, b, other)
        promote_to_f64(graph, b)

        disconnect_frequency(graph, b, fbm)
        rewritten = demote_from_f64(graph, b)

        assert rewritten == 0
        assert dtypes(graph, a, b) == [float64, float64]

    def test_anchor_deep_in_component_blocks_demotion(self, chain) -> None:
        graph, a, b, fbm = chain
        other = graph.add(FbmNode())
        connect_frequency(graph, a, other)
        promote_to_f64(graph, a)
        connect_frequency(graph, b, fbm)

        disconnect_frequency(graph, b, fbm)

        assert demote_from_f64(graph, b) == 0
        assert dtypes(graph, a, b) == [float64, float64]

    def test_typed_constant_input_keeps_component_typed(self, chain) -> None:
        graph, a, b, fbm = chain
        k = graph.add(ConstantNode(name="k", value=3.0, dtype=float64))
        promote_to_f64(graph, a)
        feed(graph, k, a, 1)
        connect_frequency(graph, b, fbm)

        disconnect_frequency(graph, b, fbm)

        assert demote_from_f64(graph, b) == 0
        assert dtypes(graph, a, b) == [float64, float64]
        assert graph.node(a).inputs[1] == Reference(k)

    def test_demoting_unresolved_component_is_a_no_op(self, chain) -> None:
        graph, a, b, _ = chain

        assert demote_from_f64(graph, b) == 0
        assert dtypes(graph, a, b) == [unresolved, unresolved]


# =============================================================================
# 3. Walk shape
# =============================================================================


def test_promotion_runs_both_directions_and_visits_each_node_once(graph: NodeGraph) -> None:
    # a -> b -> d, a -> c -> d
    a = graph.add(OperationNode.generic())
    b = graph.add(OperationNode.generic())
    c = graph.add(OperationNode.generic())
    d = graph.add(OperationNode.generic())
    feed(graph, a, b, 0)
    feed(graph, a, c, 0)
    feed(graph, b, d, 0)
    feed(graph, c, d, 1)

    assert promote_to_f64(graph, b) == 4
    assert dtypes(graph, a, b, c, d) == [float64] * 4


def test_promotion_stops_at_nodes_that_are_not_generic(graph: NodeGraph) -> None:
    a = graph.add(OperationNode.generic())
    fbm = graph.add(FbmNode())
    lonely = graph.add(OperationNode.generic())
    connect_frequency(graph, a, fbm)
    before = graph.node(fbm)

    assert promote_to_f64(graph, a) == 1
    assert graph.node(fbm) is before
    assert graph.node(lonely).dtype is unresolved


def test_every_walk_leaves_components_homogeneous(chain) -> None:
    graph, a, b, fbm = chain
    validator = ComponentTypeValidator()
    other = graph.add(FbmNode())

    steps = [
        lambda: (connect_frequency(graph, b, fbm), promote_to_f64(graph, b)),
        lambda: (connect_frequency(graph, a, other), promote_to_f64(graph, a)),
        lambda: (disconnect_frequency(graph, b, fbm), demote_from_f64(graph, b)),
        lambda: (disconnect_frequency(graph, a, other), demote_from_f64(graph, a)),
    ]
    for step in steps:
        step()
        validator.run(graph)

    assert dtypes(graph, a, b) == [unresolved, unresolved]


def test_validator_reports_mixed_component(graph: NodeGraph) -> None:
    a = graph.add(OperationNode.typed(OpType.ADD, float64))
    b = graph.add(OperationNode.generic())
    feed(graph, a, b, 0)

    with pytest.raises(IRValidationError, match="mixed dtypes"):
        ComponentTypeValidator().run(graph)


def test_find_components_groups_linked_operations(graph: NodeGraph) -> None:
    a = graph.add(OperationNode.generic())
    b = graph.add(OperationNode.generic())
    k = graph.add(ConstantNode(dtype=float64))
    c = graph.add(OperationNode.typed(OpType.ADD, float64, Reference(k)))
    feed(graph, a, b, 0)

    assert find_components(graph) == [{a, b}, {c}]
    assert ComponentTypeValidator.describe(graph) == [
        "unresolved component of 2 node(s): #0, #1",
        "float64 component of 1 node(s): #3",
    ]


# =============================================================================
# 4. Scratch storage
# =============================================================================


def test_scratch_buffers_come_back_empty(chain) -> None:
    graph, a, b, fbm = chain

    promote_to_f64(graph, b)
    demote_from_u32(graph, b)

    scratch = thread_scratch()
    assert not scratch.in_use
    assert scratch.visited == set()
    assert scratch.pending == []


def test_explicit_scratch_is_reused_across_calls(chain, scratch) -> None:
    graph, a, b, fbm = chain
    engine = TypePropagation(scratch=scratch)

    assert engine.promote(graph, b, F64) == 2
    assert engine.demote(graph, b, F64) == 2
    assert scratch.visited == set()
    assert scratch.pending == []


def test_nested_walk_on_same_scratch_is_refused(chain, scratch) -> None:
    graph, a, b, fbm = chain
    engine = TypePropagation(scratch=scratch)

    with scratch.borrow():
        with pytest.raises(ScratchInUseError):
            engine.promote(graph, b, F64)

    assert dtypes(graph, a, b) == [unresolved, unresolved]
    assert not scratch.in_use


def test_scratch_is_released_when_walk_raises(graph: NodeGraph, scratch) -> None:
    a = graph.add(OperationNode.generic())
    graph.node(a).inputs[0] = Reference(99)
    engine = TypePropagation(scratch=scratch)

    with pytest.raises(IRValidationError):
        engine.promote(graph, a, F64)

    assert not scratch.in_use
    assert scratch.visited == set()
