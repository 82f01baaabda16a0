"""Type propagation for polymorphic arithmetic nodes.

Operation nodes start out `unresolved`. A component (operation nodes linked to
each other by direct references) becomes float64 or uint32 once any member is
wired to a typed context, and goes back to unresolved when the last such
anchor is removed. Every member of a component shares one dtype at all times.

The editing layer picks and triggers the walk; nothing here watches edges:

    connect op -> float64 slot      promote_to_f64(graph, op)
    connect op -> uint32 slot       promote_to_u32(graph, op)
    disconnect op -x float64 slot   demote_from_f64(graph, op)
    disconnect op -x uint32 slot    demote_from_u32(graph, op)

All four are one flood fill over both edge directions (consumers from the
graph store's wires, references from the node's own slots). Promotion commits
node by node. Demotion checks the whole component first and only then commits,
so a component still pinned somewhere else is never partially un-typed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from noisegraph.ir import DType, IRValidationError, NodeGraph, float64, uint32, unresolved
from noisegraph.ir.nodes import Node, OperationNode
from noisegraph.passes.scratch import ScratchBuffers, thread_scratch

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TypeKind:
    """One concrete dtype a component can be committed to."""

    dtype: DType

    def is_generic(self, node: Node) -> bool:
        return node.as_operation(unresolved) is not None

    def is_committed(self, node: Node) -> bool:
        return node.as_operation(self.dtype) is not None

    def promote(self, node: OperationNode) -> OperationNode:
        return node.retyped(self.dtype)

    def demote(self, node: OperationNode) -> OperationNode:
        return node.retyped(unresolved)


F64 = TypeKind(float64)
U32 = TypeKind(uint32)


@dataclass
class TypePropagation:
    """Flood-fill engine behind the four promote/demote walks.

    Attributes:
        scratch: Buffers to borrow for each walk. None means the calling
            thread's shared buffers.
    """

    scratch: ScratchBuffers | None = field(default=None, repr=False)

    def promote(self, graph: NodeGraph, start: int, kind: TypeKind) -> int:
        """Commit every unresolved operation reachable from `start` to `kind`.

        Nodes that are not unresolved operations bound the walk: they are left
        as they are and not expanded through.

        Returns:
            Number of nodes rewritten.
        """
        return self._flood(graph, start, accept=kind.is_generic, rewrite=kind.promote, atomic=False)

    def demote(self, graph: NodeGraph, start: int, kind: TypeKind) -> int:
        """Return the component of `start` to unresolved if nothing else pins it.

        Returns:
            Number of nodes rewritten; 0 when the walk hit a node that is not a
            `kind` operation and therefore aborted without touching anything.
        """
        return self._flood(graph, start, accept=kind.is_committed, rewrite=kind.demote, atomic=True)

    def _flood(
        self,
        graph: NodeGraph,
        start: int,
        *,
        accept: Callable[[Node], bool],
        rewrite: Callable[[OperationNode], OperationNode],
        atomic: bool,
    ) -> int:
        scratch = self.scratch if self.scratch is not None else thread_scratch()
        with scratch.borrow() as buf:
            visited, pending = buf.visited, buf.pending
            pending.append(start)
            rewritten = 0

            while pending:
                index = pending.pop()
                if index in visited:
                    continue
                visited.add(index)

                node = graph.node(index)
                if not accept(node):
                    if atomic:
                        logger.debug("walk from #%d aborted at #%d (%s)", start, index, node.kind)
                        return 0
                    continue

                pending.extend(graph.consumers(index))
                pending.extend(node.references())
                if not atomic:
                    graph.replace(index, rewrite(node))
                    rewritten += 1

            if atomic:
                for index in visited:
                    graph.replace(index, rewrite(graph.node(index)))
                rewritten = len(visited)

        logger.debug("walk from #%d rewrote %d node(s)", start, rewritten)
        return rewritten


def promote_to_f64(graph: NodeGraph, start: int) -> int:
    return TypePropagation().promote(graph, start, F64)


def promote_to_u32(graph: NodeGraph, start: int) -> int:
    return TypePropagation().promote(graph, start, U32)


def demote_from_f64(graph: NodeGraph, start: int) -> int:
    return TypePropagation().demote(graph, start, F64)


def demote_from_u32(graph: NodeGraph, start: int) -> int:
    return TypePropagation().demote(graph, start, U32)


# =============================================================================
# Component analysis
# =============================================================================


def find_components(graph: NodeGraph) -> list[set[int]]:
    """Group operation nodes into components, in order of their lowest index."""
    ops = {index for index, node in graph if node.as_operation() is not None}
    neighbours: dict[int, set[int]] = {index: set() for index in ops}
    for index in ops:
        for ref in graph.node(index).references():
            if ref in ops:
                neighbours[index].add(ref)
                neighbours[ref].add(index)

    components: list[set[int]] = []
    seen: set[int] = set()
    for index in sorted(ops):
        if index in seen:
            continue
        component = {index}
        pending = [index]
        while pending:
            for other in neighbours[pending.pop()]:
                if other not in component:
                    component.add(other)
                    pending.append(other)
        seen |= component
        components.append(component)
    return components


@dataclass(slots=True)
class ComponentTypeValidator:
    """Check that every component of operation nodes has exactly one dtype."""

    def run(self, graph: NodeGraph) -> None:
        for component in find_components(graph):
            dtypes = {graph.node(index).dtype for index in component}
            if len(dtypes) > 1:
                members = ", ".join(
                    f"#{i}:{graph.node(i).dtype.name}" for i in sorted(component)
                )
                raise IRValidationError(f"mixed dtypes in one component: {members}")

    @staticmethod
    def describe(graph: NodeGraph) -> list[str]:
        lines = []
        for component in find_components(graph):
            dtype = graph.node(min(component)).dtype
            members = ", ".join(f"#{i}" for i in sorted(component))
            lines.append(f"{dtype.name} component of {len(component)} node(s): {members}")
        return lines
