#!/usr/bin/env python3
"""
Type propagation walk benchmark.

Measures promote/demote latency on chains of operation nodes, the shape an
interactive edit hits when the user rewires the end of a long arithmetic
chain. Compares the shared per-thread scratch buffers against allocating a
fresh ScratchBuffers for every walk.

Usage:
    python benchmarks/propagation_walks.py

Output:
    - Median and p95 time per promote + demote pair
    - Nodes rewritten per second
    - Cost of fresh scratch allocation relative to reuse
"""

import sys
import time
from pathlib import Path

import numpy as np

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from noisegraph.ir import FbmNode, Literal, NodeGraph, OperationNode, OpType, Reference
from noisegraph.passes import F64, ScratchBuffers, TypePropagation


# =============================================================================
# Configuration
# =============================================================================

CHAIN_LENGTHS = (16, 256, 4096)
WARMUP_ITERS = 10
BENCH_ITERS = 200


def build_chain(length: int) -> tuple[NodeGraph, int]:
    """Build `length` generic operations in a line, the last one feeding a fractal."""
    g = NodeGraph(name=f"chain_{length}")
    prev = g.add(OperationNode.generic(OpType.ADD))
    for _ in range(length - 1):
        node = g.add(OperationNode(inputs=[Reference(prev), Literal(None)]))
        g.connect(prev, node, "inputs[0]")
        prev = node
    fbm = g.add(FbmNode(frequency=Reference(prev)))
    g.connect(prev, fbm, "frequency")
    return g, prev


def benchmark_walks(length: int, fresh_scratch: bool) -> np.ndarray:
    """
    Time promote + demote pairs on one chain.

    Args:
        length: Number of operation nodes in the chain
        fresh_scratch: Allocate new scratch buffers for every walk

    Returns:
        Per-iteration times in seconds
    """
    g, tail = build_chain(length)
    fbm = g.consumers(tail)[0]
    shared = TypePropagation()

    def pair() -> None:
        engine = TypePropagation(scratch=ScratchBuffers()) if fresh_scratch else shared
        engine.promote(g, tail, F64)
        g.disconnect(tail, fbm, "frequency")
        engine.demote(g, tail, F64)
        g.connect(tail, fbm, "frequency")

    for _ in range(WARMUP_ITERS):
        pair()

    times = np.empty(BENCH_ITERS)
    for i in range(BENCH_ITERS):
        start = time.perf_counter()
        pair()
        times[i] = time.perf_counter() - start
    return times


def report(label: str, length: int, times: np.ndarray) -> float:
    median = float(np.median(times))
    p95 = float(np.percentile(times, 95))
    rate = 2 * length / median
    print(f"  {label:<8} median {median * 1e6:10.1f} µs, p95 {p95 * 1e6:10.1f} µs, "
          f"{rate / 1e6:.2f} M nodes/s")
    return median


def main():
    """Run the benchmark suite."""
    print("=" * 60)
    print("Operation Type Propagation Benchmark")
    print("=" * 60)

    for length in CHAIN_LENGTHS:
        print(f"\nChain of {length} operations ({BENCH_ITERS} promote/demote pairs)...")
        reused = report("reused", length, benchmark_walks(length, fresh_scratch=False))
        fresh = report("fresh", length, benchmark_walks(length, fresh_scratch=True))
        print(f"  fresh / reused: {fresh / reused:.2f}x")

    print("\n" + "=" * 60)


if __name__ == "__main__":
    main()
