"""
Bottleneck matching (Wasserstein order p = inf).

Minimizes the largest matched cost instead of the sum, so it is solved
as a threshold problem: binary search over the sorted candidate costs,
testing at each threshold whether the reduced graph restricted to edges
below it still has a perfect matching.
"""

import time
from typing import Optional, Tuple

import numpy as np
from scipy.sparse import csr_matrix
from scipy.sparse.csgraph import maximum_bipartite_matching

from auction.candidates import CandidateGraph
from diagrams.errors import DeadlineExceeded


def _perfect_matching(graph: CandidateGraph, threshold: float):
    """Row → column perfect matching using edges with cost <= threshold, or None."""
    rows, cols = [], []
    for i, (g, c) in enumerate(zip(graph.goods, graph.costs)):
        ok = g[c <= threshold]
        rows.extend([i] * len(ok))
        cols.extend(ok.tolist())

    n = graph.n
    if len(rows) < n:
        return None
    adjacency = csr_matrix(
        (np.ones(len(rows), dtype=np.int8), (rows, cols)),
        shape=(n, n),
    )
    match = maximum_bipartite_matching(adjacency, perm_type='column')
    if np.any(match < 0):
        return None
    return match.astype(np.int64)


def bottleneck_assignment(
    graph: CandidateGraph,
    deadline: Optional[float] = None,
) -> Tuple[np.ndarray, float]:
    """
    Solve the bottleneck assignment on ``graph``.

    ``deadline`` (a ``time.monotonic()`` timestamp) is checked before each
    binary-search step; DeadlineExceeded is raised once it has passed.

    Returns
    -------
    (bidder_good, bottleneck_cost)
    """
    if graph.n == 0:
        return np.zeros(0, dtype=np.int64), 0.0

    levels = np.unique(np.concatenate(graph.costs))
    lo, hi = 0, len(levels) - 1
    best = _perfect_matching(graph, levels[hi])

    while lo < hi:
        if deadline is not None and time.monotonic() > deadline:
            raise DeadlineExceeded("deadline passed during bottleneck search")
        mid = (lo + hi) // 2
        match = _perfect_matching(graph, levels[mid])
        if match is not None:
            hi = mid
            best = match
        else:
            lo = mid + 1

    return best, float(levels[lo])
