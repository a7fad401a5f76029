"""
Candidate graph for the reduced assignment problem.

Bidders are the points of A followed by the diagonal copies of B's
points; goods are the points of B followed by the diagonal copies of
A's points (both of size n = |A| + |B|):

    bidder i < |A|       → goods j < |B| (kept edges) and its own diagonal |B| + i
    bidder |A| + l       → good l (its own point) and the diagonal goods |B| + i
                           of every A-point i adjacent to l (cost 0)

An edge (a_i, b_j) whose cost exceeds diag(a_i) + diag(b_j) is never
needed: sending both points to the diagonal is at least as cheap. Dropping
those edges keeps the optimum and makes the graph sparse. With the KD-tree
the kept edges are found by a radius query instead of a dense scan.
"""

from dataclasses import dataclass
from typing import List

import numpy as np
from scipy.spatial import cKDTree

from auction.config import CONFIG
from auction.cost import (
    PointSet,
    WassersteinOrder,
    diagonal_costs,
    pair_costs,
    scaled_embedding,
)


@dataclass
class CandidateGraph:
    """Per-bidder candidate goods and costs, goods sorted ascending."""
    n_a: int
    n_b: int
    goods: List[np.ndarray]
    costs: List[np.ndarray]
    diag_a: np.ndarray
    diag_b: np.ndarray
    n_edges: int = 0

    @property
    def n(self) -> int:
        return self.n_a + self.n_b

    def max_cost(self) -> float:
        peaks = [float(c.max()) for c in self.costs if len(c)]
        return max(peaks) if peaks else 0.0

    def dense(self, fill: float) -> np.ndarray:
        """(n, n) cost matrix; absent edges get ``fill``."""
        matrix = np.full((self.n, self.n), fill, dtype=np.float64)
        for i, (g, c) in enumerate(zip(self.goods, self.costs)):
            matrix[i, g] = c
        return matrix

    def edge_cost(self, bidder: int, good: int) -> float:
        g = self.goods[bidder]
        pos = np.searchsorted(g, good)
        if pos < len(g) and g[pos] == good:
            return float(self.costs[bidder][pos])
        return np.inf


def _dense_edges(a, b, order, alpha, diag_a, diag_b):
    c = pair_costs(a, b, order, alpha)
    keep = c <= diag_a[:, None] + diag_b[None, :]
    rows, cols = np.nonzero(keep)
    return rows, cols, c[rows, cols]


def _kdtree_edges(a, b, order, alpha, diag_a, diag_b):
    p = order.p
    slack = 1.0 + CONFIG['kdtree']['radius_slack']
    tree = cKDTree(scaled_embedding(b, order, alpha))
    va = scaled_embedding(a, order, alpha)
    reach = diag_b.max() if len(diag_b) else 0.0

    rows, cols = [], []
    for i in range(len(a)):
        radius = (diag_a[i] + reach) ** (1.0 / p) * slack
        hits = tree.query_ball_point(va[i], r=radius, p=p)
        rows.extend([i] * len(hits))
        cols.extend(hits)

    rows = np.asarray(rows, dtype=np.int64)
    cols = np.asarray(cols, dtype=np.int64)
    if len(rows) == 0:
        return rows, cols, np.zeros(0)

    c = pair_costs(a, b, order, alpha, rows=rows, cols=cols)
    keep = c <= diag_a[rows] + diag_b[cols]
    rows, cols, c = rows[keep], cols[keep], c[keep]
    sort = np.lexsort((cols, rows))
    return rows[sort], cols[sort], c[sort]


def build_candidates(
    a: PointSet,
    b: PointSet,
    order: WassersteinOrder,
    alpha: float,
    method: str = 'dense',
) -> CandidateGraph:
    """
    Build the pruned candidate graph between two point sets.

    Parameters
    ----------
    a, b : PointSet
        Bidder side and good side.
    order : WassersteinOrder
        Finite orders only for method='kdtree'.
    alpha : float
        Geometric factor.
    method : str
        'dense' (full scan) or 'kdtree' (radius queries on B).

    Returns
    -------
    CandidateGraph
    """
    n_a, n_b = len(a), len(b)
    diag_a = diagonal_costs(a, order, alpha)
    diag_b = diagonal_costs(b, order, alpha)

    if n_a == 0 or n_b == 0:
        rows = cols = np.zeros(0, dtype=np.int64)
        edge_costs = np.zeros(0)
    elif method == 'kdtree' and order.finite:
        rows, cols, edge_costs = _kdtree_edges(a, b, order, alpha, diag_a, diag_b)
    else:
        rows, cols, edge_costs = _dense_edges(a, b, order, alpha, diag_a, diag_b)

    goods, costs = [], []
    starts = np.searchsorted(rows, np.arange(n_a + 1))
    for i in range(n_a):
        s, e = starts[i], starts[i + 1]
        goods.append(np.append(cols[s:e], n_b + i).astype(np.int64))
        costs.append(np.append(edge_costs[s:e], diag_a[i]))

    by_col = np.lexsort((rows, cols))
    col_sorted = cols[by_col]
    row_by_col = rows[by_col]
    col_starts = np.searchsorted(col_sorted, np.arange(n_b + 1))
    for l in range(n_b):
        s, e = col_starts[l], col_starts[l + 1]
        neighbours = row_by_col[s:e]
        goods.append(np.concatenate([[l], n_b + neighbours]).astype(np.int64))
        costs.append(np.concatenate([[diag_b[l]], np.zeros(len(neighbours))]))

    return CandidateGraph(
        n_a=n_a,
        n_b=n_b,
        goods=goods,
        costs=costs,
        diag_a=diag_a,
        diag_b=diag_b,
        n_edges=len(rows),
    )
