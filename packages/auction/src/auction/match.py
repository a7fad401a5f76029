"""
Public matcher entry points.

    match_diagrams(A, B)        → MatchResult (matching + distance + bounds)
    wasserstein_distance(A, B)  → float

Routing:
    either side empty      → every point to the diagonal ('trivial')
    p in {1, 2}            → auction on the pruned candidate graph ('auction'),
                             exact Hungarian assignment if the auction stalls ('exact')
    p = inf                → bottleneck threshold search ('bottleneck')
"""

import logging
import warnings
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np
from scipy.optimize import linear_sum_assignment

from auction.bidding import AuctionStalled, run_auction
from auction.bottleneck import bottleneck_assignment
from auction.candidates import CandidateGraph, build_candidates
from auction.config import CONFIG
from auction.cost import (
    PointSet,
    WassersteinOrder,
    as_points,
    diagonal_costs,
    distance_from_cost,
)
from diagrams.errors import NumericalDegeneracyWarning
from diagrams.types import DIAGONAL, Matching

logger = logging.getLogger(__name__)


@dataclass
class MatchResult:
    """
    Optimal matching between two diagrams.

    ``cost`` is Σ matched costs (max for p = inf); ``distance`` its p-th
    root. ``lower_bound``/``upper_bound`` bracket the exact distance; they
    coincide except for the auction, whose gap is at most n·eps_final.
    """
    matching: List[Matching] = field(default_factory=list)
    distance: float = 0.0
    cost: float = 0.0
    lower_bound: float = 0.0
    upper_bound: float = 0.0
    method: str = 'trivial'
    n_bids: int = 0


def exact_assignment(graph: CandidateGraph) -> Tuple[np.ndarray, float]:
    """Hungarian assignment on the dense reduced matrix."""
    if graph.n == 0:
        return np.zeros(0, dtype=np.int64), 0.0
    fill = (graph.max_cost() + 1.0) * (graph.n + 1) * 10.0
    matrix = graph.dense(fill)
    rows, cols = linear_sum_assignment(matrix)
    bidder_good = np.full(graph.n, -1, dtype=np.int64)
    bidder_good[rows] = cols
    return bidder_good, float(matrix[rows, cols].sum())


def _to_matching(graph: CandidateGraph, bidder_good: np.ndarray) -> List[Matching]:
    matching = []
    for i in range(graph.n_a):
        g = int(bidder_good[i])
        cost = graph.edge_cost(i, g)
        matching.append(Matching(i, g if g < graph.n_b else DIAGONAL, cost))
    for l in range(graph.n_b):
        g = int(bidder_good[graph.n_a + l])
        if g < graph.n_b:
            matching.append(Matching(DIAGONAL, g, float(graph.diag_b[g])))
    return matching


def _trivial(a: PointSet, b: PointSet, order: WassersteinOrder, alpha: float) -> MatchResult:
    da = diagonal_costs(a, order, alpha)
    db = diagonal_costs(b, order, alpha)
    matching = [Matching(i, DIAGONAL, float(c)) for i, c in enumerate(da)]
    matching += [Matching(DIAGONAL, j, float(c)) for j, c in enumerate(db)]
    costs = np.concatenate([da, db])
    if len(costs) == 0:
        total = 0.0
    elif order.finite:
        total = float(costs.sum())
    else:
        total = float(costs.max())
    d = distance_from_cost(total, order)
    return MatchResult(matching, d, total, d, d, 'trivial')


def match_diagrams(
    diagram_a,
    diagram_b,
    order='2',
    alpha: float = 1.0,
    lambda_: float = 1.0,
    use_kdtree: bool = True,
    deterministic: bool = True,
    random_state=None,
    deadline: Optional[float] = None,
    rel_tol: Optional[float] = None,
) -> MatchResult:
    """
    Optimal matching between diagram A (bidders) and diagram B (goods).

    Parameters
    ----------
    diagram_a, diagram_b : Diagram or PointSet
        Same pair kind.
    order : str, int or WassersteinOrder
        '1', '2' or 'inf'.
    alpha : float
        Geometric factor in [0, 1]; 1 = persistence coordinates only.
    lambda_ : float
        Spatial embedding weight between birth and death vertex.
    use_kdtree : bool
        Radius queries instead of a dense scan for large diagrams.
    deterministic : bool
        Index-ordered bidding, lowest index wins ties.
    random_state : np.random.RandomState, optional
        Bidding order source when not deterministic.
    deadline : float, optional
        ``time.monotonic()`` timestamp checked between bids.
    rel_tol : float, optional
        Auction accuracy override.

    Returns
    -------
    MatchResult
        ``matching`` covers every point of both diagrams; bidder indices
        refer to A, good indices to B, -1 is the diagonal.
    """
    order = WassersteinOrder.parse(order)
    a = as_points(diagram_a, lambda_)
    b = as_points(diagram_b, lambda_)

    if len(a) == 0 or len(b) == 0:
        return _trivial(a, b, order, alpha)

    big = min(len(a), len(b)) >= CONFIG['kdtree']['min_points']
    method = 'kdtree' if (use_kdtree and big and order.finite) else 'dense'
    graph = build_candidates(a, b, order, alpha, method=method)

    if not order.finite:
        bidder_good, total = bottleneck_assignment(graph, deadline=deadline)
        return MatchResult(
            matching=_to_matching(graph, bidder_good),
            distance=total,
            cost=total,
            lower_bound=total,
            upper_bound=total,
            method='bottleneck',
        )

    try:
        state = run_auction(
            graph,
            deterministic=deterministic,
            random_state=random_state,
            deadline=deadline,
            rel_tol=rel_tol,
        )
    except AuctionStalled as e:
        logger.warning(f"Auction did not converge ({e}), solving pair exactly")
        warnings.warn(
            f"auction fell back to exact assignment for a {len(a)}x{len(b)} pair",
            NumericalDegeneracyWarning,
        )
        bidder_good, total = exact_assignment(graph)
        d = distance_from_cost(total, order)
        return MatchResult(
            matching=_to_matching(graph, bidder_good),
            distance=d,
            cost=total,
            lower_bound=d,
            upper_bound=d,
            method='exact',
        )

    d = distance_from_cost(state.cost, order)
    return MatchResult(
        matching=_to_matching(graph, state.bidder_good),
        distance=d,
        cost=state.cost,
        lower_bound=distance_from_cost(state.lower_bound, order),
        upper_bound=d,
        method='auction',
        n_bids=state.n_bids,
    )


def wasserstein_distance(diagram_a, diagram_b, order='2', alpha: float = 1.0, **kwargs) -> float:
    """Distance between two diagrams (see match_diagrams for the options)."""
    return match_diagrams(diagram_a, diagram_b, order=order, alpha=alpha, **kwargs).distance
