"""
Wasserstein barycenter (Fréchet mean) of a set of diagrams.

Fixed-point iteration:
    1. match every member to the current barycenter Y
    2. move each point of Y to the mean of what it was matched to
       (the member point, or its own diagonal projection when a member
       sent it to the diagonal)
    3. every member point matched to the diagonal spawns a new point of
       Y at (x + (M-1)·proj(x)) / M
    4. drop points of Y whose persistence collapsed

The energy Σ_m W(X_m, Y)^p is recomputed after each move; the move is
kept only if the energy decreased by more than rel_tol, otherwise the
iteration stops on the previous barycenter.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np

from auction.config import CONFIG
from auction.cost import PointSet, WassersteinOrder
from auction.match import match_diagrams
from diagrams.types import Diagram, Matching


@dataclass
class BarycenterResult:
    """
    Attributes
    ----------
    points : PointSet
        Barycenter points.
    diagram : Diagram
        Same points as a synthesized diagram of the requested kind.
    matchings : list of list of Matching
        One per member; bidder = member point, good = barycenter point.
    distances : list of float
        W(member, barycenter) per member.
    cost : float
        Σ_m W(X_m, Y)^p (Σ_m W(X_m, Y) for p = inf).
    """
    points: PointSet
    diagram: Diagram
    matchings: List[List[Matching]] = field(default_factory=list)
    distances: List[float] = field(default_factory=list)
    cost: float = 0.0
    n_iterations: int = 0
    points_added: int = 0
    points_deleted: int = 0


def _match_all(members, bary, order, alpha, match_kwargs):
    results = [
        match_diagrams(m, bary, order=order, alpha=alpha, **match_kwargs)
        for m in members
    ]
    return results, float(sum(r.cost for r in results))


def _relocate(
    members: Sequence[PointSet],
    bary: PointSet,
    results,
    min_persistence: float,
) -> Tuple[PointSet, int, int]:
    """One fixed-point move. Returns (new barycenter, added, deleted)."""
    m_count = len(members)
    proj = bary.projections()
    acc_xy = m_count * proj
    acc_c = m_count * bary.coords.copy()

    new_xy, new_c = [], []
    for member, res in zip(members, results):
        for i, j, _ in res.matching:
            if i >= 0 and j >= 0:
                acc_xy[j] += member.xy[i] - proj[j]
                acc_c[j] += member.coords[i] - bary.coords[j]
            elif i >= 0:
                x = member.xy[i]
                mid = 0.5 * (x[0] + x[1])
                new_xy.append((x + (m_count - 1) * np.array([mid, mid])) / m_count)
                new_c.append(member.coords[i])

    xy = acc_xy / m_count
    coords = acc_c / m_count
    if new_xy:
        xy = np.vstack([xy, np.asarray(new_xy)])
        coords = np.vstack([coords, np.asarray(new_c)])

    keep = np.abs(xy[:, 1] - xy[:, 0]) > min_persistence
    deleted = int((~keep).sum())
    return PointSet(xy[keep], coords[keep]), len(new_xy), deleted


def wasserstein_barycenter(
    members: Sequence[PointSet],
    order: WassersteinOrder = WassersteinOrder.TWO,
    alpha: float = 1.0,
    init: Optional[PointSet] = None,
    kind: str = 'all',
    max_iterations: Optional[int] = None,
    rel_tol: Optional[float] = None,
    **match_kwargs,
) -> BarycenterResult:
    """
    Barycenter of ``members``.

    Parameters
    ----------
    members : sequence of PointSet
        Diagrams of one kind.
    order : WassersteinOrder
    alpha : float
        Geometric factor.
    init : PointSet, optional
        Warm start (e.g. the previous centroid). Defaults to the member
        with the most points (lowest index on ties).
    kind : str
        Kind of the synthesized diagram.
    max_iterations, rel_tol :
        Defaults from CONFIG['barycenter'].
    **match_kwargs :
        Forwarded to match_diagrams (use_kdtree, deterministic,
        random_state, deadline).

    Returns
    -------
    BarycenterResult
    """
    cfg = CONFIG['barycenter']
    max_iterations = cfg['max_iterations'] if max_iterations is None else max_iterations
    rel_tol = cfg['rel_tol'] if rel_tol is None else rel_tol
    min_persistence = cfg['min_persistence']

    if not members:
        empty = PointSet.empty()
        return BarycenterResult(empty, Diagram(kind=kind))

    if init is None or len(init) == 0:
        sizes = [len(m) for m in members]
        init = members[int(np.argmax(sizes))]

    bary = init
    results, cost = _match_all(members, bary, order, alpha, match_kwargs)
    n_iterations = 0
    added = deleted = 0

    for _ in range(max_iterations):
        if cost <= 0.0:
            break
        candidate, n_add, n_del = _relocate(members, bary, results, min_persistence)
        cand_results, cand_cost = _match_all(members, candidate, order, alpha, match_kwargs)
        if cand_cost >= cost - rel_tol * cost:
            break
        bary, results, cost = candidate, cand_results, cand_cost
        added += n_add
        deleted += n_del
        n_iterations += 1

    diagram = Diagram.from_arrays(bary.xy[:, 0], bary.xy[:, 1], bary.coords, kind=kind)
    return BarycenterResult(
        points=bary,
        diagram=diagram,
        matchings=[r.matching for r in results],
        distances=[r.distance for r in results],
        cost=cost,
        n_iterations=n_iterations,
        points_added=added,
        points_deleted=deleted,
    )
