"""
Distance bounds from truncated diagrams.

For truncated A', B' with residuals r_A, r_B and the matcher's bracket
[W'_lo, W'_hi] on W(A', B'):

    lower = max(0, W'_lo - r_A - r_B)                      (triangle inequality)
    upper = min(W'_hi + r_A + r_B, (W'_hi^p + r_A^p + r_B^p)^(1/p))
    upper = max(W'_hi, r_A, r_B)                           (p = inf)

Per-kind bounds combine like distances (monotone), so the bracket of a
multi-kind diagram distance is the combination of per-kind brackets.
Only pairs whose bracket cannot settle the decision at hand are refined
to the next threshold; at threshold 0 the bracket is the full-resolution
matcher's.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from auction.config import CONFIG
from auction.cost import WassersteinOrder, combine_distances
from auction.match import match_diagrams
from diagrams.errors import DeadlineExceeded
from progressive.ladder import PersistenceLadder

logger = logging.getLogger(__name__)


TIE_TOLERANCE = 1e-9


@dataclass
class DistanceBounds:
    lower: float = 0.0
    upper: float = 0.0

    @property
    def width(self) -> float:
        return max(self.upper - self.lower, 0.0)

    @property
    def midpoint(self) -> float:
        return 0.5 * (self.lower + self.upper)

    @property
    def exact(self) -> bool:
        return self.width <= TIE_TOLERANCE * max(self.upper, 1.0)


@dataclass
class NearestResult:
    """Outcome of a nearest-centroid decision."""
    index: int
    distance: float
    lower_bounds: Dict[int, float] = field(default_factory=dict)
    n_matchings: int = 0


def bound_distance(
    ladder_a: PersistenceLadder,
    ladder_b: PersistenceLadder,
    threshold: float,
    order: WassersteinOrder,
    alpha: float,
    **match_kwargs,
) -> DistanceBounds:
    """Bracket W(A, B) by matching both diagrams truncated at ``threshold``."""
    a, ra = ladder_a.at(threshold)
    b, rb = ladder_b.at(threshold)
    res = match_diagrams(a, b, order=order, alpha=alpha, **match_kwargs)

    if ra == 0.0 and rb == 0.0:
        return DistanceBounds(res.lower_bound, res.upper_bound)

    lower = max(0.0, res.lower_bound - ra - rb)
    if order.finite:
        p = order.p
        tight = (res.upper_bound ** p + ra ** p + rb ** p) ** (1.0 / p)
        upper = min(res.upper_bound + ra + rb, tight)
    else:
        upper = max(res.upper_bound, ra, rb)
    return DistanceBounds(lower, upper)


def combined_bounds(
    ladders_a: Dict[str, PersistenceLadder],
    ladders_b: Dict[str, PersistenceLadder],
    threshold: float,
    order: WassersteinOrder,
    alpha: float,
    kinds: Optional[Sequence[str]] = None,
    **match_kwargs,
) -> DistanceBounds:
    """Bracket of the multi-kind distance (kinds default to those of A)."""
    kinds = list(ladders_a) if kinds is None else kinds
    per_kind = [
        bound_distance(ladders_a[k], ladders_b[k], threshold, order, alpha, **match_kwargs)
        for k in kinds
    ]
    return DistanceBounds(
        lower=combine_distances([b.lower for b in per_kind], order),
        upper=combine_distances([b.upper for b in per_kind], order),
    )


def progressive_distance(
    ladders_a: Dict[str, PersistenceLadder],
    ladders_b: Dict[str, PersistenceLadder],
    thresholds: Sequence[float],
    order: WassersteinOrder,
    alpha: float,
    tolerance: Optional[float] = None,
    **match_kwargs,
) -> DistanceBounds:
    """
    Refine the bracket on W(A, B) threshold by threshold.

    Stops once the bracket width is within ``tolerance``·upper, or at
    full resolution. With tolerance 0 (default) the result is the
    full-resolution distance.

    Anytime: if a ``deadline`` in ``match_kwargs`` passes after at least
    one threshold was resolved, the last bracket is returned; before that
    DeadlineExceeded propagates.
    """
    tolerance = CONFIG['progressive']['tolerance'] if tolerance is None else tolerance
    bounds = None
    for t in thresholds:
        try:
            bounds = combined_bounds(ladders_a, ladders_b, t, order, alpha, **match_kwargs)
        except DeadlineExceeded:
            if bounds is None:
                raise
            logger.debug(f"Deadline reached at threshold {t:.6g}, bracket width {bounds.width:.6g}")
            return bounds
        if t <= 0:
            return bounds
        if tolerance > 0 and bounds.width <= tolerance * bounds.upper:
            return bounds
    return combined_bounds(ladders_a, ladders_b, 0.0, order, alpha, **match_kwargs)


def nearest_index(distances: Dict[int, float]) -> int:
    """Smallest distance; ties (up to TIE_TOLERANCE) go to the lowest index."""
    best = min(distances.values())
    cutoff = best + TIE_TOLERANCE * max(best, 1.0)
    return min(k for k, d in distances.items() if d <= cutoff)


def progressive_nearest(
    ladders: Dict[str, PersistenceLadder],
    centroid_ladders: List[Dict[str, PersistenceLadder]],
    candidates: Sequence[int],
    thresholds: Sequence[float],
    order: WassersteinOrder,
    alpha: float,
    **match_kwargs,
) -> NearestResult:
    """
    Nearest centroid among ``candidates`` with bound-based pruning.

    At each threshold the surviving candidates are bracketed; a candidate
    whose lower bound exceeds the smallest upper bound cannot be nearest
    and is dropped. The winner's distance is always the full-resolution
    distance.

    Returns
    -------
    NearestResult
        ``lower_bounds`` holds a valid lower bound for every candidate
        (exact for those that reached full resolution).
    """
    alive = list(candidates)
    lower = {k: 0.0 for k in alive}
    n_matchings = 0
    final = {}

    for t in thresholds:
        if len(alive) == 1 and t > 0:
            break
        bounds = {}
        for k in alive:
            bounds[k] = combined_bounds(
                ladders, centroid_ladders[k], t, order, alpha, **match_kwargs
            )
            n_matchings += len(ladders)
            lower[k] = max(lower[k], bounds[k].lower)
        if t <= 0:
            final = {k: b.upper for k, b in bounds.items()}
            break
        best_upper = min(b.upper for b in bounds.values())
        alive = [k for k in alive if bounds[k].lower <= best_upper]

    if not final:
        winner = alive[0]
        exact = combined_bounds(
            ladders, centroid_ladders[winner], 0.0, order, alpha, **match_kwargs
        )
        n_matchings += len(ladders)
        lower[winner] = exact.lower
        final = {winner: exact.upper}

    winner = nearest_index(final)
    return NearestResult(
        index=winner,
        distance=final[winner],
        lower_bounds=lower,
        n_matchings=n_matchings,
    )
