"""
Persistence ladders: diagrams revealed from most to least persistent.

A shared, decreasing schedule of persistence thresholds is applied to
every diagram. At threshold t only points with persistence >= t are
visible; the hidden ones are summarized by a residual r, an upper bound
on the distance between the full and the truncated diagram (all hidden
points sent to the diagonal). The last threshold is always 0 (full
resolution, r = 0).
"""

from typing import Iterable, Optional, Tuple

import numpy as np

from auction.config import CONFIG
from auction.cost import PointSet, WassersteinOrder, diagonal_costs


def threshold_schedule(
    persistences: Iterable[float],
    start_fraction: Optional[float] = None,
    factor: Optional[float] = None,
    max_levels: Optional[int] = None,
) -> np.ndarray:
    """
    Decreasing persistence thresholds ending in 0.

    Parameters
    ----------
    persistences : iterable of float
        Persistence of every point that will be laddered (all diagrams).
    start_fraction, factor, max_levels :
        Defaults from CONFIG['progressive'].

    Returns
    -------
    np.ndarray, e.g. [0.5·max, 0.25·max, ..., 0.0]
    """
    cfg = CONFIG['progressive']
    start_fraction = cfg['start_fraction'] if start_fraction is None else start_fraction
    factor = cfg['threshold_factor'] if factor is None else factor
    max_levels = cfg['max_levels'] if max_levels is None else max_levels

    pers = np.asarray(list(persistences), dtype=np.float64)
    pers = pers[pers > 0]
    if len(pers) == 0:
        return np.array([0.0])

    lowest = float(pers.min())
    levels = []
    t = start_fraction * float(pers.max())
    while t > lowest and len(levels) < max_levels:
        levels.append(t)
        t *= factor
    levels.append(0.0)
    return np.asarray(levels)


class PersistenceLadder:
    """
    One diagram prepared for progressive matching.

    Parameters
    ----------
    points : PointSet
    order : WassersteinOrder
    alpha : float
        Geometric factor (residuals use the same diagonal cost as matching).
    """

    def __init__(self, points: PointSet, order: WassersteinOrder, alpha: float):
        self.points = points
        self.order = order
        self.persistence = points.persistence()
        self.by_persistence = np.argsort(-self.persistence, kind='stable')
        self._sorted_pers = self.persistence[self.by_persistence]
        self._sorted_diag = diagonal_costs(points, order, alpha)[self.by_persistence]

    def __len__(self) -> int:
        return len(self.points)

    def visible(self, threshold: float) -> int:
        """How many points have persistence >= threshold."""
        if threshold <= 0:
            return len(self.points)
        # _sorted_pers is descending
        return int(np.searchsorted(-self._sorted_pers, -threshold, side='right'))

    def at(self, threshold: float) -> Tuple[PointSet, float]:
        """
        Truncated diagram and residual distance at ``threshold``.

        Visible points keep their original relative order, so at threshold
        0 the point set is the input itself.
        """
        count = self.visible(threshold)
        if count == len(self.points):
            return self.points, 0.0

        hidden = self._sorted_diag[count:]
        if self.order.finite:
            residual = float(hidden.sum()) ** (1.0 / self.order.p)
        else:
            residual = float(hidden.max())
        keep = np.sort(self.by_persistence[:count])
        return self.points.subset(keep), residual
