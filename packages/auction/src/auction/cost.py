"""
Matching costs between diagram points.

Each point has persistence coordinates (x=birth, y=death) and a 3-D
spatial embedding c. The geometric factor alpha blends the two:

    p finite:  alpha·(|Δx|^p + |Δy|^p) + (1-alpha)·Σ|Δc|^p
    p = inf:   alpha·max(|Δx|, |Δy|)  + (1-alpha)·max|Δc|

Matching a point to the diagonal (destruction / creation):

    p finite:  alpha·2·(|y-x|/2)^p
    p = inf:   alpha·|y-x|/2

This is the ground cost to the orthogonal projection on the diagonal,
where each coordinate moves by |y-x|/2. It is not the raw persistence:
at p = 1 (alpha = 1) the two agree, but at p = 2 a point costs pers²/2,
so its distance to the diagonal is pers/sqrt(2).

Distances are the p-th root of the summed costs (max for p = inf).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Sequence, Union

import numpy as np

from diagrams.errors import ConfigError
from diagrams.types import Diagram


class WassersteinOrder(Enum):
    ONE = 1
    TWO = 2
    INF = 'inf'

    @property
    def p(self) -> float:
        return np.inf if self is WassersteinOrder.INF else float(self.value)

    @property
    def finite(self) -> bool:
        return self is not WassersteinOrder.INF

    @classmethod
    def parse(cls, value: Union[str, int, float, 'WassersteinOrder']) -> 'WassersteinOrder':
        """Accepts '1', '2', 'inf', 1, 2, -1 (inf), float('inf') or a member."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            token = value.strip().lower()
            if token == 'inf':
                return cls.INF
            try:
                value = int(token)
            except ValueError:
                raise ConfigError(f"Unknown Wasserstein order: {value!r}")
        if value == -1 or value == np.inf:
            return cls.INF
        if value == 1:
            return cls.ONE
        if value == 2:
            return cls.TWO
        raise ConfigError(f"Unsupported Wasserstein order: {value!r} (use 1, 2 or inf)")


@dataclass(frozen=True)
class PointSet:
    """
    Numeric view of a diagram used by the matcher.

    xy : (n, 2) array of (birth, death)
    coords : (n, 3) array of spatial embeddings
    """
    xy: np.ndarray
    coords: np.ndarray

    def __len__(self) -> int:
        return len(self.xy)

    @classmethod
    def empty(cls) -> 'PointSet':
        return cls(np.zeros((0, 2)), np.zeros((0, 3)))

    @classmethod
    def from_diagram(cls, diagram: Diagram, lambda_: float = 1.0) -> 'PointSet':
        if diagram.empty:
            return cls.empty()
        xy = np.column_stack([diagram.births(), diagram.deaths()])
        return cls(xy, diagram.embedding(lambda_))

    @classmethod
    def from_arrays(cls, xy, coords=None) -> 'PointSet':
        xy = np.asarray(xy, dtype=np.float64).reshape(-1, 2)
        if coords is None:
            coords = np.zeros((len(xy), 3))
        return cls(xy, np.asarray(coords, dtype=np.float64).reshape(-1, 3))

    def subset(self, idx: Sequence[int]) -> 'PointSet':
        idx = np.asarray(idx, dtype=np.int64)
        return PointSet(self.xy[idx], self.coords[idx])

    def persistence(self) -> np.ndarray:
        return np.abs(self.xy[:, 1] - self.xy[:, 0])

    def projections(self) -> np.ndarray:
        """Orthogonal projection of every point on the diagonal."""
        mid = 0.5 * (self.xy[:, 0] + self.xy[:, 1])
        return np.column_stack([mid, mid])


def as_points(obj, lambda_: float = 1.0) -> PointSet:
    if isinstance(obj, PointSet):
        return obj
    return PointSet.from_diagram(obj, lambda_)


def diagonal_costs(points: PointSet, order: WassersteinOrder, alpha: float) -> np.ndarray:
    """Cost of matching each point to the diagonal."""
    half = 0.5 * points.persistence()
    if order.finite:
        return alpha * 2.0 * half ** order.p
    return alpha * half


def pair_costs(
    a: PointSet,
    b: PointSet,
    order: WassersteinOrder,
    alpha: float,
    rows=None,
    cols=None,
) -> np.ndarray:
    """
    Costs between points of ``a`` and ``b``.

    Without ``rows``/``cols`` returns the dense (len(a), len(b)) matrix.
    With them returns the 1-D costs of the listed (row, col) edges.
    """
    if rows is None:
        dxy = np.abs(a.xy[:, None, :] - b.xy[None, :, :])
        dc = np.abs(a.coords[:, None, :] - b.coords[None, :, :])
    else:
        dxy = np.abs(a.xy[rows] - b.xy[cols])
        dc = np.abs(a.coords[rows] - b.coords[cols])

    if order.finite:
        p = order.p
        geo = np.sum(dc ** p, axis=-1) if alpha < 1.0 else 0.0
        return alpha * np.sum(dxy ** p, axis=-1) + (1.0 - alpha) * geo
    geo = np.max(dc, axis=-1) if alpha < 1.0 else 0.0
    return alpha * np.max(dxy, axis=-1) + (1.0 - alpha) * geo


def scaled_embedding(points: PointSet, order: WassersteinOrder, alpha: float) -> np.ndarray:
    """
    5-D vectors whose Minkowski-p distance^p equals the pair cost.

    Only valid for finite p; used to build the KD-tree.
    """
    p = order.p
    w_xy = alpha ** (1.0 / p)
    w_c = (1.0 - alpha) ** (1.0 / p)
    return np.hstack([w_xy * points.xy, w_c * points.coords])


def distance_from_cost(cost: float, order: WassersteinOrder) -> float:
    """Turn a total matching cost into a distance (p-th root; identity for inf)."""
    cost = max(float(cost), 0.0)
    if order.finite:
        return cost ** (1.0 / order.p)
    return cost


def cost_from_distance(distance: float, order: WassersteinOrder) -> float:
    distance = max(float(distance), 0.0)
    if order.finite:
        return distance ** order.p
    return distance


def combine_distances(distances: Sequence[float], order: WassersteinOrder) -> float:
    """
    Combine per-kind distances into one diagram distance.

    (Σ d^p)^(1/p) for finite p, max for inf. This is the distance of the
    union of the partitions, and it keeps the triangle inequality.
    """
    distances = [max(float(d), 0.0) for d in distances]
    if not distances:
        return 0.0
    if order.finite:
        p = order.p
        return float(sum(d ** p for d in distances) ** (1.0 / p))
    return float(max(distances))
