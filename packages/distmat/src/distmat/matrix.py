"""
Distance matrices between diagrams and centroids.

    diagrams_matrix    N x N, symmetric, zero diagonal
                       (NaN outside clusters with per_cluster)
    centroids_matrix   N x K, diagram to every centroid

Entries combine the per-kind distances over the active kinds. With
progressive refinement enabled (and full diagrams not requested) each
entry is refined down to full resolution, so both modes give the same
matrix. The run time limit bounds clustering only; matrix entries are
always exact.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Sequence

import numpy as np

from auction.cost import PointSet, WassersteinOrder, combine_distances
from auction.match import match_diagrams
from diagrams.config import ClusteringConfig
from progressive.bounds import progressive_distance
from progressive.ladder import PersistenceLadder, threshold_schedule

logger = logging.getLogger(__name__)

Parts = Dict[str, PointSet]


class DistanceMatrixAssembler:
    """
    Parameters
    ----------
    config : ClusteringConfig
    kinds : sequence of str
        Active kinds.
    pool : ThreadPoolExecutor, optional
        Shared worker pool; a private one of ``config.thread_number``
        workers is used per call otherwise.
    """

    def __init__(
        self,
        config: ClusteringConfig,
        kinds: Sequence[str],
        pool: Optional[ThreadPoolExecutor] = None,
    ):
        self.config = config
        self.kinds = tuple(kinds)
        self.order = WassersteinOrder.parse(config.wasserstein)
        self.alpha = config.alpha
        self.progressive = config.use_progressive and not config.use_full_diagrams
        self.pool = pool
        self._thresholds = None

    def _map(self, fn, items) -> list:
        if self.pool is not None:
            return list(self.pool.map(fn, items))
        with ThreadPoolExecutor(max_workers=self.config.thread_number) as pool:
            return list(pool.map(fn, items))

    def _match_kwargs(self) -> dict:
        return dict(use_kdtree=self.config.use_kdtree, deterministic=self.config.deterministic)

    def _ladders(self, parts: Sequence[Parts]) -> List[Dict[str, PersistenceLadder]]:
        return [
            {k: PersistenceLadder(p[k], self.order, self.alpha) for k in self.kinds}
            for p in parts
        ]

    def _full_distance(self, a: Parts, b: Parts) -> float:
        kwargs = self._match_kwargs()
        return combine_distances(
            [match_diagrams(a[k], b[k], self.order, self.alpha, **kwargs).distance
             for k in self.kinds],
            self.order,
        )

    def _entry(self, a: Parts, b: Parts, ladders_a, ladders_b) -> float:
        if not self.progressive:
            return self._full_distance(a, b)
        bounds = progressive_distance(
            ladders_a, ladders_b, self._thresholds, self.order, self.alpha,
            tolerance=0.0, **self._match_kwargs(),
        )
        return bounds.upper

    def _prepare(self, parts: Sequence[Parts]):
        if self.progressive and self._thresholds is None:
            self._thresholds = threshold_schedule(
                np.concatenate([p[k].persistence() for p in parts for k in self.kinds])
                if parts and self.kinds else []
            )

    def diagrams_matrix(
        self,
        parts: Sequence[Parts],
        labels: Optional[np.ndarray] = None,
    ) -> np.ndarray:
        """
        Diagram-to-diagram distances.

        Parameters
        ----------
        parts : sequence of dict kind -> PointSet
        labels : (N,) int array, optional
            When given, only same-cluster entries are computed; the others
            are NaN.

        Returns
        -------
        np.ndarray (N, N)
        """
        n = len(parts)
        out = np.zeros((n, n))
        if not self.kinds:
            return out

        self._prepare(parts)
        ladders = self._ladders(parts) if self.progressive else [None] * n

        pairs = [
            (i, j) for i in range(n) for j in range(i + 1, n)
            if labels is None or labels[i] == labels[j]
        ]
        if labels is not None:
            out[labels[:, None] != labels[None, :]] = np.nan

        values = self._map(
            lambda ij: self._entry(parts[ij[0]], parts[ij[1]], ladders[ij[0]], ladders[ij[1]]),
            pairs,
        )
        for (i, j), d in zip(pairs, values):
            out[i, j] = out[j, i] = d

        logger.debug(f"Diagram distance matrix: {len(pairs)} pair(s) for {n} diagram(s)")
        return out

    def centroids_matrix(self, parts: Sequence[Parts], centroids: Sequence[Parts]) -> np.ndarray:
        """Diagram-to-centroid distances, (N, K)."""
        n, n_clusters = len(parts), len(centroids)
        out = np.zeros((n, n_clusters))
        if not self.kinds:
            return out

        self._prepare(parts)
        if self.progressive:
            ladders = self._ladders(parts)
            centroid_ladders = self._ladders(centroids)
        else:
            ladders = [None] * n
            centroid_ladders = [None] * n_clusters

        cells = [(i, c) for i in range(n) for c in range(n_clusters)]
        values = self._map(
            lambda ic: self._entry(
                parts[ic[0]], centroids[ic[1]], ladders[ic[0]], centroid_ladders[ic[1]]
            ),
            cells,
        )
        for (i, c), d in zip(cells, values):
            out[i, c] = d
        return out
