"""
K-Means over persistence diagrams.

Each diagram is a dict kind -> PointSet over the active pair kinds; the
distance between two diagrams combines the per-kind Wasserstein
distances. Centroids are per-kind Wasserstein barycenters.

Loop:
    1. assign every diagram to its nearest centroid
       (exhaustive, progressive, or triangle-inequality pruned)
    2. reseed empty clusters with the diagram farthest from its centroid
    3. move centroids to the barycenter of their members (warm start)
    4. stop when assignments are stable, when no centroid moved more
       than delta_lim, on the iteration cap or on the time limit

On the time limit the last completed assignment is returned.

Usage:
    from kmeans import KMeansDiagrams
    result = KMeansDiagrams(config).fit(parts, kinds=('min', 'max'))
"""

import logging
import time
import warnings
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

import numpy as np
from sklearn.exceptions import ConvergenceWarning
from sklearn.utils import check_random_state

from auction import config as matcher_config
from auction.cost import PointSet, WassersteinOrder, combine_distances
from auction.match import match_diagrams
from barycenter.frechet import wasserstein_barycenter
from diagrams.config import ClusteringConfig
from diagrams.errors import ConfigError, DeadlineExceeded
from diagrams.types import Diagram, Matching
from kmeans.init import kmeanspp_seeds, random_partition
from progressive.bounds import nearest_index, progressive_nearest
from progressive.ladder import PersistenceLadder, threshold_schedule

logger = logging.getLogger(__name__)

Parts = Dict[str, PointSet]


class ClusteringConvergenceWarning(ConvergenceWarning):
    """Clustering stopped on the time limit or the iteration cap."""


@dataclass
class ClusteringResult:
    """
    Outcome of one clustering run.

    Attributes
    ----------
    labels : (N,) int array
    centroids : list of dict kind -> PointSet
    centroid_diagrams : list of dict kind -> Diagram
    distances : (N,) float array
        Combined distance of every diagram to its own centroid.
    kind_distances : dict kind -> (N,) float array
    matchings : list of dict kind -> list of Matching
        Per diagram; bidder = diagram point (partition index), good =
        centroid point, -1 = diagonal.
    kinds : tuple of str
        Active kinds.
    stop_reason : str
        'stable', 'delta_lim', 'max_iterations', 'time_limit',
        'single_cluster', 'one_per_cluster' or 'no_active_kind'.
    """
    labels: np.ndarray
    centroids: List[Parts]
    centroid_diagrams: List[Dict[str, Diagram]]
    distances: np.ndarray
    kind_distances: Dict[str, np.ndarray] = field(default_factory=dict)
    matchings: List[Dict[str, List[Matching]]] = field(default_factory=list)
    kinds: Tuple[str, ...] = ()
    n_iterations: int = 0
    converged: bool = True
    stop_reason: str = 'stable'
    elapsed: float = 0.0

    @property
    def n_clusters(self) -> int:
        return len(self.centroids)

    @property
    def cluster_sizes(self) -> np.ndarray:
        return np.bincount(self.labels, minlength=self.n_clusters)


class KMeansDiagrams:
    """
    K-Means clustering engine.

    Parameters
    ----------
    config : ClusteringConfig
        Validated run configuration, shared read-only by every stage.
    max_iterations : int, optional
        Defaults to CONFIG['kmeans']['max_iterations'].
    """

    def __init__(self, config: ClusteringConfig, max_iterations: int = None):
        self.config = config
        self.order = WassersteinOrder.parse(config.wasserstein)
        self.alpha = config.alpha
        self.max_iterations = (
            matcher_config.get('kmeans.max_iterations') if max_iterations is None else max_iterations
        )
        self._pool = None
        self._deadline = None
        self._rng = None
        self._ladders = None
        self._thresholds = None

    # -----------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------

    def _map(self, fn, items) -> list:
        return list(self._pool.map(fn, items))

    def _check_deadline(self):
        if self._deadline is not None and time.monotonic() > self._deadline:
            raise DeadlineExceeded("time limit reached")

    def _match_kwargs(self, with_deadline: bool = True) -> dict:
        kwargs = dict(use_kdtree=self.config.use_kdtree, deterministic=self.config.deterministic)
        if not self.config.deterministic:
            kwargs['random_state'] = self._rng
        if with_deadline:
            kwargs['deadline'] = self._deadline
        return kwargs

    def _distance(self, a: Parts, b: Parts, kinds, with_deadline: bool = True) -> float:
        kwargs = self._match_kwargs(with_deadline)
        return combine_distances(
            [match_diagrams(a[k], b[k], self.order, self.alpha, **kwargs).distance for k in kinds],
            self.order,
        )

    def _centroid_ladders(self, centroids: List[Parts], kinds):
        return [
            {k: PersistenceLadder(c[k], self.order, self.alpha) for k in kinds}
            for c in centroids
        ]

    # -----------------------------------------------------------------
    # Entry point
    # -----------------------------------------------------------------

    def fit(self, parts: Sequence[Parts], kinds: Sequence[str]) -> ClusteringResult:
        """
        Cluster ``parts``.

        Parameters
        ----------
        parts : sequence of dict kind -> PointSet
            One entry per input diagram, holding every kind of ``kinds``.
        kinds : sequence of str
            Active pair kinds. Empty means nothing to cluster: every
            diagram goes to cluster 0 at distance 0.

        Returns
        -------
        ClusteringResult
        """
        cfg = self.config
        n = len(parts)
        n_clusters = cfg.n_clusters
        if n_clusters <= 0 or n_clusters > n:
            raise ConfigError(f"cannot form {n_clusters} non-empty clusters from {n} diagrams")

        kinds = tuple(kinds)
        start = time.monotonic()
        self._deadline = start + cfg.time_limit if cfg.has_time_limit else None
        self._rng = check_random_state(cfg.seed if cfg.deterministic else None)

        if not kinds:
            logger.info("No active pair kind, every diagram goes to cluster 0")
            result = ClusteringResult(
                labels=np.zeros(n, dtype=np.int64),
                centroids=[{} for _ in range(n_clusters)],
                centroid_diagrams=[{} for _ in range(n_clusters)],
                distances=np.zeros(n),
                matchings=[{} for _ in range(n)],
                stop_reason='no_active_kind',
            )
            result.elapsed = time.monotonic() - start
            return result

        shortcut = not cfg.force_use_of_algorithm and n_clusters in (1, n)

        with ThreadPoolExecutor(max_workers=cfg.thread_number) as pool:
            self._pool = pool
            try:
                if shortcut:
                    labels, centroids, n_iter, converged, reason = self._shortcut(parts, kinds)
                else:
                    labels, centroids, n_iter, converged, reason = self._run(parts, kinds)
                result = self._finalize(parts, kinds, labels, centroids)
            finally:
                self._pool = None
                self._ladders = None

        result.n_iterations = n_iter
        result.converged = converged
        result.stop_reason = reason
        result.elapsed = time.monotonic() - start

        if not converged:
            warnings.warn(
                f"clustering stopped on {reason} after {n_iter} iteration(s); "
                f"returning the last completed assignment",
                ClusteringConvergenceWarning,
            )
        logger.debug(
            f"K-Means: {n_iter} iteration(s), stop={reason}, "
            f"sizes={result.cluster_sizes.tolist()}"
        )
        return result

    # -----------------------------------------------------------------
    # Shortcut (K == 1 or K == N)
    # -----------------------------------------------------------------

    def _shortcut(self, parts, kinds):
        n = len(parts)
        if self.config.n_clusters == n:
            logger.debug("One diagram per cluster, skipping the K-Means loop")
            centroids = [dict(p) for p in parts]
            return np.arange(n, dtype=np.int64), centroids, 0, True, 'one_per_cluster'

        logger.debug("Single cluster, computing the barycenter of all diagrams")
        labels = np.zeros(n, dtype=np.int64)
        empty = [{k: PointSet.empty() for k in kinds}]
        try:
            centroids = self._update(parts, kinds, labels, empty)
        except DeadlineExceeded:
            largest = {
                k: max((p[k] for p in parts), key=len)
                for k in kinds
            }
            return labels, [largest], 0, False, 'time_limit'
        return labels, centroids, 1, True, 'single_cluster'

    # -----------------------------------------------------------------
    # Main loop
    # -----------------------------------------------------------------

    def _initialize(self, parts, kinds):
        n = len(parts)
        n_clusters = self.config.n_clusters

        if self.config.use_kmeanspp:
            def distances_to(s):
                def one(i):
                    if i == s:
                        return 0.0
                    return self._distance(parts[i], parts[s], kinds, with_deadline=False)
                return np.asarray(self._map(one, range(n)))

            seeds, labels, _ = kmeanspp_seeds(n, n_clusters, distances_to, self._rng)
            logger.debug(f"k-means++ seeds: {seeds}")
        else:
            seeds, labels = random_partition(n, n_clusters, self._rng)
            logger.debug(f"Random partition seeds: {seeds}")

        return labels, [dict(parts[s]) for s in seeds]

    def _run(self, parts, kinds):
        cfg = self.config
        n = len(parts)
        n_clusters = cfg.n_clusters

        labels, centroids = self._initialize(parts, kinds)

        if cfg.use_progressive:
            self._ladders = [
                {k: PersistenceLadder(p[k], self.order, self.alpha) for k in kinds}
                for p in parts
            ]
            self._thresholds = threshold_schedule(
                np.concatenate([p[k].persistence() for p in parts for k in kinds])
            )

        upper = np.full(n, np.inf)
        lower = np.zeros((n, n_clusters))
        n_iter = 0

        while True:
            if n_iter >= self.max_iterations:
                logger.info(f"Iteration cap reached ({self.max_iterations})")
                return labels, centroids, n_iter, False, 'max_iterations'

            try:
                self._check_deadline()
                new_labels, upper, lower = self._assign(
                    parts, kinds, labels, centroids, upper, lower,
                    exhaustive=(n_iter == 0),
                )
                new_labels, upper, lower = self._reseed_empty(new_labels, upper, lower)
                new_centroids = self._update(parts, kinds, new_labels, centroids)
                shifts = None
                if cfg.use_accelerated or cfg.use_delta_lim:
                    shifts = self._shifts(kinds, centroids, new_centroids)
            except DeadlineExceeded:
                logger.info(f"Time limit reached after {n_iter} iteration(s)")
                return labels, centroids, n_iter, False, 'time_limit'

            n_iter += 1
            n_changed = int(np.sum(new_labels != labels))

            if cfg.use_accelerated:
                upper = upper + shifts[new_labels]
                lower = np.maximum(lower - shifts[None, :], 0.0)

            labels, centroids = new_labels, new_centroids
            logger.debug(
                f"Iteration {n_iter}: {n_changed} reassignment(s)"
                + (f", max shift {shifts.max():.6g}" if shifts is not None else "")
            )

            if n_iter > 1 and n_changed == 0:
                return labels, centroids, n_iter, True, 'stable'
            if cfg.use_delta_lim and shifts.max() <= cfg.delta_lim:
                return labels, centroids, n_iter, True, 'delta_lim'
            if self._deadline is not None and time.monotonic() > self._deadline:
                logger.info(f"Time limit reached after {n_iter} iteration(s)")
                return labels, centroids, n_iter, False, 'time_limit'

    # -----------------------------------------------------------------
    # Assignment
    # -----------------------------------------------------------------

    def _assign(self, parts, kinds, labels, centroids, upper, lower, exhaustive):
        """
        Nearest centroid of every diagram.

        Returns (labels, upper bounds on the distance to the assigned
        centroid, (N, K) lower bounds on the distance to every centroid).
        """
        n_clusters = len(centroids)
        centroid_ladders = (
            self._centroid_ladders(centroids, kinds) if self.config.use_progressive else None
        )

        if self.config.use_accelerated and not exhaustive and n_clusters > 1:
            half = 0.5 * self._centroid_distances(kinds, centroids)
            off = half + np.diag(np.full(n_clusters, np.inf))
            near = off.min(axis=1)

            def task(i):
                return self._assign_pruned(
                    i, parts, kinds, centroids, centroid_ladders,
                    int(labels[i]), upper[i], lower[i].copy(), half, near,
                )
        else:
            def task(i):
                return self._assign_full(i, parts, kinds, centroids, centroid_ladders)

        results = self._map(task, range(len(parts)))
        new_labels = np.array([r[0] for r in results], dtype=np.int64)
        new_upper = np.array([r[1] for r in results], dtype=np.float64)
        new_lower = np.vstack([r[2] for r in results])
        return new_labels, new_upper, new_lower

    def _assign_full(self, i, parts, kinds, centroids, centroid_ladders):
        self._check_deadline()
        n_clusters = len(centroids)
        kwargs = self._match_kwargs()

        if centroid_ladders is not None:
            res = progressive_nearest(
                self._ladders[i], centroid_ladders, range(n_clusters),
                self._thresholds, self.order, self.alpha, **kwargs,
            )
            row = np.array([res.lower_bounds.get(c, 0.0) for c in range(n_clusters)])
            row[res.index] = res.distance
            return res.index, res.distance, row

        row = np.array([self._distance(parts[i], c, kinds) for c in centroids])
        best = nearest_index(dict(enumerate(row)))
        return best, float(row[best]), row

    def _assign_pruned(self, i, parts, kinds, centroids, centroid_ladders,
                       current, upper, row, half, near):
        """Elkan step: skip centroids the triangle inequality rules out."""
        self._check_deadline()
        if upper <= near[current]:
            return current, upper, row

        n_clusters = len(centroids)
        candidates = [
            c for c in range(n_clusters)
            if c != current and upper > row[c] and upper > half[current, c]
        ]
        if not candidates:
            return current, upper, row

        # tighten the upper bound
        d_current = self._distance(parts[i], centroids[current], kinds)
        row[current] = d_current
        upper = d_current
        candidates = [c for c in candidates if upper > row[c] and upper > half[current, c]]
        if not candidates:
            return current, upper, row

        if centroid_ladders is not None:
            res = progressive_nearest(
                self._ladders[i], centroid_ladders, [current] + candidates,
                self._thresholds, self.order, self.alpha, **self._match_kwargs(),
            )
            for c, bound in res.lower_bounds.items():
                row[c] = max(row[c], bound)
            row[res.index] = res.distance
            return res.index, res.distance, row

        found = {current: d_current}
        for c in candidates:
            found[c] = self._distance(parts[i], centroids[c], kinds)
            row[c] = found[c]
        best = nearest_index(found)
        return best, found[best], row

    def _reseed_empty(self, labels, upper, lower):
        """
        Move one diagram into every empty cluster.

        The donor is the diagram with the largest ``upper`` among clusters
        that keep at least one member. Without acceleration ``upper`` is
        the exact distance to the assigned centroid. Under Elkan pruning it
        is only an upper bound, so the donor is the farthest by that bound,
        not necessarily the truly farthest diagram.
        """
        n_clusters = self.config.n_clusters
        sizes = np.bincount(labels, minlength=n_clusters)
        for c in np.flatnonzero(sizes == 0):
            donors = sizes[labels] > 1
            score = np.where(donors, upper, -np.inf)
            i = int(np.argmax(score))
            logger.debug(f"Cluster {c} is empty, reseeding it with diagram {i}")
            sizes[labels[i]] -= 1
            labels[i] = c
            sizes[c] = 1
            upper[i] = np.inf
            lower[i] = 0.0
        return labels, upper, lower

    # -----------------------------------------------------------------
    # Update
    # -----------------------------------------------------------------

    def _update(self, parts, kinds, labels, centroids) -> List[Parts]:
        """Per-kind barycenter of every cluster, warm started from its centroid."""
        n_clusters = len(centroids)
        tasks = [(c, k) for c in range(n_clusters) for k in kinds]
        kwargs = self._match_kwargs()

        def work(task):
            c, k = task
            self._check_deadline()
            members = [parts[i][k] for i in np.flatnonzero(labels == c)]
            if not members:
                return centroids[c][k]
            init = centroids[c][k] if len(members) > 1 else None
            return wasserstein_barycenter(
                members, self.order, self.alpha, init=init, kind=k, **kwargs
            ).points

        points = self._map(work, tasks)
        updated = [{} for _ in range(n_clusters)]
        for (c, k), pts in zip(tasks, points):
            updated[c][k] = pts
        return updated

    def _shifts(self, kinds, old, new) -> np.ndarray:
        """Distance each centroid moved."""
        return np.asarray(self._map(
            lambda c: self._distance(old[c], new[c], kinds),
            range(len(new)),
        ))

    def _centroid_distances(self, kinds, centroids) -> np.ndarray:
        n_clusters = len(centroids)
        pairs = [(a, b) for a in range(n_clusters) for b in range(a + 1, n_clusters)]
        values = self._map(lambda ab: self._distance(centroids[ab[0]], centroids[ab[1]], kinds), pairs)
        out = np.zeros((n_clusters, n_clusters))
        for (a, b), d in zip(pairs, values):
            out[a, b] = out[b, a] = d
        return out

    # -----------------------------------------------------------------
    # Final matchings
    # -----------------------------------------------------------------

    def _finalize(self, parts, kinds, labels, centroids) -> ClusteringResult:
        """Match every diagram to its final centroid at full resolution."""
        kwargs = self._match_kwargs(with_deadline=False)

        def work(i):
            own = centroids[labels[i]]
            return {
                k: match_diagrams(parts[i][k], own[k], self.order, self.alpha, **kwargs)
                for k in kinds
            }

        matched = self._map(work, range(len(parts)))
        kind_distances = {
            k: np.array([m[k].distance for m in matched]) for k in kinds
        }
        distances = np.array([
            combine_distances([m[k].distance for k in kinds], self.order) for m in matched
        ])
        centroid_diagrams = [
            {
                k: Diagram.from_arrays(c[k].xy[:, 0], c[k].xy[:, 1], c[k].coords, kind=k)
                for k in kinds
            }
            for c in centroids
        ]
        return ClusteringResult(
            labels=np.asarray(labels, dtype=np.int64),
            centroids=centroids,
            centroid_diagrams=centroid_diagrams,
            distances=distances,
            kind_distances=kind_distances,
            matchings=[{k: m[k].matching for k in kinds} for m in matched],
            kinds=kinds,
        )
