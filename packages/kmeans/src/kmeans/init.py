"""
Initial cluster seeds.

Two strategies:
    kmeanspp_seeds     first seed uniform, then each next seed drawn with
                       probability proportional to D(x)^2, D = distance
                       to the nearest seed so far
    random_partition   shuffled balanced partition (label = position mod K);
                       each part is seeded by its first member
"""

from typing import Callable, List, Tuple

import numpy as np


def kmeanspp_seeds(
    n: int,
    k: int,
    distances_to: Callable[[int], np.ndarray],
    rng: np.random.RandomState,
) -> Tuple[List[int], np.ndarray, np.ndarray]:
    """
    k-means++ seeding.

    Parameters
    ----------
    n, k : int
        Number of diagrams and of clusters (k <= n).
    distances_to : callable
        ``distances_to(s)`` returns the (n,) distances from every diagram
        to diagram ``s``.
    rng : np.random.RandomState

    Returns
    -------
    seeds : list of int
        Distinct diagram indices, one per cluster.
    labels : (n,) int array
        Index of the nearest seed (earliest seed on ties).
    nearest : (n,) float array
        Distance to that seed.
    """
    first = int(rng.randint(n))
    seeds = [first]
    nearest = np.asarray(distances_to(first), dtype=np.float64).copy()
    nearest[first] = 0.0
    labels = np.zeros(n, dtype=np.int64)

    for c in range(1, k):
        weights = nearest ** 2
        weights[seeds] = 0.0
        total = float(weights.sum())
        if total > 0:
            nxt = int(rng.choice(n, p=weights / total))
        else:
            # every remaining diagram coincides with a seed
            nxt = next(i for i in range(n) if i not in seeds)
        seeds.append(nxt)

        d = np.asarray(distances_to(nxt), dtype=np.float64)
        closer = d < nearest
        labels[closer] = c
        nearest = np.minimum(nearest, d)

    for c, s in enumerate(seeds):
        labels[s] = c
        nearest[s] = 0.0
    return seeds, labels, nearest


def random_partition(n: int, k: int, rng: np.random.RandomState) -> Tuple[List[int], np.ndarray]:
    """
    Balanced random partition.

    Returns
    -------
    seeds : list of int
        First member (in shuffled order) of each part.
    labels : (n,) int array
    """
    perm = rng.permutation(n)
    labels = np.empty(n, dtype=np.int64)
    labels[perm] = np.arange(n) % k
    seeds = [int(perm[c]) for c in range(k)]
    return seeds, labels
