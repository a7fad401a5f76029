"""
K-Means package for persistence diagram clustering.

Lloyd iterations over diagrams under the Wasserstein metric, with
k-means++ or random-partition seeding, barycenter centroids,
progressive and Elkan-accelerated assignment, and time, iteration and
centroid-shift stopping rules.
"""

from kmeans.init import kmeanspp_seeds, random_partition
from kmeans.clustering import (
    ClusteringConvergenceWarning,
    ClusteringResult,
    KMeansDiagrams,
)

__all__ = [
    'kmeanspp_seeds',
    'random_partition',
    'ClusteringConvergenceWarning',
    'ClusteringResult',
    'KMeansDiagrams',
]
