"""
Distmat package for persistence diagram clustering.

Top-level driver: partitions the inputs, clusters them with K-Means under
the Wasserstein metric and assembles the diagram and centroid distance
matrices. Results can be viewed as polars frames.
"""

from diagrams.config import ClusteringConfig
from distmat.matrix import DistanceMatrixAssembler
from distmat.execute import DistanceMatrixResult, execute
from distmat.frames import assignments_frame, centroids_frame, distance_matrix_frame

__all__ = [
    'ClusteringConfig',
    'DistanceMatrixAssembler',
    'DistanceMatrixResult',
    'execute',
    'assignments_frame',
    'centroids_frame',
    'distance_matrix_frame',
]
