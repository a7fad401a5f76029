"""
Clustering driver.

    execute(raw_diagrams, config) -> DistanceMatrixResult

validate config -> partition -> K-Means -> matrices -> matchings
reported on original pair indices.

Usage:
    from distmat import ClusteringConfig, execute
    result = execute(diagrams, ClusteringConfig(n_clusters=2, use_kmeanspp=True))
    result.inv_clustering       # cluster of every input
    result.merged_centroid(0)   # centroid of cluster 0, all kinds
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from auction.cost import PointSet
from diagrams.config import ClusteringConfig
from diagrams.errors import InputError
from diagrams.partition import Partitions, partition_inputs
from diagrams.types import CriticalPair, Diagram, Matching
from distmat.matrix import DistanceMatrixAssembler
from kmeans.clustering import ClusteringResult, KMeansDiagrams

logger = logging.getLogger(__name__)


@dataclass
class DistanceMatrixResult:
    """
    Everything a run produces.

    Attributes
    ----------
    inv_clustering : (N,) int array
        Cluster of every input diagram.
    cluster_sizes : (K,) int array
    index_in_cluster : (N,) int array
        Rank of every diagram among the members of its cluster (input order).
    centroids : list of dict kind -> Diagram
    matchings : list of dict kind -> list of Matching
        Per input; bidder = index of the pair in the raw input diagram,
        good = centroid point, -1 = diagonal.
    distance_to_centroid : (N,) float array or None
        None when distance_writing_options is 0.
    kind_distance_to_centroid : dict kind -> (N,) float array
        Filled when distance_writing_options is 2.
    diagrams_distance_matrix, centroids_distance_matrix : np.ndarray or None
        Filled when output_distance_matrix is set.
    """
    inv_clustering: np.ndarray
    cluster_sizes: np.ndarray
    index_in_cluster: np.ndarray
    centroids: List[Dict[str, Diagram]]
    matchings: List[Dict[str, List[Matching]]]
    distance_to_centroid: Optional[np.ndarray] = None
    kind_distance_to_centroid: Dict[str, np.ndarray] = field(default_factory=dict)
    diagrams_distance_matrix: Optional[np.ndarray] = None
    centroids_distance_matrix: Optional[np.ndarray] = None
    active_kinds: Tuple[str, ...] = ()
    n_iterations: int = 0
    converged: bool = True
    stop_reason: str = 'stable'
    elapsed: float = 0.0
    config: Optional[ClusteringConfig] = None

    @property
    def n_clusters(self) -> int:
        return len(self.centroids)

    @property
    def centroid_sizes(self) -> List[Dict[str, int]]:
        """Number of points of every centroid, per kind."""
        return [{k: len(d) for k, d in c.items()} for c in self.centroids]

    def merged_centroid(self, k: int) -> Diagram:
        """Centroid of cluster ``k`` with all kinds concatenated (min, sad, max)."""
        pairs = []
        for kind in self.active_kinds:
            pairs.extend(self.centroids[k][kind].pairs)
        return Diagram(pairs=pairs, kind='all')


def _index_in_cluster(labels: np.ndarray, n_clusters: int) -> np.ndarray:
    seen = np.zeros(n_clusters, dtype=np.int64)
    out = np.empty(len(labels), dtype=np.int64)
    for i, c in enumerate(labels):
        out[i] = seen[c]
        seen[c] += 1
    return out


def _original_matchings(
    partitions: Partitions,
    clustering: ClusteringResult,
) -> List[Dict[str, List[Matching]]]:
    """Re-express bidders (partition positions) as raw input positions."""
    out = []
    for i, per_kind in enumerate(clustering.matchings):
        mapped = {}
        for kind, matching in per_kind.items():
            diagram = partitions.diagrams[kind][i]
            mapped[kind] = [
                Matching(diagram.original_index(m.bidder), m.good, m.cost)
                for m in matching
            ]
        out.append(mapped)
    return out


def execute(
    raw_diagrams: Sequence[Sequence[CriticalPair]],
    config: Optional[ClusteringConfig] = None,
) -> DistanceMatrixResult:
    """
    Cluster persistence diagrams and assemble their distance matrices.

    Parameters
    ----------
    raw_diagrams : sequence of sequences of CriticalPair
        One raw diagram per input.
    config : ClusteringConfig, optional
        Defaults to ClusteringConfig().

    Returns
    -------
    DistanceMatrixResult

    Raises
    ------
    InputError
        No input, or no input has a pair of positive persistence.
    ConfigError
        Invalid configuration (including more clusters than inputs).
    """
    config = ClusteringConfig() if config is None else config
    start = time.monotonic()

    n = len(raw_diagrams)
    if n == 0:
        raise InputError("no input diagram")
    config.validate(n_inputs=n)

    partitions = partition_inputs(raw_diagrams, config.pair_type_clustering)
    if not any(partitions.present.values()):
        raise InputError(f"none of the {n} input diagrams has a pair of positive persistence")
    kinds = partitions.active

    logger.info(f"Clustering {n} diagrams in {config.n_clusters} cluster(s).")

    parts = [
        {k: PointSet.from_diagram(partitions.diagrams[k][i], config.lambda_) for k in kinds}
        for i in range(n)
    ]
    clustering = KMeansDiagrams(config).fit(parts, kinds)
    labels = clustering.labels

    diagrams_matrix = centroids_matrix = None
    if config.output_distance_matrix:
        with ThreadPoolExecutor(max_workers=config.thread_number) as pool:
            assembler = DistanceMatrixAssembler(config, kinds, pool=pool)
            diagrams_matrix = assembler.diagrams_matrix(
                parts, labels if config.per_cluster_distance_matrix else None
            )
            if kinds:
                centroids_matrix = assembler.centroids_matrix(parts, clustering.centroids)
            else:
                centroids_matrix = np.zeros((n, config.n_clusters))

    distance_to_centroid = None
    kind_distances = {}
    if config.distance_writing_options >= 1:
        distance_to_centroid = clustering.distances
    if config.distance_writing_options == 2:
        kind_distances = clustering.kind_distances

    elapsed = time.monotonic() - start
    result = DistanceMatrixResult(
        inv_clustering=labels,
        cluster_sizes=clustering.cluster_sizes,
        index_in_cluster=_index_in_cluster(labels, config.n_clusters),
        centroids=clustering.centroid_diagrams,
        matchings=_original_matchings(partitions, clustering),
        distance_to_centroid=distance_to_centroid,
        kind_distance_to_centroid=kind_distances,
        diagrams_distance_matrix=diagrams_matrix,
        centroids_distance_matrix=centroids_matrix,
        active_kinds=kinds,
        n_iterations=clustering.n_iterations,
        converged=clustering.converged,
        stop_reason=clustering.stop_reason,
        elapsed=elapsed,
        config=config,
    )

    logger.info(f"Processed in {elapsed:.3f} s ({config.thread_number} thread(s)).")
    return result
