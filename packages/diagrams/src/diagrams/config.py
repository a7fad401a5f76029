"""
Run configuration.

One immutable object per ``execute`` call, handed by reference to every
stage. Validated at call time; nothing is persisted.

Usage:
    from diagrams.config import ClusteringConfig
    config = ClusteringConfig(n_clusters=3, wasserstein='2', use_kmeanspp=True)
    config.validate(n_inputs=12)
"""

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional

from diagrams.errors import ConfigError


WASSERSTEIN_ORDERS = ('1', '2', 'inf')


@dataclass(frozen=True)
class ClusteringConfig:
    """
    Parameters
    ----------
    wasserstein : str
        Order p: '1', '2' or 'inf'.
    thread_number : int
        Worker pool size.
    use_progressive : bool
        Progressive bound refinement for assignments and matrices.
    alpha : float
        Geometric factor in [0, 1]: 1 = persistence coordinates only,
        0 = spatial positions only.
    lambda_ : float
        Spatial embedding of a pair, lambda·birth vertex + (1-lambda)·death vertex.
    time_limit : float
        Seconds; <= 0 means no limit.
    use_kmeanspp : bool
        k-means++ seeding instead of a random initial partition.
    use_accelerated : bool
        Triangle-inequality pruning of the assignment step.
    n_clusters : int
        K.
    force_use_of_algorithm : bool
        Run the full K-Means loop even when K == 1 or K == N.
    deterministic : bool
        Seeded RNG and lowest-index tie breaking (bit-for-bit reproducible).
    seed : int
        Seed used when deterministic.
    pair_type_clustering : int
        0 min-sad, 1 sad-sad, 2 sad-max, other = all.
    use_delta_lim, delta_lim :
        Stop when no centroid moves more than delta_lim.
    distance_writing_options : int
        0 no distance to centroid, 1 combined, 2 combined + per kind.
    output_distance_matrix : bool
        Compute the diagram and centroid distance matrices.
    use_full_diagrams : bool
        Matrix pass on full diagrams, bypassing progressive refinement.
    per_cluster_distance_matrix : bool
        Only same-cluster entries of the diagram matrix.
    use_kdtree : bool
        KD-tree candidate search in the matcher.
    """
    wasserstein: str = '2'
    thread_number: int = 1
    use_progressive: bool = True
    alpha: float = 1.0
    lambda_: float = 1.0
    time_limit: float = 0.0
    use_kmeanspp: bool = False
    use_accelerated: bool = False
    n_clusters: int = 1
    force_use_of_algorithm: bool = False
    deterministic: bool = True
    seed: int = 0
    pair_type_clustering: int = -1
    use_delta_lim: bool = False
    delta_lim: float = 0.01
    distance_writing_options: int = 1
    output_distance_matrix: bool = False
    use_full_diagrams: bool = False
    per_cluster_distance_matrix: bool = False
    use_kdtree: bool = True

    def __post_init__(self):
        # accept 1, 2, -1, 'INF' and normalize to the canonical token
        token = str(self.wasserstein).strip().lower()
        if token == '-1':
            token = 'inf'
        object.__setattr__(self, 'wasserstein', token)

    def validate(self, n_inputs: Optional[int] = None) -> 'ClusteringConfig':
        """
        Raise ConfigError on any invalid setting; returns self.

        Parameters
        ----------
        n_inputs : int, optional
            Number of diagrams, to check K <= N.
        """
        if self.wasserstein not in WASSERSTEIN_ORDERS:
            raise ConfigError(
                f"wasserstein must be one of {WASSERSTEIN_ORDERS}, got {self.wasserstein!r}"
            )
        if self.n_clusters <= 0:
            raise ConfigError(f"n_clusters must be positive, got {self.n_clusters}")
        if n_inputs is not None and self.n_clusters > n_inputs:
            raise ConfigError(
                f"cannot form {self.n_clusters} non-empty clusters from {n_inputs} diagrams"
            )
        if not 0.0 <= self.alpha <= 1.0:
            raise ConfigError(f"alpha must lie in [0, 1], got {self.alpha}")
        if not 0.0 <= self.lambda_ <= 1.0:
            raise ConfigError(f"lambda must lie in [0, 1], got {self.lambda_}")
        if self.thread_number < 1:
            raise ConfigError(f"thread_number must be >= 1, got {self.thread_number}")
        if self.delta_lim < 0:
            raise ConfigError(f"delta_lim must be >= 0, got {self.delta_lim}")
        if self.distance_writing_options not in (0, 1, 2):
            raise ConfigError(
                f"distance_writing_options must be 0, 1 or 2, got {self.distance_writing_options}"
            )
        return self

    @property
    def has_time_limit(self) -> bool:
        return self.time_limit > 0

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> 'ClusteringConfig':
        """Build from a plain dict; unknown keys raise ConfigError."""
        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {sorted(unknown)}")
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
