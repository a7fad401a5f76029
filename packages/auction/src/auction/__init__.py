"""
Auction package for persistence diagram clustering.

Bipartite matching between two persistence diagrams under an order-p
Wasserstein cost (p = 1, 2 or inf), with a geometric factor blending
persistence coordinates against spatial positions.

p = 1, 2: auction algorithm with epsilon-scaling on a pruned candidate
graph (KD-tree radius queries for large diagrams), exact assignment as
the fallback. p = inf: bottleneck threshold search.

Unmatched points go to the diagonal; matchings cover both diagrams.
"""

from auction.cost import (
    WassersteinOrder,
    PointSet,
    as_points,
    diagonal_costs,
    pair_costs,
    distance_from_cost,
    cost_from_distance,
    combine_distances,
)
from auction.candidates import CandidateGraph, build_candidates
from auction.match import (
    MatchResult,
    match_diagrams,
    wasserstein_distance,
    exact_assignment,
)

__all__ = [
    'WassersteinOrder',
    'PointSet',
    'as_points',
    'diagonal_costs',
    'pair_costs',
    'distance_from_cost',
    'cost_from_distance',
    'combine_distances',
    'CandidateGraph',
    'build_candidates',
    'MatchResult',
    'match_diagrams',
    'wasserstein_distance',
    'exact_assignment',
]
