"""
Progressive package for persistence diagram clustering.

Bounds diagram distances from coarse (most persistent first) versions of
the diagrams and refines only the pairs whose bracket cannot yet settle
the decision being made: nearest-centroid assignment, or a distance
matrix entry under a deadline.

Refinement always ends at full resolution, where the bracket is the
full-resolution matcher's result.
"""

from progressive.ladder import PersistenceLadder, threshold_schedule
from progressive.bounds import (
    DistanceBounds,
    NearestResult,
    bound_distance,
    combined_bounds,
    progressive_distance,
    progressive_nearest,
    nearest_index,
)

__all__ = [
    'PersistenceLadder',
    'threshold_schedule',
    'DistanceBounds',
    'NearestResult',
    'bound_distance',
    'combined_bounds',
    'progressive_distance',
    'progressive_nearest',
    'nearest_index',
]
