"""
Tabular views of a clustering run (polars).

    assignments_frame(result)       one row per input diagram
    centroids_frame(result)         one row per centroid point
    distance_matrix_frame(matrix)   one row per matrix row

Nothing is written to disk; callers persist the frames as they see fit.
"""

from typing import Optional

import numpy as np
import polars as pl

from distmat.execute import DistanceMatrixResult


def assignments_frame(result: DistanceMatrixResult) -> pl.DataFrame:
    """
    Columns: diagram, cluster, index_in_cluster, then distance_to_centroid
    and distance_<kind> when they were written.
    """
    n = len(result.inv_clustering)
    data = {
        'diagram': np.arange(n, dtype=np.int64),
        'cluster': np.asarray(result.inv_clustering, dtype=np.int64),
        'index_in_cluster': np.asarray(result.index_in_cluster, dtype=np.int64),
    }
    if result.distance_to_centroid is not None:
        data['distance_to_centroid'] = np.asarray(result.distance_to_centroid, dtype=np.float64)
    for kind, values in result.kind_distance_to_centroid.items():
        data[f'distance_{kind}'] = np.asarray(values, dtype=np.float64)
    return pl.DataFrame(data)


def centroids_frame(result: DistanceMatrixResult) -> pl.DataFrame:
    """Columns: cluster, kind, point, birth, death, persistence, x, y, z."""
    schema = {
        'cluster': pl.Int64,
        'kind': pl.Utf8,
        'point': pl.Int64,
        'birth': pl.Float64,
        'death': pl.Float64,
        'persistence': pl.Float64,
        'x': pl.Float64,
        'y': pl.Float64,
        'z': pl.Float64,
    }
    rows = []
    for c, per_kind in enumerate(result.centroids):
        for kind in result.active_kinds:
            for j, pair in enumerate(per_kind[kind].pairs):
                x, y, z = pair.birth_coords
                rows.append({
                    'cluster': c,
                    'kind': kind,
                    'point': j,
                    'birth': float(pair.birth),
                    'death': float(pair.death),
                    'persistence': float(pair.persistence),
                    'x': float(x),
                    'y': float(y),
                    'z': float(z),
                })

    if rows:
        return pl.DataFrame(rows, schema=schema)
    return pl.DataFrame(schema=schema)


def distance_matrix_frame(matrix: Optional[np.ndarray], prefix: str = 'diagram') -> pl.DataFrame:
    """
    Square or rectangular matrix as a frame: a ``row`` column followed by
    one ``<prefix>_<j>`` column per matrix column. NaN entries (skipped
    per-cluster pairs) stay NaN.
    """
    if matrix is None:
        return pl.DataFrame(schema={'row': pl.Int64})
    matrix = np.asarray(matrix, dtype=np.float64)
    data = {'row': np.arange(matrix.shape[0], dtype=np.int64)}
    for j in range(matrix.shape[1]):
        data[f'{prefix}_{j}'] = matrix[:, j]
    return pl.DataFrame(data)
