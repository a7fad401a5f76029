"""
Barycenter package for persistence diagram clustering.

Wasserstein barycenter (Fréchet mean) of a set of same-kind diagrams,
computed as the fixed point of "match every member to the barycenter,
then move each barycenter point to the mean of its matches".

Used as the centroid update of the K-Means engine, warm started from
the previous centroid.
"""

from barycenter.frechet import BarycenterResult, wasserstein_barycenter

__all__ = [
    'BarycenterResult',
    'wasserstein_barycenter',
]
