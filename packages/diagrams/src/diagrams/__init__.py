"""
Diagrams package for persistence diagram clustering.

Data model (critical pairs, diagrams, matchings), the shared error
taxonomy, and the partitioner that splits a raw diagram into its
min-saddle, saddle-saddle and saddle-max sub-diagrams.

Partitioned diagrams keep an index map to the source positions so that
matchings computed downstream can be reported on original points.
"""

from diagrams.types import (
    KINDS,
    DIAGONAL,
    CriticalType,
    CriticalPair,
    Diagram,
    Matching,
    make_pair,
)
from diagrams.errors import (
    DiagramError,
    InputError,
    ConfigError,
    DeadlineExceeded,
    NumericalDegeneracyWarning,
)
from diagrams.config import ClusteringConfig
from diagrams.partition import (
    Partitions,
    classify_pair,
    partition_diagram,
    partition_inputs,
)

__all__ = [
    'KINDS',
    'DIAGONAL',
    'CriticalType',
    'CriticalPair',
    'Diagram',
    'Matching',
    'make_pair',
    'DiagramError',
    'InputError',
    'ConfigError',
    'DeadlineExceeded',
    'NumericalDegeneracyWarning',
    'ClusteringConfig',
    'Partitions',
    'classify_pair',
    'partition_diagram',
    'partition_inputs',
]
