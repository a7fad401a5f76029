"""
Core data model for persistence diagrams.

A persistence diagram arrives from the upstream extractor as an ordered
sequence of critical pairs. Each pair links two critical vertices, carries
their scalar values (birth, death), their 3-D positions and the persistence
(death - birth).

Partitioned diagrams keep a reference to the original pairs plus an index
map back to the position of each pair in the unpartitioned input, so that
matchings can be reported against the original point identities.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterator, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np


Coords = Tuple[float, float, float]

# Partition kinds, in the order every stage iterates them.
KINDS = ('min', 'sad', 'max')


class CriticalType(IntEnum):
    LOCAL_MINIMUM = 0
    SADDLE1 = 1
    SADDLE2 = 2
    LOCAL_MAXIMUM = 3
    DEGENERATE = 4
    REGULAR = 5


class CriticalPair(NamedTuple):
    """One persistence pair, as produced upstream. Immutable."""
    vertex_1: int
    type_1: CriticalType
    vertex_2: int
    type_2: CriticalType
    persistence: float
    pair_type: int = 0
    birth: float = 0.0
    birth_coords: Coords = (0.0, 0.0, 0.0)
    death: float = 0.0
    death_coords: Coords = (0.0, 0.0, 0.0)


class Matching(NamedTuple):
    """
    One matched pair between two diagrams.

    ``bidder`` indexes the first diagram, ``good`` the second. ``-1`` on
    either side means the other point is matched to the diagonal.
    """
    bidder: int
    good: int
    cost: float


DIAGONAL = -1


def make_pair(
    birth: float,
    death: float,
    type_1: CriticalType = CriticalType.LOCAL_MINIMUM,
    type_2: CriticalType = CriticalType.SADDLE1,
    vertex_1: int = -1,
    vertex_2: int = -1,
    birth_coords: Coords = (0.0, 0.0, 0.0),
    death_coords: Coords = (0.0, 0.0, 0.0),
    pair_type: int = 0,
) -> CriticalPair:
    """Build a CriticalPair with persistence = death - birth."""
    return CriticalPair(
        vertex_1=vertex_1,
        type_1=CriticalType(type_1),
        vertex_2=vertex_2,
        type_2=CriticalType(type_2),
        persistence=float(death - birth),
        pair_type=pair_type,
        birth=float(birth),
        birth_coords=tuple(float(c) for c in birth_coords),
        death=float(death),
        death_coords=tuple(float(c) for c in death_coords),
    )


@dataclass
class Diagram:
    """
    Ordered sequence of critical pairs for one input and one partition kind.

    Parameters
    ----------
    pairs : list of CriticalPair
        Pairs in source insertion order.
    indices : np.ndarray
        Position of each pair in the original (unpartitioned) diagram.
        Defaults to ``arange(len(pairs))``.
    kind : str
        'min', 'sad', 'max' or 'all'.
    """
    pairs: List[CriticalPair] = field(default_factory=list)
    indices: Optional[np.ndarray] = None
    kind: str = 'all'

    def __post_init__(self):
        if self.indices is None:
            self.indices = np.arange(len(self.pairs), dtype=np.int64)
        else:
            self.indices = np.asarray(self.indices, dtype=np.int64)
        if len(self.indices) != len(self.pairs):
            raise ValueError(
                f"index map has {len(self.indices)} entries for {len(self.pairs)} pairs"
            )

    def __len__(self) -> int:
        return len(self.pairs)

    def __iter__(self) -> Iterator[CriticalPair]:
        return iter(self.pairs)

    def __getitem__(self, i: int) -> CriticalPair:
        return self.pairs[i]

    @property
    def empty(self) -> bool:
        return len(self.pairs) == 0

    def births(self) -> np.ndarray:
        return np.array([p.birth for p in self.pairs], dtype=np.float64)

    def deaths(self) -> np.ndarray:
        return np.array([p.death for p in self.pairs], dtype=np.float64)

    def persistence(self) -> np.ndarray:
        return np.array([p.persistence for p in self.pairs], dtype=np.float64)

    def embedding(self, lambda_: float = 1.0) -> np.ndarray:
        """
        Spatial position of every pair: lambda·birth_coords + (1-lambda)·death_coords.

        Returns
        -------
        np.ndarray of shape (n, 3).
        """
        if not self.pairs:
            return np.zeros((0, 3))
        bc = np.array([p.birth_coords for p in self.pairs], dtype=np.float64)
        dc = np.array([p.death_coords for p in self.pairs], dtype=np.float64)
        return lambda_ * bc + (1.0 - lambda_) * dc

    def subset(self, order: Sequence[int]) -> 'Diagram':
        """Diagram restricted to positions ``order`` (index map follows)."""
        order = np.asarray(order, dtype=np.int64)
        return Diagram(
            pairs=[self.pairs[i] for i in order],
            indices=self.indices[order] if len(order) else np.zeros(0, dtype=np.int64),
            kind=self.kind,
        )

    def original_index(self, i: int) -> int:
        """Map a local position (or -1 for the diagonal) to the source position."""
        if i < 0:
            return DIAGONAL
        return int(self.indices[i])

    @classmethod
    def from_arrays(
        cls,
        births: np.ndarray,
        deaths: np.ndarray,
        coords: Optional[np.ndarray] = None,
        kind: str = 'all',
        types: Optional[Sequence[Tuple[CriticalType, CriticalType]]] = None,
    ) -> 'Diagram':
        """
        Synthesize a diagram (e.g. a barycenter) from numeric arrays.

        Synthesized pairs have vertex ids -1 and use the same position for
        both ends, so ``embedding()`` returns ``coords`` for any lambda.
        """
        births = np.asarray(births, dtype=np.float64)
        deaths = np.asarray(deaths, dtype=np.float64)
        n = len(births)
        if coords is None:
            coords = np.zeros((n, 3))
        default_types = _kind_types(kind)
        pairs = []
        for i in range(n):
            t1, t2 = types[i] if types is not None else default_types
            c = tuple(float(v) for v in coords[i])
            pairs.append(make_pair(
                births[i], deaths[i], type_1=t1, type_2=t2,
                birth_coords=c, death_coords=c,
            ))
        return cls(pairs=pairs, kind=kind)


def _kind_types(kind: str) -> Tuple[CriticalType, CriticalType]:
    if kind == 'min':
        return CriticalType.LOCAL_MINIMUM, CriticalType.SADDLE1
    if kind == 'sad':
        return CriticalType.SADDLE1, CriticalType.SADDLE2
    if kind == 'max':
        return CriticalType.SADDLE2, CriticalType.LOCAL_MAXIMUM
    return CriticalType.LOCAL_MINIMUM, CriticalType.LOCAL_MAXIMUM
