"""
Split raw diagrams into min / sad / max sub-diagrams.

Rules (only pairs with positive persistence participate):
    (LOCAL_MINIMUM, LOCAL_MAXIMUM), either order → 'max' only.
    otherwise, each test independently:
        touches LOCAL_MAXIMUM         → 'max'
        touches LOCAL_MINIMUM         → 'min'
        (SADDLE1, SADDLE2) any order  → 'sad'

Partitions may overlap. The only exclusive case is the global
min-max pair, which would otherwise be counted twice.

Pair type selector:
    0 → min-sad only, 1 → sad-sad only, 2 → sad-max only, other → all.
A disabled kind is removed from ``Partitions.active`` and every
downstream stage iterates ``active`` only.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

import numpy as np

from diagrams.types import KINDS, CriticalPair, CriticalType, Diagram

logger = logging.getLogger(__name__)


SELECTOR_KINDS = {
    0: ('min',),
    1: ('sad',),
    2: ('max',),
}

SELECTOR_LABELS = {
    0: 'Only MIN-SAD pairs',
    1: 'Only SAD-SAD pairs',
    2: 'Only SAD-MAX pairs',
}


@dataclass
class Partitions:
    """
    Partitioned inputs.

    Attributes
    ----------
    diagrams : dict
        {kind: [Diagram per input]} for all three kinds.
    present : dict
        {kind: bool}, true when at least one input has a pair of that kind.
    active : tuple of str
        Kinds that are both present and allowed by the selector.
    """
    diagrams: Dict[str, List[Diagram]] = field(default_factory=dict)
    present: Dict[str, bool] = field(default_factory=dict)
    active: Tuple[str, ...] = ()

    @property
    def n_inputs(self) -> int:
        return len(self.diagrams.get('min', []))

    def for_input(self, i: int) -> Dict[str, Diagram]:
        """Active sub-diagrams of input ``i``."""
        return {kind: self.diagrams[kind][i] for kind in self.active}

    def all_inputs(self) -> List[Dict[str, Diagram]]:
        return [self.for_input(i) for i in range(self.n_inputs)]

    def is_empty_input(self, i: int) -> bool:
        return all(self.diagrams[kind][i].empty for kind in KINDS)


def classify_pair(pair: CriticalPair) -> Tuple[str, ...]:
    """Kinds a pair contributes to (empty tuple if it contributes to none)."""
    if pair.persistence <= 0:
        return ()

    t1, t2 = pair.type_1, pair.type_2
    if {t1, t2} == {CriticalType.LOCAL_MINIMUM, CriticalType.LOCAL_MAXIMUM}:
        return ('max',)

    kinds = []
    if CriticalType.LOCAL_MAXIMUM in (t1, t2):
        kinds.append('max')
    if CriticalType.LOCAL_MINIMUM in (t1, t2):
        kinds.append('min')
    if {t1, t2} == {CriticalType.SADDLE1, CriticalType.SADDLE2}:
        kinds.append('sad')
    return tuple(kinds)


def partition_diagram(pairs: Sequence[CriticalPair]) -> Dict[str, Diagram]:
    """
    Split one raw diagram into its three sub-diagrams.

    Parameters
    ----------
    pairs : sequence of CriticalPair
        Raw diagram in source order.

    Returns
    -------
    dict {'min': Diagram, 'sad': Diagram, 'max': Diagram}
        Each Diagram's ``indices`` map back to positions in ``pairs``.
    """
    buckets = {kind: ([], []) for kind in KINDS}
    for j, pair in enumerate(pairs):
        for kind in classify_pair(pair):
            buckets[kind][0].append(pair)
            buckets[kind][1].append(j)

    return {
        kind: Diagram(pairs=ps, indices=np.asarray(idx, dtype=np.int64), kind=kind)
        for kind, (ps, idx) in buckets.items()
    }


def selected_kinds(selector: int) -> Tuple[str, ...]:
    return SELECTOR_KINDS.get(selector, KINDS)


def partition_inputs(
    raw_diagrams: Sequence[Sequence[CriticalPair]],
    selector: int = -1,
) -> Partitions:
    """
    Partition all inputs and work out which kinds take part.

    Parameters
    ----------
    raw_diagrams : sequence of sequences of CriticalPair
        One raw diagram per input.
    selector : int
        Pair type selector (see module docstring).

    Returns
    -------
    Partitions
    """
    diagrams = {kind: [] for kind in KINDS}
    for pairs in raw_diagrams:
        split = partition_diagram(pairs)
        for kind in KINDS:
            diagrams[kind].append(split[kind])

    present = {kind: any(not d.empty for d in diagrams[kind]) for kind in KINDS}
    allowed = selected_kinds(selector)
    active = tuple(kind for kind in KINDS if kind in allowed and present[kind])

    logger.debug(SELECTOR_LABELS.get(selector, 'All critical pairs: global clustering'))
    for kind in allowed:
        if not present[kind]:
            logger.info(f"No '{kind}' pairs in any input, partition disabled")

    return Partitions(diagrams=diagrams, present=present, active=active)
