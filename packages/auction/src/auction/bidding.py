"""
Gauss-Seidel auction with epsilon-scaling.

Bidders and goods are flat arrays; ownership is an index into the other
array (-1 = unassigned). Prices persist across scaling phases, the
assignment is reset at the start of every phase.

A bidder bids for its best good (value = -cost - price) and raises the
price by (best - second best) + eps. When eps reaches eps_final the
assignment is eps-optimal: its cost is within n·eps of the optimum.
The dual (prices + bidder profits) gives a matching lower bound.
"""

import time
from collections import deque
from dataclasses import dataclass
from typing import Optional

import numpy as np

from auction.candidates import CandidateGraph
from auction.config import CONFIG
from diagrams.errors import DeadlineExceeded


class AuctionStalled(Exception):
    """Bid cap reached before every bidder was assigned."""


@dataclass
class AuctionState:
    bidder_good: np.ndarray
    prices: np.ndarray
    cost: float
    lower_bound: float
    n_bids: int
    n_phases: int


def _dual_bound(graph: CandidateGraph, prices: np.ndarray) -> float:
    """Lower bound on the min assignment cost from the current prices."""
    profit = 0.0
    for g, c in zip(graph.goods, graph.costs):
        profit += float(np.max(-c - prices[g]))
    return -(profit + float(prices.sum()))


def run_auction(
    graph: CandidateGraph,
    deterministic: bool = True,
    random_state=None,
    deadline: Optional[float] = None,
    rel_tol: Optional[float] = None,
) -> AuctionState:
    """
    Solve the reduced assignment problem on ``graph``.

    Parameters
    ----------
    graph : CandidateGraph
        Pruned bidder → good candidates.
    deterministic : bool
        Bid in index order and break ties on the lowest good index.
        Otherwise the bidding order is shuffled with ``random_state``.
    random_state : np.random.RandomState, optional
    deadline : float, optional
        ``time.monotonic()`` timestamp; raises DeadlineExceeded when passed.
    rel_tol : float, optional
        Target n·eps_final / max_cost. Defaults to CONFIG.

    Returns
    -------
    AuctionState

    Raises
    ------
    AuctionStalled
        When a phase exceeds its bid cap.
    """
    cfg = CONFIG['auction']
    n = graph.n
    rel_tol = cfg['rel_tol'] if rel_tol is None else rel_tol
    check_every = cfg['deadline_check_every']

    scale = graph.max_cost()
    if scale <= 0.0:
        scale = 1.0
    eps_final = rel_tol * scale / max(n, 1)
    eps = max(scale / cfg['initial_divisor'], eps_final)
    factor = cfg['epsilon_factor']
    phase_cap = cfg['max_bids_per_bidder'] * max(n, 1)

    if deterministic:
        order = np.arange(n)
    else:
        rng = random_state if random_state is not None else np.random.RandomState()
        order = rng.permutation(n)

    prices = np.zeros(n, dtype=np.float64)
    bidder_good = np.full(n, -1, dtype=np.int64)
    n_bids = 0
    n_phases = 0

    while True:
        n_phases += 1
        bidder_good = np.full(n, -1, dtype=np.int64)
        good_owner = np.full(n, -1, dtype=np.int64)
        queue = deque(order.tolist())
        phase_bids = 0

        while queue:
            i = queue.popleft()
            goods = graph.goods[i]
            values = -graph.costs[i] - prices[goods]

            if len(goods) == 1:
                best = 0
                increment = eps
            else:
                best = int(np.argmax(values))
                top = values[best]
                values[best] = -np.inf
                increment = top - float(values.max()) + eps

            g = int(goods[best])
            prices[g] += increment
            previous = good_owner[g]
            if previous >= 0:
                bidder_good[previous] = -1
                queue.append(previous)
            good_owner[g] = i
            bidder_good[i] = g

            phase_bids += 1
            if phase_bids > phase_cap:
                raise AuctionStalled(
                    f"auction exceeded {phase_cap} bids at eps={eps:.3g}"
                )
            if deadline is not None and phase_bids % check_every == 0:
                if time.monotonic() > deadline:
                    raise DeadlineExceeded("deadline passed during auction")

        n_bids += phase_bids
        if eps <= eps_final:
            break
        eps = max(eps / factor, eps_final)

    cost = 0.0
    for i in range(n):
        cost += graph.edge_cost(i, int(bidder_good[i]))

    lower = min(_dual_bound(graph, prices), cost)
    return AuctionState(
        bidder_good=bidder_good,
        prices=prices,
        cost=cost,
        lower_bound=max(lower, 0.0),
        n_bids=n_bids,
        n_phases=n_phases,
    )
