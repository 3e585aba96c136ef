"""
AMM market model: the pool graph, beam cycle search and the Newton-Raphson
profit solver.
"""

from .cycle_search import CycleSearch, circular_or_secondary_policy, circular_policy
from .graph import MarketGraph
from .snapshot import load_pool_snapshot
from .solver import ProfitSolver
from .types import (
    ArbitrageOpportunity,
    Direction,
    Edge,
    Hop,
    PairInfo,
    PathCandidate,
    ReserveUpdate,
    TaxedSide,
)

__all__ = [
    "ArbitrageOpportunity",
    "CycleSearch",
    "Direction",
    "Edge",
    "Hop",
    "MarketGraph",
    "PairInfo",
    "PathCandidate",
    "ProfitSolver",
    "ReserveUpdate",
    "TaxedSide",
    "circular_or_secondary_policy",
    "circular_policy",
    "load_pool_snapshot",
]
