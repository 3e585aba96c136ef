"""
Cyclic AMM Arbitrage.

Detects and sizes cyclic arbitrage opportunities across constant-product
liquidity pools modeled as a directed graph, then schedules conflict-free
execution of the most profitable, non-overlapping opportunities.
"""

PROJECT_NAME = "cyclic-arbitrage"
VERSION = "0.3.0"

# Export main components for easier imports
from cyclic_arbitrage.dex.cycle_search import (
    CycleSearch,
    circular_or_secondary_policy,
    circular_policy,
)
from cyclic_arbitrage.dex.graph import MarketGraph
from cyclic_arbitrage.dex.solver import ProfitSolver
from cyclic_arbitrage.dex.types import (
    ArbitrageOpportunity,
    PairInfo,
    PathCandidate,
    ReserveUpdate,
    TaxedSide,
)
from cyclic_arbitrage.engine import ArbitrageEngine
from cyclic_arbitrage.execution.deduplication import OpportunityDeduplicator
from cyclic_arbitrage.execution.nonce import NonceManager
from cyclic_arbitrage.execution.scheduler import BatchReport, OpportunityScheduler
from cyclic_arbitrage.monitor import ReserveUpdateMonitor

__all__ = [
    "PROJECT_NAME",
    "VERSION",
    "ArbitrageEngine",
    "ArbitrageOpportunity",
    "BatchReport",
    "CycleSearch",
    "MarketGraph",
    "NonceManager",
    "OpportunityDeduplicator",
    "OpportunityScheduler",
    "PairInfo",
    "PathCandidate",
    "ProfitSolver",
    "ReserveUpdate",
    "ReserveUpdateMonitor",
    "TaxedSide",
    "circular_or_secondary_policy",
    "circular_policy",
]
