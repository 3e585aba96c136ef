"""
Execution layer: signature deduplication, nonce allocation, conflict-free
scheduling and the web3 submission sink.
"""

from .deduplication import OpportunityDeduplicator
from .nonce import NonceManager
from .scheduler import (
    BatchReport,
    OpportunityScheduler,
    rank_opportunities,
    repay_amount,
    select_batch,
)
from .web3_submitter import Web3ArbitrageSubmitter, Web3NonceSource

__all__ = [
    "BatchReport",
    "NonceManager",
    "OpportunityDeduplicator",
    "OpportunityScheduler",
    "Web3ArbitrageSubmitter",
    "Web3NonceSource",
    "rank_opportunities",
    "repay_amount",
    "select_batch",
]
