"""
Ranking and conflict-free scheduling of arbitrage opportunities.

Opportunities are deduplicated by canonical signature, ranked by profit and
capped; the ranked list is then walked once, accepting an opportunity only
if none of its pools is already committed to the current batch. Circular
opportunities are funded by a flash loan from the deepest pool outside the
path, everything else is executed from the contract's own balance.
"""

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Set

from ..dex.graph import DEFAULT_LOAN_RESERVE_MULTIPLE, MarketGraph
from ..dex.types import ArbitrageOpportunity
from ..exceptions import NoFlashLoanPoolError
from ..interfaces import DirectRequest, FlashLoanRequest, NonceProvider, SubmissionSink
from ..utils import BPS_DENOMINATOR, get_logger, short_address
from .deduplication import OpportunityDeduplicator

logger = get_logger(__name__)

DEFAULT_MAX_OPPORTUNITIES = 20

MODE_FLASH_LOAN = "flash_loan"
MODE_DIRECT = "direct"


def repay_amount(borrowed: int, fee_bps: int) -> int:
    """
    Amount owed to a constant-product pool for a flash swap of `borrowed`.

    borrowed + borrowed * fee / (10000 - fee), plus one unit to cover the
    integer division rounding down.
    """
    return borrowed + borrowed * fee_bps // (BPS_DENOMINATOR - fee_bps) + 1


def select_batch(opportunities: Sequence[ArbitrageOpportunity]) -> List[ArbitrageOpportunity]:
    """Greedy pool-disjoint selection over an already ranked list."""
    committed: Set[str] = set()
    selected = []
    for opportunity in opportunities:
        pools = {pool.lower() for pool in opportunity.pools}
        if pools & committed:
            continue
        committed |= pools
        selected.append(opportunity)
    return selected


def rank_opportunities(
    opportunities: Sequence[ArbitrageOpportunity],
    deduplicator: OpportunityDeduplicator,
    max_opportunities: int = DEFAULT_MAX_OPPORTUNITIES,
    on_suppressed: Optional[Callable[[str], None]] = None,
) -> List[ArbitrageOpportunity]:
    """
    Suppress already-returned signatures, sort by profit and cap.

    Signatures of the returned opportunities are recorded in `deduplicator`
    so the same cycle is not returned again in a later round.
    """
    ranked: List[ArbitrageOpportunity] = []
    taken: Set[str] = set()

    for opportunity in sorted(opportunities, key=lambda o: o.profit, reverse=True):
        signature = opportunity.signature
        if signature in taken:
            reason = "duplicate"
        elif deduplicator.is_seen(signature):
            reason = "seen"
        elif len(ranked) >= max_opportunities:
            reason = "cap"
        else:
            taken.add(signature)
            ranked.append(opportunity)
            continue
        if on_suppressed is not None:
            on_suppressed(reason)

    for opportunity in ranked:
        deduplicator.record(opportunity.signature)
    return ranked


@dataclass
class BatchReport:
    """Outcome of one scheduling pass."""

    accepted: List[ArbitrageOpportunity] = field(default_factory=list)
    conflicts: List[ArbitrageOpportunity] = field(default_factory=list)
    failed: List[ArbitrageOpportunity] = field(default_factory=list)
    submitted: List[object] = field(default_factory=list)

    @property
    def accepted_pools(self) -> Set[str]:
        return {pool.lower() for opp in self.accepted for pool in opp.pools}

    def summary(self) -> dict:
        return {
            "accepted": len(self.accepted),
            "conflicts": len(self.conflicts),
            "failed": len(self.failed),
            "submitted": len(self.submitted),
        }


class OpportunityScheduler:
    """
    Deduplicates, ranks and routes opportunities to the submission sink.

    Args:
        graph: Market graph used to source flash-loan liquidity
        nonce_provider: Sequence number allocator (one per submission)
        sink: Submission collaborator
        max_opportunities: Cap on the ranked list
        loan_reserve_multiple: Loan pool reserve must exceed this multiple
            of the borrowed amount
        deduplicator: Signature memory shared across rounds
        metrics: Optional ArbitrageMetrics
    """

    def __init__(
        self,
        graph: MarketGraph,
        nonce_provider: NonceProvider,
        sink: SubmissionSink,
        max_opportunities: int = DEFAULT_MAX_OPPORTUNITIES,
        loan_reserve_multiple: int = DEFAULT_LOAN_RESERVE_MULTIPLE,
        deduplicator: Optional[OpportunityDeduplicator] = None,
        metrics=None,
    ):
        self.graph = graph
        self.nonce_provider = nonce_provider
        self.sink = sink
        self.max_opportunities = max_opportunities
        self.loan_reserve_multiple = loan_reserve_multiple
        self.deduplicator = deduplicator or OpportunityDeduplicator()
        self.metrics = metrics
        self._committed: Set[str] = set()

    def rank(self, opportunities: Sequence[ArbitrageOpportunity]) -> List[ArbitrageOpportunity]:
        """See rank_opportunities."""
        return rank_opportunities(
            opportunities,
            self.deduplicator,
            self.max_opportunities,
            on_suppressed=self._suppressed,
        )

    def schedule(self, opportunities: Sequence[ArbitrageOpportunity]) -> BatchReport:
        """
        Submit a pool-disjoint batch from a ranked list.

        Submission failures are logged and do not stop the batch; their pools
        stay committed until the batch ends.
        """
        report = BatchReport()
        try:
            for opportunity in opportunities:
                pools = {pool.lower() for pool in opportunity.pools}
                if pools & self._committed:
                    logger.debug(
                        f"Skipping {opportunity.candidate.describe()}: pool already committed"
                    )
                    report.conflicts.append(opportunity)
                    self._suppressed("conflict")
                    continue

                self._committed |= pools
                report.accepted.append(opportunity)

                mode = MODE_FLASH_LOAN if opportunity.is_circular else MODE_DIRECT
                try:
                    if opportunity.is_circular:
                        result = self._submit_flash_loan(opportunity)
                    else:
                        result = self._submit_direct(opportunity)
                except NoFlashLoanPoolError as e:
                    logger.error(f"{e} ({opportunity.signature})")
                    report.failed.append(opportunity)
                    self._submission(mode, "no_loan_pool")
                except Exception:
                    logger.exception(
                        f"Submission failed for {opportunity.candidate.describe()} "
                        f"({opportunity.signature})"
                    )
                    report.failed.append(opportunity)
                    self._submission(mode, "failed")
                else:
                    report.submitted.append(result)
                    self._submission(mode, "submitted")
        finally:
            self._committed.clear()

        logger.info(f"Batch scheduled: {report.summary()}")
        return report

    def run(self, opportunities: Sequence[ArbitrageOpportunity]) -> BatchReport:
        """rank() followed by schedule()."""
        return self.schedule(self.rank(opportunities))

    # ------------------------------------------------------------------

    def _submit_flash_loan(self, opportunity: ArbitrageOpportunity) -> object:
        amount = opportunity.input_amount
        loan = self.graph.best_pool_for(
            opportunity.start_token,
            amount,
            exclude_pools=opportunity.pools,
            reserve_multiple=self.loan_reserve_multiple,
        )
        if loan is None:
            raise NoFlashLoanPoolError(
                opportunity.start_token, amount, signature=opportunity.signature
            )

        sequence = self.nonce_provider.next()
        request = FlashLoanRequest(
            loan_pool=loan.pool,
            start_token=opportunity.start_token,
            borrow_amount=amount,
            repay_amount=repay_amount(amount, loan.fee_bps),
            path_pools=opportunity.pools,
            path_fees=opportunity.path_fees,
            repay_fee_bps=loan.fee_bps,
            expected_profit=opportunity.expected_profit,
            sequence=sequence,
        )
        logger.info(
            f"Flash loan {short_address(loan.pool)} -> {opportunity.candidate.describe()} "
            f"amount={amount} profit={opportunity.expected_profit} nonce={sequence}"
        )
        return self.sink.submit_flash_loan(request)

    def _submit_direct(self, opportunity: ArbitrageOpportunity) -> object:
        sequence = self.nonce_provider.next()
        request = DirectRequest(
            start_token=opportunity.start_token,
            start_amount=opportunity.input_amount,
            path_pools=opportunity.pools,
            path_fees=opportunity.path_fees,
            expected_profit=opportunity.expected_profit,
            sequence=sequence,
        )
        logger.info(
            f"Direct {opportunity.candidate.describe()} amount={request.start_amount} "
            f"profit={opportunity.expected_profit} nonce={sequence}"
        )
        return self.sink.submit_direct(request)

    def _suppressed(self, reason: str) -> None:
        if self.metrics is not None:
            self.metrics.record_suppressed(reason)

    def _submission(self, mode: str, status: str) -> None:
        if self.metrics is not None:
            self.metrics.record_submission(mode, status)
