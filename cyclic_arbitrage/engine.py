"""
Arbitrage pipeline: market graph -> beam search -> profit sizing ->
deduplicating ranking -> conflict-free scheduling.
"""

import os
from typing import List, Optional, Sequence

from dotenv import load_dotenv
from web3 import Web3

from .config_schema import ArbitrageConfig
from .dex.cycle_search import CycleSearch, circular_or_secondary_policy, circular_policy
from .dex.graph import MarketGraph
from .dex.snapshot import load_pool_snapshot
from .dex.solver import ProfitSolver
from .dex.types import ArbitrageOpportunity
from .exceptions import ConfigurationError
from .execution.deduplication import OpportunityDeduplicator
from .execution.nonce import NonceManager
from .execution.scheduler import BatchReport, OpportunityScheduler, rank_opportunities
from .execution.web3_submitter import Web3ArbitrageSubmitter, Web3NonceSource
from .interfaces import NonceProvider, SubmissionSink
from .utils import get_logger, timing_decorator

logger = get_logger(__name__)


class ArbitrageEngine:
    """
    Runs search/scheduling passes over one market graph.

    Without a scheduler the engine works in paper mode: passes rank
    opportunities but submit nothing.
    """

    def __init__(
        self,
        graph: MarketGraph,
        search: CycleSearch,
        solver: ProfitSolver,
        source_tokens: Sequence[str],
        scheduler: Optional[OpportunityScheduler] = None,
        deduplicator: Optional[OpportunityDeduplicator] = None,
        max_opportunities: int = 20,
        metrics=None,
    ):
        self.graph = graph
        self.search = search
        self.solver = solver
        self.source_tokens = list(source_tokens)
        self.scheduler = scheduler
        self.metrics = metrics
        self.max_opportunities = max_opportunities
        self.deduplicator = (
            scheduler.deduplicator if scheduler is not None else deduplicator or OpportunityDeduplicator()
        )
        self.last_report: Optional[BatchReport] = None

    @classmethod
    def from_config(
        cls,
        config: ArbitrageConfig,
        graph: Optional[MarketGraph] = None,
        nonce_provider: Optional[NonceProvider] = None,
        sink: Optional[SubmissionSink] = None,
        metrics=None,
    ) -> "ArbitrageEngine":
        """
        Build an engine from configuration.

        The graph is seeded from `config.snapshot_path` when no graph is
        given. A scheduler is only created when both a nonce provider and a
        submission sink are supplied.
        """
        if graph is None:
            graph = MarketGraph(metrics=metrics)
            if config.snapshot_path:
                graph.add_pools(
                    load_pool_snapshot(config.snapshot_path, config.tax_overrides_path)
                )

        search_cfg = config.search
        if search_cfg.terminal_policy == "circular_or_secondary":
            policy = circular_or_secondary_policy(
                search_cfg.source_tokens, search_cfg.secondary_tokens
            )
        else:
            policy = circular_policy()

        search = CycleSearch(
            graph,
            max_depth=search_cfg.max_depth,
            beam_width=search_cfg.beam_width,
            policy=policy,
            metrics=metrics,
        )
        solver = ProfitSolver(
            initial_guess=config.solver.initial_guess,
            max_iterations=config.solver.max_iterations,
            tolerance=config.solver.tolerance,
            fallback_iterations=config.solver.fallback_iterations,
            min_profit=config.solver.min_profit,
        )
        deduplicator = OpportunityDeduplicator(
            signature_ttl_sec=config.scheduler.signature_ttl_sec
        )

        scheduler = None
        if (nonce_provider is None) != (sink is None):
            raise ConfigurationError(
                "nonce_provider and sink must be supplied together"
            )
        if nonce_provider is not None:
            scheduler = OpportunityScheduler(
                graph,
                nonce_provider,
                sink,
                max_opportunities=config.scheduler.max_opportunities,
                loan_reserve_multiple=config.scheduler.flash_loan_reserve_multiple,
                deduplicator=deduplicator,
                metrics=metrics,
            )

        return cls(
            graph,
            search,
            solver,
            search_cfg.source_tokens,
            scheduler=scheduler,
            deduplicator=deduplicator,
            max_opportunities=config.scheduler.max_opportunities,
            metrics=metrics,
        )

    @property
    def paper_mode(self) -> bool:
        return self.scheduler is None

    @timing_decorator
    def find_opportunities(
        self, sources: Optional[Sequence[str]] = None
    ) -> List[ArbitrageOpportunity]:
        """Search the graph and size every candidate; sorted by profit, best first."""
        sources = self.source_tokens if sources is None else list(sources)
        candidates = self.search.find(sources)

        opportunities = []
        for candidate in candidates:
            opportunity = self.solver.maximize(candidate)
            if opportunity is not None:
                opportunities.append(opportunity)

        opportunities.sort(key=lambda o: o.profit, reverse=True)
        if self.metrics is not None:
            self.metrics.record_opportunities(len(opportunities))
        logger.info(
            f"Search pass: {len(candidates)} candidates, "
            f"{len(opportunities)} profitable opportunities"
        )
        return opportunities

    def rank(self, opportunities: Sequence[ArbitrageOpportunity]) -> List[ArbitrageOpportunity]:
        if self.scheduler is not None:
            return self.scheduler.rank(opportunities)
        on_suppressed = self.metrics.record_suppressed if self.metrics is not None else None
        return rank_opportunities(
            opportunities, self.deduplicator, self.max_opportunities, on_suppressed
        )

    def run_pass(self) -> List[ArbitrageOpportunity]:
        """
        One full pass: search, size, rank and (outside paper mode) schedule.

        Returns:
            The ranked opportunities of this pass
        """
        ranked = self.rank(self.find_opportunities())
        if self.scheduler is not None and ranked:
            self.last_report = self.scheduler.schedule(ranked)
        return ranked


def build_live_engine(config: ArbitrageConfig, metrics=None) -> ArbitrageEngine:
    """
    Connect to the configured node and build an engine that submits through
    the arbitrage executor contract.
    """
    execution = config.execution
    if execution.mode != "live":
        raise ConfigurationError("build_live_engine requires execution.mode 'live'")

    load_dotenv()
    web3 = Web3(Web3.HTTPProvider(execution.rpc_url, request_kwargs={"timeout": 20}))
    if not web3.is_connected():
        raise ConfigurationError(f"Web3 not connected; bad rpc_url? ({execution.rpc_url})")

    nonce = NonceManager(Web3NonceSource(web3, execution.account_address))
    nonce.initialize()
    sink = Web3ArbitrageSubmitter(
        web3,
        execution.contract_address,
        execution.account_address,
        private_key=os.environ.get(execution.private_key_env),
        gas_limit=execution.gas_limit,
        flash_gas_profit_share=execution.flash_gas_profit_share,
        direct_gas_profit_share=execution.direct_gas_profit_share,
        chain_id=execution.chain_id,
    )
    return ArbitrageEngine.from_config(config, nonce_provider=nonce, sink=sink, metrics=metrics)
