"""
Market graph of constant-product pools.

Tokens are nodes of a NetworkX multi-digraph; every tradable pool contributes
two directed edges keyed by the pool address, so an (source token, pool)
pair maps to exactly one edge object. Reserve updates patch those edge
objects in place and touch nothing but the owning pool.
"""

from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import networkx as nx

from ..utils import BPS_DENOMINATOR, get_logger, short_address
from .types import Direction, Edge, LoanSource, PairInfo, ReserveUpdate, TaxedSide

logger = get_logger(__name__)

DEFAULT_LOAN_RESERVE_MULTIPLE = 3


def direction_tax_bps(
    direction: Direction, taxed_side: TaxedSide, buy_tax_bps: int, sell_tax_bps: int
) -> int:
    """
    Transfer tax charged when swapping through a pool in one direction.

    Flowing into the taxed token is a buy, flowing out of it is a sell.
    """
    if taxed_side is TaxedSide.NONE:
        return 0
    buying_b = direction is Direction.A_TO_B
    if taxed_side is TaxedSide.TOKEN_B:
        return buy_tax_bps if buying_b else sell_tax_bps
    return sell_tax_bps if buying_b else buy_tax_bps


class MarketGraph:
    """Tokens, pools and directed swap edges with a per-token best-pool index."""

    def __init__(self, metrics=None):
        self._graph = nx.MultiDiGraph()
        self._pairs: Dict[str, PairInfo] = {}
        # token -> (pool, reserve of that token in the pool)
        self._best_pool: Dict[str, Tuple[str, int]] = {}
        self.metrics = metrics

    # ------------------------------------------------------------------
    # Construction and updates
    # ------------------------------------------------------------------

    def add_pool(self, pair: PairInfo) -> bool:
        """
        Register a pool and (re)build its two directional edges.

        Pools with a zero reserve are silently ignored. Re-adding a known
        pool replaces its stored info and refreshes the existing edges.

        Returns:
            True if the pool is now tradable in the graph
        """
        if not pair.is_tradable:
            logger.debug(f"Ignoring pool {short_address(pair.pool)} with zero reserve")
            return False
        if pair.token_a == pair.token_b:
            logger.warning(
                f"Ignoring pool {short_address(pair.pool)}: both sides are {pair.token_a}"
            )
            return False

        existing = self._pairs.get(pair.pool)
        if existing is not None and {existing.token_a, existing.token_b} != {
            pair.token_a,
            pair.token_b,
        }:
            self._remove_edges(existing)
            self._rescan_best_pool(existing.token_a)
            self._rescan_best_pool(existing.token_b)

        self._graph.add_node(pair.token_a)
        self._graph.add_node(pair.token_b)
        self._pairs[pair.pool] = pair
        self._refresh_pool(pair)
        return True

    def add_pools(self, pairs: Iterable[PairInfo]) -> int:
        """Add a snapshot of pools; returns the number accepted."""
        added = sum(1 for pair in pairs if self.add_pool(pair))
        logger.info(
            f"Market graph built: {self._graph.number_of_nodes()} tokens, "
            f"{len(self._pairs)} pools, {self._graph.number_of_edges()} edges"
        )
        return added

    def update_reserves(self, pool: str, reserve_a: int, reserve_b: int) -> bool:
        """Patch one pool's reserves; see update_reserves_batch."""
        return self.update_reserves_batch([ReserveUpdate(pool, reserve_a, reserve_b)]) == 1

    def update_reserves_batch(
        self, updates: Iterable[Union[ReserveUpdate, Tuple[str, int, int]]]
    ) -> int:
        """
        Apply reserve observations and refresh only the touched pools' edges.

        Unknown pools and negative reserves are logged and skipped. A pool
        drained to zero on either side loses its edges until it refills.

        Returns:
            Number of updates applied
        """
        touched: Dict[str, PairInfo] = {}
        applied = 0

        for pool, reserve_a, reserve_b in updates:
            pair = self._pairs.get(pool)
            if pair is None:
                logger.warning(
                    f"Pool {pool} not found in graph. Consider adding it first."
                )
                continue
            if reserve_a < 0 or reserve_b < 0:
                logger.warning(
                    f"Ignoring negative reserves for pool {pool}: {reserve_a}, {reserve_b}"
                )
                continue

            pair.reserve_a = int(reserve_a)
            pair.reserve_b = int(reserve_b)
            touched[pool] = pair
            applied += 1

        for pair in touched.values():
            self._refresh_pool(pair)

        if self.metrics is not None and applied:
            self.metrics.record_reserve_updates(applied)
        return applied

    def update_tax(
        self,
        pool: str,
        buy_tax_bps: int,
        sell_tax_bps: int,
        taxed_side: Optional[TaxedSide] = None,
    ) -> bool:
        """Refresh a pool's transfer-tax parameters and rebuild its edges."""
        pair = self._pairs.get(pool)
        if pair is None:
            logger.warning(f"Pool {pool} not found in graph; tax update ignored")
            return False

        pair.buy_tax_bps = int(buy_tax_bps)
        pair.sell_tax_bps = int(sell_tax_bps)
        if taxed_side is not None:
            pair.taxed_side = taxed_side
        self._refresh_pool(pair)
        return True

    def clear(self) -> None:
        """Drop all state ahead of a full resync."""
        self._graph.clear()
        self._pairs.clear()
        self._best_pool.clear()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def edges_from(self, token: str) -> List[Edge]:
        """Outgoing edges of a token; empty for unknown or isolated tokens."""
        if token not in self._graph:
            return []
        return [data["edge"] for _, _, data in self._graph.out_edges(token, data=True)]

    def edge(self, source: str, pool: str) -> Optional[Edge]:
        """The edge leaving `source` through `pool`, if tradable."""
        pair = self._pairs.get(pool)
        if pair is None or source not in (pair.token_a, pair.token_b):
            return None
        target = pair.token_b if source == pair.token_a else pair.token_a
        data = self._graph.get_edge_data(source, target, key=pool)
        return data["edge"] if data else None

    def best_pool_for(
        self,
        token: str,
        min_amount: int,
        exclude_pools: Sequence[str] = (),
        reserve_multiple: int = DEFAULT_LOAN_RESERVE_MULTIPLE,
    ) -> Optional[LoanSource]:
        """
        Highest-reserve pool holding `token`, outside `exclude_pools`.

        The pool is only returned when its reserve of `token` exceeds
        `reserve_multiple` times `min_amount`.
        """
        excluded = {pool.lower() for pool in exclude_pools}
        best = self._best_pool.get(token)

        if best is not None and best[0].lower() not in excluded:
            pool, reserve = best
        else:
            pool, reserve = None, 0
            for edge in self.edges_from(token):
                if edge.pool.lower() in excluded:
                    continue
                if pool is None or edge.reserve_in > reserve:
                    pool, reserve = edge.pool, edge.reserve_in
            if pool is None:
                return None

        if reserve <= min_amount * reserve_multiple:
            return None
        return LoanSource(pool=pool, fee_bps=self._pairs[pool].fee_bps, reserve=reserve)

    def tokens(self) -> List[str]:
        return list(self._graph.nodes)

    def pool_addresses(self) -> List[str]:
        return list(self._pairs.keys())

    def pools(self) -> List[PairInfo]:
        return list(self._pairs.values())

    def pool(self, pool: str) -> Optional[PairInfo]:
        return self._pairs.get(pool)

    def edge_count(self) -> int:
        return self._graph.number_of_edges()

    def __contains__(self, pool: str) -> bool:
        return pool in self._pairs

    def __len__(self) -> int:
        return len(self._pairs)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _refresh_pool(self, pair: PairInfo) -> None:
        if not pair.is_tradable:
            self._remove_edges(pair)
        else:
            for direction in (Direction.A_TO_B, Direction.B_TO_A):
                self._refresh_edge(pair, direction)

        self._update_best_pool(pair.token_a, pair, pair.reserve_a)
        self._update_best_pool(pair.token_b, pair, pair.reserve_b)

    def _refresh_edge(self, pair: PairInfo, direction: Direction) -> None:
        source, target = pair.tokens_for(direction)
        reserve_in, reserve_out = pair.reserves_for(direction)
        tax_bps = direction_tax_bps(
            direction, pair.taxed_side, pair.buy_tax_bps, pair.sell_tax_bps
        )
        if direction is Direction.A_TO_B:
            buy_tax, sell_tax = pair.buy_tax_bps, pair.sell_tax_bps
        else:
            buy_tax, sell_tax = pair.sell_tax_bps, pair.buy_tax_bps

        data = self._graph.get_edge_data(source, target, key=pair.pool)

        if pair.fee_bps + tax_bps >= BPS_DENOMINATOR:
            # Nothing comes out of this direction
            if data is not None:
                self._graph.remove_edge(source, target, key=pair.pool)
            return

        if data is not None:
            edge = data["edge"]
            edge.reserve_in = reserve_in
            edge.reserve_out = reserve_out
            edge.base_fee_bps = pair.fee_bps
            edge.tax_bps = tax_bps
            edge.buy_tax_bps = buy_tax
            edge.sell_tax_bps = sell_tax
            return

        edge = Edge(
            source=source,
            to=target,
            pool=pair.pool,
            direction=direction,
            reserve_in=reserve_in,
            reserve_out=reserve_out,
            base_fee_bps=pair.fee_bps,
            tax_bps=tax_bps,
            buy_tax_bps=buy_tax,
            sell_tax_bps=sell_tax,
        )
        self._graph.add_edge(source, target, key=pair.pool, edge=edge)

    def _remove_edges(self, pair: PairInfo) -> None:
        for source, target in ((pair.token_a, pair.token_b), (pair.token_b, pair.token_a)):
            if self._graph.has_edge(source, target, key=pair.pool):
                self._graph.remove_edge(source, target, key=pair.pool)

    def _update_best_pool(self, token: str, pair: PairInfo, reserve: int) -> None:
        current = self._best_pool.get(token)
        tradable = self._graph.has_edge(
            token, pair.token_b if token == pair.token_a else pair.token_a, key=pair.pool
        )

        if current is None:
            if tradable:
                self._best_pool[token] = (pair.pool, reserve)
        elif current[0] == pair.pool:
            if tradable and reserve >= current[1]:
                self._best_pool[token] = (pair.pool, reserve)
            else:
                self._rescan_best_pool(token)
        elif tradable and reserve > current[1]:
            self._best_pool[token] = (pair.pool, reserve)

    def _rescan_best_pool(self, token: str) -> None:
        best: Optional[Tuple[str, int]] = None
        for edge in self.edges_from(token):
            if best is None or edge.reserve_in > best[1]:
                best = (edge.pool, edge.reserve_in)
        if best is None:
            self._best_pool.pop(token, None)
        else:
            self._best_pool[token] = best
