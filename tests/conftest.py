"""Shared fixtures for the cyclic arbitrage test suite."""

from typing import Sequence

import pytest

from cyclic_arbitrage.dex.graph import MarketGraph
from cyclic_arbitrage.dex.types import (
    ArbitrageOpportunity,
    Direction,
    Hop,
    PairInfo,
    PathCandidate,
    TaxedSide,
)

USDC = "USDC"
ETH = "ETH"
BTC = "BTC"
DAI = "DAI"

POOL_USDC_ETH = "0x00000000000000000000000000000000000000a1"
POOL_ETH_BTC = "0x00000000000000000000000000000000000000a2"
POOL_BTC_USDC = "0x00000000000000000000000000000000000000a3"
POOL_USDC_DAI = "0x00000000000000000000000000000000000000a4"


def address(n: int) -> str:
    return "0x" + format(n, "040x")


@pytest.fixture
def make_pair():
    """Factory for PairInfo with sensible defaults."""

    def _make(
        pool,
        token_a,
        token_b,
        reserve_a,
        reserve_b,
        fee_bps=30,
        buy_tax_bps=0,
        sell_tax_bps=0,
        taxed_side=TaxedSide.TOKEN_B,
    ):
        return PairInfo(
            pool=pool,
            token_a=token_a,
            token_b=token_b,
            reserve_a=reserve_a,
            reserve_b=reserve_b,
            fee_bps=fee_bps,
            buy_tax_bps=buy_tax_bps,
            sell_tax_bps=sell_tax_bps,
            taxed_side=taxed_side,
        )

    return _make


@pytest.fixture
def triangle_pairs(make_pair):
    """USDC/ETH 1000/5, ETH/BTC 10/1, BTC/USDC 1/20000, all 30 bps."""
    return [
        make_pair(POOL_USDC_ETH, USDC, ETH, 1000, 5),
        make_pair(POOL_ETH_BTC, ETH, BTC, 10, 1),
        make_pair(POOL_BTC_USDC, BTC, USDC, 1, 20000),
    ]


@pytest.fixture
def triangle_graph(triangle_pairs):
    graph = MarketGraph()
    graph.add_pools(triangle_pairs)
    return graph


@pytest.fixture
def loan_graph(triangle_pairs, make_pair):
    """Triangle plus a deep USDC/DAI pool able to fund flash loans."""
    graph = MarketGraph()
    graph.add_pools(triangle_pairs + [make_pair(POOL_USDC_DAI, USDC, DAI, 100_000, 100_000)])
    return graph


@pytest.fixture
def make_opportunity():
    """Factory for sized opportunities over arbitrary token/pool paths."""

    def _make(
        tokens: Sequence[str],
        pools: Sequence[str],
        profit: float,
        optimal_input: float = 100.0,
        fee_bps: int = 30,
    ) -> ArbitrageOpportunity:
        hops = tuple(
            Hop(
                pool=pool,
                token_in=tokens[i],
                token_out=tokens[i + 1],
                direction=Direction.A_TO_B,
                reserve_in=10_000,
                reserve_out=10_000,
                fee_bps=fee_bps,
                base_fee_bps=fee_bps,
            )
            for i, pool in enumerate(pools)
        )
        candidate = PathCandidate(tokens=tuple(tokens), hops=hops)
        return ArbitrageOpportunity(
            candidate=candidate,
            optimal_input=optimal_input,
            profit=profit,
            signature=candidate.signature,
        )

    return _make
