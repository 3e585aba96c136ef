"""
Unit tests for cyclic_arbitrage/dex/graph.py

Verifies edge construction, directional tax handling, in-place reserve
updates and the best-pool index used for flash-loan sourcing.
"""

import logging

import pytest

from cyclic_arbitrage.dex.graph import MarketGraph, direction_tax_bps
from cyclic_arbitrage.dex.types import Direction, LoanSource, ReserveUpdate, TaxedSide

P1 = "0x00000000000000000000000000000000000000a1"
P2 = "0x00000000000000000000000000000000000000a2"
P3 = "0x00000000000000000000000000000000000000a3"
P4 = "0x00000000000000000000000000000000000000a4"


class TestMarketGraphConstruction:
    def test_add_pool_creates_two_edges(self, make_pair):
        graph = MarketGraph()
        assert graph.add_pool(make_pair(P1, "USDC", "ETH", 1000, 5))

        assert len(graph) == 1
        assert graph.edge_count() == 2
        assert set(graph.tokens()) == {"USDC", "ETH"}

        edge = graph.edge("USDC", P1)
        assert edge.to == "ETH"
        assert edge.direction is Direction.A_TO_B
        assert (edge.reserve_in, edge.reserve_out) == (1000, 5)

        back = graph.edge("ETH", P1)
        assert back.to == "USDC"
        assert (back.reserve_in, back.reserve_out) == (5, 1000)

    def test_zero_reserve_pool_is_ignored(self, make_pair):
        graph = MarketGraph()
        assert not graph.add_pool(make_pair(P1, "USDC", "ETH", 0, 5))
        assert not graph.add_pool(make_pair(P2, "USDC", "BTC", 10, 0))

        assert len(graph) == 0
        assert graph.edge_count() == 0
        assert graph.edges_from("USDC") == []

    def test_identical_tokens_rejected(self, make_pair):
        graph = MarketGraph()
        assert not graph.add_pool(make_pair(P1, "USDC", "USDC", 10, 10))
        assert graph.edge_count() == 0

    def test_edges_from_unknown_token(self, triangle_graph):
        assert triangle_graph.edges_from("DOGE") == []

    def test_readding_pool_does_not_duplicate_edges(self, triangle_graph, make_pair):
        original = triangle_graph.edge("USDC", P1)
        assert triangle_graph.edge_count() == 6

        triangle_graph.add_pool(make_pair(P1, "USDC", "ETH", 2000, 7))

        assert triangle_graph.edge_count() == 6
        assert len(triangle_graph) == 3
        edges = [e for e in triangle_graph.edges_from("USDC") if e.pool == P1]
        assert len(edges) == 1
        assert edges[0] is original
        assert (edges[0].reserve_in, edges[0].reserve_out) == (2000, 7)
        assert (triangle_graph.edge("ETH", P1).reserve_in) == 7

    def test_readding_pool_with_new_tokens_moves_edges(self, triangle_graph, make_pair):
        triangle_graph.add_pool(make_pair(P1, "USDC", "DAI", 1000, 1000))

        assert triangle_graph.edge("ETH", P1) is None
        assert triangle_graph.edge("USDC", P1).to == "DAI"
        assert triangle_graph.edge_count() == 6

    def test_clear(self, triangle_graph):
        triangle_graph.clear()
        assert len(triangle_graph) == 0
        assert triangle_graph.tokens() == []
        assert triangle_graph.best_pool_for("USDC", 1) is None


class TestReserveUpdates:
    def test_update_patches_edges_in_place(self, triangle_graph):
        edge = triangle_graph.edge("USDC", P1)

        assert triangle_graph.update_reserves(P1, 1500, 6)

        assert triangle_graph.edge("USDC", P1) is edge
        assert (edge.reserve_in, edge.reserve_out) == (1500, 6)
        assert triangle_graph.pool(P1).reserve_a == 1500

    def test_update_is_idempotent(self, triangle_graph):
        triangle_graph.update_reserves(P2, 12, 2)
        triangle_graph.update_reserves(P2, 12, 2)

        assert triangle_graph.edge_count() == 6
        assert triangle_graph.edge("ETH", P2).reserve_in == 12

    def test_drain_to_zero_removes_edges(self, triangle_graph):
        triangle_graph.update_reserves(P2, 0, 1)

        assert triangle_graph.edge("ETH", P2) is None
        assert triangle_graph.edge("BTC", P2) is None
        assert triangle_graph.edge_count() == 4
        assert P2 in triangle_graph

    def test_refill_restores_edges(self, triangle_graph):
        triangle_graph.update_reserves(P2, 0, 1)
        triangle_graph.update_reserves(P2, 10, 1)

        assert triangle_graph.edge_count() == 6
        assert triangle_graph.edge("BTC", P2).reserve_out == 10

    def test_batch_skips_unknown_pool(self, triangle_graph, caplog):
        caplog.set_level(logging.WARNING)
        applied = triangle_graph.update_reserves_batch(
            [
                ReserveUpdate(P1, 1100, 5),
                ReserveUpdate("0xdeadbeef", 1, 1),
                (P3, 2, 30000),
            ]
        )

        assert applied == 2
        assert triangle_graph.edge("USDC", P1).reserve_in == 1100
        assert triangle_graph.edge("BTC", P3).reserve_out == 30000
        assert "not found in graph" in caplog.text

    def test_batch_skips_negative_reserves(self, triangle_graph):
        assert triangle_graph.update_reserves_batch([(P1, -1, 5)]) == 0
        assert triangle_graph.edge("USDC", P1).reserve_in == 1000

    def test_metrics_receive_applied_count(self, triangle_pairs):
        class Recorder:
            def __init__(self):
                self.counts = []

            def record_reserve_updates(self, count):
                self.counts.append(count)

        recorder = Recorder()
        graph = MarketGraph(metrics=recorder)
        graph.add_pools(triangle_pairs)
        graph.update_reserves_batch([(P1, 1, 1), (P2, 2, 2), ("0xunknown", 3, 3)])

        assert recorder.counts == [2]


class TestTransferTax:
    def test_direction_tax_token_b(self):
        assert direction_tax_bps(Direction.A_TO_B, TaxedSide.TOKEN_B, 100, 300) == 100
        assert direction_tax_bps(Direction.B_TO_A, TaxedSide.TOKEN_B, 100, 300) == 300

    def test_direction_tax_token_a(self):
        assert direction_tax_bps(Direction.A_TO_B, TaxedSide.TOKEN_A, 100, 300) == 300
        assert direction_tax_bps(Direction.B_TO_A, TaxedSide.TOKEN_A, 100, 300) == 100

    def test_direction_tax_none(self):
        assert direction_tax_bps(Direction.A_TO_B, TaxedSide.NONE, 100, 300) == 0

    def test_effective_fee_includes_direction_tax(self, make_pair):
        graph = MarketGraph()
        graph.add_pool(
            make_pair(P1, "WETH", "TAX", 1000, 1000, fee_bps=30, buy_tax_bps=500, sell_tax_bps=1000)
        )

        buy = graph.edge("WETH", P1)
        sell = graph.edge("TAX", P1)

        assert buy.fee_bps == 530
        assert sell.fee_bps == 1030
        assert buy.fee_multiplier == pytest.approx(0.947)

    def test_buy_and_sell_tax_reverse_across_directions(self, make_pair):
        graph = MarketGraph()
        graph.add_pool(
            make_pair(P1, "WETH", "TAX", 1000, 1000, buy_tax_bps=200, sell_tax_bps=700)
        )

        forward = graph.edge("WETH", P1)
        backward = graph.edge("TAX", P1)

        assert forward.buy_tax_bps == backward.sell_tax_bps == 200
        assert forward.sell_tax_bps == backward.buy_tax_bps == 700

    def test_prohibitive_tax_drops_direction(self, make_pair):
        graph = MarketGraph()
        graph.add_pool(make_pair(P1, "WETH", "HONEY", 1000, 1000, buy_tax_bps=9970))

        assert graph.edge("WETH", P1) is None
        assert graph.edge("HONEY", P1) is not None

    def test_update_tax_rebuilds_edges(self, make_pair):
        graph = MarketGraph()
        graph.add_pool(make_pair(P1, "WETH", "TAX", 1000, 1000))
        edge = graph.edge("WETH", P1)
        assert edge.fee_bps == 30

        assert graph.update_tax(P1, 300, 600)

        assert graph.edge("WETH", P1) is edge
        assert edge.fee_bps == 330
        assert graph.edge("TAX", P1).fee_bps == 630

    def test_update_tax_switches_taxed_side(self, make_pair):
        graph = MarketGraph()
        graph.add_pool(make_pair(P1, "TAX", "WETH", 1000, 1000, buy_tax_bps=300, sell_tax_bps=600))

        graph.update_tax(P1, 300, 600, taxed_side=TaxedSide.TOKEN_A)

        # Selling TAX for WETH is now the sell direction
        assert graph.edge("TAX", P1).fee_bps == 630
        assert graph.edge("WETH", P1).fee_bps == 330

    def test_update_tax_unknown_pool(self):
        assert not MarketGraph().update_tax("0xmissing", 1, 1)


class TestBestPool:
    def test_highest_reserve_pool_selected(self, loan_graph):
        loan = loan_graph.best_pool_for("USDC", 1000)
        assert loan == LoanSource(pool=P4, fee_bps=30, reserve=100_000)

    def test_excluded_pool_falls_back_to_next_best(self, loan_graph):
        loan = loan_graph.best_pool_for("USDC", 1000, exclude_pools=[P4.upper().replace("0X", "0x")])
        assert loan.pool == P3
        assert loan.reserve == 20_000

    def test_reserve_must_exceed_safety_multiple(self, loan_graph):
        assert loan_graph.best_pool_for("USDC", 40_000) is None
        # Equal to the multiple is not enough
        assert loan_graph.best_pool_for("USDC", 25_000, reserve_multiple=4) is None
        assert loan_graph.best_pool_for("USDC", 24_999, reserve_multiple=4).pool == P4

    def test_all_pools_excluded(self, triangle_graph):
        assert triangle_graph.best_pool_for("USDC", 1, exclude_pools=[P1, P3]) is None

    def test_unknown_token(self, triangle_graph):
        assert triangle_graph.best_pool_for("DOGE", 1) is None

    def test_index_demotes_drained_best_pool(self, loan_graph):
        loan_graph.update_reserves(P4, 10, 10)
        assert loan_graph.best_pool_for("USDC", 1).pool == P3

        loan_graph.update_reserves(P3, 0, 0)
        assert loan_graph.best_pool_for("USDC", 1).pool == P1

    def test_index_promotes_growing_pool(self, loan_graph):
        loan_graph.update_reserves(P1, 500_000, 2500)
        assert loan_graph.best_pool_for("USDC", 1).pool == P1
