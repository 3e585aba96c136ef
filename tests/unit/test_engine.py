"""
Unit tests for cyclic_arbitrage/engine.py
"""

from unittest.mock import MagicMock, Mock, patch

import pytest
from prometheus_client import CollectorRegistry

from cyclic_arbitrage.config_loader import config_from_dict
from cyclic_arbitrage.engine import ArbitrageEngine, build_live_engine
from cyclic_arbitrage.exceptions import ConfigurationError
from cyclic_arbitrage.interfaces import FlashLoanRequest
from cyclic_arbitrage.metrics import ArbitrageMetrics

P1 = "0x00000000000000000000000000000000000000a1"
P2 = "0x00000000000000000000000000000000000000a2"
P3 = "0x00000000000000000000000000000000000000a3"
P4 = "0x00000000000000000000000000000000000000a4"

CONTRACT = "0x1111111111111111111111111111111111111111"
ACCOUNT = "0x2222222222222222222222222222222222222222"


@pytest.fixture
def config():
    return config_from_dict({"search": {"source_tokens": ["USDC"], "max_depth": 4}})


@pytest.fixture
def nonce():
    provider = Mock()
    provider.next.side_effect = iter(range(1, 100))
    return provider


class TestPaperEngine:
    def test_find_opportunities_sizes_profitable_direction(self, config, triangle_graph):
        engine = ArbitrageEngine.from_config(config, graph=triangle_graph)

        opportunities = engine.find_opportunities()

        assert engine.paper_mode
        assert len(opportunities) == 1
        best = opportunities[0]
        assert best.candidate.tokens == ("USDC", "ETH", "BTC", "USDC")
        assert best.profit > 0
        assert 0 < best.optimal_input < 1000

    def test_run_pass_suppresses_repeat_signatures(self, config, triangle_graph):
        engine = ArbitrageEngine.from_config(config, graph=triangle_graph)

        assert len(engine.run_pass()) == 1
        assert engine.run_pass() == []
        assert engine.last_report is None

    def test_signature_ttl_allows_resubmission(self, triangle_graph):
        config = config_from_dict(
            {"search": {"source_tokens": ["USDC"]}, "scheduler": {"signature_ttl_sec": 30}}
        )
        engine = ArbitrageEngine.from_config(config, graph=triangle_graph)
        assert engine.deduplicator.signature_ttl_sec == 30

    def test_explicit_sources(self, config, triangle_graph):
        engine = ArbitrageEngine.from_config(config, graph=triangle_graph)
        opportunities = engine.find_opportunities(["ETH"])

        assert {o.start_token for o in opportunities} == {"ETH"}

    def test_reserve_update_changes_result(self, config, triangle_graph):
        engine = ArbitrageEngine.from_config(config, graph=triangle_graph)
        # Bring BTC/USDC in line with the other pools: both directions lose to fees
        triangle_graph.update_reserves(P3, 1, 2000)

        assert engine.find_opportunities() == []

    def test_metrics_recorded(self, config, triangle_pairs):
        registry = CollectorRegistry()
        metrics = ArbitrageMetrics(registry=registry)
        engine = ArbitrageEngine.from_config(config, metrics=metrics)
        engine.graph.add_pools(triangle_pairs)

        engine.run_pass()
        engine.run_pass()

        assert registry.get_sample_value("cyclic_arbitrage_search_passes_total") == 2
        assert registry.get_sample_value("cyclic_arbitrage_opportunities_found_total") == 2
        assert (
            registry.get_sample_value(
                "cyclic_arbitrage_opportunities_suppressed_total", {"reason": "seen"}
            )
            == 1
        )


class TestSchedulingEngine:
    def test_run_pass_submits_flash_loan(self, config, loan_graph, nonce):
        sink = Mock()
        sink.submit_flash_loan.return_value = "0xhash"
        engine = ArbitrageEngine.from_config(config, graph=loan_graph, nonce_provider=nonce, sink=sink)

        ranked = engine.run_pass()

        assert not engine.paper_mode
        assert len(ranked) == 1
        assert engine.last_report.submitted == ["0xhash"]
        request = sink.submit_flash_loan.call_args[0][0]
        assert isinstance(request, FlashLoanRequest)
        assert request.loan_pool == P4
        assert request.path_pools == (P1, P2, P3)
        assert request.borrow_amount == int(ranked[0].optimal_input)
        assert request.sequence == 1

    def test_nonce_and_sink_required_together(self, config, triangle_graph, nonce):
        with pytest.raises(ConfigurationError):
            ArbitrageEngine.from_config(config, graph=triangle_graph, nonce_provider=nonce)


class TestBuildLiveEngine:
    def test_requires_live_mode(self, config):
        with pytest.raises(ConfigurationError, match="live"):
            build_live_engine(config)

    def test_unreachable_node(self):
        config = config_from_dict(
            {
                "search": {"source_tokens": ["USDC"]},
                "execution": {
                    "mode": "live",
                    "rpc_url": "http://localhost:1",
                    "contract_address": CONTRACT,
                    "account_address": ACCOUNT,
                },
            }
        )
        with patch("cyclic_arbitrage.engine.load_dotenv"), patch(
            "cyclic_arbitrage.engine.Web3"
        ) as web3_cls:
            web3_cls.return_value.is_connected.return_value = False
            with pytest.raises(ConfigurationError, match="not connected"):
                build_live_engine(config)

    def test_wires_web3_components(self, monkeypatch):
        config = config_from_dict(
            {
                "search": {"source_tokens": ["USDC"]},
                "execution": {
                    "mode": "live",
                    "rpc_url": "http://localhost:8545",
                    "contract_address": CONTRACT,
                    "account_address": ACCOUNT,
                    "chain_id": 8453,
                },
            }
        )
        monkeypatch.setenv("ARBITRAGE_PRIVATE_KEY", "0xsecret")

        with patch("cyclic_arbitrage.engine.load_dotenv"), patch(
            "cyclic_arbitrage.engine.Web3"
        ) as web3_cls:
            w3 = MagicMock()
            w3.is_connected.return_value = True
            w3.eth.get_transaction_count.return_value = 4
            web3_cls.return_value = w3

            engine = build_live_engine(config)

        web3_cls.HTTPProvider.assert_called_once_with(
            "http://localhost:8545", request_kwargs={"timeout": 20}
        )
        scheduler = engine.scheduler
        assert scheduler.nonce_provider.current() == 4
        assert scheduler.sink.private_key == "0xsecret"
        assert scheduler.sink.chain_id == 8453
