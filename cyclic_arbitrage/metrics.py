"""
Prometheus metrics for the cyclic arbitrage engine.

Exposes reserve-update throughput, search pass statistics, deduplication
and conflict suppression counts and submission outcomes.
"""

import logging
import threading
from typing import Optional

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
    start_http_server,
)

logger = logging.getLogger(__name__)


class ArbitrageMetrics:
    """
    Arbitrage metrics collection and exposure

    Provides Prometheus-compatible metrics for:
    - Reserve updates applied to the market graph
    - Search passes, candidates and sized opportunities
    - Suppressed opportunities by reason
    - Submissions by settlement mode and outcome
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """Initialize metrics with custom registry or default"""
        self.registry = registry or REGISTRY
        self._initialize_metrics()
        self._lock = threading.RLock()

    def _initialize_metrics(self):
        """Initialize all Prometheus metrics"""

        # === MARKET DATA ===
        self.reserve_updates_total = Counter(
            "cyclic_arbitrage_reserve_updates_total",
            "Total reserve updates applied to the market graph",
            registry=self.registry,
        )

        # === SEARCH ===
        self.search_passes_total = Counter(
            "cyclic_arbitrage_search_passes_total",
            "Total beam search passes",
            registry=self.registry,
        )

        self.candidates_found_total = Counter(
            "cyclic_arbitrage_candidates_found_total",
            "Total raw path candidates emitted by the beam search",
            registry=self.registry,
        )

        self.opportunities_found_total = Counter(
            "cyclic_arbitrage_opportunities_found_total",
            "Total candidates sized above the minimum profit",
            registry=self.registry,
        )

        self.search_duration_seconds = Histogram(
            "cyclic_arbitrage_search_duration_seconds",
            "Duration of a beam search pass",
            buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
            registry=self.registry,
        )

        # === SCHEDULING ===
        self.opportunities_suppressed_total = Counter(
            "cyclic_arbitrage_opportunities_suppressed_total",
            "Opportunities dropped before submission",
            ["reason"],
            registry=self.registry,
        )

        self.submissions_total = Counter(
            "cyclic_arbitrage_submissions_total",
            "Submission attempts by settlement mode and outcome",
            ["mode", "status"],
            registry=self.registry,
        )

    def record_reserve_updates(self, count: int):
        with self._lock:
            self.reserve_updates_total.inc(count)

    def record_search(self, candidates: int, duration_sec: float):
        with self._lock:
            self.search_passes_total.inc()
            self.candidates_found_total.inc(candidates)
            self.search_duration_seconds.observe(duration_sec)

    def record_opportunities(self, count: int):
        with self._lock:
            self.opportunities_found_total.inc(count)

    def record_suppressed(self, reason: str):
        with self._lock:
            self.opportunities_suppressed_total.labels(reason=reason).inc()

    def record_submission(self, mode: str, status: str):
        with self._lock:
            self.submissions_total.labels(mode=mode, status=status).inc()

    def start_server(self, port: int = 8000, addr: str = "0.0.0.0"):
        """Expose the registry over HTTP"""
        start_http_server(port, addr=addr, registry=self.registry)
        logger.info(f"Metrics server started on {addr}:{port}/metrics")
