"""
Reserve update front end for the market graph.

The monitor is a two-state actor. While IDLE, a batch of reserve updates is
applied and a search pass runs; while SEARCHING, newly arriving updates are
queued in an inbox and flushed together, followed by one fresh pass, once
the running pass completes. Passes therefore never observe a graph that
mutates mid-traversal, and re-entry is a loop rather than recursion.
"""

import threading
from collections import deque
from enum import Enum
from typing import Any, Callable, Deque, Dict, Iterable, List, Mapping, Optional

from eth_abi import decode as abi_decode
from web3 import Web3

from .dex.graph import MarketGraph
from .dex.types import ReserveUpdate
from .execution.abi import SYNC_UINT112_TOPIC, SYNC_UINT256_TOPIC
from .utils import get_logger

logger = get_logger(__name__)

_SYNC_TYPES = {
    SYNC_UINT112_TOPIC: ["uint112", "uint112"],
    SYNC_UINT256_TOPIC: ["uint256", "uint256"],
}


class MonitorState(str, Enum):
    IDLE = "idle"
    SEARCHING = "searching"


def _to_hex(value: Any) -> str:
    if isinstance(value, str):
        return value.lower()
    return Web3.to_hex(value).lower()


def _to_bytes(value: Any) -> bytes:
    if isinstance(value, str):
        return Web3.to_bytes(hexstr=value)
    return bytes(value)


def decode_sync_log(log: Mapping[str, Any]) -> Optional[ReserveUpdate]:
    """
    Decode a Uniswap V2 style Sync log into a ReserveUpdate.

    Returns None for logs that are not Sync events or cannot be decoded.
    """
    topics = log.get("topics") or []
    if not topics:
        return None

    types = _SYNC_TYPES.get(_to_hex(topics[0]))
    if types is None:
        logger.debug(f"Unknown Sync event topic: {_to_hex(topics[0])}")
        return None

    try:
        reserve0, reserve1 = abi_decode(types, _to_bytes(log.get("data", b"")))
    except Exception as e:
        logger.error(f"Failed to decode Sync event from {log.get('address')}: {e}")
        return None

    return ReserveUpdate(pool=log.get("address"), reserve_a=reserve0, reserve_b=reserve1)


class ReserveUpdateMonitor:
    """
    Applies reserve updates to the graph and triggers search passes,
    queueing updates that arrive while a pass is running.

    Args:
        graph: Market graph to patch
        on_pass: Callback running one search/scheduling pass
    """

    def __init__(self, graph: MarketGraph, on_pass: Callable[[], Any]):
        self.graph = graph
        self.on_pass = on_pass
        self.state = MonitorState.IDLE
        self.passes = 0
        self._inbox: Deque[ReserveUpdate] = deque()
        self._lock = threading.Lock()

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._inbox)

    def submit(self, updates: Iterable[ReserveUpdate]) -> bool:
        """
        Hand a batch of updates to the monitor.

        Returns:
            True if this call drove the pass(es), False if the updates were
            queued behind a pass already in progress
        """
        batch = list(updates)
        with self._lock:
            if self.state is MonitorState.SEARCHING:
                self._inbox.extend(batch)
                logger.debug(f"Pass in progress; queued {len(batch)} reserve update(s)")
                return False
            if not batch:
                return True
            self.state = MonitorState.SEARCHING

        try:
            while True:
                applied = self.graph.update_reserves_batch(batch)
                if applied:
                    self._run_pass()

                with self._lock:
                    if not self._inbox:
                        self.state = MonitorState.IDLE
                        break
                    batch = list(self._inbox)
                    self._inbox.clear()
                logger.debug(f"Flushing {len(batch)} queued reserve update(s)")
        except Exception:
            with self._lock:
                self.state = MonitorState.IDLE
            raise
        return True

    def handle_logs(self, logs: Iterable[Mapping[str, Any]]) -> bool:
        """Decode Sync logs for pools in the graph and submit them as one batch."""
        known: Dict[str, str] = {pool.lower(): pool for pool in self.graph.pool_addresses()}
        updates: List[ReserveUpdate] = []

        for log in logs:
            address = (log.get("address") or "").lower()
            pool = known.get(address)
            if pool is None:
                logger.debug(f"Skipping event from unknown pair: {address}")
                continue
            update = decode_sync_log(log)
            if update is None:
                continue
            updates.append(update._replace(pool=pool))

        return self.submit(updates)

    def _run_pass(self) -> None:
        self.passes += 1
        try:
            self.on_pass()
        except Exception:
            logger.exception("Search pass failed")
