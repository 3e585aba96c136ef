"""
Collaborator interfaces consumed by the arbitrage core.

The core performs no I/O of its own. Nonce allocation, transaction submission
and wall-clock time are injected through the lightweight protocols below so
that production adapters (web3) and deterministic test doubles are
interchangeable.
"""

import time
from dataclasses import dataclass
from typing import Protocol, Tuple, runtime_checkable


@dataclass(frozen=True)
class FlashLoanRequest:
    """Execution request for a circular opportunity funded by a flash loan."""

    loan_pool: str
    start_token: str
    borrow_amount: int
    repay_amount: int
    path_pools: Tuple[str, ...]
    path_fees: Tuple[int, ...]
    repay_fee_bps: int
    expected_profit: int
    sequence: int


@dataclass(frozen=True)
class DirectRequest:
    """Execution request funded from the executing contract's own balance."""

    start_token: str
    start_amount: int
    path_pools: Tuple[str, ...]
    path_fees: Tuple[int, ...]
    expected_profit: int
    sequence: int


@runtime_checkable
class NonceProvider(Protocol):
    """Protocol for strictly increasing per-account sequence numbers."""

    def initialize(self) -> int:
        """Synchronize with the settlement layer and return the current sequence."""
        ...

    def next(self) -> int:
        """Consume and return the next sequence number."""
        ...


@runtime_checkable
class SubmissionSink(Protocol):
    """Protocol for handing computed executions to the settlement layer."""

    def submit_flash_loan(self, request: FlashLoanRequest) -> object:
        """Submit a flash-loan funded execution."""
        ...

    def submit_direct(self, request: DirectRequest) -> object:
        """Submit a directly funded execution."""
        ...


@runtime_checkable
class TimeProvider(Protocol):
    """Protocol for time-related operations."""

    def current_timestamp(self) -> float:
        """Get current Unix timestamp."""
        ...


class SystemTimeProvider:
    """Production time provider using system time."""

    def current_timestamp(self) -> float:
        return time.time()


class DeterministicTimeProvider:
    """Deterministic time provider for testing."""

    def __init__(self, start_time: float = 1640995200.0):  # 2022-01-01
        self._current_time = start_time

    def current_timestamp(self) -> float:
        return self._current_time

    def advance_time(self, seconds: float) -> None:
        """Manually advance time by specified seconds."""
        self._current_time += seconds
