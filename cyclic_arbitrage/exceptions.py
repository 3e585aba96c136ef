"""
Exception hierarchy for the cyclic arbitrage system.

Data errors and numerical infeasibility are recovered locally by the graph,
search and solver and never surface as exceptions; the types below cover
configuration, nonce allocation and submission failures.
"""

from typing import Any, Dict, Optional


class CyclicArbitrageError(Exception):
    """Base exception for all cyclic arbitrage related errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}


class ConfigurationError(CyclicArbitrageError):
    """Raised when there are configuration-related issues."""

    pass


class DataError(CyclicArbitrageError):
    """Raised when market data (pool snapshots, logs) cannot be interpreted."""

    def __init__(
        self,
        message: str,
        pool: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.pool = pool


class NonceError(CyclicArbitrageError):
    """Raised when sequence numbers are requested before initialization."""

    pass


class SubmissionError(CyclicArbitrageError):
    """Raised when an opportunity cannot be handed to the submission sink."""

    def __init__(
        self,
        message: str,
        mode: Optional[str] = None,
        signature: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.mode = mode
        self.signature = signature


class NoFlashLoanPoolError(SubmissionError):
    """Raised when no pool can fund the flash loan for a circular opportunity."""

    def __init__(
        self,
        token: str,
        amount: int,
        signature: Optional[str] = None,
    ):
        super().__init__(
            f"No suitable flash-loan pool found for token {token} (amount {amount})",
            mode="flash_loan",
            signature=signature,
            details={"token": token, "amount": amount},
        )
        self.token = token
        self.amount = amount
