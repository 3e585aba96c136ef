"""
Per-account sequence number allocation.

Every submission consumes exactly one sequence number, handed out strictly
increasing after a single synchronization with the settlement layer.
"""

import threading
from typing import Callable, Optional

from ..exceptions import NonceError
from ..utils import get_logger

logger = get_logger(__name__)


class NonceManager:
    """
    Thread-safe nonce counter seeded from the chain's transaction count.

    Args:
        fetch_transaction_count: Callable returning the account's current
            transaction count (e.g. Web3NonceSource)
    """

    def __init__(self, fetch_transaction_count: Callable[[], int]):
        self._fetch = fetch_transaction_count
        self._nonce: Optional[int] = None
        self._lock = threading.Lock()

    @property
    def initialized(self) -> bool:
        return self._nonce is not None

    def initialize(self) -> int:
        """
        Synchronize with the chain; returns the next nonce to be used.

        Calling it again behaves like reset(): nonces already handed out are
        never handed out twice.
        """
        nonce = self.reset()
        logger.info(f"Nonce initialized at {nonce}")
        return nonce

    def next(self) -> int:
        """Consume and return the next nonce."""
        with self._lock:
            if self._nonce is None:
                raise NonceError("Nonce manager used before initialize()")
            nonce = self._nonce
            self._nonce += 1
        logger.debug(f"Allocated nonce {nonce}")
        return nonce

    def current(self) -> Optional[int]:
        """Next nonce that will be handed out, without consuming it."""
        with self._lock:
            return self._nonce

    def reset(self) -> int:
        """
        Resynchronize after a dropped transaction.

        Never moves backwards past nonces already handed out.
        """
        count = int(self._fetch())
        with self._lock:
            previous = self._nonce
            self._nonce = count if previous is None else max(count, previous)
            nonce = self._nonce
        if previous is not None and count < previous:
            logger.warning(
                f"Chain transaction count {count} behind local nonce {previous}; keeping {nonce}"
            )
        return nonce
