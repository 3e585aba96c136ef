"""
Signature deduplication for ranked opportunities.

Prevents the same cycle from being handed to execution twice by:
1. Identifying a path by its canonical signature (sorted unique pools)
2. Remembering every signature that was ranked into a batch
3. Optionally forgetting signatures once a TTL elapses
"""

from typing import Dict, Iterable, Optional

from ..dex.types import canonical_signature
from ..interfaces import SystemTimeProvider, TimeProvider


class OpportunityDeduplicator:
    """
    Tracks signatures already handed to execution.

    With `signature_ttl_sec=None` a signature is suppressed for the lifetime
    of the process; otherwise it is forgotten `signature_ttl_sec` seconds
    after it was recorded.
    """

    def __init__(
        self,
        signature_ttl_sec: Optional[float] = None,
        time_provider: Optional[TimeProvider] = None,
    ):
        """
        Initialize deduplicator.

        Args:
            signature_ttl_sec: How long to remember signatures (None = forever)
            time_provider: Clock used for TTL bookkeeping
        """
        self.signature_ttl_sec = signature_ttl_sec
        self.time_provider = time_provider or SystemTimeProvider()

        # Track seen signatures with the time they were recorded
        self.seen_signatures: Dict[str, float] = {}

    @staticmethod
    def create_signature(pool_addresses: Iterable[str]) -> str:
        """Stable identity of a cycle, independent of its starting point."""
        return canonical_signature(pool_addresses)

    def cleanup_expired(self, now: Optional[float] = None) -> int:
        """
        Forget signatures older than the TTL.

        Returns:
            Number of signatures removed
        """
        if self.signature_ttl_sec is None:
            return 0
        if now is None:
            now = self.time_provider.current_timestamp()

        expired = [
            sig
            for sig, ts in self.seen_signatures.items()
            if now - ts > self.signature_ttl_sec
        ]
        for sig in expired:
            del self.seen_signatures[sig]
        return len(expired)

    def is_seen(self, signature: str) -> bool:
        self.cleanup_expired()
        return signature in self.seen_signatures

    def record(self, signature: str) -> None:
        self.seen_signatures[signature] = self.time_provider.current_timestamp()

    def forget(self, signature: str) -> None:
        self.seen_signatures.pop(signature, None)

    def clear(self) -> None:
        self.seen_signatures.clear()

    def get_stats(self) -> Dict[str, int]:
        """Get current statistics."""
        return {"tracked_signatures": len(self.seen_signatures)}

    def __len__(self) -> int:
        return len(self.seen_signatures)
