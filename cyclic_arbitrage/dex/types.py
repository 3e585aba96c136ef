"""
Core data types for AMM cycle arbitrage.

Pools are mutable (reserves are patched in place as market data arrives);
hops, path candidates and opportunities are immutable snapshots taken at
search time so that solving and scheduling never observe a graph mutation.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, NamedTuple, Optional, Tuple

from ..utils import BPS_DENOMINATOR


class Direction(str, Enum):
    """Swap direction through a pool, relative to its (token_a, token_b) order."""

    A_TO_B = "a_to_b"
    B_TO_A = "b_to_a"


class TaxedSide(str, Enum):
    """Which constituent token of a pool charges a transfer tax."""

    NONE = "none"
    TOKEN_A = "token_a"
    TOKEN_B = "token_b"


@dataclass
class PairInfo:
    """
    A constant-product liquidity pool.

    Attributes:
        pool: Pool address (identity)
        token_a: First constituent token
        token_b: Second constituent token
        reserve_a: Reserve of token_a (arbitrary-precision integer)
        reserve_b: Reserve of token_b (arbitrary-precision integer)
        fee_bps: Base swap fee in basis points
        buy_tax_bps: Transfer tax when tokens flow INTO the taxed token
        sell_tax_bps: Transfer tax when tokens flow OUT OF the taxed token
        taxed_side: Which token the tax applies to
    """

    pool: str
    token_a: str
    token_b: str
    reserve_a: int
    reserve_b: int
    fee_bps: int
    buy_tax_bps: int = 0
    sell_tax_bps: int = 0
    taxed_side: TaxedSide = TaxedSide.TOKEN_B

    @property
    def is_tradable(self) -> bool:
        """A pool with either reserve at zero is excluded from the graph."""
        return self.reserve_a > 0 and self.reserve_b > 0

    def tokens_for(self, direction: Direction) -> Tuple[str, str]:
        """Return (token_in, token_out) for a direction."""
        if direction is Direction.A_TO_B:
            return self.token_a, self.token_b
        return self.token_b, self.token_a

    def reserves_for(self, direction: Direction) -> Tuple[int, int]:
        """Return (reserve_in, reserve_out) for a direction."""
        if direction is Direction.A_TO_B:
            return self.reserve_a, self.reserve_b
        return self.reserve_b, self.reserve_a


@dataclass
class Edge:
    """
    Directed arc through a pool. Exactly one exists per (source token, pool);
    the graph updates it in place whenever the pool changes.
    """

    source: str
    to: str
    pool: str
    direction: Direction
    reserve_in: int
    reserve_out: int
    base_fee_bps: int
    tax_bps: int
    buy_tax_bps: int  # oriented to this edge: reversed on the opposite edge
    sell_tax_bps: int

    @property
    def fee_bps(self) -> int:
        """Effective fee: base fee plus the tax applicable in this direction."""
        return self.base_fee_bps + self.tax_bps

    @property
    def fee_multiplier(self) -> float:
        return 1.0 - self.fee_bps / float(BPS_DENOMINATOR)


class ReserveUpdate(NamedTuple):
    """A reserve observation for one pool, in (token_a, token_b) order."""

    pool: str
    reserve_a: int
    reserve_b: int


class LoanSource(NamedTuple):
    """Pool selected to fund a flash loan."""

    pool: str
    fee_bps: int
    reserve: int


@dataclass(frozen=True)
class Hop:
    """Immutable snapshot of one edge taken during a search."""

    pool: str
    token_in: str
    token_out: str
    direction: Direction
    reserve_in: int
    reserve_out: int
    fee_bps: int
    base_fee_bps: int

    @classmethod
    def from_edge(cls, edge: Edge) -> "Hop":
        return cls(
            pool=edge.pool,
            token_in=edge.source,
            token_out=edge.to,
            direction=edge.direction,
            reserve_in=edge.reserve_in,
            reserve_out=edge.reserve_out,
            fee_bps=edge.fee_bps,
            base_fee_bps=edge.base_fee_bps,
        )

    @property
    def fee_multiplier(self) -> float:
        return 1.0 - self.fee_bps / float(BPS_DENOMINATOR)


def canonical_signature(pools: Iterable[str]) -> str:
    """
    Canonical identity of a cycle: its pool addresses deduplicated, sorted
    and joined. Cyclic rotations of the same pool set share a signature.
    """
    return "|".join(sorted({pool.lower() for pool in pools}))


@dataclass(frozen=True)
class PathCandidate:
    """Ordered token path (hops + 1 tokens) and the hops that realise it."""

    tokens: Tuple[str, ...]
    hops: Tuple[Hop, ...]

    @property
    def start_token(self) -> str:
        return self.tokens[0]

    @property
    def end_token(self) -> str:
        return self.tokens[-1]

    @property
    def is_circular(self) -> bool:
        return self.start_token.lower() == self.end_token.lower()

    @property
    def hop_count(self) -> int:
        return len(self.hops)

    @property
    def pools(self) -> Tuple[str, ...]:
        return tuple(hop.pool for hop in self.hops)

    @property
    def directions(self) -> Tuple[Direction, ...]:
        return tuple(hop.direction for hop in self.hops)

    @property
    def signature(self) -> str:
        return canonical_signature(self.pools)

    def describe(self) -> str:
        return " -> ".join(self.tokens)


@dataclass(frozen=True)
class ArbitrageOpportunity:
    """A path candidate sized by the profit solver."""

    candidate: PathCandidate
    optimal_input: float
    profit: float
    signature: str
    amounts: Tuple[float, ...] = field(default_factory=tuple)

    @property
    def start_token(self) -> str:
        return self.candidate.start_token

    @property
    def is_circular(self) -> bool:
        return self.candidate.is_circular

    @property
    def pools(self) -> Tuple[str, ...]:
        return self.candidate.pools

    @property
    def path_fees(self) -> Tuple[int, ...]:
        """Base pool fees per hop, as passed to the executing contract."""
        return tuple(hop.base_fee_bps for hop in self.candidate.hops)

    @property
    def input_amount(self) -> int:
        return int(self.optimal_input)

    @property
    def expected_profit(self) -> int:
        return int(self.profit)

    def profit_pct(self) -> Optional[float]:
        if self.optimal_input <= 0:
            return None
        return self.profit / self.optimal_input * 100.0
