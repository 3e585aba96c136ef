"""
Bounded beam search for arbitrage loops over the market graph.

A dynamic program over hop count k = 0..max_depth keeps, for every token,
at most `beam_width` partial paths ranked by the amount a unit input would
yield when pushed through them. Paths never reuse a pool. Whenever an
extension lands on a token accepted by the terminal policy (after at least
two hops) it is emitted as a raw candidate for the profit solver. The
search stops after a step in which no token reached a better amount than
any earlier step gave it.
"""

import time
from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from ..utils import get_logger, timing_decorator
from .graph import MarketGraph
from .solver import swap_output
from .types import Hop, PathCandidate

logger = get_logger(__name__)

DEFAULT_MAX_DEPTH = 30
DEFAULT_BEAM_WIDTH = 10
MIN_CANDIDATE_HOPS = 2

TerminalPolicy = Callable[[str, str], bool]


def circular_policy() -> TerminalPolicy:
    """Accept only paths that return to the token they started from."""

    def accept(origin: str, terminal: str) -> bool:
        return origin == terminal

    return accept


def circular_or_secondary_policy(
    source_tokens: Iterable[str], secondary_tokens: Iterable[str]
) -> TerminalPolicy:
    """
    Accept circular paths plus directed paths between sources and
    secondary tokens (value-equivalent tokens, e.g. two wrapped variants
    of the native coin).
    """
    sources = frozenset(source_tokens)
    secondary = frozenset(secondary_tokens)

    def accept(origin: str, terminal: str) -> bool:
        if origin == terminal:
            return True
        if terminal in secondary:
            return True
        return origin in secondary and terminal in sources

    return accept


@dataclass(frozen=True)
class _BeamEntry:
    amount_out: float
    origin: str
    tokens: Tuple[str, ...]
    hops: Tuple[Hop, ...]
    pools: FrozenSet[str]


@dataclass
class SearchStats:
    """Bookkeeping of the last search run."""

    steps: int = 0
    candidates: int = 0
    max_bucket_sizes: List[int] = field(default_factory=list)
    duration_sec: float = 0.0

    @property
    def max_bucket_size(self) -> int:
        return max(self.max_bucket_sizes, default=0)


def _insert_bounded(bucket: List[_BeamEntry], entry: _BeamEntry, width: int) -> bool:
    """
    Insert keeping the bucket sorted by descending amount and capped at
    `width`. Equal amounts keep the earlier-discovered entry first.
    """
    index = len(bucket)
    for i, existing in enumerate(bucket):
        if entry.amount_out > existing.amount_out:
            index = i
            break
    if index >= width:
        return False
    bucket.insert(index, entry)
    del bucket[width:]
    return True


class CycleSearch:
    """Beam-pruned dynamic program producing candidate loops and paths."""

    def __init__(
        self,
        graph: MarketGraph,
        max_depth: int = DEFAULT_MAX_DEPTH,
        beam_width: int = DEFAULT_BEAM_WIDTH,
        policy: Optional[TerminalPolicy] = None,
        metrics=None,
    ):
        if max_depth < MIN_CANDIDATE_HOPS:
            raise ValueError(f"max_depth must be >= {MIN_CANDIDATE_HOPS}, got {max_depth}")
        if beam_width < 1:
            raise ValueError(f"beam_width must be >= 1, got {beam_width}")

        self.graph = graph
        self.max_depth = max_depth
        self.beam_width = beam_width
        self.policy = policy or circular_policy()
        self.metrics = metrics
        self.last_stats = SearchStats()

    @timing_decorator
    def find(
        self,
        sources: Sequence[str],
        max_depth: Optional[int] = None,
        policy: Optional[TerminalPolicy] = None,
    ) -> List[PathCandidate]:
        """
        Run one beam search from every source token at once.

        Args:
            sources: Start tokens; each partial path remembers its origin
            max_depth: Override of the configured hop limit
            policy: Override of the configured terminal acceptance policy

        Returns:
            Raw path candidates in discovery order
        """
        depth = self.max_depth if max_depth is None else max_depth
        accept = policy or self.policy
        stats = SearchStats()
        started = time.perf_counter()
        candidates: List[PathCandidate] = []

        beam: Dict[str, List[_BeamEntry]] = {}
        best_amount: Dict[str, float] = {}
        for source in dict.fromkeys(sources):
            if not self.graph.edges_from(source):
                logger.debug(f"Source token {source} has no outgoing edges")
                continue
            beam.setdefault(source, []).append(
                _BeamEntry(
                    amount_out=1.0,
                    origin=source,
                    tokens=(source,),
                    hops=(),
                    pools=frozenset(),
                )
            )
            best_amount[source] = 1.0

        for step in range(1, depth + 1):
            if not beam:
                break
            next_beam: Dict[str, List[_BeamEntry]] = {}
            improved = False

            for token, entries in beam.items():
                edges = self.graph.edges_from(token)
                for entry in entries:
                    for edge in edges:
                        if edge.pool in entry.pools:
                            continue

                        amount = swap_output(
                            entry.amount_out,
                            float(edge.reserve_in),
                            float(edge.reserve_out),
                            edge.fee_multiplier,
                        )
                        if not amount > 0:
                            continue

                        extended = _BeamEntry(
                            amount_out=amount,
                            origin=entry.origin,
                            tokens=entry.tokens + (edge.to,),
                            hops=entry.hops + (Hop.from_edge(edge),),
                            pools=entry.pools | {edge.pool},
                        )
                        _insert_bounded(
                            next_beam.setdefault(edge.to, []), extended, self.beam_width
                        )
                        if amount > best_amount.get(edge.to, 0.0):
                            best_amount[edge.to] = amount
                            improved = True

                        if step >= MIN_CANDIDATE_HOPS and accept(extended.origin, edge.to):
                            candidates.append(
                                PathCandidate(tokens=extended.tokens, hops=extended.hops)
                            )

            stats.steps = step
            stats.max_bucket_sizes.append(
                max((len(bucket) for bucket in next_beam.values()), default=0)
            )
            beam = next_beam
            if not improved:
                logger.debug(f"No token improved at step {step}; stopping")
                break

        stats.candidates = len(candidates)
        stats.duration_sec = time.perf_counter() - started
        self.last_stats = stats

        if self.metrics is not None:
            self.metrics.record_search(len(candidates), stats.duration_sec)
        logger.debug(
            f"Beam search from {len(set(sources))} source(s): {stats.steps} steps, "
            f"{len(candidates)} candidates in {stats.duration_sec:.4f}s"
        )
        return candidates
