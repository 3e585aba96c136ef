"""
Profit-maximizing input sizing for a path of constant-product swaps.

For hop i the swap curve is

    f_i(x) = (x * g_i) * Rout_i / (Rin_i + x * g_i),   g_i = 1 - fee_i

and the path output is the composition F(x) = f_n(...f_1(x)). The solver
runs Newton-Raphson on P'(x) = F'(x) - 1 = 0 using closed-form derivatives
of every hop, evaluated at the intermediate amounts reached by forward
simulation. Any trial amount that exceeds a hop's input reserve is
infeasible; the solver pulls such steps back toward the last feasible
iterate and falls back to a bounded golden-section search when Newton does
not converge within its iteration budget.
"""

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from ..utils import get_logger
from .types import ArbitrageOpportunity, Hop, PathCandidate

logger = get_logger(__name__)

DEFAULT_INITIAL_GUESS = 9e18  # wei-equivalent seed
DEFAULT_MAX_ITERATIONS = 100
DEFAULT_TOLERANCE = 1e-8
DEFAULT_FALLBACK_ITERATIONS = 200
MAX_STEP_HALVINGS = 64

_INV_PHI = (math.sqrt(5.0) - 1.0) / 2.0


# ============================================================================
# Constant-product swap math
# ============================================================================


def swap_output(amount_in: float, reserve_in: float, reserve_out: float, fee_multiplier: float) -> float:
    """Output of a constant-product swap with the fee taken from the input."""
    amount_after_fee = amount_in * fee_multiplier
    return amount_after_fee * reserve_out / (reserve_in + amount_after_fee)


def swap_derivative(amount_in: float, reserve_in: float, reserve_out: float, fee_multiplier: float) -> float:
    """d/dx of swap_output."""
    return fee_multiplier * reserve_in * reserve_out / (reserve_in + fee_multiplier * amount_in) ** 2


def swap_second_derivative(
    amount_in: float, reserve_in: float, reserve_out: float, fee_multiplier: float
) -> float:
    """d2/dx2 of swap_output (always negative: the curve is concave)."""
    return (
        -2.0
        * fee_multiplier**2
        * reserve_in
        * reserve_out
        / (reserve_in + fee_multiplier * amount_in) ** 3
    )


@dataclass(frozen=True)
class PathEvaluation:
    """Forward simulation of a path at one trial input."""

    feasible: bool
    amounts: Tuple[float, ...]  # input followed by the output of every hop
    first_derivative: float = 0.0
    second_derivative: float = 0.0

    @property
    def output(self) -> float:
        return self.amounts[-1] if self.feasible else -math.inf

    @property
    def profit(self) -> float:
        return self.amounts[-1] - self.amounts[0] if self.feasible else -math.inf


@dataclass(frozen=True)
class SolverResult:
    """Outcome of sizing one path."""

    optimal_input: float
    profit: float
    amounts: Tuple[float, ...]
    iterations: int
    converged: bool
    method: str  # "newton", "golden_section" or "none"


def evaluate_path(hops: Sequence[Hop], amount: float) -> PathEvaluation:
    """
    Simulate `amount` through every hop and compute F'(x) and the curvature.

    The first derivative is the chain-rule product of per-hop derivatives.
    The second derivative sums each hop's second derivative times the
    product of every other hop's first derivative.
    """
    amounts: List[float] = [amount]
    firsts: List[float] = []
    seconds: List[float] = []
    current = amount

    for hop in hops:
        reserve_in = float(hop.reserve_in)
        reserve_out = float(hop.reserve_out)
        if current > reserve_in or current < 0:
            return PathEvaluation(feasible=False, amounts=tuple(amounts))

        g = hop.fee_multiplier
        firsts.append(swap_derivative(current, reserve_in, reserve_out, g))
        seconds.append(swap_second_derivative(current, reserve_in, reserve_out, g))
        current = swap_output(current, reserve_in, reserve_out, g)
        amounts.append(current)

    n = len(firsts)
    prefix = [1.0] * (n + 1)
    for i in range(n):
        prefix[i + 1] = prefix[i] * firsts[i]
    suffix = [1.0] * (n + 1)
    for i in range(n - 1, -1, -1):
        suffix[i] = suffix[i + 1] * firsts[i]

    second = sum(seconds[i] * prefix[i] * suffix[i + 1] for i in range(n))

    return PathEvaluation(
        feasible=True,
        amounts=tuple(amounts),
        first_derivative=prefix[n],
        second_derivative=second,
    )


def max_feasible_input(hops: Sequence[Hop]) -> float:
    """
    Largest start amount keeping every hop's input within its reserve.

    Walks the path backwards inverting each swap curve.
    """
    cap = math.inf
    for hop in reversed(hops):
        reserve_in = float(hop.reserve_in)
        reserve_out = float(hop.reserve_out)
        limit = reserve_in
        if cap < reserve_out:
            limit = min(limit, cap * reserve_in / (hop.fee_multiplier * (reserve_out - cap)))
        cap = limit
    return cap


class ProfitSolver:
    """Newton-Raphson sizing of path candidates."""

    def __init__(
        self,
        initial_guess: float = DEFAULT_INITIAL_GUESS,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        tolerance: float = DEFAULT_TOLERANCE,
        fallback_iterations: int = DEFAULT_FALLBACK_ITERATIONS,
        min_profit: float = 0.0,
    ):
        """
        Args:
            initial_guess: Newton seed in the start token's native unit
            max_iterations: Newton iteration cap
            tolerance: Stop once |x_{t+1} - x_t| falls below this
            fallback_iterations: Golden-section budget when Newton does not
                converge (0 disables the fallback)
            min_profit: Default minimum profit for maximize()
        """
        self.initial_guess = initial_guess
        self.max_iterations = max_iterations
        self.tolerance = tolerance
        self.fallback_iterations = fallback_iterations
        self.min_profit = min_profit

    def solve(self, candidate: PathCandidate) -> SolverResult:
        """Size a candidate; never raises, may report zero profit."""
        hops = candidate.hops
        if not hops:
            return self._no_profit(0)

        x_max = max_feasible_input(hops)
        if not x_max > 0:
            return self._no_profit(0)

        # Concave profit: no gain anywhere if the marginal rate at zero is <= 1
        at_zero = evaluate_path(hops, 0.0)
        if at_zero.first_derivative <= 1.0:
            return self._no_profit(0)

        best = self._newton(hops, x_max)

        if not best.converged and self.fallback_iterations > 0:
            fallback = self._golden_section(hops, x_max)
            if fallback.profit > best.profit:
                logger.debug(
                    f"Golden-section fallback improved {candidate.describe()}: "
                    f"{best.profit:.6g} -> {fallback.profit:.6g}"
                )
                best = SolverResult(
                    optimal_input=fallback.optimal_input,
                    profit=fallback.profit,
                    amounts=fallback.amounts,
                    iterations=best.iterations + fallback.iterations,
                    converged=fallback.converged,
                    method=fallback.method,
                )

        if best.profit <= 0:
            return self._no_profit(best.iterations)
        return best

    def maximize(
        self, candidate: PathCandidate, min_profit: Optional[float] = None
    ) -> Optional[ArbitrageOpportunity]:
        """
        Size a candidate and return it as an opportunity if its profit
        exceeds `min_profit` (start-token units), else None.
        """
        threshold = self.min_profit if min_profit is None else min_profit
        result = self.solve(candidate)
        if not result.profit > threshold:
            return None

        return ArbitrageOpportunity(
            candidate=candidate,
            optimal_input=result.optimal_input,
            profit=result.profit,
            signature=candidate.signature,
            amounts=result.amounts,
        )

    # ------------------------------------------------------------------

    def _newton(self, hops: Sequence[Hop], x_max: float) -> SolverResult:
        x = min(self.initial_guess, x_max / 2.0)
        best_profit = -math.inf
        best_input = 0.0
        best_amounts: Tuple[float, ...] = ()
        converged = False
        iterations = 0

        for iterations in range(1, self.max_iterations + 1):
            evaluation = evaluate_path(hops, x)
            if not evaluation.feasible:
                break

            if evaluation.profit > best_profit:
                best_profit = evaluation.profit
                best_input = x
                best_amounts = evaluation.amounts

            if evaluation.second_derivative == 0:
                break

            step = (evaluation.first_derivative - 1.0) / evaluation.second_derivative
            next_x = self._pull_back(hops, x, max(0.0, x - step))
            if next_x is None:
                break

            if abs(next_x - x) < self.tolerance:
                x = next_x
                converged = True
                break
            x = next_x

        final = evaluate_path(hops, x)
        if final.feasible and final.profit > best_profit:
            best_profit = final.profit
            best_input = x
            best_amounts = final.amounts

        return SolverResult(
            optimal_input=best_input,
            profit=best_profit,
            amounts=best_amounts,
            iterations=iterations,
            converged=converged,
            method="newton",
        )

    @staticmethod
    def _pull_back(hops: Sequence[Hop], x: float, target: float) -> Optional[float]:
        """Halve an infeasible step back toward x until it fits every reserve."""
        for _ in range(MAX_STEP_HALVINGS):
            if evaluate_path(hops, target).feasible:
                return target
            target = x + (target - x) / 2.0
        return None

    def _golden_section(self, hops: Sequence[Hop], x_max: float) -> SolverResult:
        def profit_at(amount: float) -> float:
            return evaluate_path(hops, amount).profit

        lo, hi = 0.0, x_max
        c = hi - _INV_PHI * (hi - lo)
        d = lo + _INV_PHI * (hi - lo)
        fc, fd = profit_at(c), profit_at(d)
        iterations = 0
        converged = False

        for iterations in range(1, self.fallback_iterations + 1):
            if fc >= fd:
                hi, d, fd = d, c, fc
                c = hi - _INV_PHI * (hi - lo)
                fc = profit_at(c)
            else:
                lo, c, fc = c, d, fd
                d = lo + _INV_PHI * (hi - lo)
                fd = profit_at(d)
            if hi - lo < self.tolerance:
                converged = True
                break

        x = c if fc >= fd else d
        evaluation = evaluate_path(hops, x)
        return SolverResult(
            optimal_input=x,
            profit=evaluation.profit,
            amounts=evaluation.amounts,
            iterations=iterations,
            converged=converged,
            method="golden_section",
        )

    @staticmethod
    def _no_profit(iterations: int) -> SolverResult:
        return SolverResult(
            optimal_input=0.0,
            profit=0.0,
            amounts=(),
            iterations=iterations,
            converged=False,
            method="none",
        )
