"""
Cyclic arbitrage paper scan CLI.

Builds the market graph from a pool snapshot, runs one search pass and
prints the ranked opportunities without submitting anything.

Usage:
    python3 -m cyclic_arbitrage scan --config configs/arbitrage.yaml
    python3 -m cyclic_arbitrage scan --config configs/arbitrage.yaml --snapshot pools.yaml --limit 5
"""

import argparse
import sys
from typing import List, Optional, Sequence

from .config_loader import load_config
from .dex.types import ArbitrageOpportunity
from .engine import ArbitrageEngine
from .exceptions import CyclicArbitrageError
from .utils import setup_logging, short_address
from .version import __version__


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="cyclic_arbitrage",
        description="Cyclic AMM arbitrage scanner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # One paper scan using the snapshot referenced by the config
  python3 -m cyclic_arbitrage scan --config configs/arbitrage.yaml

  # Override the snapshot and show the top 5
  python3 -m cyclic_arbitrage scan --config configs/arbitrage.yaml --snapshot pools.yaml --limit 5
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)
    scan = subparsers.add_parser("scan", help="Run one paper search pass")
    scan.add_argument("--config", required=True, help="Path to config YAML file")
    scan.add_argument("--snapshot", help="Pool snapshot (YAML/JSON), overrides config")
    scan.add_argument("--tax-overrides", help="Per-pool tax overrides file, overrides config")
    scan.add_argument(
        "--limit", type=int, default=None, help="Show at most N opportunities"
    )
    scan.add_argument("--log-level", default=None, help="Override config log level")

    return parser.parse_args(argv)


def format_opportunity(rank: int, opportunity: ArbitrageOpportunity) -> str:
    route = " -> ".join(short_address(token) for token in opportunity.candidate.tokens)
    mode = "flash" if opportunity.is_circular else "direct"
    pct = opportunity.profit_pct()
    pct_str = f"{pct:.4f}%" if pct is not None else "n/a"
    return (
        f"{rank:>3}. [{mode:<6}] {opportunity.candidate.hop_count} hops  "
        f"in={opportunity.optimal_input:.6g}  profit={opportunity.profit:.6g} ({pct_str})  "
        f"{route}"
    )


def run_scan(args: argparse.Namespace) -> List[ArbitrageOpportunity]:
    config = load_config(args.config)
    updates = {}
    if args.snapshot:
        updates["snapshot_path"] = args.snapshot
    if args.tax_overrides:
        updates["tax_overrides_path"] = args.tax_overrides
    if updates:
        config = config.model_copy(update=updates)

    setup_logging(args.log_level or config.log_level)

    if not config.snapshot_path:
        raise CyclicArbitrageError("No pool snapshot given (config snapshot_path or --snapshot)")

    engine = ArbitrageEngine.from_config(config)
    ranked = engine.run_pass()
    if args.limit is not None:
        ranked = ranked[: args.limit]
    return ranked


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    args = parse_args(argv)

    try:
        ranked = run_scan(args)
    except CyclicArbitrageError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nStopped by user")
        return 0

    if not ranked:
        print("No profitable opportunities found")
        return 0

    print(f"{len(ranked)} opportunit{'y' if len(ranked) == 1 else 'ies'}:")
    for rank, opportunity in enumerate(ranked, 1):
        print(format_opportunity(rank, opportunity))
    return 0


if __name__ == "__main__":
    sys.exit(main())
