"""
Common utilities and helper functions for the cyclic arbitrage system.

Provides the structured logger factory used across the package, logging
setup for command-line use and basis-point conversions.
"""

import logging
import sys
import time
from typing import Any, Dict, Optional, Union

BPS_DENOMINATOR = 10_000


# Math utilities
def bps_to_rate(bps: float) -> float:
    """Convert basis points to a fractional rate (30 bps = 0.003)."""
    return bps / float(BPS_DENOMINATOR)


def rate_to_bps(rate: float) -> float:
    """Convert a fractional rate to basis points (0.003 = 30 bps)."""
    return rate * float(BPS_DENOMINATOR)


def short_address(address: str, width: int = 6) -> str:
    """Shorten a hex address for log output (0x1234…abcd)."""
    if not isinstance(address, str) or len(address) <= 2 * width + 2:
        return address
    return f"{address[:width + 2]}…{address[-width + 2:]}"


# Logging utilities
def get_logger(
    name: str,
    level: Union[str, int] = logging.INFO,
    extra: Optional[Dict[str, Any]] = None,
    minimal: bool = False,
) -> logging.Logger:
    """
    Get a structured logger with consistent formatting and extra context.

    Args:
        name: Logger name (typically __name__)
        level: Logging level
        extra: Additional context fields to include in all log messages
        minimal: If True, use simplified format (time + message only)

    Returns:
        Configured logger with structured output
    """
    logger = logging.getLogger(name)

    if logger.level == logging.NOTSET:
        logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler()

        if minimal:
            format_str = "%(asctime)s | %(message)s"
        else:
            format_str = (
                "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | " "%(message)s"
            )

        if extra:
            extra_fields = " | ".join([f"{k}=%(extra_{k})s" for k in extra.keys()])
            format_str = format_str.replace(
                " | %(message)s", f" | {extra_fields} | %(message)s"
            )

        formatter = logging.Formatter(format_str, datefmt="%H:%M:%S")
        handler.setFormatter(formatter)
        logger.addHandler(handler)

        if extra:
            logger = logging.LoggerAdapter(
                logger, {"extra_" + k: v for k, v in extra.items()}
            )

    return logger


def setup_logging(level: Union[str, int] = logging.INFO) -> None:
    """
    Configure root logging for command-line use.

    - Uses shorter timestamp format (HH:MM:SS)
    - Quiets chatty HTTP/RPC client loggers
    - Hands package module loggers over to the root handler, so records
      print once and follow `level`
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s | %(levelname)-7s | %(message)s", datefmt="%H:%M:%S"
        )
    )
    root.addHandler(console)

    logging.getLogger("web3").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("cyclic_arbitrage").setLevel(level)

    # Module loggers from get_logger carry their own level and handler
    for name, existing in list(logging.root.manager.loggerDict.items()):
        if name.startswith("cyclic_arbitrage.") and isinstance(existing, logging.Logger):
            existing.setLevel(logging.NOTSET)
            for handler in list(existing.handlers):
                existing.removeHandler(handler)


# Performance utilities
def timing_decorator(func):
    """Decorator to measure function execution time."""

    def wrapper(*args, **kwargs):
        start_time = time.perf_counter()
        result = func(*args, **kwargs)
        end_time = time.perf_counter()

        logger = logging.getLogger(func.__module__)
        logger.debug(f"{func.__name__} executed in {end_time - start_time:.4f}s")
        return result

    return wrapper
