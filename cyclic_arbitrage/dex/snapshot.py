"""
Pool snapshot loading.

A snapshot is a YAML or JSON document holding pool records, either as a
top-level list or under a `pools` key. An optional tax overrides file maps
pool addresses to buy/sell transfer-tax rates discovered out-of-band.
"""

import json
import os
from typing import Any, Dict, List, Optional, Tuple

import yaml
from pydantic import AliasChoices, BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import DataError
from ..utils import get_logger
from .types import PairInfo, TaxedSide

logger = get_logger(__name__)


class PoolRecord(BaseModel):
    """One pool as found in a snapshot file"""

    pool: str = Field(validation_alias=AliasChoices("pool", "address", "pair"))
    token_a: str = Field(validation_alias=AliasChoices("token_a", "tokenA", "token0"))
    token_b: str = Field(validation_alias=AliasChoices("token_b", "tokenB", "token1"))
    reserve_a: int = Field(ge=0, validation_alias=AliasChoices("reserve_a", "reserveA", "reserve0"))
    reserve_b: int = Field(ge=0, validation_alias=AliasChoices("reserve_b", "reserveB", "reserve1"))
    fee_bps: int = Field(ge=0, lt=10000, validation_alias=AliasChoices("fee_bps", "feeBps", "fee"))
    buy_tax_bps: int = Field(
        default=0, ge=0, le=10000, validation_alias=AliasChoices("buy_tax_bps", "buyFeeBps")
    )
    sell_tax_bps: int = Field(
        default=0, ge=0, le=10000, validation_alias=AliasChoices("sell_tax_bps", "sellFeeBps")
    )
    taxed_side: TaxedSide = Field(
        default=TaxedSide.TOKEN_B, validation_alias=AliasChoices("taxed_side", "taxedSide")
    )

    def to_pair(self) -> PairInfo:
        return PairInfo(
            pool=self.pool,
            token_a=self.token_a,
            token_b=self.token_b,
            reserve_a=self.reserve_a,
            reserve_b=self.reserve_b,
            fee_bps=self.fee_bps,
            buy_tax_bps=self.buy_tax_bps,
            sell_tax_bps=self.sell_tax_bps,
            taxed_side=self.taxed_side,
        )


class TaxOverride(BaseModel):
    """Transfer-tax rates for one pool"""

    buy_tax_bps: int = Field(
        default=0, ge=0, le=10000, validation_alias=AliasChoices("buy_tax_bps", "buyFeeBps")
    )
    sell_tax_bps: int = Field(
        default=0, ge=0, le=10000, validation_alias=AliasChoices("sell_tax_bps", "sellFeeBps")
    )
    taxed_side: Optional[TaxedSide] = Field(
        default=None, validation_alias=AliasChoices("taxed_side", "taxedSide")
    )


def _read_document(path: str) -> Any:
    if not os.path.exists(path):
        raise DataError(f"Snapshot file not found: {path}")

    with open(path, "r") as f:
        try:
            if path.endswith(".json"):
                return json.load(f)
            return yaml.safe_load(f)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise DataError(f"Failed to parse {path}: {e}") from e


def load_tax_overrides(path: str) -> Dict[str, TaxOverride]:
    """Read a mapping of pool address -> tax rates, keyed case-insensitively."""
    document = _read_document(path)
    if not isinstance(document, dict):
        raise DataError(f"Tax overrides file must contain a mapping: {path}")

    overrides = {}
    for pool, raw in document.items():
        try:
            overrides[str(pool).lower()] = TaxOverride.model_validate(raw)
        except PydanticValidationError as e:
            raise DataError(f"Invalid tax override for {pool}: {e}", pool=str(pool)) from e
    return overrides


def parse_pool_records(records: List[Dict[str, Any]]) -> Tuple[List[PairInfo], int]:
    """
    Convert raw records to PairInfo.

    Invalid records are logged and skipped; returns (pairs, skipped).
    """
    pairs = []
    skipped = 0
    for raw in records:
        try:
            pairs.append(PoolRecord.model_validate(raw).to_pair())
        except PydanticValidationError as e:
            skipped += 1
            pool = raw.get("pool") or raw.get("address") if isinstance(raw, dict) else None
            logger.warning(f"Skipping invalid pool record {pool}: {e.error_count()} error(s)")
    return pairs, skipped


def load_pool_snapshot(path: str, tax_overrides_path: Optional[str] = None) -> List[PairInfo]:
    """
    Load the pool snapshot used to seed the market graph.

    Args:
        path: YAML or JSON snapshot file
        tax_overrides_path: Optional file of per-pool transfer-tax rates

    Returns:
        Pool records ready for MarketGraph.add_pools

    Raises:
        DataError: If a file is missing or not in the expected shape
    """
    document = _read_document(path)
    if isinstance(document, dict):
        document = document.get("pools")
    if not isinstance(document, list):
        raise DataError(f"Snapshot must be a list of pools or contain a 'pools' list: {path}")

    pairs, skipped = parse_pool_records(document)

    if tax_overrides_path:
        overrides = load_tax_overrides(tax_overrides_path)
        applied = 0
        for pair in pairs:
            override = overrides.get(pair.pool.lower())
            if override is None:
                continue
            pair.buy_tax_bps = override.buy_tax_bps
            pair.sell_tax_bps = override.sell_tax_bps
            if override.taxed_side is not None:
                pair.taxed_side = override.taxed_side
            applied += 1
        logger.info(f"Applied {applied} tax override(s) from {tax_overrides_path}")

    logger.info(f"Loaded {len(pairs)} pools from {path} ({skipped} skipped)")
    return pairs
