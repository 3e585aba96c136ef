"""
Configuration schema validation using Pydantic
"""

import re
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def _check_address(value: Optional[str]) -> Optional[str]:
    if value is not None and not _ADDRESS_RE.match(value):
        raise ValueError(f"'{value}' is not a 20-byte hex address")
    return value


class SearchConfig(BaseModel):
    """Beam search configuration"""

    max_depth: int = Field(default=30, ge=2, le=64, description="Maximum hops per path")
    beam_width: int = Field(
        default=10, ge=1, le=1000, description="Partial paths kept per token per step"
    )
    source_tokens: List[str] = Field(
        min_length=1, description="Tokens paths start from (and return to)"
    )
    secondary_tokens: List[str] = Field(
        default_factory=list,
        description="Value-equivalent tokens accepted as terminals of directed paths",
    )
    terminal_policy: Literal["circular", "circular_or_secondary"] = "circular"

    @model_validator(mode="after")
    def validate_policy(self):
        if self.terminal_policy == "circular_or_secondary" and not self.secondary_tokens:
            raise ValueError(
                "secondary_tokens required when terminal_policy is 'circular_or_secondary'"
            )
        return self


class SolverConfig(BaseModel):
    """Newton-Raphson profit solver configuration"""

    initial_guess: float = Field(default=9e18, gt=0, description="Newton seed")
    max_iterations: int = Field(default=100, ge=1, le=10000)
    tolerance: float = Field(default=1e-8, gt=0)
    min_profit: float = Field(
        default=0, ge=0, description="Minimum profit in start-token units"
    )
    fallback_iterations: int = Field(
        default=200, ge=0, le=10000, description="Golden-section budget, 0 disables"
    )


class SchedulerConfig(BaseModel):
    """Ranking and batch scheduling configuration"""

    max_opportunities: int = Field(default=20, ge=1, le=1000)
    flash_loan_reserve_multiple: int = Field(default=3, ge=1, le=1000)
    signature_ttl_sec: Optional[float] = Field(
        default=None, gt=0, description="Forget signatures after this many seconds"
    )


class ExecutionConfig(BaseModel):
    """Execution mode configuration"""

    mode: Literal["paper", "live"] = "paper"
    rpc_url: Optional[str] = None
    contract_address: Optional[str] = None
    account_address: Optional[str] = None
    private_key_env: str = Field(
        default="ARBITRAGE_PRIVATE_KEY",
        description="Environment variable holding the signing key",
    )
    gas_limit: int = Field(default=1_500_000, ge=21_000)
    flash_gas_profit_share: float = Field(default=0.6, ge=0, le=1.0)
    direct_gas_profit_share: float = Field(default=0.7, ge=0, le=1.0)
    chain_id: Optional[int] = Field(default=None, ge=1)

    @field_validator("contract_address", "account_address")
    @classmethod
    def validate_address(cls, v):
        return _check_address(v)

    @model_validator(mode="after")
    def validate_mode_config(self):
        if self.mode == "live":
            missing = [
                name
                for name in ("rpc_url", "contract_address", "account_address")
                if getattr(self, name) is None
            ]
            if missing:
                raise ValueError(
                    f"{', '.join(missing)} required when mode is 'live'"
                )
        return self


class ArbitrageConfig(BaseModel):
    """Complete cyclic arbitrage configuration"""

    search: SearchConfig
    solver: SolverConfig = Field(default_factory=SolverConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    snapshot_path: Optional[str] = None
    tax_overrides_path: Optional[str] = None

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        return v.upper() if isinstance(v, str) else v
