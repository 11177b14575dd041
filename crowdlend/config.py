"""
config.py - Engine configuration

A single frozen dataclass passed to CampaignEngine. Defaults come from the
module constants in core.py.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Mapping

from .core import PRECISION, DAY_LENGTH, ESCROW_ACCOUNT, MAX_RATE


@dataclass(frozen=True, slots=True)
class EngineConfig:
    """
    Immutable engine settings.

    Attributes:
        precision: Fixed-point precision for rates (10**8 == 100%)
        day_length: Seconds per scheduling day
        late_penalties_enabled: When False, late installments carry no surcharge
        default_late_fee_proportion: Late fee (fraction of yield, fixed point)
                                     used when a proposal does not name one
        escrow_account: Account that holds collateral and pooled funds
        verbose: Print a line for every applied or rejected operation
    """
    precision: int = PRECISION
    day_length: int = DAY_LENGTH
    late_penalties_enabled: bool = True
    default_late_fee_proportion: int = 0
    escrow_account: str = ESCROW_ACCOUNT
    verbose: bool = False

    def __post_init__(self):
        if self.precision <= 0:
            raise ValueError(f"precision must be positive, got {self.precision}")
        if self.day_length <= 0:
            raise ValueError(f"day_length must be positive, got {self.day_length}")
        if not 0 <= self.default_late_fee_proportion <= MAX_RATE:
            raise ValueError(
                f"default_late_fee_proportion out of range: {self.default_late_fee_proportion}"
            )
        if not self.escrow_account or not self.escrow_account.strip():
            raise ValueError("escrow_account cannot be empty")

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> EngineConfig:
        """Build a config from a plain mapping, rejecting unknown keys."""
        unknown = set(values) - set(cls.__dataclass_fields__)
        if unknown:
            raise ValueError(f"Unknown config keys: {sorted(unknown)}")
        return cls(**values)
