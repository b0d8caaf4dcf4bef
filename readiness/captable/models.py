"""
Cap table models.

Field names are snake_case in Python and camelCase on the wire
(`totalShares`, `isOutstanding`, ...), so request bodies from the web client
validate directly and responses dump with `by_alias=True`.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class StakeholderType(str, Enum):
    FOUNDER = "founder"
    EMPLOYEE = "employee"
    ADVISOR = "advisor"
    INVESTOR = "investor"
    CONVERTIBLE = "convertible"


class InstrumentType(str, Enum):
    """How the new money comes in."""

    EQUITY = "equity"  # Priced round
    SAFE = "safe"
    CLA = "cla"  # Convertible loan agreement


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Stakeholder(_WireModel):
    """A holder of shares (or of a claim on shares) in the company."""

    id: str = Field(..., description="Stable identifier, used as the dilution key")
    name: str
    type: StakeholderType
    shares: int = Field(..., ge=0)
    ownership: float = Field(default=0.0, description="Calculated percentage")
    is_outstanding: bool | None = Field(
        default=None, description="True for issued shares, False for options/convertibles"
    )


class CapTable(_WireModel):
    total_shares: int = Field(..., description="Issued shares before any unissued pool")
    stakeholders: list[Stakeholder] = Field(default_factory=list)
    esop_pool: float = Field(default=0.0, ge=0, le=100, description="Reserved pool, percent")
    esop_allocated: float = Field(default=0.0, ge=0, le=100, description="Granted pool, percent")


class FundingRound(_WireModel):
    name: str = Field(..., min_length=1, description="Round name, e.g. 'Seed'")
    instrument: InstrumentType = InstrumentType.EQUITY
    pre_money: float
    investment: float
    new_esop_pool: float = Field(default=0.0, ge=0, le=100, description="Target pool post-round, percent")
    valuation_cap: float | None = None
    discount: float | None = Field(default=None, description="Percent, e.g. 20 for 20%")


class PreRoundState(_WireModel):
    stakeholders: list[Stakeholder]
    total_shares: int
    esop_pool: float


class PostRoundState(_WireModel):
    stakeholders: list[Stakeholder]
    total_shares: int
    esop_pool: float
    new_investor_shares: int
    new_investor_ownership: float
    post_money: float
    price_per_share: float
    instrument: InstrumentType


class DilutionResult(_WireModel):
    pre_round: PreRoundState
    post_round: PostRoundState
    dilution_percentages: dict[str, float] = Field(default_factory=dict)
