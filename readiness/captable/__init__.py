"""Cap table modelling and funding-round dilution"""

from readiness.captable.dilution import (
    INSTRUMENT_LABELS,
    calculate_ownership,
    create_default_cap_table,
    format_currency,
    format_percentage,
    simulate_round,
)
from readiness.captable.models import (
    CapTable,
    DilutionResult,
    FundingRound,
    InstrumentType,
    Stakeholder,
    StakeholderType,
)

__all__ = [
    "INSTRUMENT_LABELS",
    "CapTable",
    "DilutionResult",
    "FundingRound",
    "InstrumentType",
    "Stakeholder",
    "StakeholderType",
    "calculate_ownership",
    "create_default_cap_table",
    "format_currency",
    "format_percentage",
    "simulate_round",
]
