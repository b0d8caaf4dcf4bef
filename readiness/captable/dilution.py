"""
Funding-round dilution math.

All share counts are whole numbers rounded half-up; ownership and dilution
percentages are left unrounded for the caller to format.
"""

from __future__ import annotations

import uuid

from readiness.captable.models import (
    CapTable,
    DilutionResult,
    FundingRound,
    InstrumentType,
    PostRoundState,
    PreRoundState,
    Stakeholder,
    StakeholderType,
)
from readiness.observability.logging import get_logger
from readiness.utils.rounding import round_half_up, round_int

logger = get_logger(__name__)

INSTRUMENT_LABELS: dict[InstrumentType, str] = {
    InstrumentType.EQUITY: "Priced Equity",
    InstrumentType.SAFE: "SAFE",
    InstrumentType.CLA: "Convertible Note (CLA)",
}

# Short suffix appended to the new investor's name
_INSTRUMENT_SUFFIX = {
    InstrumentType.SAFE: "SAFE",
    InstrumentType.CLA: "CLA",
}


def _new_id() -> str:
    return uuid.uuid4().hex[:9]


def calculate_ownership(
    stakeholders: list[Stakeholder],
    total_shares: int,
    fully_diluted: bool = True,
    esop_pool: float = 0,
) -> list[Stakeholder]:
    """
    Return copies of stakeholders with `ownership` filled in.

    Fully diluted counts the unissued ESOP pool in the denominator.
    Otherwise only outstanding holders (is_outstanding not False) count and
    everyone else owns 0%.
    """
    if fully_diluted:
        denominator = total_shares + round_int(esop_pool / 100 * total_shares)
        return [
            s.model_copy(update={"ownership": s.shares / denominator * 100 if denominator > 0 else 0.0})
            for s in stakeholders
        ]

    outstanding = sum(s.shares for s in stakeholders if s.is_outstanding is not False)
    return [
        s.model_copy(
            update={
                "ownership": s.shares / outstanding * 100
                if outstanding > 0 and s.is_outstanding is not False
                else 0.0
            }
        )
        for s in stakeholders
    ]


def _effective_pre_money(funding_round: FundingRound) -> float:
    """Pre-money the new investor converts at (cap and discount apply to SAFE/CLA only)."""
    effective = funding_round.pre_money
    if funding_round.instrument == InstrumentType.EQUITY:
        return effective

    cap = funding_round.valuation_cap
    if cap and cap < funding_round.pre_money:
        effective = cap
    discount = funding_round.discount
    if discount and discount > 0:
        effective = min(effective, funding_round.pre_money * (1 - discount / 100))
    return effective


def _validate(cap_table: CapTable, funding_round: FundingRound) -> None:
    if cap_table.total_shares <= 0:
        raise ValueError("Total shares must be positive")
    if funding_round.pre_money <= 0:
        raise ValueError("Pre-money valuation must be positive")
    if funding_round.investment < 0:
        raise ValueError("Investment cannot be negative")
    if _effective_pre_money(funding_round) <= 0:
        raise ValueError("Effective pre-money valuation must be positive")


def simulate_round(cap_table: CapTable, funding_round: FundingRound) -> DilutionResult:
    """
    Simulate a funding round on top of cap_table.

    The new investor buys at effective_pre_money / total_shares. The ESOP pool
    is then topped up so it reaches new_esop_pool percent of the post-round
    share count (option pool shuffle); the pool never shrinks.

    Raises:
        ValueError: Non-positive share count or valuation, negative investment
    """
    _validate(cap_table, funding_round)

    total_shares = cap_table.total_shares
    instrument = funding_round.instrument

    post_money = funding_round.pre_money + funding_round.investment
    price_per_share = _effective_pre_money(funding_round) / total_shares
    new_investor_shares = round_int(funding_round.investment / price_per_share)

    current_esop_shares = round_int(cap_table.esop_pool / 100 * total_shares)
    post_round_shares = total_shares + new_investor_shares
    target_esop_shares = round_int(funding_round.new_esop_pool / 100 * post_round_shares)
    additional_esop_shares = max(0, target_esop_shares - current_esop_shares)
    final_total_shares = post_round_shares + additional_esop_shares

    pre_round = calculate_ownership(cap_table.stakeholders, total_shares, True, cap_table.esop_pool)
    post_round = calculate_ownership(
        cap_table.stakeholders, final_total_shares, True, funding_round.new_esop_pool
    )

    new_investor_ownership = new_investor_shares / final_total_shares * 100
    suffix = _INSTRUMENT_SUFFIX.get(instrument)
    new_investor = Stakeholder(
        id=_new_id(),
        name=f"{funding_round.name} Investor" + (f" ({suffix})" if suffix else ""),
        type=StakeholderType.INVESTOR if instrument == InstrumentType.EQUITY else StakeholderType.CONVERTIBLE,
        shares=new_investor_shares,
        ownership=new_investor_ownership,
        # SAFE/CLA holders are not outstanding until conversion
        is_outstanding=instrument == InstrumentType.EQUITY,
    )

    post_by_id = {s.id: s for s in post_round}
    dilution: dict[str, float] = {}
    for before in pre_round:
        after = post_by_id.get(before.id)
        if after is not None and before.ownership and after.ownership:
            dilution[before.id] = (before.ownership - after.ownership) / before.ownership * 100

    logger.debug(
        "Simulated %s round: %d new shares at %.4f, final total %d",
        instrument.value,
        new_investor_shares,
        price_per_share,
        final_total_shares,
    )

    return DilutionResult(
        pre_round=PreRoundState(
            stakeholders=pre_round,
            total_shares=total_shares,
            esop_pool=cap_table.esop_pool,
        ),
        post_round=PostRoundState(
            stakeholders=[*post_round, new_investor],
            total_shares=final_total_shares,
            esop_pool=funding_round.new_esop_pool,
            new_investor_shares=new_investor_shares,
            new_investor_ownership=new_investor_ownership,
            post_money=post_money,
            price_per_share=price_per_share,
            instrument=instrument,
        ),
        dilution_percentages=dilution,
    )


def format_currency(value: float) -> str:
    if value >= 1_000_000:
        return f"${round_half_up(value / 1_000_000, 1):.1f}M"
    if value >= 1_000:
        return f"${round_int(value / 1_000)}K"
    return f"${round_int(value)}"


def format_percentage(value: float) -> str:
    return f"{round_half_up(value, 2):.2f}%"


def create_default_cap_table() -> CapTable:
    """Starting point for new users: two founders, 10% pool with 2% granted."""
    return CapTable(
        total_shares=10_000_000,
        stakeholders=[
            Stakeholder(
                id=_new_id(),
                name="Founder 1",
                type=StakeholderType.FOUNDER,
                shares=5_000_000,
                is_outstanding=True,
            ),
            Stakeholder(
                id=_new_id(),
                name="Founder 2",
                type=StakeholderType.FOUNDER,
                shares=3_000_000,
                is_outstanding=True,
            ),
        ],
        esop_pool=10,
        esop_allocated=2,
    )
