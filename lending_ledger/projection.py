"""
Projection Engine

Pure functions used before a loan exists: the committed payoff total for a
set of contract terms, and a simulation of the late fees that total would
attract after a hypothetical number of overdue days.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional, Tuple

from .currency import Money
from .terms import InterestType, Frequency, FixedPenaltyKind, PenaltyConfig


HUNDRED = Decimal('100')


@dataclass(frozen=True)
class LateFeeSimulation:
    """Late fees projected for a hypothetical overdue period"""
    fixed_penalty: Money
    mora_interest: Money
    projected_total: Money
    within_grace: bool


@dataclass(frozen=True)
class OriginationPreview:
    """Everything shown to the operator before committing to a new loan"""
    principal: Money
    committed_total: Money
    planned_interest: Money
    installment_amount: Money
    due_date: date
    late_fee: Optional[LateFeeSimulation] = None


def compute_origination_total(
    principal: Money,
    rate_pct: Decimal,
    interest_type: InterestType,
    installment_count: int
) -> Money:
    """
    Committed payoff total agreed at origination
    
    simple, balance_based and daily: principal * (1 + rate/100 * n)
    compound: principal * (1 + rate/100) ** n
    
    Args:
        principal: Amount disbursed
        rate_pct: Percent per installment period (20 means 20%)
        interest_type: Origination formula
        installment_count: Number of installment periods, at least 1
        
    Returns:
        Committed total rounded to currency precision
    """
    if installment_count < 1:
        raise ValueError("Installment count must be at least 1")
    
    rate = Decimal(str(rate_pct)) / HUNDRED
    
    if interest_type == InterestType.COMPOUND:
        factor = (Decimal('1') + rate) ** installment_count
    else:
        factor = Decimal('1') + rate * installment_count
    
    return Money(principal.amount * factor, principal.currency)


def late_fees(
    committed_total: Money,
    penalty_config: PenaltyConfig,
    overdue_days: int
) -> Tuple[Money, Money]:
    """
    Fixed penalty and mora interest for overdue_days past the due date
    
    Returns zero fees while overdue_days is within the grace period. The
    caller decides whether the config is active.
    """
    zero = Money.zero(committed_total.currency)
    if overdue_days <= penalty_config.grace_days:
        return zero, zero
    
    if penalty_config.fixed_penalty_kind == FixedPenaltyKind.PER_DAY:
        fixed = penalty_config.fixed_penalty_amount * overdue_days
    else:
        fixed = penalty_config.fixed_penalty_amount
    
    mora = committed_total.amount * penalty_config.daily_mora_rate * overdue_days
    
    return Money(fixed, committed_total.currency), Money(mora, committed_total.currency)


def simulate_late_fee(
    committed_total: Money,
    penalty_config: PenaltyConfig,
    hypothetical_overdue_days: int
) -> LateFeeSimulation:
    """Project the late fees a committed total would attract"""
    if hypothetical_overdue_days < 0:
        raise ValueError("Overdue days cannot be negative")
    
    fixed, mora = late_fees(committed_total, penalty_config, hypothetical_overdue_days)
    
    return LateFeeSimulation(
        fixed_penalty=fixed,
        mora_interest=mora,
        projected_total=committed_total + fixed + mora,
        within_grace=hypothetical_overdue_days <= penalty_config.grace_days
    )


def compute_due_date(origination_date: date, frequency: Frequency, installment_count: int) -> date:
    """Final due date: one frequency period per installment"""
    return origination_date + timedelta(days=frequency.days * installment_count)


def preview_origination(
    principal: Money,
    rate_pct: Decimal,
    interest_type: InterestType,
    frequency: Frequency,
    installment_count: int,
    origination_date: date,
    penalty_config: Optional[PenaltyConfig] = None,
    simulated_overdue_days: int = 0
) -> OriginationPreview:
    """Bundle the projections displayed on the new-loan form"""
    total = compute_origination_total(principal, rate_pct, interest_type, installment_count)
    
    simulation = None
    if penalty_config is not None:
        simulation = simulate_late_fee(total, penalty_config, simulated_overdue_days)
    
    return OriginationPreview(
        principal=principal,
        committed_total=total,
        planned_interest=total - principal,
        installment_amount=total / Decimal(installment_count),
        due_date=compute_due_date(origination_date, frequency, installment_count),
        late_fee=simulation
    )
