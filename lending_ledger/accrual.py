"""
Accrual Calculator

Pure read-side computation of a loan's position as of an instant: days
overdue, late penalty, mora interest, current debt and its breakdown into
principal and fees. Runs on every view of a loan and never mutates it.

Late fees always use the linear overdue formula against the live committed
total, whatever the loan's interest type.
"""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Union

from .currency import Money, money_max, money_min
from .projection import late_fees, HUNDRED
from .state_machine import LoanStatus
from .terms import InterestType

if TYPE_CHECKING:
    from .loans import Loan


@dataclass(frozen=True)
class LoanPosition:
    """Computed state of a loan at a given instant"""
    days_overdue: int
    fixed_penalty: Money
    mora_interest: Money
    current_debt: Money
    principal_remaining: Money
    fees_remaining: Money
    total_planned_interest: Money
    next_renewal_cost: Money
    
    @property
    def late_charges(self) -> Money:
        return self.fixed_penalty + self.mora_interest


def _as_utc_date(value: Union[date, datetime]) -> date:
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    return value


def day_diff(start: Union[date, datetime], end: Union[date, datetime]) -> int:
    """Whole calendar days from start to end, time-of-day ignored"""
    return (_as_utc_date(end) - _as_utc_date(start)).days


def compute_loan_state(loan: 'Loan', as_of: Union[date, datetime]) -> LoanPosition:
    """
    Compute the loan's position as of the given instant
    
    Outstanding debt is attributed to interest first: fees_remaining is the
    part of the base debt up to the total planned interest, and only the
    excess counts as principal still to recover.
    
    Args:
        loan: Loan to evaluate
        as_of: Instant (or calendar date) of the evaluation
        
    Returns:
        LoanPosition for that instant
    """
    currency = loan.committed_total.currency
    zero = Money.zero(currency)
    
    days_overdue = max(0, day_diff(loan.due_date, as_of))
    
    fixed_penalty, mora_interest = zero, zero
    config = loan.penalty_config
    if loan.status != LoanStatus.PAID and config is not None and config.active:
        fixed_penalty, mora_interest = late_fees(loan.committed_total, config, days_overdue)
    
    total_planned_interest = money_max(zero, loan.committed_total - loan.principal)
    base_debt = money_max(zero, loan.committed_total - loan.paid_amount)
    fees_remaining = money_min(base_debt, total_planned_interest)
    principal_remaining = money_max(zero, base_debt - fees_remaining)
    
    if loan.interest_type == InterestType.BALANCE_BASED:
        next_renewal_cost = principal_remaining * (loan.rate / HUNDRED)
    else:
        next_renewal_cost = total_planned_interest / Decimal(loan.installment_count)
    
    return LoanPosition(
        days_overdue=days_overdue,
        fixed_penalty=fixed_penalty,
        mora_interest=mora_interest,
        current_debt=base_debt + fixed_penalty + mora_interest,
        principal_remaining=principal_remaining,
        fees_remaining=fees_remaining,
        total_planned_interest=total_planned_interest,
        next_renewal_cost=next_renewal_cost
    )
