"""
Loan State Machine

Status transitions for a loan: active, overdue, paid. Status is derived
from the payment log and the due date; the stored value is a cache that is
recomputed on every mutation and refreshed on every read. There is no
background timer: active -> overdue happens lazily when a loan is read.
"""

from datetime import date
from decimal import Decimal
from enum import Enum

from .currency import Money


PAID_TOLERANCE = Decimal('0.10')


class LoanStatus(Enum):
    """Loan lifecycle states"""
    ACTIVE = "active"
    OVERDUE = "overdue"
    PAID = "paid"


def is_settled(paid_amount: Money, committed_total: Money,
               tolerance: Decimal = PAID_TOLERANCE) -> bool:
    """True once the paid amount reaches the committed total minus tolerance"""
    return paid_amount.amount >= committed_total.amount - tolerance


def status_by_due_date(due_date: date, today: date) -> LoanStatus:
    return LoanStatus.OVERDUE if due_date < today else LoanStatus.ACTIVE


def refresh_status(status: LoanStatus, due_date: date, today: date) -> LoanStatus:
    """
    Read-time refresh. A paid loan stays paid; an open loan is overdue
    exactly when its due date is before today.
    """
    if status == LoanStatus.PAID:
        return status
    return status_by_due_date(due_date, today)


def status_after_payment(status: LoanStatus, paid_amount: Money, committed_total: Money,
                         explicit_payoff: bool, tolerance: Decimal = PAID_TOLERANCE) -> LoanStatus:
    """Regular payment: close the loan or leave the status for the next read"""
    if explicit_payoff or is_settled(paid_amount, committed_total, tolerance):
        return LoanStatus.PAID
    return status


def status_after_renewal(new_due_date: date, today: date) -> LoanStatus:
    """Interest-only renewal reopens the period ending at new_due_date"""
    return status_by_due_date(new_due_date, today)


def status_after_edit(status: LoanStatus, paid_amount: Money, committed_total: Money,
                      due_date: date, today: date,
                      tolerance: Decimal = PAID_TOLERANCE) -> LoanStatus:
    """
    Payment deletion or amendment. The due date is never rolled back, so a
    loan that drops below the payoff threshold reopens as active or overdue
    against its current due date.
    """
    if is_settled(paid_amount, committed_total, tolerance):
        return LoanStatus.PAID
    return status_by_due_date(due_date, today)
