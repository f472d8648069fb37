"""
Portfolio Reporting Module

Tenant-level dashboard figures computed from the loans and their payment
logs: status counts, receivable, capital still out, and realised and
pending interest.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import List

from .currency import Money, Currency, money_max
from .identity import CallerIdentity
from .loans import Loan, LoanManager, PaymentKind
from .state_machine import LoanStatus


@dataclass(frozen=True)
class PortfolioSummary:
    """Dashboard figures for a loan portfolio"""
    active_loans: int
    overdue_loans: int
    paid_loans: int
    total_receivable: Money
    invested_capital: Money
    interest_collected: Money
    interest_pending: Money


class PortfolioReporter:
    """Builds portfolio summaries from the loan book"""
    
    def __init__(self, loan_manager: LoanManager, currency: Currency = Currency.BRL):
        self.loan_manager = loan_manager
        self.currency = currency
    
    def portfolio_summary(self, identity: CallerIdentity) -> PortfolioSummary:
        return self.summarize(self.loan_manager.list_loans(identity))
    
    def summarize(self, loans: List[Loan]) -> PortfolioSummary:
        """
        Open loans feed receivable, invested capital and pending interest.
        Realised interest counts every interest-only payment in full plus the
        interest share (planned interest / committed total) of each regular
        payment, across all loans.
        """
        zero = Money.zero(self.currency)
        receivable, invested, collected, pending = zero, zero, zero, zero
        counts = {status: 0 for status in LoanStatus}
        
        for loan in loans:
            counts[loan.status] += 1
            planned_interest = loan.committed_total - loan.principal
            interest_only = sum(
                (p.amount for p in loan.payments if p.kind == PaymentKind.INTEREST_ONLY), zero
            )
            regular = sum(
                (p.amount for p in loan.payments if p.kind != PaymentKind.INTEREST_ONLY), zero
            )
            
            if loan.committed_total.is_positive():
                ratio = planned_interest.amount / loan.committed_total.amount
            else:
                ratio = Decimal('0')
            collected = collected + interest_only
            for payment in loan.payments:
                if payment.kind != PaymentKind.INTEREST_ONLY:
                    collected = collected + payment.amount * ratio
            
            if loan.status in (LoanStatus.ACTIVE, LoanStatus.OVERDUE):
                receivable = receivable + (loan.committed_total - loan.paid_amount)
                invested = invested + (loan.principal - regular)
                pending = pending + money_max(zero, planned_interest - interest_only)
        
        return PortfolioSummary(
            active_loans=counts[LoanStatus.ACTIVE],
            overdue_loans=counts[LoanStatus.OVERDUE],
            paid_loans=counts[LoanStatus.PAID],
            total_receivable=receivable,
            invested_capital=invested,
            interest_collected=collected,
            interest_pending=pending
        )
