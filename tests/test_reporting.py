"""
Test suite for portfolio reporting
"""

import pytest
from decimal import Decimal
from datetime import datetime, timezone

from lending_ledger.currency import Money, Currency
from lending_ledger.storage import InMemoryStorage
from lending_ledger.audit import AuditTrail
from lending_ledger.identity import CallerIdentity
from lending_ledger.terms import InterestType, Frequency
from lending_ledger.loans import LoanManager, PaymentKind
from lending_ledger.reporting import PortfolioReporter


NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
ADMIN = CallerIdentity(user_id="admin-1", display_name="Ana Admin", tenant_id="T1")


def brl(value: str) -> Money:
    return Money(Decimal(value), Currency.BRL)


@pytest.fixture
def loan_manager():
    storage = InMemoryStorage()
    return LoanManager(storage, AuditTrail(storage), clock=lambda: NOW)


def originate(loan_manager, principal, rate):
    return loan_manager.originate_loan(ADMIN, "C1", "Client", principal, Decimal(rate),
                                       InterestType.SIMPLE, Frequency.MONTHLY, 1)


class TestPortfolioSummary:
    """Test dashboard figures"""
    
    def test_empty_portfolio(self, loan_manager):
        summary = PortfolioReporter(loan_manager).portfolio_summary(ADMIN)
        assert summary.active_loans == 0
        assert summary.total_receivable.is_zero()
        assert summary.interest_collected.is_zero()
    
    def test_portfolio(self, loan_manager):
        amortizing = originate(loan_manager, "1000", "20")
        loan_manager.apply_payment(ADMIN, amortizing.id, "600")
        
        renewed = originate(loan_manager, "500", "10")
        loan_manager.apply_payment(ADMIN, renewed.id, "50", kind=PaymentKind.INTEREST_ONLY)
        
        settled = originate(loan_manager, "100", "10")
        loan_manager.apply_payment(ADMIN, settled.id, "110")
        
        summary = PortfolioReporter(loan_manager).portfolio_summary(ADMIN)
        
        assert summary.active_loans == 2
        assert summary.overdue_loans == 0
        assert summary.paid_loans == 1
        assert summary.total_receivable == brl('1150.00')
        assert summary.invested_capital == brl('900.00')
        assert summary.interest_collected == brl('160.00')
        assert summary.interest_pending == brl('250.00')
    
    def test_other_tenant_excluded(self, loan_manager):
        originate(loan_manager, "1000", "20")
        other = CallerIdentity(user_id="admin-2", display_name="Bia", tenant_id="T2")
        assert PortfolioReporter(loan_manager).portfolio_summary(other).active_loans == 0
