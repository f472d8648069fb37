"""
Commission & Ledger Accountant

Read-side aggregation of a collector's commission ledger. Commissions come
from the payments the collector took across all loans of the tenant; payouts
and bonuses come from the manual transaction log. Nothing here is stored:
balances are recomputed from the full history on every call.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, List, Optional

from .currency import Money, Currency
from .collectors import Collector, CollectorManager, CollectorTransactionKind
from .loans import LoanManager, Payment


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class DateRangePreset(Enum):
    """Statement view windows"""
    LAST_7_DAYS = "7days"
    LAST_30_DAYS = "30days"
    MONTH_TO_DATE = "this_month"
    ALL_TIME = "all"
    
    def lower_bound(self, now: datetime) -> datetime:
        """Concrete lower-bound instant for this window, relative to now"""
        if self == DateRangePreset.LAST_7_DAYS:
            return now - timedelta(days=7)
        if self == DateRangePreset.LAST_30_DAYS:
            return now - timedelta(days=30)
        if self == DateRangePreset.MONTH_TO_DATE:
            return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        return EPOCH


class StatementItemKind(Enum):
    COMMISSION = "commission"
    PAYOUT = "payout"
    BONUS = "bonus"


@dataclass(frozen=True)
class StatementItem:
    """One line of a collector statement"""
    id: str
    timestamp: datetime
    kind: StatementItemKind
    amount: Money
    description: str
    loan_id: Optional[str] = None


@dataclass
class CollectorStatement:
    """
    Time-filtered view of a collector ledger. The totals and balance always
    cover the full history; the window only selects which items are listed.
    """
    collector_id: str
    collector_name: str
    lower_bound: datetime
    items: List[StatementItem] = field(default_factory=list)
    total_commission: Money = None
    total_payout: Money = None
    total_bonus: Money = None
    balance: Money = None


@dataclass(frozen=True)
class CollectorSummary:
    """Dashboard figures for one collector"""
    collector_id: str
    total_collected: Money
    total_commission: Money
    total_payout: Money
    total_bonus: Money
    balance: Money


def collected_by(payment: Payment, collector: Collector) -> bool:
    """
    Whether a payment was taken by the collector. Payments carrying a
    collector id are matched on it; older records only carry the display
    name and are matched on that.
    """
    if payment.collector_id:
        return payment.collector_id == collector.id
    return payment.collected_by == collector.name


class CommissionAccountant:
    """Derives collector commission ledgers from payments and manual transactions"""
    
    def __init__(
        self,
        loan_manager: LoanManager,
        collector_manager: CollectorManager,
        clock: Optional[Callable[[], datetime]] = None,
        currency: Currency = Currency.BRL
    ):
        self.loan_manager = loan_manager
        self.collector_manager = collector_manager
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.currency = currency
    
    def _collector_payments(self, collector: Collector):
        for loan in self.loan_manager.list_tenant_loans(collector.tenant_id):
            for payment in loan.payments:
                if collected_by(payment, collector):
                    yield loan, payment
    
    def totals(self, collector_id: str) -> CollectorSummary:
        """All-time figures for a collector"""
        collector = self.collector_manager.require_collector(collector_id)
        zero = Money.zero(self.currency)
        
        collected, commission = zero, zero
        for _, payment in self._collector_payments(collector):
            collected = collected + payment.amount
            commission = commission + payment.commission_amount
        
        payout, bonus = zero, zero
        for transaction in self.collector_manager.list_transactions(collector.id):
            if transaction.kind == CollectorTransactionKind.PAYOUT:
                payout = payout + transaction.amount
            elif transaction.kind == CollectorTransactionKind.BONUS:
                bonus = bonus + transaction.amount
        
        return CollectorSummary(
            collector_id=collector.id,
            total_collected=collected,
            total_commission=commission,
            total_payout=payout,
            total_bonus=bonus,
            balance=(commission + bonus) - payout
        )
    
    def balance(self, collector_id: str) -> Money:
        """Current payable balance: (commission + bonus) - payout, all time"""
        return self.totals(collector_id).balance
    
    collector_summary = totals
    
    def statement(
        self,
        collector_id: str,
        preset: DateRangePreset = DateRangePreset.ALL_TIME,
        lower_bound: Optional[datetime] = None
    ) -> CollectorStatement:
        """
        Statement of commission, payout and bonus lines, most recent first
        
        Args:
            collector_id: Collector to report on
            preset: Window used when lower_bound is not given
            lower_bound: Explicit lower bound (inclusive)
            
        Returns:
            CollectorStatement with filtered items and all-time totals
        """
        collector = self.collector_manager.require_collector(collector_id)
        if lower_bound is None:
            lower_bound = preset.lower_bound(self.clock())
        
        items: List[StatementItem] = []
        for loan, payment in self._collector_payments(collector):
            if payment.commission_amount.is_positive() and payment.timestamp >= lower_bound:
                items.append(StatementItem(
                    id=payment.id,
                    timestamp=payment.timestamp,
                    kind=StatementItemKind.COMMISSION,
                    amount=payment.commission_amount,
                    description=f"Commission - {loan.client_name}",
                    loan_id=loan.id
                ))
        
        for transaction in self.collector_manager.list_transactions(collector.id):
            if transaction.timestamp >= lower_bound:
                items.append(StatementItem(
                    id=transaction.id,
                    timestamp=transaction.timestamp,
                    kind=StatementItemKind(transaction.kind.value),
                    amount=transaction.amount,
                    description=transaction.description
                ))
        
        items.sort(key=lambda item: item.timestamp, reverse=True)
        summary = self.totals(collector_id)
        
        return CollectorStatement(
            collector_id=collector.id,
            collector_name=collector.name,
            lower_bound=lower_bound,
            items=items,
            total_commission=summary.total_commission,
            total_payout=summary.total_payout,
            total_bonus=summary.total_bonus,
            balance=summary.balance
        )
