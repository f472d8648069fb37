"""
Loan Module

Handles loan origination, payment application (amortization, interest-only
renewal, payoff), payment deletion and amendment, and loan lifecycle.

A loan is stored as one record with its payment log embedded. The log is the
source of truth: paid_amount is recomputed from it on every mutation and the
stored status is refreshed against today on every read.
"""

from decimal import Decimal
from datetime import datetime, timezone, timedelta, date
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Union, TYPE_CHECKING
from enum import Enum
import uuid

from .currency import Money, Currency, parse_amount
from .storage import StorageInterface, StorageRecord
from .audit import AuditTrail, AuditEventType
from .errors import NotFoundError, InvalidAmountError, LoanSettledError
from .identity import CallerIdentity, require_identity
from .logging_config import get_logger, log_action
from .terms import InterestType, Frequency, PenaltyConfig
from .projection import compute_origination_total, compute_due_date, HUNDRED
from .accrual import LoanPosition, compute_loan_state
from .state_machine import (
    LoanStatus, PAID_TOLERANCE, refresh_status, status_after_payment,
    status_after_renewal, status_after_edit
)

if TYPE_CHECKING:
    from .collectors import CollectorManager


logger = get_logger("lending_ledger.loans")

PAYOFF_TOLERANCE = Decimal('1.00')


class PaymentKind(Enum):
    """Payment types"""
    REGULAR = "regular"              # Amortizes the committed total
    INTEREST_ONLY = "interest_only"  # Renewal: buys one more period


class PaymentOutcome(Enum):
    """Path a payment took through the engine"""
    AMORTIZATION = "amortization"
    RENEWAL = "renewal"
    PAYOFF = "payoff"


@dataclass
class Payment:
    """Immutable ledger entry in a loan's payment log"""
    id: str
    amount: Money
    timestamp: datetime
    collected_by: str                   # Display name at collection time
    commission_amount: Money            # Frozen at creation
    kind: PaymentKind = PaymentKind.REGULAR
    description: str = ""
    collector_id: Optional[str] = None  # Durable collector reference
    
    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'amount': str(self.amount.amount),
            'timestamp': self.timestamp.isoformat(),
            'collected_by': self.collected_by,
            'collector_id': self.collector_id,
            'commission_amount': str(self.commission_amount.amount),
            'kind': self.kind.value,
            'description': self.description
        }
    
    @classmethod
    def from_dict(cls, data: Dict, currency: Currency) -> 'Payment':
        return cls(
            id=data['id'],
            amount=Money(Decimal(data['amount']), currency),
            timestamp=datetime.fromisoformat(data['timestamp']),
            collected_by=data.get('collected_by', ''),
            collector_id=data.get('collector_id'),
            commission_amount=Money(Decimal(data.get('commission_amount') or '0'), currency),
            kind=PaymentKind(data.get('kind', PaymentKind.REGULAR.value)),
            description=data.get('description') or ''
        )


@dataclass
class Loan(StorageRecord):
    """Lending contract with its payment log"""
    tenant_id: str
    client_id: str
    client_name: str
    principal: Money
    interest_type: InterestType
    rate: Decimal                       # Percent per installment period
    frequency: Frequency
    installment_count: int
    origination_date: date
    due_date: date
    committed_total: Money
    paid_amount: Money = None
    status: LoanStatus = LoanStatus.ACTIVE
    penalty_config: Optional[PenaltyConfig] = None
    payments: List[Payment] = field(default_factory=list)
    observations: str = ""
    version: Optional[int] = None
    
    def __post_init__(self):
        if not isinstance(self.rate, Decimal):
            self.rate = Decimal(str(self.rate))
        if self.paid_amount is None:
            self.paid_amount = Money.zero(self.currency)
    
    @property
    def currency(self) -> Currency:
        return self.principal.currency
    
    @property
    def is_paid(self) -> bool:
        return self.status == LoanStatus.PAID
    
    def find_payment(self, payment_id: str) -> Optional[Payment]:
        for payment in self.payments:
            if payment.id == payment_id:
                return payment
        return None
    
    def recompute_paid_amount(self) -> Money:
        """Sum the payment log into paid_amount"""
        total = Money.zero(self.currency)
        for payment in self.payments:
            total = total + payment.amount
        self.paid_amount = total
        return total


@dataclass
class PaymentReceipt:
    """Result of applying a payment"""
    loan: Loan
    payment: Payment
    outcome: PaymentOutcome
    position_before: LoanPosition


class LoanManager:
    """
    Manages loan lifecycle from origination through payoff
    """
    
    def __init__(
        self,
        storage: StorageInterface,
        audit_trail: AuditTrail,
        collector_manager: Optional['CollectorManager'] = None,
        clock: Optional[Callable[[], datetime]] = None,
        default_currency: Currency = Currency.BRL,
        paid_tolerance: Decimal = PAID_TOLERANCE,
        payoff_tolerance: Decimal = PAYOFF_TOLERANCE
    ):
        self.storage = storage
        self.audit_trail = audit_trail
        self.collector_manager = collector_manager
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.default_currency = default_currency
        self.paid_tolerance = paid_tolerance
        self.payoff_tolerance = payoff_tolerance
        
        self.loans_table = "loans"
    
    def _today(self) -> date:
        return self.clock().astimezone(timezone.utc).date()
    
    def originate_loan(
        self,
        identity: CallerIdentity,
        client_id: str,
        client_name: str,
        principal: Union[Money, Decimal, str],
        rate_pct: Decimal,
        interest_type: InterestType,
        frequency: Frequency,
        installment_count: int,
        origination_date: Optional[date] = None,
        penalty_config: Optional[PenaltyConfig] = None,
        observations: str = ""
    ) -> Loan:
        """
        Originate a new loan
        
        The committed total comes from the projection engine and the due date
        is one frequency period per installment after origination.
        
        Raises:
            UnauthenticatedError: If no caller identity is given
            InvalidAmountError: If principal is not positive
        """
        identity = require_identity(identity)
        
        if not isinstance(principal, Money):
            principal = parse_amount(principal, self.default_currency)
        elif not principal.is_positive():
            raise InvalidAmountError(f"Principal must be positive, got {principal.to_string()}")
        
        rate_pct = Decimal(str(rate_pct))
        if rate_pct < 0:
            raise ValueError("Interest rate cannot be negative")
        if installment_count < 1:
            raise ValueError("Installment count must be at least 1")
        
        now = self.clock()
        origination_date = origination_date or self._today()
        committed_total = compute_origination_total(principal, rate_pct, interest_type, installment_count)
        
        loan = Loan(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            tenant_id=identity.tenant_id,
            client_id=client_id,
            client_name=client_name,
            principal=principal,
            interest_type=interest_type,
            rate=rate_pct,
            frequency=frequency,
            installment_count=installment_count,
            origination_date=origination_date,
            due_date=compute_due_date(origination_date, frequency, installment_count),
            committed_total=committed_total,
            status=LoanStatus.ACTIVE,
            penalty_config=penalty_config,
            observations=observations
        )
        
        with self.storage.atomic():
            self._save_loan(loan)
            self.audit_trail.log_event(
                event_type=AuditEventType.LOAN_ORIGINATED,
                entity_type="loan",
                entity_id=loan.id,
                user_id=identity.user_id,
                tenant_id=identity.tenant_id,
                metadata={
                    "client_id": client_id,
                    "principal": principal.to_string(),
                    "rate_pct": str(rate_pct),
                    "interest_type": interest_type.value,
                    "frequency": frequency.code,
                    "installment_count": installment_count,
                    "committed_total": committed_total.to_string(),
                    "due_date": loan.due_date.isoformat()
                }
            )
        
        log_action(logger, "info", "Loan originated", user_id=identity.user_id,
                   action="originate_loan", resource=loan.id, tenant_id=identity.tenant_id,
                   extra={"committed_total": str(committed_total.amount)})
        return loan
    
    def get_loan(self, loan_id: str) -> Optional[Loan]:
        """Get loan by ID with its status refreshed against today"""
        loan_dict = self.storage.load(self.loans_table, loan_id)
        if not loan_dict:
            return None
        loan = self._loan_from_dict(loan_dict)
        loan.status = refresh_status(loan.status, loan.due_date, self._today())
        return loan
    
    def require_loan(self, loan_id: str) -> Loan:
        """Get loan by ID or raise NotFoundError"""
        loan = self.get_loan(loan_id)
        if not loan:
            raise NotFoundError("loan", loan_id)
        return loan
    
    def list_loans(self, identity: CallerIdentity, status: Optional[LoanStatus] = None) -> List[Loan]:
        """
        List the caller's tenant loans, each refreshed against today
        
        A master caller sees every tenant.
        """
        identity = require_identity(identity)
        if identity.sees_all_tenants:
            loans_data = self.storage.load_all(self.loans_table)
        else:
            loans_data = self.storage.find(self.loans_table, {"tenant_id": identity.tenant_id})
        
        today = self._today()
        loans = []
        for data in loans_data:
            loan = self._loan_from_dict(data)
            loan.status = refresh_status(loan.status, loan.due_date, today)
            if status is None or loan.status == status:
                loans.append(loan)
        
        loans.sort(key=lambda l: l.created_at)
        return loans
    
    def list_tenant_loans(self, tenant_id: str) -> List[Loan]:
        """All loans of one tenant, for read-side aggregation"""
        today = self._today()
        loans = [self._loan_from_dict(data)
                 for data in self.storage.find(self.loans_table, {"tenant_id": tenant_id})]
        for loan in loans:
            loan.status = refresh_status(loan.status, loan.due_date, today)
        loans.sort(key=lambda l: l.created_at)
        return loans

    def get_position(self, loan_id: str, as_of: Optional[datetime] = None) -> LoanPosition:
        """Accrual view of a loan as of the given instant (default now)"""
        loan = self.require_loan(loan_id)
        return compute_loan_state(loan, as_of or self.clock())
    
    def apply_payment(
        self,
        identity: CallerIdentity,
        loan_id: str,
        amount: Union[Money, Decimal, str],
        explicit_payoff: bool = False,
        kind: PaymentKind = PaymentKind.REGULAR,
        description: str = ""
    ) -> PaymentReceipt:
        """
        Apply a payment to a loan
        
        A payment within the payoff tolerance of the current debt (late
        charges included) closes the loan. An interest-only payment that is
        not a payoff renews the loan: the due date moves one period forward
        and the amount is capitalized into the committed total. Anything else
        amortizes.
        
        Args:
            identity: Caller taking the payment
            loan_id: Loan to pay
            amount: Positive amount in the loan currency
            explicit_payoff: Close the loan regardless of the amount
            kind: Regular or interest-only
            description: Free text (payment channel, notes)
            
        Returns:
            PaymentReceipt with the updated loan and the new payment
            
        Raises:
            UnauthenticatedError: If no caller identity is given
            NotFoundError: If the loan does not exist
            InvalidAmountError: If amount is zero, negative, or unparseable
            LoanSettledError: If the loan is already paid
        """
        identity = require_identity(identity)
        loan = self.require_loan(loan_id)
        if loan.status == LoanStatus.PAID:
            raise LoanSettledError(loan.id)
        money = amount if isinstance(amount, Money) else parse_amount(amount, loan.currency)
        if not money.is_positive():
            raise InvalidAmountError(f"Payment amount must be positive, got {money.to_string()}")
        if money.currency != loan.currency:
            raise InvalidAmountError(
                f"Payment currency {money.currency.code} does not match loan currency {loan.currency.code}"
            )
        
        now = self.clock()
        today = self._today()
        position = compute_loan_state(loan, now)
        previous_status = loan.status
        
        is_payoff = explicit_payoff or (
            abs(money - position.current_debt) < Money(self.payoff_tolerance, loan.currency)
        )
        
        payment = Payment(
            id=str(uuid.uuid4()),
            amount=money,
            timestamp=now,
            collected_by=identity.display_name,
            collector_id=identity.user_id if identity.earns_commission else None,
            commission_amount=self._commission_for(identity, money),
            kind=PaymentKind.REGULAR,
            description=description
        )
        
        if kind == PaymentKind.INTEREST_ONLY and not is_payoff:
            outcome = PaymentOutcome.RENEWAL
            payment.kind = PaymentKind.INTEREST_ONLY
            loan.due_date = loan.due_date + timedelta(days=loan.frequency.days)
            loan.committed_total = loan.committed_total + money
            loan.payments.append(payment)
            loan.recompute_paid_amount()
            loan.status = status_after_renewal(loan.due_date, today)
        else:
            outcome = PaymentOutcome.PAYOFF if is_payoff else PaymentOutcome.AMORTIZATION
            loan.payments.append(payment)
            loan.recompute_paid_amount()
            loan.status = status_after_payment(
                loan.status, loan.paid_amount, loan.committed_total,
                explicit_payoff=is_payoff, tolerance=self.paid_tolerance
            )
        
        loan.updated_at = now
        
        with self.storage.atomic():
            self._save_loan(loan)
            self.audit_trail.log_event(
                event_type=(AuditEventType.LOAN_RENEWED if outcome == PaymentOutcome.RENEWAL
                            else AuditEventType.PAYMENT_APPLIED),
                entity_type="loan",
                entity_id=loan.id,
                user_id=identity.user_id,
                tenant_id=loan.tenant_id,
                metadata={
                    "payment_id": payment.id,
                    "amount": money.to_string(),
                    "outcome": outcome.value,
                    "commission_amount": payment.commission_amount.to_string(),
                    "paid_amount": loan.paid_amount.to_string(),
                    "committed_total": loan.committed_total.to_string(),
                    "due_date": loan.due_date.isoformat(),
                    "status": loan.status.value
                }
            )
            self._audit_status_change(identity, loan, previous_status)
        
        log_action(logger, "info", "Payment applied", user_id=identity.user_id,
                   action="apply_payment", resource=loan.id, tenant_id=loan.tenant_id,
                   extra={"payment_id": payment.id, "amount": str(money.amount),
                          "outcome": outcome.value, "status": loan.status.value})
        
        return PaymentReceipt(loan=loan, payment=payment, outcome=outcome, position_before=position)
    
    def delete_payment(self, identity: CallerIdentity, loan_id: str, payment_id: str) -> Loan:
        """
        Remove a payment from a loan's log
        
        Renewal effects of a deleted interest-only payment (due date
        extension, committed total increase) are kept.
        
        Raises:
            NotFoundError: If the loan or payment does not exist
        """
        identity = require_identity(identity)
        loan = self.require_loan(loan_id)
        payment = loan.find_payment(payment_id)
        if not payment:
            raise NotFoundError("payment", payment_id)
        
        previous_status = loan.status
        loan.payments = [p for p in loan.payments if p.id != payment_id]
        self._recompute_after_edit(loan)
        
        with self.storage.atomic():
            self._save_loan(loan)
            self.audit_trail.log_event(
                event_type=AuditEventType.PAYMENT_DELETED,
                entity_type="loan",
                entity_id=loan.id,
                user_id=identity.user_id,
                tenant_id=loan.tenant_id,
                metadata={
                    "payment_id": payment_id,
                    "amount": payment.amount.to_string(),
                    "kind": payment.kind.value,
                    "paid_amount": loan.paid_amount.to_string(),
                    "status": loan.status.value
                }
            )
            self._audit_status_change(identity, loan, previous_status)
        
        log_action(logger, "info", "Payment deleted", user_id=identity.user_id,
                   action="delete_payment", resource=loan.id, tenant_id=loan.tenant_id,
                   extra={"payment_id": payment_id, "status": loan.status.value})
        return loan
    
    def amend_payment(
        self,
        identity: CallerIdentity,
        loan_id: str,
        payment_id: str,
        amount: Optional[Union[Money, Decimal, str]] = None,
        description: Optional[str] = None,
        timestamp: Optional[datetime] = None
    ) -> Loan:
        """
        Replace a payment record with amended fields
        
        The commission frozen on the original record, its collector and its
        kind are carried over unchanged.
        
        Raises:
            NotFoundError: If the loan or payment does not exist
            InvalidAmountError: If the new amount is not positive
        """
        identity = require_identity(identity)
        loan = self.require_loan(loan_id)
        original = loan.find_payment(payment_id)
        if not original:
            raise NotFoundError("payment", payment_id)
        
        new_amount = original.amount
        if amount is not None:
            new_amount = amount if isinstance(amount, Money) else parse_amount(amount, loan.currency)
            if not new_amount.is_positive():
                raise InvalidAmountError(f"Payment amount must be positive, got {new_amount.to_string()}")
        
        amended = Payment(
            id=original.id,
            amount=new_amount,
            timestamp=timestamp or original.timestamp,
            collected_by=original.collected_by,
            collector_id=original.collector_id,
            commission_amount=original.commission_amount,
            kind=original.kind,
            description=original.description if description is None else description
        )
        
        previous_status = loan.status
        loan.payments = [amended if p.id == payment_id else p for p in loan.payments]
        self._recompute_after_edit(loan)
        
        with self.storage.atomic():
            self._save_loan(loan)
            self.audit_trail.log_event(
                event_type=AuditEventType.PAYMENT_AMENDED,
                entity_type="loan",
                entity_id=loan.id,
                user_id=identity.user_id,
                tenant_id=loan.tenant_id,
                metadata={
                    "payment_id": payment_id,
                    "previous_amount": original.amount.to_string(),
                    "amount": new_amount.to_string(),
                    "paid_amount": loan.paid_amount.to_string(),
                    "status": loan.status.value
                }
            )
            self._audit_status_change(identity, loan, previous_status)
        
        log_action(logger, "info", "Payment amended", user_id=identity.user_id,
                   action="amend_payment", resource=loan.id, tenant_id=loan.tenant_id,
                   extra={"payment_id": payment_id, "amount": str(new_amount.amount)})
        return loan
    
    def delete_loan(self, identity: CallerIdentity, loan_id: str) -> None:
        """Delete a loan and its payment log"""
        identity = require_identity(identity)
        loan = self.require_loan(loan_id)
        
        with self.storage.atomic():
            self.storage.delete(self.loans_table, loan_id)
            self.audit_trail.log_event(
                event_type=AuditEventType.LOAN_DELETED,
                entity_type="loan",
                entity_id=loan_id,
                user_id=identity.user_id,
                tenant_id=loan.tenant_id,
                metadata={
                    "payments": len(loan.payments),
                    "paid_amount": loan.paid_amount.to_string()
                }
            )
        
        log_action(logger, "info", "Loan deleted", user_id=identity.user_id,
                   action="delete_loan", resource=loan_id, tenant_id=loan.tenant_id)
    
    def _commission_for(self, identity: CallerIdentity, amount: Money) -> Money:
        """Commission earned by the acting collector, frozen onto the payment"""
        zero = Money.zero(amount.currency)
        if not identity.earns_commission or self.collector_manager is None:
            return zero
        
        collector = self.collector_manager.get_collector(identity.user_id)
        if not collector or collector.commission_rate_pct <= 0:
            return zero
        return amount * (collector.commission_rate_pct / HUNDRED)
    
    def _recompute_after_edit(self, loan: Loan) -> None:
        loan.recompute_paid_amount()
        loan.status = status_after_edit(
            loan.status, loan.paid_amount, loan.committed_total,
            loan.due_date, self._today(), tolerance=self.paid_tolerance
        )
        loan.updated_at = self.clock()
    
    def _audit_status_change(self, identity: CallerIdentity, loan: Loan, previous_status: LoanStatus) -> None:
        if previous_status == loan.status:
            return
        if loan.status == LoanStatus.PAID:
            event_type = AuditEventType.LOAN_PAID_OFF
        elif previous_status == LoanStatus.PAID:
            event_type = AuditEventType.LOAN_REOPENED
        else:
            return
        
        self.audit_trail.log_event(
            event_type=event_type,
            entity_type="loan",
            entity_id=loan.id,
            user_id=identity.user_id,
            tenant_id=loan.tenant_id,
            metadata={
                "previous_status": previous_status.value,
                "status": loan.status.value,
                "paid_amount": loan.paid_amount.to_string(),
                "committed_total": loan.committed_total.to_string()
            }
        )
    
    def _save_loan(self, loan: Loan) -> None:
        """Save loan if nobody else wrote it since it was read"""
        loan.version = self.storage.compare_and_save(
            self.loans_table, loan.id, self._loan_to_dict(loan), loan.version
        )
    
    def _loan_to_dict(self, loan: Loan) -> Dict:
        """Convert loan to dictionary"""
        return {
            'id': loan.id,
            'created_at': loan.created_at.isoformat(),
            'updated_at': loan.updated_at.isoformat(),
            'tenant_id': loan.tenant_id,
            'client_id': loan.client_id,
            'client_name': loan.client_name,
            'currency': loan.currency.code,
            'principal': str(loan.principal.amount),
            'interest_type': loan.interest_type.value,
            'rate': str(loan.rate),
            'frequency': loan.frequency.code,
            'installment_count': loan.installment_count,
            'origination_date': loan.origination_date.isoformat(),
            'due_date': loan.due_date.isoformat(),
            'committed_total': str(loan.committed_total.amount),
            'paid_amount': str(loan.paid_amount.amount),
            'status': loan.status.value,
            'penalty_config': loan.penalty_config.to_dict() if loan.penalty_config else None,
            'payments': [payment.to_dict() for payment in loan.payments],
            'observations': loan.observations,
            'version': loan.version
        }
    
    def _loan_from_dict(self, data: Dict) -> Loan:
        """Convert dictionary to loan"""
        currency = Currency[data['currency']]
        
        return Loan(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            tenant_id=data['tenant_id'],
            client_id=data['client_id'],
            client_name=data.get('client_name', ''),
            principal=Money(Decimal(data['principal']), currency),
            interest_type=InterestType(data['interest_type']),
            rate=Decimal(data['rate']),
            frequency=Frequency.from_code(data['frequency']),
            installment_count=data['installment_count'],
            origination_date=date.fromisoformat(data['origination_date']),
            due_date=date.fromisoformat(data['due_date']),
            committed_total=Money(Decimal(data['committed_total']), currency),
            paid_amount=Money(Decimal(data['paid_amount']), currency),
            status=LoanStatus(data['status']),
            penalty_config=PenaltyConfig.from_dict(data.get('penalty_config')),
            payments=[Payment.from_dict(p, currency) for p in data.get('payments', [])],
            observations=data.get('observations', ''),
            version=data.get('version')
        )
