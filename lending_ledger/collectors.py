"""
Collector Module

Field collectors earning a percentage commission on the payments they take,
and the manual ledger movements (payouts and bonuses) recorded against their
balance. Collectors are scoped to one tenant.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Union
from enum import Enum
import uuid

from .currency import Money, Currency, parse_amount
from .storage import StorageInterface, StorageRecord
from .audit import AuditTrail, AuditEventType
from .errors import NotFoundError, DuplicateIdentityError, UnauthenticatedError, InvalidAmountError
from .identity import CallerIdentity, UserRole, require_identity
from .logging_config import get_logger, log_action


logger = get_logger("lending_ledger.collectors")


class CollectorTransactionKind(Enum):
    """Manual movements against a collector balance"""
    PAYOUT = "payout"  # Decreases balance
    BONUS = "bonus"    # Increases balance


@dataclass
class Collector(StorageRecord):
    """Commission-earning field agent"""
    tenant_id: str
    name: str
    username: str
    commission_rate_pct: Decimal = Decimal('0')
    is_active: bool = True
    
    def __post_init__(self):
        if not isinstance(self.commission_rate_pct, Decimal):
            self.commission_rate_pct = Decimal(str(self.commission_rate_pct))
        _validate_rate(self.commission_rate_pct)
    
    def to_identity(self) -> CallerIdentity:
        return CallerIdentity(
            user_id=self.id,
            display_name=self.name,
            tenant_id=self.tenant_id,
            role=UserRole.COLLECTOR
        )


@dataclass
class CollectorTransaction(StorageRecord):
    """Manual payout or bonus, independent of any loan"""
    tenant_id: str
    collector_id: str
    kind: CollectorTransactionKind
    amount: Money
    timestamp: datetime
    description: str = ""


def _validate_rate(rate: Decimal) -> None:
    if rate < 0 or rate > 100:
        raise ValueError(f"Commission rate must be between 0 and 100, got {rate}")


class CollectorManager:
    """Manages collectors and their manual ledger transactions"""
    
    def __init__(
        self,
        storage: StorageInterface,
        audit_trail: AuditTrail,
        clock: Optional[Callable[[], datetime]] = None,
        default_currency: Currency = Currency.BRL
    ):
        self.storage = storage
        self.audit_trail = audit_trail
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.default_currency = default_currency
        
        self.collectors_table = "collectors"
        self.transactions_table = "collector_transactions"
    
    def create_collector(
        self,
        identity: CallerIdentity,
        name: str,
        username: str,
        commission_rate_pct: Decimal = Decimal('0')
    ) -> Collector:
        """
        Create a collector under the caller's tenant
        
        Raises:
            DuplicateIdentityError: If the username is already taken
        """
        identity = require_identity(identity)
        username = username.strip()
        if not username:
            raise ValueError("Username is required")
        if self.storage.find(self.collectors_table, {"username": username}):
            raise DuplicateIdentityError(f"Username {username} already exists")
        
        now = self.clock()
        collector = Collector(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            tenant_id=identity.tenant_id,
            name=name,
            username=username,
            commission_rate_pct=commission_rate_pct or Decimal('0'),
            is_active=True
        )
        
        with self.storage.atomic():
            self._save_collector(collector)
            self.audit_trail.log_event(
                event_type=AuditEventType.COLLECTOR_CREATED,
                entity_type="collector",
                entity_id=collector.id,
                user_id=identity.user_id,
                tenant_id=identity.tenant_id,
                metadata={
                    "username": username,
                    "commission_rate_pct": collector.commission_rate_pct
                }
            )
        
        log_action(logger, "info", "Collector created", user_id=identity.user_id,
                   action="create_collector", resource=collector.id, tenant_id=identity.tenant_id)
        return collector
    
    def get_collector(self, collector_id: str) -> Optional[Collector]:
        """Get collector by ID"""
        data = self.storage.load(self.collectors_table, collector_id)
        if data:
            return self._collector_from_dict(data)
        return None
    
    def require_collector(self, collector_id: str) -> Collector:
        collector = self.get_collector(collector_id)
        if not collector:
            raise NotFoundError("collector", collector_id)
        return collector
    
    def list_collectors(self, identity: CallerIdentity) -> List[Collector]:
        """List collectors of the caller's tenant (all tenants for master)"""
        identity = require_identity(identity)
        if identity.sees_all_tenants:
            data = self.storage.load_all(self.collectors_table)
        else:
            data = self.storage.find(self.collectors_table, {"tenant_id": identity.tenant_id})
        collectors = [self._collector_from_dict(d) for d in data]
        collectors.sort(key=lambda c: c.created_at)
        return collectors
    
    def update_collector(
        self,
        identity: CallerIdentity,
        collector_id: str,
        name: Optional[str] = None,
        commission_rate_pct: Optional[Decimal] = None,
        is_active: Optional[bool] = None
    ) -> Collector:
        """
        Update a collector. A rate change applies to future payments only;
        commissions already frozen on payments are untouched.
        """
        identity = require_identity(identity)
        collector = self.require_collector(collector_id)
        changes = {}
        
        if name is not None and name != collector.name:
            changes["name"] = {"from": collector.name, "to": name}
            collector.name = name
        if commission_rate_pct is not None:
            rate = Decimal(str(commission_rate_pct))
            _validate_rate(rate)
            if rate != collector.commission_rate_pct:
                changes["commission_rate_pct"] = {"from": collector.commission_rate_pct, "to": rate}
                collector.commission_rate_pct = rate
        if is_active is not None and is_active != collector.is_active:
            changes["is_active"] = {"from": collector.is_active, "to": is_active}
            collector.is_active = is_active
        
        if not changes:
            return collector
        
        collector.updated_at = self.clock()
        with self.storage.atomic():
            self._save_collector(collector)
            self.audit_trail.log_event(
                event_type=AuditEventType.COLLECTOR_UPDATED,
                entity_type="collector",
                entity_id=collector.id,
                user_id=identity.user_id,
                tenant_id=collector.tenant_id,
                metadata=changes
            )
        
        log_action(logger, "info", "Collector updated", user_id=identity.user_id,
                   action="update_collector", resource=collector.id, tenant_id=collector.tenant_id,
                   extra={"fields": sorted(changes)})
        return collector
    
    def delete_collector(self, identity: CallerIdentity, collector_id: str) -> None:
        """Delete a collector; payments it collected keep their commission"""
        identity = require_identity(identity)
        collector = self.require_collector(collector_id)
        
        with self.storage.atomic():
            self.storage.delete(self.collectors_table, collector_id)
            self.audit_trail.log_event(
                event_type=AuditEventType.COLLECTOR_DELETED,
                entity_type="collector",
                entity_id=collector_id,
                user_id=identity.user_id,
                tenant_id=collector.tenant_id,
                metadata={"username": collector.username}
            )
        
        log_action(logger, "info", "Collector deleted", user_id=identity.user_id,
                   action="delete_collector", resource=collector_id, tenant_id=collector.tenant_id)
    
    def resolve_identity(self, username: str) -> CallerIdentity:
        """
        Resolve a collector username into a caller identity
        
        Raises:
            UnauthenticatedError: If the collector is unknown or inactive
        """
        found = self.storage.find(self.collectors_table, {"username": username.strip()})
        if not found:
            raise UnauthenticatedError("Collector not found")
        collector = self._collector_from_dict(found[0])
        if not collector.is_active:
            raise UnauthenticatedError("Collector is inactive")
        return collector.to_identity()
    
    def record_transaction(
        self,
        identity: CallerIdentity,
        collector_id: str,
        kind: CollectorTransactionKind,
        amount: Union[Money, Decimal, str],
        description: str = "",
        timestamp: Optional[datetime] = None
    ) -> CollectorTransaction:
        """
        Record a manual payout or bonus against a collector balance
        
        Raises:
            NotFoundError: If the collector does not exist
            InvalidAmountError: If amount is zero, negative, or unparseable
        """
        identity = require_identity(identity)
        collector = self.require_collector(collector_id)
        money = amount if isinstance(amount, Money) else parse_amount(amount, self.default_currency)
        if not money.is_positive():
            raise InvalidAmountError(f"Amount must be positive, got {money.to_string()}")
        
        now = self.clock()
        transaction = CollectorTransaction(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            tenant_id=collector.tenant_id,
            collector_id=collector.id,
            kind=kind,
            amount=money,
            timestamp=timestamp or now,
            description=description
        )
        
        with self.storage.atomic():
            self.storage.save(self.transactions_table, transaction.id, self._transaction_to_dict(transaction))
            self.audit_trail.log_event(
                event_type=AuditEventType.COLLECTOR_TRANSACTION_RECORDED,
                entity_type="collector",
                entity_id=collector.id,
                user_id=identity.user_id,
                tenant_id=collector.tenant_id,
                metadata={
                    "transaction_id": transaction.id,
                    "kind": kind.value,
                    "amount": money.to_string()
                }
            )
        
        log_action(logger, "info", "Collector transaction recorded", user_id=identity.user_id,
                   action="record_transaction", resource=collector.id, tenant_id=collector.tenant_id,
                   extra={"kind": kind.value, "amount": str(money.amount)})
        return transaction
    
    def list_transactions(self, collector_id: str) -> List[CollectorTransaction]:
        """Manual transactions of one collector, in insertion order"""
        data = self.storage.find(self.transactions_table, {"collector_id": collector_id})
        transactions = [self._transaction_from_dict(d) for d in data]
        transactions.sort(key=lambda t: t.created_at)
        return transactions
    
    def _save_collector(self, collector: Collector) -> None:
        self.storage.save(self.collectors_table, collector.id, {
            'id': collector.id,
            'created_at': collector.created_at.isoformat(),
            'updated_at': collector.updated_at.isoformat(),
            'tenant_id': collector.tenant_id,
            'name': collector.name,
            'username': collector.username,
            'commission_rate_pct': str(collector.commission_rate_pct),
            'is_active': collector.is_active
        })
    
    def _collector_from_dict(self, data: Dict) -> Collector:
        return Collector(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            tenant_id=data['tenant_id'],
            name=data['name'],
            username=data['username'],
            commission_rate_pct=Decimal(data.get('commission_rate_pct') or '0'),
            is_active=data.get('is_active', True)
        )
    
    def _transaction_to_dict(self, transaction: CollectorTransaction) -> Dict:
        return {
            'id': transaction.id,
            'created_at': transaction.created_at.isoformat(),
            'updated_at': transaction.updated_at.isoformat(),
            'tenant_id': transaction.tenant_id,
            'collector_id': transaction.collector_id,
            'kind': transaction.kind.value,
            'amount': str(transaction.amount.amount),
            'currency': transaction.amount.currency.code,
            'timestamp': transaction.timestamp.isoformat(),
            'description': transaction.description
        }
    
    def _transaction_from_dict(self, data: Dict) -> CollectorTransaction:
        return CollectorTransaction(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            tenant_id=data['tenant_id'],
            collector_id=data['collector_id'],
            kind=CollectorTransactionKind(data['kind']),
            amount=Money(Decimal(data['amount']), Currency[data['currency']]),
            timestamp=datetime.fromisoformat(data['timestamp']),
            description=data.get('description', '')
        )
