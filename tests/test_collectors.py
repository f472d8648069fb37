"""
Test suite for collector management

Collector registration, updates, activation, authentication by username
and manual payout/bonus transactions.
"""

import pytest
from decimal import Decimal
from datetime import datetime, timezone

from lending_ledger.currency import Money, Currency
from lending_ledger.storage import InMemoryStorage
from lending_ledger.audit import AuditTrail, AuditEventType
from lending_ledger.identity import CallerIdentity, UserRole
from lending_ledger.collectors import Collector, CollectorManager, CollectorTransactionKind
from lending_ledger.errors import (
    DuplicateIdentityError, NotFoundError, UnauthenticatedError, InvalidAmountError
)


NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)
ADMIN = CallerIdentity(user_id="admin-1", display_name="Ana Admin", tenant_id="T1")


@pytest.fixture
def audit_trail():
    return AuditTrail(InMemoryStorage())


@pytest.fixture
def manager(audit_trail):
    return CollectorManager(audit_trail.storage, audit_trail, clock=lambda: NOW)


@pytest.fixture
def collector(manager):
    return manager.create_collector(ADMIN, "Carlos Cobrador", "carlos", Decimal('10'))


class TestCollectorModel:
    """Test collector validation"""
    
    def test_rate_bounds(self):
        with pytest.raises(ValueError):
            Collector(id="C1", created_at=NOW, updated_at=NOW, tenant_id="T1",
                      name="X", username="x", commission_rate_pct=Decimal('101'))
        with pytest.raises(ValueError):
            Collector(id="C1", created_at=NOW, updated_at=NOW, tenant_id="T1",
                      name="X", username="x", commission_rate_pct=Decimal('-1'))
    
    def test_identity(self, collector):
        identity = collector.to_identity()
        assert identity.user_id == collector.id
        assert identity.display_name == "Carlos Cobrador"
        assert identity.tenant_id == "T1"
        assert identity.role == UserRole.COLLECTOR
        assert identity.earns_commission


class TestCollectorManagement:
    """Test collector lifecycle"""
    
    def test_create(self, collector, manager, audit_trail):
        stored = manager.get_collector(collector.id)
        assert stored.username == "carlos"
        assert stored.commission_rate_pct == Decimal('10')
        assert stored.is_active
        assert audit_trail.get_events_by_type(AuditEventType.COLLECTOR_CREATED)[0].entity_id == collector.id
    
    def test_duplicate_username(self, collector, manager):
        with pytest.raises(DuplicateIdentityError):
            manager.create_collector(ADMIN, "Another Carlos", " carlos ", Decimal('5'))
    
    def test_update(self, collector, manager):
        updated = manager.update_collector(ADMIN, collector.id, name="Carlos S.",
                                           commission_rate_pct=Decimal('12.5'))
        assert updated.name == "Carlos S."
        assert manager.get_collector(collector.id).commission_rate_pct == Decimal('12.5')
    
    def test_update_rejects_bad_rate(self, collector, manager):
        with pytest.raises(ValueError):
            manager.update_collector(ADMIN, collector.id, commission_rate_pct=Decimal('150'))
    
    def test_list_per_tenant(self, collector, manager):
        other = CallerIdentity(user_id="admin-2", display_name="Bia", tenant_id="T2")
        manager.create_collector(other, "Dora", "dora", Decimal('5'))
        
        assert [c.username for c in manager.list_collectors(ADMIN)] == ["carlos"]
        master = CallerIdentity(user_id="root", display_name="Root", tenant_id="T0", role=UserRole.MASTER)
        assert len(manager.list_collectors(master)) == 2
    
    def test_delete(self, collector, manager):
        manager.delete_collector(ADMIN, collector.id)
        assert manager.get_collector(collector.id) is None
        with pytest.raises(NotFoundError):
            manager.delete_collector(ADMIN, collector.id)
    
    def test_requires_identity(self, manager):
        with pytest.raises(UnauthenticatedError):
            manager.create_collector(None, "X", "x")


class TestCollectorAuthentication:
    """Test resolving a collector username into a caller identity"""
    
    def test_resolve(self, collector, manager):
        identity = manager.resolve_identity("carlos")
        assert identity == collector.to_identity()
    
    def test_unknown_username(self, manager):
        with pytest.raises(UnauthenticatedError):
            manager.resolve_identity("ghost")
    
    def test_inactive_cannot_authenticate(self, collector, manager):
        manager.update_collector(ADMIN, collector.id, is_active=False)
        with pytest.raises(UnauthenticatedError):
            manager.resolve_identity("carlos")
        
        manager.update_collector(ADMIN, collector.id, is_active=True)
        assert manager.resolve_identity("carlos").user_id == collector.id


class TestCollectorTransactions:
    """Test manual payouts and bonuses"""
    
    def test_record_payout(self, collector, manager, audit_trail):
        transaction = manager.record_transaction(ADMIN, collector.id, CollectorTransactionKind.PAYOUT,
                                                 "150,00", description="Weekly payout")
        
        assert transaction.amount == Money(Decimal('150.00'), Currency.BRL)
        assert transaction.timestamp == NOW
        assert transaction.tenant_id == "T1"
        
        listed = manager.list_transactions(collector.id)
        assert [t.id for t in listed] == [transaction.id]
        assert listed[0].description == "Weekly payout"
        assert audit_trail.get_events_by_type(AuditEventType.COLLECTOR_TRANSACTION_RECORDED)
    
    def test_backdated_bonus(self, collector, manager):
        when = datetime(2024, 1, 5, tzinfo=timezone.utc)
        transaction = manager.record_transaction(ADMIN, collector.id, CollectorTransactionKind.BONUS,
                                                 "20", timestamp=when)
        assert manager.list_transactions(collector.id)[0].timestamp == when
        assert transaction.kind == CollectorTransactionKind.BONUS
    
    @pytest.mark.parametrize("amount", ["0", "-10", "x"])
    def test_invalid_amount(self, collector, manager, amount):
        with pytest.raises(InvalidAmountError):
            manager.record_transaction(ADMIN, collector.id, CollectorTransactionKind.PAYOUT, amount)
        assert manager.list_transactions(collector.id) == []
    
    def test_unknown_collector(self, manager):
        with pytest.raises(NotFoundError):
            manager.record_transaction(ADMIN, "nope", CollectorTransactionKind.BONUS, "10")
