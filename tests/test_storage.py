"""
Tests for storage backends, transactions and optimistic versioning
"""

import pytest
from datetime import datetime, timezone

from lending_ledger.storage import (
    InMemoryStorage, SQLiteStorage, StorageRecord, create_storage
)
from lending_ledger.errors import ConcurrentModificationError


NOW = datetime(2024, 1, 1, tzinfo=timezone.utc).isoformat()

record = {
    "id": "loan_001",
    "tenant_id": "T1",
    "principal": "800.00",
    "created_at": NOW,
    "updated_at": NOW
}


@pytest.fixture(params=["memory", "sqlite"])
def storage(request, tmp_path):
    if request.param == "memory":
        backend = InMemoryStorage()
    else:
        backend = SQLiteStorage(tmp_path / "ledger.db")
    yield backend
    backend.close()


class TestBasicOperations:
    """CRUD operations on every backend"""
    
    def test_save_and_load(self, storage):
        storage.save("loans", "loan_001", record)
        assert storage.load("loans", "loan_001") == record
        assert storage.load("loans", "missing") is None
    
    def test_count_delete(self, storage):
        storage.save("loans", "loan_001", record)
        storage.save("loans", "loan_002", dict(record, id="loan_002", tenant_id="T2"))
        
        assert storage.count("loans") == 2
        assert storage.delete("loans", "loan_001")
        assert not storage.delete("loans", "loan_001")
        assert storage.count("loans") == 1
    
    def test_find_and_query(self, storage):
        storage.save("loans", "loan_001", record)
        storage.save("loans", "loan_002", dict(record, id="loan_002", tenant_id="T2"))
        
        assert [r["id"] for r in storage.find("loans", {"tenant_id": "T2"})] == ["loan_002"]
        assert storage.find("loans", {"tenant_id": "T3"}) == []
        assert len(storage.query("loans", lambda r: r["principal"] == "800.00")) == 2
    
    def test_loaded_copies_are_independent(self, storage):
        storage.save("loans", "loan_001", record)
        loaded = storage.load("loans", "loan_001")
        loaded["principal"] = "0"
        assert storage.load("loans", "loan_001")["principal"] == "800.00"


class TestCompareAndSave:
    """Optimistic concurrency through the version field"""
    
    def test_create_then_update(self, storage):
        assert storage.compare_and_save("loans", "loan_001", record, None) == 1
        assert storage.load("loans", "loan_001")["version"] == 1
        assert storage.compare_and_save("loans", "loan_001", record, 1) == 2
    
    def test_stale_version_rejected(self, storage):
        storage.compare_and_save("loans", "loan_001", record, None)
        storage.compare_and_save("loans", "loan_001", dict(record, principal="900.00"), 1)
        
        with pytest.raises(ConcurrentModificationError) as exc_info:
            storage.compare_and_save("loans", "loan_001", record, 1)
        
        assert exc_info.value.record_id == "loan_001"
        assert storage.load("loans", "loan_001")["principal"] == "900.00"
    
    def test_create_over_existing_rejected(self, storage):
        storage.compare_and_save("loans", "loan_001", record, None)
        with pytest.raises(ConcurrentModificationError):
            storage.compare_and_save("loans", "loan_001", record, None)
    
    def test_create_over_unversioned_record_rejected(self, storage):
        storage.save("loans", "loan_001", record)
        with pytest.raises(ConcurrentModificationError):
            storage.compare_and_save("loans", "loan_001", dict(record, principal="900.00"), None)
        assert storage.load("loans", "loan_001")["principal"] == "800.00"
    
    def test_sqlite_connections_sharing_a_file(self, tmp_path):
        path = tmp_path / "ledger.db"
        first = SQLiteStorage(path)
        second = SQLiteStorage(path)
        first.compare_and_save("loans", "loan_001", record, None)
        
        # Both writers read version 1; the second one commits first
        assert first.load("loans", "loan_001")["version"] == 1
        assert second.load("loans", "loan_001")["version"] == 1
        second.compare_and_save("loans", "loan_001", dict(record, principal="900.00"), 1)
        
        with pytest.raises(ConcurrentModificationError):
            first.compare_and_save("loans", "loan_001", dict(record, principal="700.00"), 1)
        
        stored = first.load("loans", "loan_001")
        assert stored["principal"] == "900.00"
        assert stored["version"] == 2
        assert first.compare_and_save("loans", "loan_001", dict(record, principal="700.00"), 2) == 3
        assert second.load("loans", "loan_001")["principal"] == "700.00"
        first.close()
        second.close()
    
    def test_sqlite_concurrent_creation(self, tmp_path):
        path = tmp_path / "ledger.db"
        first = SQLiteStorage(path)
        second = SQLiteStorage(path)
        first.compare_and_save("loans", "loan_001", record, None)
        
        with pytest.raises(ConcurrentModificationError):
            second.compare_and_save("loans", "loan_001", dict(record, principal="900.00"), None)
        
        # The failed insert leaves the connection usable
        assert second.compare_and_save("loans", "loan_002", dict(record, id="loan_002"), None) == 1
        assert first.load("loans", "loan_001")["principal"] == "800.00"
        first.close()
        second.close()


class TestTransactionSupport:
    """Atomic blocks"""
    
    def test_sqlite_rollback(self, tmp_path):
        storage = SQLiteStorage(tmp_path / "ledger.db")
        storage.save("loans", "loan_001", record)
        
        with pytest.raises(RuntimeError):
            with storage.atomic():
                storage.save("loans", "loan_002", dict(record, id="loan_002"))
                raise RuntimeError("boom")
        
        assert storage.load("loans", "loan_002") is None
        assert storage.load("loans", "loan_001") == record
        storage.close()
    
    def test_sqlite_commit(self, tmp_path):
        path = tmp_path / "ledger.db"
        storage = SQLiteStorage(path)
        with storage.atomic():
            storage.save("loans", "loan_001", record)
        storage.close()
        
        reopened = SQLiteStorage(path)
        assert reopened.load("loans", "loan_001") == record
        reopened.close()


class TestStorageRecord:
    """Record serialization"""
    
    def test_to_dict(self):
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        data = StorageRecord(id="r1", created_at=now, updated_at=now).to_dict()
        assert data == {"id": "r1", "created_at": now.isoformat(), "updated_at": now.isoformat()}


class TestCreateStorage:
    def test_backends(self, tmp_path):
        assert isinstance(create_storage("memory"), InMemoryStorage)
        sqlite = create_storage("sqlite", str(tmp_path / "x.db"))
        assert isinstance(sqlite, SQLiteStorage)
        sqlite.close()
        with pytest.raises(ValueError):
            create_storage("postgres")
