"""
Tests for storage backends
"""

import pytest
import tempfile
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

from sandbox_banking.storage import (
    InMemoryStorage, SQLiteStorage, StorageRecord, create_storage
)
from sandbox_banking.accounts import Account


# Test data
test_data = {
    "id": "test_001",
    "name": "Test Record",
    "amount": "100.50",
    "created_at": datetime.now(timezone.utc).isoformat(),
    "updated_at": datetime.now(timezone.utc).isoformat()
}


def _exercise_crud(storage):
    storage.save("test_table", "record_1", test_data)
    assert storage.load("test_table", "record_1") == test_data

    assert storage.exists("test_table", "record_1")
    assert not storage.exists("test_table", "non_existent")

    storage.save("test_table", "record_2", {"id": "record_2", "name": "Other"})
    assert len(storage.load_all("test_table")) == 2

    results = storage.find("test_table", {"name": "Test Record"})
    assert len(results) == 1
    assert results[0]["id"] == "test_001"

    assert storage.find_one("test_table", {"name": "Missing"}) is None
    assert storage.count("test_table") == 2

    assert storage.delete("test_table", "record_1")
    assert not storage.delete("test_table", "record_1")
    assert storage.count("test_table") == 1

    storage.clear_table("test_table")
    assert storage.count("test_table") == 0


class TestStorageBackends:
    """Test basic operations on both backends"""

    def test_in_memory_storage_basic_operations(self):
        """Test basic CRUD operations with InMemoryStorage"""
        storage = InMemoryStorage()
        _exercise_crud(storage)
        storage.close()

    def test_sqlite_storage_basic_operations(self):
        """Test basic CRUD operations with SQLiteStorage"""
        with tempfile.TemporaryDirectory() as temp_dir:
            storage = SQLiteStorage(Path(temp_dir) / "test.db")
            _exercise_crud(storage)
            storage.close()

    def test_in_memory_returns_copies(self):
        """Mutating a loaded record must not change the stored one"""
        storage = InMemoryStorage()
        storage.save("t", "r1", {"id": "r1", "nested": {"value": 1}})

        loaded = storage.load("t", "r1")
        loaded["nested"]["value"] = 2

        assert storage.load("t", "r1")["nested"]["value"] == 1

    @pytest.mark.parametrize("storage_factory", [InMemoryStorage, SQLiteStorage])
    def test_load_all_keeps_insertion_order(self, storage_factory):
        """Records come back in the order they were first saved, even after updates"""
        storage = storage_factory()
        for record_id in ("c", "a", "b"):
            storage.save("t", record_id, {"id": record_id, "v": 1})
        storage.save("t", "c", {"id": "c", "v": 2})

        records = storage.load_all("t")
        assert [r["id"] for r in records] == ["c", "a", "b"]
        assert records[0]["v"] == 2
        storage.close()

    def test_sqlite_persists_across_connections(self):
        """Data written by one connection is visible after reopening the file"""
        with tempfile.TemporaryDirectory() as temp_dir:
            db_path = Path(temp_dir) / "persist.db"
            storage = SQLiteStorage(db_path)
            storage.save("banks", "bank-one", {"id": "bank-one"})
            storage.close()

            reopened = SQLiteStorage(db_path)
            assert reopened.exists("banks", "bank-one")
            reopened.close()

    def test_sqlite_atomic_rollback(self):
        """A failure inside atomic() discards the writes made within it"""
        storage = SQLiteStorage()
        storage.save("t", "before", {"id": "before"})

        with pytest.raises(RuntimeError):
            with storage.atomic():
                storage.save("t", "inside", {"id": "inside"})
                raise RuntimeError("boom")

        assert storage.exists("t", "before")
        assert not storage.exists("t", "inside")
        storage.close()

    def test_create_storage(self):
        assert isinstance(create_storage(False), InMemoryStorage)
        sqlite = create_storage(True, ":memory:")
        assert isinstance(sqlite, SQLiteStorage)
        sqlite.close()


class TestStorageRecord:
    """Test record serialization"""

    def test_decimal_and_datetime_round_trip(self):
        now = datetime.now(timezone.utc)
        account = Account(
            id="rec-1", created_at=now, updated_at=now,
            account_id="acc-1", bank_id="bank-one", label="Main", number="1",
            kind="CURRENT", currency="EUR", balance=Decimal("10.50")
        )

        data = account.to_dict()
        assert data["balance"] == "10.50"
        assert data["created_at"] == now.isoformat()

        restored = Account.from_dict(data)
        assert restored.balance == Decimal("10.50")
        assert restored.created_at == now
        assert restored == account

    def test_from_dict_does_not_mutate_input(self):
        now = datetime.now(timezone.utc).isoformat()
        data = {"id": "r", "created_at": now, "updated_at": now}
        StorageRecord.from_dict(data)
        assert data["created_at"] == now
