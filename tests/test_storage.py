"""
Tests for storage backends and transaction support
"""

import copy
import pytest
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import Mock

from token_ledger.storage import (
    InMemoryStorage, SQLiteStorage, StorageRecord, create_storage
)


# Test data
test_data = {
    "id": "test_001",
    "account": "0x" + "ab" * 20,
    "amount": str(2 ** 255),
    "created_at": datetime.now(timezone.utc).isoformat(),
    "updated_at": datetime.now(timezone.utc).isoformat()
}


class TestStorageInterface:
    """Test base storage interface functionality"""

    def _exercise(self, storage):
        # Test save and load
        storage.save("test_table", "record_1", test_data)
        loaded = storage.load("test_table", "record_1")
        assert loaded == test_data

        # Test exists
        assert storage.exists("test_table", "record_1")
        assert not storage.exists("test_table", "non_existent")
        assert storage.load("test_table", "non_existent") is None

        # Test load_all
        storage.save("test_table", "record_2", {"id": "record_2", "data": "test"})
        all_records = storage.load_all("test_table")
        assert len(all_records) == 2

        # Test count
        assert storage.count("test_table") == 2

        # Test delete
        assert storage.delete("test_table", "record_1")
        assert not storage.delete("test_table", "record_1")
        assert storage.count("test_table") == 1

        storage.close()

    def test_in_memory_storage_basic_operations(self):
        """Test basic CRUD operations with InMemoryStorage"""
        self._exercise(InMemoryStorage())

    def test_sqlite_storage_basic_operations(self):
        """Test basic CRUD operations with SQLiteStorage"""
        with tempfile.TemporaryDirectory() as temp_dir:
            self._exercise(SQLiteStorage(Path(temp_dir) / "test.db"))

    def test_in_memory_returns_copies(self):
        """Test that callers cannot mutate stored records"""
        storage = InMemoryStorage()
        record = {"id": "r", "nested": {"value": "1"}}
        storage.save("t", "r", record)

        record["nested"]["value"] = "2"
        loaded = storage.load("t", "r")
        loaded["nested"]["value"] = "3"

        assert storage.load("t", "r")["nested"]["value"] == "1"

    def test_storage_record_to_dict(self):
        now = datetime.now(timezone.utc)
        record = StorageRecord(id="r1", created_at=now, updated_at=now)
        assert record.to_dict() == {
            "id": "r1",
            "created_at": now.isoformat(),
            "updated_at": now.isoformat()
        }


@pytest.fixture(params=["memory", "sqlite"])
def storage(request, tmp_path):
    if request.param == "memory":
        backend = InMemoryStorage()
    else:
        backend = SQLiteStorage(tmp_path / "atomic.db")
    yield backend
    backend.close()


class TestAtomic:
    """Test transaction semantics shared by both backends"""

    def test_commit(self, storage):
        with storage.atomic():
            storage.save("t", "a", {"v": "1"})
            storage.save("t", "b", {"v": "2"})

        assert storage.count("t") == 2

    def test_rollback_on_error(self, storage):
        """Test that every write in a failed block is undone"""
        storage.save("t", "a", {"v": "1"})

        with pytest.raises(RuntimeError):
            with storage.atomic():
                storage.save("t", "a", {"v": "changed"})
                storage.save("t", "b", {"v": "2"})
                storage.delete("t", "a")
                raise RuntimeError("abort")

        assert storage.load("t", "a") == {"v": "1"}
        assert not storage.exists("t", "b")

    def test_nested_blocks_roll_back_together(self, storage):
        with pytest.raises(RuntimeError):
            with storage.atomic():
                storage.save("t", "outer", {"v": "1"})
                with storage.atomic():
                    storage.save("t", "inner", {"v": "2"})
                raise RuntimeError("abort")

        assert storage.count("t") == 0

    def test_nested_commit(self, storage):
        with storage.atomic():
            with storage.atomic():
                storage.save("t", "inner", {"v": "2"})
            storage.save("t", "outer", {"v": "1"})

        assert storage.count("t") == 2

    def test_usable_after_rollback(self, storage):
        with pytest.raises(ValueError):
            with storage.atomic():
                storage.save("fresh", "a", {"v": "1"})
                raise ValueError("abort")

        storage.save("fresh", "b", {"v": "2"})
        assert storage.count("fresh") == 1

    def test_rollback_restores_overwrites_in_order(self, storage):
        """Test that a record written several times comes back as it was"""
        storage.save("t", "a", {"v": "1"})

        with pytest.raises(RuntimeError):
            with storage.atomic():
                storage.save("t", "a", {"v": "2"})
                storage.save("t", "a", {"v": "3"})
                storage.delete("t", "a")
                storage.save("t", "a", {"v": "4"})
                raise RuntimeError("abort")

        assert storage.load("t", "a") == {"v": "1"}
        assert storage.count("t") == 1


class FailingCommitMixin:
    """Backend whose next commit fails after the underlying commit ran"""

    fail_next_commit = False

    def commit(self):
        super().commit()
        if self.fail_next_commit:
            self.fail_next_commit = False
            raise RuntimeError("commit failed")


class FailingCommitMemory(FailingCommitMixin, InMemoryStorage):
    pass


class FailingCommitSQLite(FailingCommitMixin, SQLiteStorage):
    pass


@pytest.fixture(params=["memory", "sqlite"])
def failing_storage(request, tmp_path):
    if request.param == "memory":
        backend = FailingCommitMemory()
    else:
        backend = FailingCommitSQLite(tmp_path / "failing.db")
    yield backend
    backend.close()


class TestCommitFailure:
    """Test that a failing commit surfaces cleanly"""

    def test_commit_error_propagates(self, failing_storage):
        failing_storage.fail_next_commit = True

        with pytest.raises(RuntimeError, match="commit failed"):
            with failing_storage.atomic():
                failing_storage.save("t", "a", {"v": "1"})

    def test_transactions_work_after_commit_error(self, failing_storage):
        """Test that a failed commit does not corrupt later transactions"""
        failing_storage.fail_next_commit = True
        with pytest.raises(RuntimeError, match="commit failed"):
            with failing_storage.atomic():
                failing_storage.save("t", "a", {"v": "1"})

        with pytest.raises(ValueError):
            with failing_storage.atomic():
                failing_storage.save("t", "a", {"v": "changed"})
                failing_storage.save("t", "b", {"v": "2"})
                raise ValueError("abort")

        assert failing_storage.load("t", "a") == {"v": "1"}
        assert not failing_storage.exists("t", "b")

        with failing_storage.atomic():
            failing_storage.save("t", "c", {"v": "3"})
        assert failing_storage.count("t") == 2


class TestInMemoryTransactionCost:
    """Test that transactions do not copy whole tables"""

    def test_transaction_copies_nothing_up_front(self, monkeypatch):
        storage = InMemoryStorage()
        for i in range(100):
            storage.save("ledger_events", f"{i:020d}", {"sequence": i})

        deepcopy = Mock(wraps=copy.deepcopy)
        monkeypatch.setattr(copy, "deepcopy", deepcopy)

        with storage.atomic():
            storage.save("ledger_events", f"{100:020d}", {"sequence": 100})

        deepcopy.assert_not_called()
        assert storage.count("ledger_events") == 101

    def test_rollback_touches_only_written_records(self):
        storage = InMemoryStorage()
        for i in range(10):
            storage.save("ledger_events", str(i), {"sequence": i})
        storage.save("balances", "x", {"amount": "5"})

        with pytest.raises(RuntimeError):
            with storage.atomic():
                storage.save("balances", "x", {"amount": "0"})
                storage.save("ledger_events", "10", {"sequence": 10})
                raise RuntimeError("abort")

        assert storage.load("balances", "x") == {"amount": "5"}
        assert [r["sequence"] for r in storage.load_all("ledger_events")] == list(range(10))


class TestSQLitePersistence:
    """Test data survives reopening the database"""

    def test_reopen(self, tmp_path):
        db_path = tmp_path / "persist.db"
        storage = SQLiteStorage(db_path)
        storage.save("balances", "x", {"balance": str(10 ** 30)})
        storage.close()

        reopened = SQLiteStorage(db_path)
        assert reopened.load("balances", "x") == {"balance": str(10 ** 30)}
        reopened.close()


class TestCreateStorage:
    """Test building backends from URLs"""

    def test_memory(self):
        assert isinstance(create_storage("memory://"), InMemoryStorage)

    def test_sqlite_relative(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        storage = create_storage("sqlite:///ledger.db")
        assert isinstance(storage, SQLiteStorage)
        assert storage.db_path == "ledger.db"
        storage.close()

    def test_sqlite_absolute(self, tmp_path):
        db_path = tmp_path / "ledger.db"
        storage = create_storage(f"sqlite:///{db_path}")
        assert storage.db_path == str(db_path)
        storage.close()

    @pytest.mark.parametrize("url", ["sqlite://", "sqlite:///:memory:"])
    def test_sqlite_in_memory(self, url):
        storage = create_storage(url)
        assert storage.db_path == ":memory:"
        storage.close()

    def test_unsupported(self):
        with pytest.raises(ValueError, match="Unsupported"):
            create_storage("postgresql://localhost/ledger")
