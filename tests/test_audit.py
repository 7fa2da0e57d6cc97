"""
Test suite for audit module

Tests the hash-chained audit trail, tamper detection and the events written
by a committed import.
"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal

from sandbox_banking.storage import InMemoryStorage, SQLiteStorage, AUDIT_TABLE
from sandbox_banking.audit import AuditTrail, AuditEvent, AuditEventType
from sandbox_banking.data_import import DataImporter

from conftest import sample_document, transaction_data


class TestAuditEvent:
    """Test AuditEvent functionality"""

    def test_metadata_serialization(self):
        """Decimals, datetimes and enums are normalized to JSON values"""
        now = datetime.now(timezone.utc)
        event = AuditEvent(
            id="AUDIT001",
            created_at=now,
            updated_at=now,
            event_type=AuditEventType.ACCOUNT_CREATED,
            entity_type="account",
            entity_id="acc-1",
            previous_hash="",
            current_hash="",
            metadata={
                "balance": Decimal("12.30"),
                "when": now,
                "kind": AuditEventType.BANK_CREATED,
                "nested": {"values": [Decimal("1.1")]}
            }
        )

        assert event.metadata["balance"] == "12.30"
        assert event.metadata["when"] == now.isoformat()
        assert event.metadata["kind"] == "bank_created"
        assert event.metadata["nested"]["values"] == ["1.1"]

    def test_hash_round_trip(self):
        """A stored event still verifies after loading"""
        trail = AuditTrail(InMemoryStorage())
        event = trail.log_event(AuditEventType.BANK_CREATED, "bank", "bank-one", {"short_name": "B1"})

        assert event.verify_hash()
        restored = AuditEvent.from_dict(event.to_dict())
        assert restored.verify_hash()
        assert restored.event_type == AuditEventType.BANK_CREATED


class TestAuditTrail:
    """Test chaining and integrity verification"""

    def test_events_are_chained(self):
        trail = AuditTrail(InMemoryStorage())
        first = trail.log_event(AuditEventType.BANK_CREATED, "bank", "b1")
        second = trail.log_event(AuditEventType.USER_CREATED, "user", "u1")

        assert first.previous_hash == ""
        assert second.previous_hash == first.current_hash
        assert trail.verify_integrity()["valid"]

    def test_chain_continues_after_reopen(self):
        """A new trail over the same storage links to the last stored event"""
        storage = SQLiteStorage()
        first = AuditTrail(storage).log_event(AuditEventType.BANK_CREATED, "bank", "b1")
        second = AuditTrail(storage).log_event(AuditEventType.BANK_CREATED, "bank", "b2")

        assert second.previous_hash == first.current_hash
        assert AuditTrail(storage).verify_integrity()["total_events"] == 2
        storage.close()

    def test_tampering_is_detected(self):
        storage = InMemoryStorage()
        trail = AuditTrail(storage)
        event = trail.log_event(AuditEventType.USER_CREATED, "user", "u1", {"email": "a@example.com"})
        trail.log_event(AuditEventType.USER_CREATED, "user", "u2", {"email": "b@example.com"})

        tampered = storage.load(AUDIT_TABLE, event.id)
        tampered["metadata"]["email"] = "mallory@example.com"
        storage.save(AUDIT_TABLE, event.id, tampered)

        result = trail.verify_integrity()
        assert not result["valid"]
        assert result["hash_errors"][0]["event_id"] == event.id

    def test_queries(self):
        trail = AuditTrail(InMemoryStorage())
        trail.log_event(AuditEventType.BANK_CREATED, "bank", "b1", correlation_id="imp-1")
        trail.log_event(AuditEventType.BANK_CREATED, "bank", "b2", correlation_id="imp-1")
        trail.log_event(AuditEventType.USER_CREATED, "user", "u1", correlation_id="imp-2")

        assert len(trail.get_events_by_type(AuditEventType.BANK_CREATED)) == 2
        assert len(trail.get_events_for_entity("user", "u1")) == 1
        assert len(trail.get_events_for_import("imp-1")) == 2
        assert trail.count_events() == 3


class TestImportAuditing:
    """Test the audit events produced by imports"""

    def test_commit_logs_one_event_per_record(self, storage, config):
        trail = AuditTrail(storage)
        result = DataImporter(storage, audit_trail=trail, config=config).import_data(sample_document())
        assert result.success

        assert len(trail.get_events_by_type(AuditEventType.BANK_CREATED)) == 2
        assert len(trail.get_events_by_type(AuditEventType.USER_CREATED)) == 2
        assert len(trail.get_events_by_type(AuditEventType.ACCOUNT_CREATED)) == 2
        assert len(trail.get_events_by_type(AuditEventType.TRANSACTION_CREATED)) == 3
        assert len(trail.get_events_by_type(AuditEventType.COUNTERPARTY_METADATA_CREATED)) == 2

        completed = trail.get_events_by_type(AuditEventType.DATA_IMPORT_COMPLETED)
        assert len(completed) == 1
        assert completed[0].metadata["counts"]["transactions"] == 3

        # Every event of the import shares one correlation id
        correlation_id = completed[0].correlation_id
        assert len(trail.get_events_for_import(correlation_id)) == trail.count_events()
        assert trail.verify_integrity()["valid"]

    def test_rejected_import_writes_no_events(self, storage, config):
        trail = AuditTrail(storage)
        document = sample_document()
        document["transactions"].append(transaction_data("tx-9", posted="yesterday"))

        result = DataImporter(storage, audit_trail=trail, config=config).import_data(document)

        assert not result.success
        assert trail.count_events() == 0

    def test_audit_can_be_disabled(self, storage):
        from sandbox_banking.config import SandboxConfig

        config = SandboxConfig(use_sqlite=False, enable_audit_logging=False)
        importer = DataImporter(storage, config=config)
        assert importer.import_data(sample_document()).success
        assert importer.audit_trail is None
        assert storage.count(AUDIT_TABLE) == 0
