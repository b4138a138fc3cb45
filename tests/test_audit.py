"""Tests for the audit logger."""

import asyncio
import pytest

from commute_ledger.audit import AuditLogger
from commute_ledger.models.audit import AuditEventBuilder, AuditEventType
from commute_ledger.services.storage import InMemoryAuditStorage, StorageError


class BrokenAuditStorage(InMemoryAuditStorage):
    """Audit storage that always fails."""

    async def append_event(self, event):
        raise StorageError("Sheets API unavailable")


class TestAuditLogger:
    """Tests for AuditLogger persistence rules."""

    def test_debug_events_stay_local(self):
        """Test that recomputed settlements are not written to storage."""
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)

        asyncio.run(logger.log_settlement_computed("2024-01", 3, 2))

        assert storage.events == []

    def test_info_events_are_persisted(self):
        """Test that user actions reach storage."""
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)

        asyncio.run(logger.log_report_exported("2024-01", "Abrechnung_2024-01.csv"))

        assert [e.event_type for e in storage.events] == [AuditEventType.REPORT_EXPORTED]

    def test_system_error_is_persisted(self):
        """Test log_error."""
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)

        asyncio.run(logger.log_error("ValueError", "bad value", details={"operation": "render"}))

        event = storage.events[0]
        assert event.event_type == AuditEventType.SYSTEM_ERROR
        assert event.error_message == "bad value"

    def test_storage_failure_is_swallowed(self):
        """Test that a broken audit backend never breaks the caller."""
        logger = AuditLogger(BrokenAuditStorage())
        event = AuditEventBuilder.record_deleted("car", 1)

        assert asyncio.run(logger.log(event)) is False

    def test_without_storage(self):
        """Test local-only logging."""
        event = AuditEventBuilder.record_deleted("car", 1)
        assert asyncio.run(AuditLogger().log(event)) is True


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
