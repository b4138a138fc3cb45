"""
In-Memory Storage

Dict-backed implementation of the storage interfaces. Used by the tests
and as the fallback when Google Sheets is not configured. Data is lost
when the process exits.
"""

from typing import Generic, Optional, TypeVar
from uuid import UUID

from commute_ledger.models.audit import AuditEvent
from commute_ledger.models.ledger import Car, Commute, Person
from commute_ledger.services.storage.interface import (
    AuditStorageInterface,
    LedgerStorageInterface,
    StorageError,
)


T = TypeVar("T", Person, Car, Commute)


class _Table(Generic[T]):
    """Records of one kind, keyed by auto-incremented id."""

    def __init__(self):
        self._rows: dict[int, T] = {}
        self._last_id = 0

    def insert(self, record: T) -> T:
        if record.id is not None:
            raise StorageError(f"Record already has an id: {record.id}")
        self._last_id += 1
        stored = record.model_copy(update={"id": self._last_id})
        self._rows[stored.id] = stored
        return stored

    def delete(self, record_id: int) -> bool:
        return self._rows.pop(record_id, None) is not None

    def all(self) -> list[T]:
        return [self._rows[key] for key in sorted(self._rows)]


class InMemoryLedgerStorage(LedgerStorageInterface):
    """In-memory implementation of ledger storage."""

    def __init__(self):
        self._persons = _Table()
        self._cars = _Table()
        self._commutes = _Table()

    async def create_person(self, person: Person) -> Person:
        return self._persons.insert(person)

    async def list_persons(self) -> list[Person]:
        return self._persons.all()

    async def delete_person(self, person_id: int) -> bool:
        return self._persons.delete(person_id)

    async def create_car(self, car: Car) -> Car:
        return self._cars.insert(car)

    async def list_cars(self) -> list[Car]:
        return self._cars.all()

    async def delete_car(self, car_id: int) -> bool:
        return self._cars.delete(car_id)

    async def create_commute(self, commute: Commute) -> Commute:
        return self._commutes.insert(commute)

    async def list_commutes(self) -> list[Commute]:
        return sorted(self._commutes.all(), key=lambda c: (c.date, c.id), reverse=True)

    async def delete_commute(self, commute_id: int) -> bool:
        return self._commutes.delete(commute_id)


class InMemoryAuditStorage(AuditStorageInterface):
    """In-memory, append-only audit log."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_recent_events(
        self,
        limit: int = 100,
        correlation_id: Optional[UUID] = None,
    ) -> list[AuditEvent]:
        events = [
            e for e in self.events
            if correlation_id is None or e.correlation_id == correlation_id
        ]
        return list(reversed(events))[:limit]
