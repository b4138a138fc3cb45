"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep the settlement engine decoupled from storage

The interface only covers what the application needs: create, list and
delete for persons, cars and commutes. Records are never updated; a
commute's price is a snapshot taken at creation.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from commute_ledger.errors import PersistenceError
from commute_ledger.models.audit import AuditEvent
from commute_ledger.models.ledger import Car, Commute, Person


class LedgerStorageInterface(ABC):
    """
    Abstract interface for ledger storage operations.

    Create methods take a record with id=None and return it with the
    storage-assigned id.
    """

    @abstractmethod
    async def create_person(self, person: Person) -> Person:
        """
        Persist a new person.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def list_persons(self) -> list[Person]:
        """All persons, ordered by id."""
        pass

    @abstractmethod
    async def delete_person(self, person_id: int) -> bool:
        """
        Delete a person by id.

        Returns:
            True if a record was deleted, False if none matched
        """
        pass

    @abstractmethod
    async def create_car(self, car: Car) -> Car:
        """
        Persist a new car.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def list_cars(self) -> list[Car]:
        """All cars, ordered by id."""
        pass

    @abstractmethod
    async def delete_car(self, car_id: int) -> bool:
        """Delete a car by id. Commutes keep their (now dangling) car ids."""
        pass

    @abstractmethod
    async def create_commute(self, commute: Commute) -> Commute:
        """
        Persist a new commute, including its drivers and price snapshot.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def list_commutes(self) -> list[Commute]:
        """All commutes, newest date first."""
        pass

    @abstractmethod
    async def delete_commute(self, commute_id: int) -> bool:
        """Delete a commute by id."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
        correlation_id: Optional[UUID] = None,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).

        Args:
            limit: Maximum number of events to return
            correlation_id: Only return events of this correlation
        """
        pass


class StorageError(PersistenceError):
    """Base exception for storage operations."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
