"""
Main Orchestrator for Commute Ledger

Ties storage, validation, the settlement engine, export and audit
together into the flows the UI calls:
1. Records (add/delete persons, cars and commutes)
2. Settlements (list months, compute a month, export a report)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing is written without passing validation
- A person who owns a car cannot be deleted
- Settlements are always recomputed from a fresh snapshot
- Every write is audited
"""

import asyncio
from typing import Optional
from uuid import UUID

import structlog

from commute_ledger.audit import AuditLogger, create_correlation_id
from commute_ledger.config import get_settings
from commute_ledger.engine import (
    MissingReferencePolicy,
    compute_commute_price,
    compute_monthly_settlement,
    derive_drivers,
    list_months,
    resolve_cars,
)
from commute_ledger.errors import (
    InvalidInputError,
    PersistenceError,
    ReferentialIntegrityError,
    UnknownCarReferenceError,
    UnknownCommuteReferenceError,
    UnknownPersonReferenceError,
)
from commute_ledger.export import render_settlement_csv, report_filename
from commute_ledger.models.ledger import (
    Car,
    CarDraft,
    Commute,
    CommuteDraft,
    LedgerSnapshot,
    Person,
    ValidationResult,
)
from commute_ledger.models.settlement import MonthlySettlement
from commute_ledger.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
    StorageError,
)
from commute_ledger.validation import CommuteValidator, raise_for_errors


logger = structlog.get_logger(__name__)


class CommuteLedger:
    """
    Application service behind the UI.

    Holds no record state of its own; every call reads what it needs
    from storage.
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        validator: Optional[CommuteValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        currency_symbol: Optional[str] = None,
    ):
        self._storage = storage
        self._validator = validator or CommuteValidator()
        self._audit_logger = audit_logger or AuditLogger()
        self._currency_symbol = currency_symbol or get_settings().app.currency_symbol

    @property
    def currency_symbol(self) -> str:
        return self._currency_symbol

    async def _write(self, operation: str, coro, correlation_id: Optional[UUID]):
        """Await a storage call, auditing and re-raising datastore failures."""
        try:
            return await coro
        except StorageError as e:
            await self._audit_logger.log_storage_error(
                operation=operation,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    async def load_snapshot(self) -> LedgerSnapshot:
        """
        Load all records at once.

        Raises:
            PersistenceError: If any of the three reads fails
        """
        try:
            persons, cars, commutes = await asyncio.gather(
                self._storage.list_persons(),
                self._storage.list_cars(),
                self._storage.list_commutes(),
            )
        except PersistenceError as e:
            await self._audit_logger.log_storage_error("load_snapshot", str(e))
            raise
        return LedgerSnapshot(persons=persons, cars=cars, commutes=commutes)

    # -------------------------------------------------------------------------
    # Persons
    # -------------------------------------------------------------------------

    async def add_person(
        self,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> Person:
        """
        Create a person.

        Raises:
            InvalidInputError: If the name is blank
        """
        name = (name or "").strip()
        if not name:
            raise InvalidInputError("Bitte gib einen Namen ein")

        person = await self._write(
            "create_person", self._storage.create_person(Person(name=name)), correlation_id
        )
        await self._audit_logger.log_record_created(
            "person", person.id, person.name, correlation_id=correlation_id
        )
        return person

    async def delete_person(
        self,
        person_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Delete a person who owns no car.

        Raises:
            ReferentialIntegrityError: If the person owns a car
            UnknownPersonReferenceError: If no such person exists
        """
        snapshot = await self.load_snapshot()
        owned = snapshot.cars_owned_by(person_id)
        if owned:
            reason = (
                "Diese Person kann nicht gelöscht werden, "
                "da sie Besitzer eines Autos ist."
            )
            await self._audit_logger.log_delete_rejected(
                "person", person_id, reason, correlation_id=correlation_id
            )
            raise ReferentialIntegrityError(reason)

        deleted = await self._write(
            "delete_person", self._storage.delete_person(person_id), correlation_id
        )
        if not deleted:
            raise UnknownPersonReferenceError(person_id)
        await self._audit_logger.log_record_deleted(
            "person", person_id, correlation_id=correlation_id
        )

    # -------------------------------------------------------------------------
    # Cars
    # -------------------------------------------------------------------------

    async def add_car(
        self,
        draft: CarDraft,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Car, ValidationResult]:
        """
        Create a car, creating its new owner first if requested.

        Returns:
            (car, validation) - validation carries any warnings

        Raises:
            InvalidInputError: If name, cost or owner is missing
            UnknownPersonReferenceError: If the chosen owner does not exist
        """
        correlation_id = correlation_id or create_correlation_id()
        snapshot = await self.load_snapshot()

        validation = self._validator.validate_car(draft, snapshot)
        if validation.has_errors:
            await self._audit_logger.log_validation_failed(
                [issue.model_dump() for issue in validation.issues],
                correlation_id=correlation_id,
            )
        raise_for_errors(validation)

        owner_id = draft.owner_id
        if owner_id is None:
            owner = await self.add_person(draft.new_owner_name, correlation_id=correlation_id)
            owner_id = owner.id

        car = Car(name=draft.name, owner_id=owner_id, roundtrip_cost=draft.roundtrip_cost)
        car = await self._write("create_car", self._storage.create_car(car), correlation_id)
        await self._audit_logger.log_record_created(
            "car",
            car.id,
            car.name,
            details={"owner_id": car.owner_id, "roundtrip_cost": str(car.roundtrip_cost)},
            correlation_id=correlation_id,
        )
        return car, validation

    async def delete_car(
        self,
        car_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Delete a car. Past commutes keep their price and drivers.

        Raises:
            UnknownCarReferenceError: If no such car exists
        """
        deleted = await self._write(
            "delete_car", self._storage.delete_car(car_id), correlation_id
        )
        if not deleted:
            raise UnknownCarReferenceError(car_id)
        await self._audit_logger.log_record_deleted(
            "car", car_id, correlation_id=correlation_id
        )

    # -------------------------------------------------------------------------
    # Commutes
    # -------------------------------------------------------------------------

    async def add_commute(
        self,
        draft: CommuteDraft,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Commute, ValidationResult]:
        """
        Price and store a new commute.

        Drivers are the owners of the selected cars. The price per person
        divides the summed car cost by the number of selected persons.

        Returns:
            (commute, validation) - validation carries any warnings

        Raises:
            InvalidInputError: If no car or no person is selected
            UnknownReferenceError: If a selected car or person does not exist
        """
        correlation_id = correlation_id or create_correlation_id()
        snapshot = await self.load_snapshot()

        validation = self._validator.validate_commute(draft, snapshot)
        if validation.has_errors:
            await self._audit_logger.log_validation_failed(
                [issue.model_dump() for issue in validation.issues],
                correlation_id=correlation_id,
            )
        raise_for_errors(validation)

        cars = resolve_cars(draft.selected_cars, snapshot.cars, MissingReferencePolicy.RAISE)
        price = compute_commute_price(draft.trip_type, cars, len(draft.selected_persons))

        commute = Commute(
            date=draft.date,
            trip_type=draft.trip_type,
            selected_cars=draft.selected_cars,
            selected_persons=draft.selected_persons,
            drivers=derive_drivers(cars),
            price_per_person=price,
        )
        commute = await self._write(
            "create_commute", self._storage.create_commute(commute), correlation_id
        )
        await self._audit_logger.log_record_created(
            "commute",
            commute.id,
            f"{commute.date.isoformat()} ({commute.trip_type.value})",
            details={
                "selected_cars": commute.selected_cars,
                "selected_persons": commute.selected_persons,
                "drivers": commute.drivers,
                "price_per_person": str(commute.price_per_person),
            },
            correlation_id=correlation_id,
        )
        return commute, validation

    async def delete_commute(
        self,
        commute_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        deleted = await self._write(
            "delete_commute", self._storage.delete_commute(commute_id), correlation_id
        )
        if not deleted:
            raise UnknownCommuteReferenceError(commute_id)
        await self._audit_logger.log_record_deleted(
            "commute", commute_id, correlation_id=correlation_id
        )

    # -------------------------------------------------------------------------
    # Settlements
    # -------------------------------------------------------------------------

    async def list_months(self) -> list[str]:
        """Months that have commutes, most recent first."""
        commutes = await self._storage.list_commutes()
        return list_months(commutes)

    async def monthly_settlement(
        self,
        month: str,
        snapshot: Optional[LedgerSnapshot] = None,
        correlation_id: Optional[UUID] = None,
    ) -> MonthlySettlement:
        """
        Compute gross and net debts for one month.

        Participants who were deleted since are skipped.
        """
        if snapshot is None:
            snapshot = await self.load_snapshot()
        settlement = compute_monthly_settlement(
            month,
            snapshot.commutes,
            snapshot.persons,
            on_missing=MissingReferencePolicy.SKIP,
        )
        await self._audit_logger.log_settlement_computed(
            month=month,
            commute_count=sum(1 for c in snapshot.commutes if c.month == month),
            net_edge_count=len(settlement.net_edges),
            correlation_id=correlation_id,
        )
        return settlement

    def render_report(self, settlement: MonthlySettlement) -> tuple[str, str]:
        """
        Render an already computed settlement as CSV. Nothing is audited.

        Returns:
            (filename, csv_text)
        """
        filename = report_filename(settlement.month)
        return filename, render_settlement_csv(settlement, self._currency_symbol)

    async def record_export(
        self,
        month: str,
        filename: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Audit a report that was actually handed to the user."""
        await self._audit_logger.log_report_exported(
            month=month,
            filename=filename,
            correlation_id=correlation_id,
        )

    async def export_report(
        self,
        month: str,
        snapshot: Optional[LedgerSnapshot] = None,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[str, str]:
        """
        Build and audit the CSV report of one month.

        Reuses the given snapshot; loads a fresh one otherwise.

        Returns:
            (filename, csv_text)
        """
        settlement = await self.monthly_settlement(
            month, snapshot=snapshot, correlation_id=correlation_id
        )
        filename, content = self.render_report(settlement)
        await self.record_export(month, filename, correlation_id=correlation_id)
        return filename, content

    async def log_unexpected_error(
        self,
        operation: str,
        error: Exception,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Audit an error that none of the flows anticipated."""
        await self._audit_logger.log_error(
            error_type=type(error).__name__,
            error_message=str(error),
            details={"operation": operation},
            correlation_id=correlation_id,
        )


def create_app_components(
    use_storage: bool = True,
) -> tuple[CommuteLedger, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False to run on in-memory storage.

    Returns:
        (ledger, sheets_client)
    """
    sheets_client = None
    storage: LedgerStorageInterface

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            storage = GoogleSheetsLedgerStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            storage = InMemoryLedgerStorage()
            audit_logger = AuditLogger()  # Local-only logging
    else:
        storage = InMemoryLedgerStorage()
        audit_logger = AuditLogger()  # Local-only logging

    ledger = CommuteLedger(storage=storage, audit_logger=audit_logger)
    return ledger, sheets_client
