"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the hosted datastore because:
1. The group can look at the raw records directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- No transactions or auto-increment. Ids come from a per-sheet high-water
  mark in the Counters sheet, so deleted ids are never reused. Writes are
  issued one at a time by the application.
- Limited query capabilities (we filter and sort in Python)

Each record kind lives in its own worksheet. List-valued commute columns
are JSON, amounts are decimal strings.
"""

import json
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional, TypeVar
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from commute_ledger.config import get_settings
from commute_ledger.models.audit import AuditEvent, AuditEventType, AuditSeverity
from commute_ledger.models.ledger import Car, Commute, Person, TripType
from commute_ledger.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    LedgerStorageInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)

T = TypeVar("T")

PERSON_COLUMNS = ["id", "name"]

CAR_COLUMNS = ["id", "name", "owner_id", "roundtrip_cost"]

COMMUTE_COLUMNS = [
    "id",
    "date",
    "trip_type",
    "selected_cars_json",
    "selected_persons_json",
    "drivers_json",
    "price_per_person",
]

COUNTER_COLUMNS = ["sheet", "last_id"]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


def _safe_get(row: list, index: int, default: str = "") -> str:
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int = 1000,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_persons_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(self._settings.persons_sheet_name, PERSON_COLUMNS)

    def get_cars_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(self._settings.cars_sheet_name, CAR_COLUMNS)

    def get_commutes_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(self._settings.commutes_sheet_name, COMMUTE_COLUMNS)

    def get_counters_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(
            self._settings.counters_sheet_name, COUNTER_COLUMNS, rows=10
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        # More rows for audit log
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


class GoogleSheetsLedgerStorage(LedgerStorageInterface):
    """
    Google Sheets implementation of ledger storage.

    One record per row, header in row 1, id in column A.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    # -------------------------------------------------------------------------
    # Row conversion
    # -------------------------------------------------------------------------

    @staticmethod
    def _person_to_row(person: Person) -> list:
        return [str(person.id), person.name]

    @staticmethod
    def _row_to_person(row: list) -> Person:
        return Person(id=int(_safe_get(row, 0)), name=_safe_get(row, 1))

    @staticmethod
    def _car_to_row(car: Car) -> list:
        return [str(car.id), car.name, str(car.owner_id), str(car.roundtrip_cost)]

    @staticmethod
    def _row_to_car(row: list) -> Car:
        return Car(
            id=int(_safe_get(row, 0)),
            name=_safe_get(row, 1),
            owner_id=int(_safe_get(row, 2)),
            roundtrip_cost=Decimal(_safe_get(row, 3, "0")),
        )

    @staticmethod
    def _commute_to_row(commute: Commute) -> list:
        return [
            str(commute.id),
            commute.date.isoformat(),
            commute.trip_type.value,
            json.dumps(commute.selected_cars),
            json.dumps(commute.selected_persons),
            json.dumps(commute.drivers),
            str(commute.price_per_person),
        ]

    @staticmethod
    def _row_to_commute(row: list) -> Commute:
        return Commute(
            id=int(_safe_get(row, 0)),
            date=date.fromisoformat(_safe_get(row, 1)),
            trip_type=TripType(_safe_get(row, 2)),
            selected_cars=json.loads(_safe_get(row, 3, "[]")),
            selected_persons=json.loads(_safe_get(row, 4, "[]")),
            drivers=json.loads(_safe_get(row, 5, "[]")),
            price_per_person=Decimal(_safe_get(row, 6, "0")),
        )

    # -------------------------------------------------------------------------
    # Generic helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _data_rows(sheet: gspread.Worksheet) -> list[list]:
        """All non-empty rows below the header."""
        return [row for row in sheet.get_all_values()[1:] if row and row[0]]

    @staticmethod
    def _max_id(rows: list[list]) -> int:
        ids = [int(row[0]) for row in rows if row[0].isdigit()]
        return max(ids, default=0)

    def _issue_id(self, sheet: gspread.Worksheet) -> int:
        """
        Next id for a record sheet.

        The last issued id is kept per sheet in the Counters sheet and only
        grows, so ids of deleted records are never handed out again. Old
        commutes may still reference them. Rows already in the record sheet
        also count, for sheets that predate the counter.
        """
        counters = self._client.get_counters_sheet()
        last_id = self._max_id(self._data_rows(sheet))

        for idx, row in enumerate(counters.get_all_values()[1:], start=2):
            if row and row[0] == sheet.title:
                stored = _safe_get(row, 1, "0")
                new_id = max(int(stored) if stored.isdigit() else 0, last_id) + 1
                counters.update_cell(idx, 2, str(new_id))
                return new_id

        new_id = last_id + 1
        counters.append_row([sheet.title, str(new_id)], value_input_option="RAW")
        return new_id

    def _parse_rows(
        self,
        sheet: gspread.Worksheet,
        parse: Callable[[list], T],
    ) -> list[T]:
        records = []
        for row in self._data_rows(sheet):
            try:
                records.append(parse(row))
            except (ValueError, TypeError, InvalidOperation) as e:
                # Hand-edited rows must not take down the whole ledger
                logger.warning("malformed_row_skipped", sheet=sheet.title, row_id=row[0], error=str(e))
        return records

    def _append(
        self,
        sheet: gspread.Worksheet,
        to_row: Callable[[T], list],
        record: T,
    ) -> T:
        record = record.model_copy(update={"id": self._issue_id(sheet)})
        sheet.append_row(to_row(record), value_input_option="RAW")
        return record

    def _delete(self, sheet: gspread.Worksheet, record_id: int) -> bool:
        all_rows = sheet.get_all_values()
        for idx, row in enumerate(all_rows[1:], start=2):  # Row 1 is header
            if row and row[0] == str(record_id):
                sheet.delete_rows(idx)
                return True
        return False

    # -------------------------------------------------------------------------
    # Persons
    # -------------------------------------------------------------------------

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def create_person(self, person: Person) -> Person:
        try:
            return self._append(self._client.get_persons_sheet(), self._person_to_row, person)
        except Exception as e:
            raise StorageError(f"Failed to save person: {e}")

    async def list_persons(self) -> list[Person]:
        try:
            persons = self._parse_rows(self._client.get_persons_sheet(), self._row_to_person)
        except Exception as e:
            raise StorageError(f"Failed to list persons: {e}")
        return sorted(persons, key=lambda p: p.id)

    async def delete_person(self, person_id: int) -> bool:
        try:
            return self._delete(self._client.get_persons_sheet(), person_id)
        except Exception as e:
            raise StorageError(f"Failed to delete person: {e}")

    # -------------------------------------------------------------------------
    # Cars
    # -------------------------------------------------------------------------

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def create_car(self, car: Car) -> Car:
        try:
            return self._append(self._client.get_cars_sheet(), self._car_to_row, car)
        except Exception as e:
            raise StorageError(f"Failed to save car: {e}")

    async def list_cars(self) -> list[Car]:
        try:
            cars = self._parse_rows(self._client.get_cars_sheet(), self._row_to_car)
        except Exception as e:
            raise StorageError(f"Failed to list cars: {e}")
        return sorted(cars, key=lambda c: c.id)

    async def delete_car(self, car_id: int) -> bool:
        try:
            return self._delete(self._client.get_cars_sheet(), car_id)
        except Exception as e:
            raise StorageError(f"Failed to delete car: {e}")

    # -------------------------------------------------------------------------
    # Commutes
    # -------------------------------------------------------------------------

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def create_commute(self, commute: Commute) -> Commute:
        try:
            return self._append(self._client.get_commutes_sheet(), self._commute_to_row, commute)
        except Exception as e:
            raise StorageError(f"Failed to save commute: {e}")

    async def list_commutes(self) -> list[Commute]:
        try:
            commutes = self._parse_rows(self._client.get_commutes_sheet(), self._row_to_commute)
        except Exception as e:
            raise StorageError(f"Failed to list commutes: {e}")
        # Newest first
        return sorted(commutes, key=lambda c: (c.date, c.id), reverse=True)

    async def delete_commute(self, commute_id: int) -> bool:
        try:
            return self._delete(self._client.get_commutes_sheet(), commute_id)
        except Exception as e:
            raise StorageError(f"Failed to delete commute: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        return AuditEvent(
            event_id=UUID(_safe_get(row, 0)),
            timestamp=_safe_get(row, 1),
            event_type=AuditEventType(_safe_get(row, 2)),
            severity=AuditSeverity(_safe_get(row, 3)),
            entity_type=_safe_get(row, 4) or None,
            entity_id=_safe_get(row, 5) or None,
            correlation_id=UUID(_safe_get(row, 6)) if _safe_get(row, 6) else None,
            description=_safe_get(row, 7),
            details=json.loads(_safe_get(row, 8)) if _safe_get(row, 8) else {},
            error_message=_safe_get(row, 9) or None,
            is_user_action=_safe_get(row, 10).lower() == "true",
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    async def get_recent_events(
        self,
        limit: int = 100,
        correlation_id: Optional[UUID] = None,
    ) -> list[AuditEvent]:
        """Get recent events, newest first."""
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if not row or not row[0]:
                continue
            if correlation_id and _safe_get(row, 6) != str(correlation_id):
                continue
            try:
                events.append(self._row_to_event(row))
            except ValueError as e:
                logger.warning("malformed_audit_row_skipped", event_id=row[0], error=str(e))

        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
