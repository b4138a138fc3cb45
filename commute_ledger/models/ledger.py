"""
Core Data Models for Commute Ledger

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage

DESIGN DECISION: A commute stores its drivers and price per person as a
snapshot taken at creation time. Later changes to a car's cost or owner
never rewrite history.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


UNKNOWN_NAME = "Unbekannt"


def _unique_ids(ids: list[int]) -> list[int]:
    """Drop repeated ids, keeping first-seen order."""
    return list(dict.fromkeys(ids))


# =============================================================================
# ENUMS
# =============================================================================

class TripType(str, Enum):
    """
    How much of a car's round-trip cost a commute is charged.

    One-way is half the round-trip cost by convention; it is never
    priced separately.
    """
    ONEWAY = "oneway"
    ROUNDTRIP = "roundtrip"


# =============================================================================
# STORED RECORDS
# =============================================================================

class Person(BaseModel):
    """
    A commute participant.

    Records that have not been persisted yet carry id=None;
    the storage assigns the id.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[int] = Field(default=None, ge=1)
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name (unique in practice, not enforced)"
    )


class Car(BaseModel):
    """A car with its owner and full round-trip cost."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[int] = Field(default=None, ge=1)
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Car name (e.g. 'BMW X5')"
    )
    owner_id: int = Field(
        ...,
        ge=1,
        description="Person who owns and drives this car"
    )
    roundtrip_cost: Decimal = Field(
        ...,
        ge=0,
        description="Fuel/toll cost of a round trip"
    )

    @property
    def oneway_cost(self) -> Decimal:
        """Half the round-trip cost; derived, never stored."""
        return self.roundtrip_cost / 2

    def cost_for(self, trip_type: TripType) -> Decimal:
        """Charged cost of this car for one commute of the given type."""
        if trip_type == TripType.ROUNDTRIP:
            return self.roundtrip_cost
        return self.oneway_cost


class Commute(BaseModel):
    """
    A single shared commute.

    `drivers` holds the owner of each selected car, in car order.
    An owner with two selected cars appears twice.
    """

    id: Optional[int] = Field(default=None, ge=1)
    date: dt.date = Field(
        ...,
        description="Calendar date of the commute"
    )
    trip_type: TripType
    selected_cars: list[int] = Field(
        ...,
        min_length=1,
        description="Ids of the cars used"
    )
    selected_persons: list[int] = Field(
        ...,
        min_length=1,
        description="Ids of the people counted in the head-count"
    )
    drivers: list[int] = Field(
        default_factory=list,
        description="Owner id of each selected car (snapshot)"
    )
    price_per_person: Decimal = Field(
        ...,
        ge=0,
        description="Share per person, fixed at creation"
    )

    @field_validator('selected_cars', 'selected_persons')
    @classmethod
    def dedupe_selection(cls, v: list[int]) -> list[int]:
        return _unique_ids(v)

    @model_validator(mode='after')
    def validate_drivers(self) -> 'Commute':
        """One driver per selected car."""
        if len(self.drivers) != len(self.selected_cars):
            raise ValueError(
                f"Expected {len(self.selected_cars)} drivers, got {len(self.drivers)}"
            )
        return self

    @property
    def month(self) -> str:
        """YYYY-MM key of the commute date."""
        return self.date.isoformat()[:7]

    @property
    def passengers(self) -> list[int]:
        """Selected persons who do not drive any selected car."""
        return [pid for pid in self.selected_persons if pid not in self.drivers]


# =============================================================================
# DRAFTS - immutable view-model state handed over by the UI
# =============================================================================

class CommuteDraft(BaseModel):
    """
    Form state for a new commute.

    Selections may be empty here; the validator reports that
    instead of the model rejecting it.
    """
    model_config = ConfigDict(frozen=True)

    date: dt.date = Field(default_factory=dt.date.today)
    trip_type: TripType = TripType.ROUNDTRIP
    selected_cars: list[int] = Field(default_factory=list)
    selected_persons: list[int] = Field(default_factory=list)

    @field_validator('selected_cars', 'selected_persons')
    @classmethod
    def dedupe_selection(cls, v: list[int]) -> list[int]:
        return _unique_ids(v)


class CarDraft(BaseModel):
    """
    Form state for a new car.

    Either an existing owner is picked (owner_id) or a new person
    is created on the fly (new_owner_name).
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    name: str = ""
    roundtrip_cost: Optional[Decimal] = Field(default=None, ge=0)
    owner_id: Optional[int] = None
    new_owner_name: Optional[str] = None


# =============================================================================
# SNAPSHOT
# =============================================================================

class LedgerSnapshot(BaseModel):
    """
    Fully materialized copy of all records at one point in time.

    The engine and validator only ever see snapshots, never the storage.
    """
    model_config = ConfigDict(frozen=True)

    persons: list[Person] = Field(default_factory=list)
    cars: list[Car] = Field(default_factory=list)
    commutes: list[Commute] = Field(default_factory=list)

    def find_person(self, person_id: int) -> Optional[Person]:
        return next((p for p in self.persons if p.id == person_id), None)

    def find_car(self, car_id: int) -> Optional[Car]:
        return next((c for c in self.cars if c.id == car_id), None)

    def person_name(self, person_id: int) -> str:
        """Display name, tolerating ids of deleted persons."""
        person = self.find_person(person_id)
        return person.name if person else UNKNOWN_NAME

    def car_name(self, car_id: int) -> str:
        car = self.find_car(car_id)
        return car.name if car else UNKNOWN_NAME

    def cars_owned_by(self, person_id: int) -> list[Car]:
        return [c for c in self.cars if c.owner_id == person_id]


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'unknown_reference', 'future_date')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    entity_id: Optional[int] = Field(
        default=None,
        description="Offending id for reference issues"
    )


class ValidationResult(BaseModel):
    """Result of validating a draft against a snapshot."""

    validated_at: dt.datetime = Field(
        default_factory=lambda: dt.datetime.now(dt.timezone.utc)
    )
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def errors(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == "error"]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == "warning"]
