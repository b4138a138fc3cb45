"""
Settlement Engine

Turns commute records into:
1. A price per person, fixed when the commute is created
2. A monthly debt table between passengers and drivers, reduced to
   net pairwise balances

DESIGN DECISION: Everything here is a pure function over snapshots.
Nothing is cached, so the engine can be re-run with fresh data at any time.

Lookups of ids that may have been deleted go through an explicit
MissingReferencePolicy. The caller decides between raising and skipping.
"""

import re
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional, Sequence

import structlog

from commute_ledger.engine.money import ZERO, to_amount
from commute_ledger.errors import (
    InvalidInputError,
    UnknownCarReferenceError,
    UnknownPersonReferenceError,
)
from commute_ledger.models.ledger import Car, Commute, Person, TripType
from commute_ledger.models.settlement import DebtTable, MonthlySettlement


logger = structlog.get_logger(__name__)

MONTH_PATTERN = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")

GERMAN_MONTHS = [
    "Januar", "Februar", "März", "April", "Mai", "Juni",
    "Juli", "August", "September", "Oktober", "November", "Dezember",
]


class MissingReferencePolicy(str, Enum):
    """What to do when an id cannot be resolved."""
    RAISE = "raise"
    SKIP = "skip"


# =============================================================================
# MONTH KEYS
# =============================================================================

def month_key(day: date) -> str:
    """YYYY-MM key of a date."""
    return day.isoformat()[:7]


def parse_month(month: str) -> tuple[int, int]:
    """
    Split a YYYY-MM key into (year, month).

    Raises:
        InvalidInputError: If the key is malformed
    """
    match = MONTH_PATTERN.match(month or "")
    if not match:
        raise InvalidInputError(f"Invalid month key: {month!r} (expected YYYY-MM)")
    return int(match.group(1)), int(match.group(2))


def month_label(month: str) -> str:
    """German display label, e.g. '2024-01' -> 'Januar 2024'."""
    year, number = parse_month(month)
    return f"{GERMAN_MONTHS[number - 1]} {year}"


def list_months(commutes: Iterable[Commute]) -> list[str]:
    """Distinct month keys across all commutes, most recent first."""
    return sorted({commute.month for commute in commutes}, reverse=True)


# =============================================================================
# PRICE CALCULATION
# =============================================================================

def resolve_cars(
    car_ids: Sequence[int],
    cars: Iterable[Car],
    on_missing: MissingReferencePolicy = MissingReferencePolicy.RAISE,
) -> list[Car]:
    """
    Look up the selected cars, keeping selection order.

    Raises:
        UnknownCarReferenceError: If an id is unknown and on_missing is RAISE
    """
    by_id = {car.id: car for car in cars}
    resolved = []
    for car_id in car_ids:
        car = by_id.get(car_id)
        if car is None:
            if on_missing == MissingReferencePolicy.RAISE:
                raise UnknownCarReferenceError(car_id)
            logger.warning("car_reference_skipped", car_id=car_id)
            continue
        resolved.append(car)
    return resolved


def derive_drivers(cars: Sequence[Car]) -> list[int]:
    """Owner of each car, in car order. Owners of two cars appear twice."""
    return [car.owner_id for car in cars]


def compute_commute_price(
    trip_type: TripType,
    cars: Sequence[Car],
    num_persons: int,
) -> Decimal:
    """
    Share each person pays for one commute.

    The charged cost of a car is its round-trip cost, or half of it for
    a one-way trip. Costs of all cars are summed before dividing by the
    number of persons.

    Raises:
        InvalidInputError: If no car is given or num_persons < 1
    """
    trip_type = TripType(trip_type)
    if num_persons < 1:
        raise InvalidInputError("A commute needs at least one person")
    if not cars:
        raise InvalidInputError("A commute needs at least one car")

    total = sum((car.cost_for(trip_type) for car in cars), ZERO)
    return to_amount(total / num_persons)


# =============================================================================
# MONTHLY SETTLEMENT
# =============================================================================

def _person_name(
    names: dict[int, str],
    person_id: int,
    on_missing: MissingReferencePolicy,
    commute_id: Optional[int],
) -> Optional[str]:
    name = names.get(person_id)
    if name is None:
        if on_missing == MissingReferencePolicy.RAISE:
            raise UnknownPersonReferenceError(person_id)
        logger.warning(
            "person_reference_skipped",
            person_id=person_id,
            commute_id=commute_id,
        )
    return name


def net_debts(gross: DebtTable) -> DebtTable:
    """
    Offset reciprocal debts.

    A owes B the positive remainder of A->B minus B->A. Pairs whose debts
    cancel exactly get no entry in either direction.
    """
    net: DebtTable = {}
    for debtor, creditors in gross.items():
        for creditor, owed in creditors.items():
            owed_back = gross.get(creditor, {}).get(debtor, ZERO)
            if owed > owed_back:
                net.setdefault(debtor, {})[creditor] = owed - owed_back
    return net


def compute_monthly_settlement(
    month: str,
    commutes: Iterable[Commute],
    persons: Iterable[Person],
    on_missing: MissingReferencePolicy = MissingReferencePolicy.SKIP,
) -> MonthlySettlement:
    """
    Work out who owes whom for one month.

    Each passenger's price per person is split equally across the drivers
    of that commute and accumulated per (passenger, driver) name pair.
    The gross table is then netted pairwise.

    A month without commutes yields two empty tables.

    Raises:
        InvalidInputError: If month is not a YYYY-MM key
        UnknownPersonReferenceError: If on_missing is RAISE and a
            participant cannot be resolved
    """
    parse_month(month)
    names = {person.id: person.name for person in persons}
    gross: DebtTable = {}

    for commute in commutes:
        if commute.month != month:
            continue

        driver_names = []
        for driver_id in commute.drivers:
            name = _person_name(names, driver_id, on_missing, commute.id)
            if name is not None:
                driver_names.append(name)

        if not driver_names:
            logger.warning("commute_without_drivers", commute_id=commute.id)
            continue

        share = to_amount(commute.price_per_person / len(driver_names))

        for passenger_id in commute.passengers:
            passenger = _person_name(names, passenger_id, on_missing, commute.id)
            if passenger is None:
                continue
            row = gross.setdefault(passenger, {})
            for driver in driver_names:
                row[driver] = row.get(driver, ZERO) + share

    return MonthlySettlement(month=month, gross=gross, net=net_debts(gross))
