"""Tests for the settlement engine."""

import pytest
from datetime import date
from decimal import Decimal

from commute_ledger.engine import (
    MissingReferencePolicy,
    compute_commute_price,
    compute_monthly_settlement,
    derive_drivers,
    list_months,
    month_key,
    month_label,
    net_debts,
    resolve_cars,
)
from commute_ledger.errors import (
    InvalidInputError,
    UnknownCarReferenceError,
    UnknownPersonReferenceError,
)
from commute_ledger.models.ledger import Car, Commute, Person, TripType


ALICE, BOB, CAROL = 1, 2, 3

PERSONS = [
    Person(id=ALICE, name="Alice"),
    Person(id=BOB, name="Bob"),
    Person(id=CAROL, name="Carol"),
]


def car(cost: str, car_id: int = 1, owner_id: int = ALICE) -> Car:
    return Car(id=car_id, name=f"Car {car_id}", owner_id=owner_id, roundtrip_cost=Decimal(cost))


def commute(
    day: date,
    cars: list[Car],
    persons: list[int],
    trip_type: TripType = TripType.ROUNDTRIP,
    commute_id: int = 1,
) -> Commute:
    """Build a commute the way the application does."""
    return Commute(
        id=commute_id,
        date=day,
        trip_type=trip_type,
        selected_cars=[c.id for c in cars],
        selected_persons=persons,
        drivers=derive_drivers(cars),
        price_per_person=compute_commute_price(trip_type, cars, len(persons)),
    )


class TestComputeCommutePrice:
    """Tests for per-commute pricing."""

    @pytest.mark.parametrize("cost,persons,expected", [
        ("20", 1, "20"),
        ("20", 4, "5"),
        ("15", 2, "7.5"),
        ("0", 3, "0"),
    ])
    def test_roundtrip_single_car(self, cost, persons, expected):
        """Test round trip charges the full cost."""
        price = compute_commute_price(TripType.ROUNDTRIP, [car(cost)], persons)
        assert price == Decimal(expected)

    @pytest.mark.parametrize("cost,persons,expected", [
        ("20", 1, "10"),
        ("20", 4, "2.5"),
        ("15", 2, "3.75"),
    ])
    def test_oneway_single_car(self, cost, persons, expected):
        """Test one-way charges half the cost."""
        price = compute_commute_price(TripType.ONEWAY, [car(cost)], persons)
        assert price == Decimal(expected)

    def test_multi_car_costs_are_additive(self):
        """Test that car costs are summed before dividing."""
        cars = [car("20", 1), car("10", 2, owner_id=BOB)]
        for trip_type in TripType:
            combined = compute_commute_price(trip_type, cars, 3)
            separate = (
                compute_commute_price(trip_type, cars[:1], 1)
                + compute_commute_price(trip_type, cars[1:], 1)
            ) / 3
            assert combined == separate.quantize(Decimal("0.0001"))

    def test_accepts_trip_type_value(self):
        """Test that the plain string value is accepted."""
        assert compute_commute_price("oneway", [car("20")], 2) == Decimal("5")

    def test_result_is_on_amount_grid(self):
        """Test that non-terminating shares are rounded to 4 places."""
        price = compute_commute_price(TripType.ROUNDTRIP, [car("10")], 3)
        assert price == Decimal("3.3333")
        assert price.as_tuple().exponent == -4

    def test_sub_cent_car_cost(self):
        """Test pricing with a cost finer than cents."""
        assert compute_commute_price(TripType.ROUNDTRIP, [car("12.345")], 3) == Decimal("4.115")
        assert compute_commute_price(TripType.ONEWAY, [car("12.345")], 1) == Decimal("6.1725")

    def test_zero_persons_is_invalid(self):
        """Test that division by zero persons is refused."""
        with pytest.raises(InvalidInputError):
            compute_commute_price(TripType.ROUNDTRIP, [car("20")], 0)

    def test_no_cars_is_invalid(self):
        """Test that a commute without cars is refused."""
        with pytest.raises(InvalidInputError):
            compute_commute_price(TripType.ROUNDTRIP, [], 2)


class TestResolveCars:
    """Tests for car lookups."""

    def test_keeps_selection_order(self):
        """Test resolved cars follow the selected ids."""
        cars = [car("20", 1), car("10", 2, owner_id=BOB)]
        resolved = resolve_cars([2, 1], cars)
        assert [c.id for c in resolved] == [2, 1]
        assert derive_drivers(resolved) == [BOB, ALICE]

    def test_unknown_car_raises_by_default(self):
        """Test the strict default policy."""
        with pytest.raises(UnknownCarReferenceError) as exc_info:
            resolve_cars([1, 7], [car("20", 1)])
        assert exc_info.value.entity_id == 7

    def test_unknown_car_can_be_skipped(self):
        """Test the lenient policy."""
        resolved = resolve_cars([1, 7], [car("20", 1)], MissingReferencePolicy.SKIP)
        assert [c.id for c in resolved] == [1]

    def test_owner_of_two_cars_drives_twice(self):
        """Test that duplicate owners are kept."""
        cars = [car("20", 1), car("10", 2)]
        assert derive_drivers(cars) == [ALICE, ALICE]


class TestMonthlySettlement:
    """Tests for gross/net debt computation."""

    def test_end_to_end_example(self):
        """Test the two-driver, one-passenger scenario."""
        cars = [car("20", 1, owner_id=ALICE), car("10", 2, owner_id=BOB)]
        trip = commute(date(2024, 1, 10), cars, [ALICE, BOB, CAROL])
        assert trip.price_per_person == Decimal("10.00")

        settlement = compute_monthly_settlement("2024-01", [trip], PERSONS)

        assert settlement.gross == {"Carol": {"Alice": Decimal("5"), "Bob": Decimal("5")}}
        assert settlement.net == {"Carol": {"Alice": Decimal("5"), "Bob": Decimal("5")}}

    def test_reciprocal_debts_cancel(self):
        """Test that equal mutual debts leave no net entry."""
        alice_car = car("20", 1, owner_id=ALICE)
        bob_car = car("20", 2, owner_id=BOB)
        commutes = [
            commute(date(2024, 2, 1), [alice_car], [ALICE, BOB], commute_id=1),
            commute(date(2024, 2, 2), [bob_car], [ALICE, BOB], commute_id=2),
        ]

        settlement = compute_monthly_settlement("2024-02", commutes, PERSONS)

        assert settlement.gross == {
            "Bob": {"Alice": Decimal("10")},
            "Alice": {"Bob": Decimal("10")},
        }
        assert settlement.net == {}
        assert settlement.settled_pairs == [("Alice", "Bob")]

    def test_netting_keeps_positive_remainder(self):
        """Test 30 owed one way and 10 the other nets to 20."""
        alice_car = car("20", 1, owner_id=ALICE)
        bob_car = car("60", 2, owner_id=BOB)
        commutes = [
            commute(date(2024, 2, 1), [bob_car], [ALICE, BOB], commute_id=1),
            commute(date(2024, 2, 2), [alice_car], [ALICE, BOB], commute_id=2),
        ]

        settlement = compute_monthly_settlement("2024-02", commutes, PERSONS)

        assert settlement.owed("Alice", "Bob", net=False) == Decimal("30")
        assert settlement.owed("Bob", "Alice", net=False) == Decimal("10")
        assert settlement.net == {"Alice": {"Bob": Decimal("20")}}

    def test_net_debts_on_raw_table(self):
        """Test netting directly on a gross table."""
        gross = {"A": {"B": Decimal("30")}, "B": {"A": Decimal("10")}}
        assert net_debts(gross) == {"A": {"B": Decimal("20")}}

    def test_share_is_split_across_drivers(self):
        """Test three drivers share one passenger's price."""
        cars = [
            car("10", 1, owner_id=ALICE),
            car("10", 2, owner_id=BOB),
            car("10", 3, owner_id=4),
        ]
        persons = PERSONS + [Person(id=4, name="Dave"), Person(id=5, name="Eve")]
        trip = commute(date(2024, 1, 5), cars, [ALICE, BOB, 4, 5])
        assert trip.price_per_person == Decimal("7.5")

        settlement = compute_monthly_settlement("2024-01", [trip], persons)

        assert settlement.gross == {
            "Eve": {"Alice": Decimal("2.5"), "Bob": Decimal("2.5"), "Dave": Decimal("2.5")}
        }

    def test_accumulation_is_exact(self):
        """Test that summing thirds does not drift."""
        alice_car = car("10", 1, owner_id=ALICE)
        commutes = [
            commute(date(2024, 4, day), [alice_car], [ALICE, BOB, CAROL], commute_id=day)
            for day in range(1, 31)
        ]

        forward = compute_monthly_settlement("2024-04", commutes, PERSONS)
        backward = compute_monthly_settlement("2024-04", list(reversed(commutes)), PERSONS)

        assert forward.gross == backward.gross
        assert forward.owed("Bob", "Alice") == Decimal("3.3333") * 30

    def test_duplicate_driver_collects_full_share(self):
        """Test an owner of two selected cars is paid twice."""
        cars = [car("10", 1, owner_id=ALICE), car("10", 2, owner_id=ALICE)]
        trip = commute(date(2024, 1, 5), cars, [ALICE, BOB])

        settlement = compute_monthly_settlement("2024-01", [trip], PERSONS)

        assert settlement.gross == {"Bob": {"Alice": Decimal("10")}}

    def test_driver_outside_head_count_pays_nothing(self):
        """Test a driver not in selected persons is only a creditor."""
        trip = commute(date(2024, 1, 5), [car("20", 1, owner_id=ALICE)], [BOB, CAROL])
        assert trip.price_per_person == Decimal("10")

        settlement = compute_monthly_settlement("2024-01", [trip], PERSONS)

        assert settlement.gross == {
            "Bob": {"Alice": Decimal("10")},
            "Carol": {"Alice": Decimal("10")},
        }

    def test_only_matching_month_is_counted(self):
        """Test month filtering."""
        alice_car = car("20", 1, owner_id=ALICE)
        commutes = [
            commute(date(2024, 3, 15), [alice_car], [ALICE, BOB], commute_id=1),
            commute(date(2024, 4, 1), [alice_car], [ALICE, BOB], commute_id=2),
        ]

        march = compute_monthly_settlement("2024-03", commutes, PERSONS)
        may = compute_monthly_settlement("2024-05", commutes, PERSONS)

        assert march.owed("Bob", "Alice") == Decimal("10")
        assert may.gross == {}
        assert may.net == {}
        assert may.is_empty

    def test_unknown_passenger_is_skipped(self):
        """Test deleted passengers are skipped by default."""
        trip = commute(date(2024, 1, 5), [car("30", 1, owner_id=ALICE)], [ALICE, BOB, 99])

        settlement = compute_monthly_settlement("2024-01", [trip], PERSONS)

        assert settlement.gross == {"Bob": {"Alice": Decimal("10")}}

    def test_unknown_person_can_raise(self):
        """Test the strict policy for settlements."""
        trip = commute(date(2024, 1, 5), [car("30", 1, owner_id=ALICE)], [ALICE, BOB, 99])

        with pytest.raises(UnknownPersonReferenceError):
            compute_monthly_settlement(
                "2024-01", [trip], PERSONS, on_missing=MissingReferencePolicy.RAISE
            )

    def test_commute_without_known_drivers_contributes_nothing(self):
        """Test that a commute whose drivers were all deleted is ignored."""
        trip = commute(date(2024, 1, 5), [car("30", 1, owner_id=42)], [ALICE, BOB])

        settlement = compute_monthly_settlement("2024-01", [trip], PERSONS)

        assert settlement.gross == {}

    def test_malformed_month_is_invalid(self):
        """Test that month keys must be YYYY-MM."""
        with pytest.raises(InvalidInputError):
            compute_monthly_settlement("2024-13", [], PERSONS)


class TestMonths:
    """Tests for month enumeration."""

    def test_single_commute(self):
        """Test a lone commute yields its month."""
        trip = commute(date(2024, 3, 15), [car("20")], [ALICE, BOB])
        assert list_months([trip]) == ["2024-03"]

    def test_distinct_and_descending(self):
        """Test months are unique and most recent first."""
        alice_car = car("20")
        commutes = [
            commute(date(2023, 12, 31), [alice_car], [ALICE], commute_id=1),
            commute(date(2024, 2, 1), [alice_car], [ALICE], commute_id=2),
            commute(date(2024, 2, 20), [alice_car], [ALICE], commute_id=3),
            commute(date(2024, 1, 5), [alice_car], [ALICE], commute_id=4),
        ]
        assert list_months(commutes) == ["2024-02", "2024-01", "2023-12"]

    def test_no_commutes(self):
        """Test the empty case."""
        assert list_months([]) == []

    def test_month_key_and_label(self):
        """Test key and German label rendering."""
        assert month_key(date(2024, 3, 15)) == "2024-03"
        assert month_label("2024-03") == "März 2024"
        assert month_label("2024-12") == "Dezember 2024"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
