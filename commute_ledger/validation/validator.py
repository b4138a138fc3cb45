"""
Draft Validation

Checks form drafts against a snapshot before anything is written.

ERRORS block the write:
- Missing selection (no car, no person, no owner, no name)
- References to records that no longer exist

WARNINGS are shown but do not block:
- A driver who is not part of the head-count (pays nothing and is
  excluded from the price denominator)
- Dates far in the future
- Unusually expensive cars

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for human review.
"""

from datetime import date, timedelta

from commute_ledger.config import get_settings
from commute_ledger.errors import (
    InvalidInputError,
    UnknownCarReferenceError,
    UnknownPersonReferenceError,
)
from commute_ledger.models.ledger import (
    CarDraft,
    CommuteDraft,
    LedgerSnapshot,
    ValidationIssue,
    ValidationResult,
)


class CommuteValidator:
    """Validates commute and car drafts against a ledger snapshot."""

    def __init__(self):
        self._settings = get_settings().app

    def validate_commute(
        self,
        draft: CommuteDraft,
        snapshot: LedgerSnapshot,
    ) -> ValidationResult:
        """Validate a commute draft."""
        issues = []

        if not draft.selected_cars or not draft.selected_persons:
            issues.append(ValidationIssue(
                field="selection",
                issue_type="missing",
                message="Bitte wähle mindestens ein Auto und eine Person aus",
                severity="error",
            ))

        owners = []
        for car_id in draft.selected_cars:
            car = snapshot.find_car(car_id)
            if car is None:
                issues.append(ValidationIssue(
                    field="selected_cars",
                    issue_type="unknown_reference",
                    message=f"Auto {car_id} existiert nicht mehr",
                    severity="error",
                    entity_id=car_id,
                ))
            else:
                owners.append(car.owner_id)

        for person_id in draft.selected_persons:
            if snapshot.find_person(person_id) is None:
                issues.append(ValidationIssue(
                    field="selected_persons",
                    issue_type="unknown_reference",
                    message=f"Person {person_id} existiert nicht mehr",
                    severity="error",
                    entity_id=person_id,
                ))

        if draft.selected_persons:
            for owner_id in dict.fromkeys(owners):
                if owner_id not in draft.selected_persons:
                    issues.append(ValidationIssue(
                        field="selected_persons",
                        issue_type="driver_not_participating",
                        message=(
                            f"Fahrer {snapshot.person_name(owner_id)} ist nicht als "
                            "Mitfahrer ausgewählt und zahlt nichts"
                        ),
                        severity="warning",
                        entity_id=owner_id,
                    ))

        max_future = date.today() + timedelta(days=self._settings.future_date_tolerance_days)
        if draft.date > max_future:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Datum ({draft.date.isoformat()}) liegt weit in der Zukunft",
                severity="warning",
            ))

        return ValidationResult(issues=issues)

    def validate_car(
        self,
        draft: CarDraft,
        snapshot: LedgerSnapshot,
    ) -> ValidationResult:
        """Validate a car draft."""
        issues = []

        if not draft.name:
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Bitte gib einen Namen für das Auto ein",
                severity="error",
            ))

        if draft.roundtrip_cost is None:
            issues.append(ValidationIssue(
                field="roundtrip_cost",
                issue_type="missing",
                message="Bitte gib die Kosten für Hin- und Rückfahrt ein",
                severity="error",
            ))
        elif draft.roundtrip_cost > self._settings.max_roundtrip_cost:
            issues.append(ValidationIssue(
                field="roundtrip_cost",
                issue_type="suspicious_value",
                message=f"Kosten ({draft.roundtrip_cost}) erscheinen ungewöhnlich hoch",
                severity="warning",
            ))

        if draft.owner_id is None and not draft.new_owner_name:
            issues.append(ValidationIssue(
                field="owner_id",
                issue_type="missing",
                message="Bitte wähle einen Besitzer aus",
                severity="error",
            ))
        elif draft.owner_id is not None and snapshot.find_person(draft.owner_id) is None:
            issues.append(ValidationIssue(
                field="owner_id",
                issue_type="unknown_reference",
                message=f"Person {draft.owner_id} existiert nicht mehr",
                severity="error",
                entity_id=draft.owner_id,
            ))

        return ValidationResult(issues=issues)


def raise_for_errors(result: ValidationResult) -> None:
    """
    Turn the first error-level issue into an exception.

    Raises:
        UnknownCarReferenceError: For an unknown selected car
        UnknownPersonReferenceError: For an unknown person or owner
        InvalidInputError: For anything else
    """
    if not result.has_errors:
        return

    issue = result.errors[0]
    if issue.issue_type == "unknown_reference":
        if issue.field == "selected_cars":
            raise UnknownCarReferenceError(issue.entity_id, issue.message)
        raise UnknownPersonReferenceError(issue.entity_id, issue.message)
    raise InvalidInputError(issue.message)
