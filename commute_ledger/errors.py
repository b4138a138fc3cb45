"""
Error taxonomy for Commute Ledger.

All errors raised by the engine, the validation layer and the application
flows derive from CommuteLedgerError so the UI can catch one type and show
the message to the user.
"""

from typing import Optional


class CommuteLedgerError(Exception):
    """Base exception for all Commute Ledger errors."""
    pass


class InvalidInputError(CommuteLedgerError):
    """Input is incomplete or out of range (e.g. zero participants)."""
    pass


class UnknownReferenceError(CommuteLedgerError):
    """An id references an entity that does not exist."""

    entity_type: str = "entity"

    def __init__(self, entity_id: int, message: Optional[str] = None):
        self.entity_id = entity_id
        super().__init__(message or f"Unknown {self.entity_type} reference: {entity_id}")


class UnknownCarReferenceError(UnknownReferenceError):
    """A car id could not be resolved."""

    entity_type = "car"


class UnknownPersonReferenceError(UnknownReferenceError):
    """A person id could not be resolved."""

    entity_type = "person"


class UnknownCommuteReferenceError(UnknownReferenceError):
    """A commute id could not be resolved."""

    entity_type = "commute"


class ReferentialIntegrityError(CommuteLedgerError):
    """A delete would leave a dangling reference behind."""
    pass


class PersistenceError(CommuteLedgerError):
    """The datastore is unreachable or rejected a read/write."""
    pass
