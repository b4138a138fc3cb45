"""
Data Models Package

This package contains all Pydantic models used in Commute Ledger.
All data flowing through the system must conform to these schemas.
"""

from commute_ledger.models.ledger import (
    UNKNOWN_NAME,
    Car,
    CarDraft,
    Commute,
    CommuteDraft,
    LedgerSnapshot,
    Person,
    TripType,
    ValidationIssue,
    ValidationResult,
)
from commute_ledger.models.settlement import (
    DebtEdge,
    DebtTable,
    MonthlySettlement,
)
from commute_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "UNKNOWN_NAME",
    "Car",
    "CarDraft",
    "Commute",
    "CommuteDraft",
    "LedgerSnapshot",
    "Person",
    "TripType",
    "ValidationIssue",
    "ValidationResult",
    # Settlement models
    "DebtEdge",
    "DebtTable",
    "MonthlySettlement",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
