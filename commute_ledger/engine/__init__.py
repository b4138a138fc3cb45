"""Settlement engine package."""

from commute_ledger.engine.money import (
    AMOUNT_QUANTUM,
    format_amount,
    round_cents,
    to_amount,
)
from commute_ledger.engine.settlement import (
    MissingReferencePolicy,
    compute_commute_price,
    compute_monthly_settlement,
    derive_drivers,
    list_months,
    month_key,
    month_label,
    net_debts,
    parse_month,
    resolve_cars,
)

__all__ = [
    "AMOUNT_QUANTUM",
    "MissingReferencePolicy",
    "compute_commute_price",
    "compute_monthly_settlement",
    "derive_drivers",
    "format_amount",
    "list_months",
    "month_key",
    "month_label",
    "net_debts",
    "parse_month",
    "resolve_cars",
    "round_cents",
    "to_amount",
]
