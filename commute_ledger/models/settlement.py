"""
Settlement Models

A debt table maps debtor name -> creditor name -> amount. Tables are keyed
by display name rather than id, so two persons sharing a name share a row.
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


DebtTable = dict[str, dict[str, Decimal]]


class DebtEdge(BaseModel):
    """One 'debtor owes creditor amount' line."""
    model_config = ConfigDict(frozen=True)

    debtor: str
    creditor: str
    amount: Decimal


class MonthlySettlement(BaseModel):
    """
    Gross and net debts of one month.

    Recomputed on demand, never persisted.
    """
    model_config = ConfigDict(frozen=True)

    month: str = Field(
        ...,
        pattern=r"^\d{4}-\d{2}$",
        description="YYYY-MM key"
    )
    gross: DebtTable = Field(default_factory=dict)
    net: DebtTable = Field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.gross

    @property
    def gross_edges(self) -> list[DebtEdge]:
        return _edges(self.gross)

    @property
    def net_edges(self) -> list[DebtEdge]:
        return _edges(self.net)

    @property
    def settled_pairs(self) -> list[tuple[str, str]]:
        """
        Pairs whose reciprocal gross debts cancel exactly.

        They have no entry in the net table.
        """
        pairs = []
        for debtor, creditors in self.gross.items():
            for creditor, amount in creditors.items():
                reverse = self.gross.get(creditor, {}).get(debtor)
                if reverse is not None and reverse == amount and debtor < creditor:
                    pairs.append((debtor, creditor))
        return pairs

    def owed(self, debtor: str, creditor: str, net: bool = True) -> Decimal:
        """Amount debtor owes creditor, zero when there is no entry."""
        table = self.net if net else self.gross
        return table.get(debtor, {}).get(creditor, Decimal("0"))


def _edges(table: DebtTable) -> list[DebtEdge]:
    return [
        DebtEdge(debtor=debtor, creditor=creditor, amount=amount)
        for debtor, creditors in table.items()
        for creditor, amount in creditors.items()
    ]
