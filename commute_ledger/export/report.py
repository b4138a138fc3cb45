"""
Monthly Settlement Report

Renders a MonthlySettlement as the CSV file the group passes around at
the end of the month: a title line, the gross table and the net table,
each with a 'Von,An,Betrag' header.
"""

import csv
import io

from commute_ledger.engine.money import ZERO, format_amount
from commute_ledger.engine.settlement import month_label, parse_month
from commute_ledger.models.settlement import DebtEdge, MonthlySettlement


GROSS_SECTION_TITLE = "Gesamtübersicht"
NET_SECTION_TITLE = "Netto-Abrechnung (nach Verrechnung)"
HEADER_ROW = ["Von", "An", "Betrag"]


def report_filename(month: str, extension: str = "csv") -> str:
    """Abrechnung_<YYYY-MM>.<ext>"""
    parse_month(month)
    return f"Abrechnung_{month}.{extension}"


def _write_section(
    writer: csv.writer,
    title: str,
    edges: list[DebtEdge],
    currency_symbol: str,
) -> None:
    writer.writerow([title])
    writer.writerow(HEADER_ROW)
    for edge in edges:
        if edge.amount == ZERO:
            continue
        writer.writerow([edge.debtor, edge.creditor, format_amount(edge.amount, currency_symbol)])


def render_settlement_csv(
    settlement: MonthlySettlement,
    currency_symbol: str = "€",
) -> str:
    """
    Serialize a settlement to CSV text.

    Amounts are rounded half-even to cents and suffixed with the
    currency symbol. Zero edges are left out.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")

    writer.writerow([f"Abrechnung {month_label(settlement.month)}"])
    writer.writerow([])
    _write_section(writer, GROSS_SECTION_TITLE, settlement.gross_edges, currency_symbol)
    writer.writerow([])
    _write_section(writer, NET_SECTION_TITLE, settlement.net_edges, currency_symbol)

    return buffer.getvalue()
