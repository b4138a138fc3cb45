"""Report export package."""

from commute_ledger.export.report import render_settlement_csv, report_filename

__all__ = ["render_settlement_csv", "report_filename"]
