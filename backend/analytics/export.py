"""Trade export to CSV.

The column layout is the one ``analytics.mapping.template_mapping`` reads, so
an exported file can be re-imported through the template path unchanged.
An optional summary block is appended after a blank line for reports.
"""

import csv
import io
from typing import Any, Iterable, Optional

from .performance import PeriodStats, as_date, trade_value

EXPORT_COLUMNS = [
    "Date",
    "Script",
    "Type",
    "Quantity",
    "Buy Price",
    "Sell Price",
    "P&L",
    "Charges",
    "Net P&L",
    "Follow Setup",
    "Remarks",
    "Mood",
]

SUMMARY_MARKER = "=== REPORT SUMMARY ==="


def _money(value: Any) -> str:
    return f"{float(value or 0.0):.2f}"


def trade_row(trade: Any) -> list:
    trade_date = as_date(trade_value(trade, "trade_date"))
    return [
        trade_date.strftime("%d/%m/%Y") if trade_date else "",
        trade_value(trade, "symbol") or "",
        trade_value(trade, "side") or "",
        int(trade_value(trade, "quantity") or 0),
        _money(trade_value(trade, "entry_price")),
        _money(trade_value(trade, "exit_price")),
        _money(trade_value(trade, "gross_profit_loss")),
        _money(trade_value(trade, "charges")),
        _money(trade_value(trade, "net_profit_loss")),
        "Yes" if trade_value(trade, "followed_setup") else "No",
        trade_value(trade, "remarks") or "",
        trade_value(trade, "mood") or "",
    ]


def summary_rows(stats: PeriodStats, period_label: str = "") -> list:
    return [
        [SUMMARY_MARKER],
        ["Period", period_label or "All time"],
        ["Total Trades", str(stats.total_trades)],
        ["Winning Trades", str(stats.winning_trades)],
        ["Losing Trades", str(stats.losing_trades)],
        ["Win Rate", f"{stats.win_rate:.1f}%"],
        ["Total P&L", _money(stats.total_profit_loss)],
        ["Follow Setup Rate", f"{stats.setup_adherence_rate:.1f}%"],
    ]


def export_trades_csv(
    trades: Iterable[Any],
    *,
    summary: Optional[PeriodStats] = None,
    period_label: str = "",
) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(EXPORT_COLUMNS)
    for trade in trades:
        writer.writerow(trade_row(trade))
    if summary is not None:
        writer.writerow([])
        writer.writerows(summary_rows(summary, period_label))
    return buf.getvalue()
