"""Report periods. Bounds are calendar dates and both ends are inclusive."""

from datetime import date, timedelta
from typing import Any, Iterable, List, Optional, Tuple

from .performance import as_date, trade_value

PERIODS = ("week", "month", "year", "custom", "all")


def period_range(
    period: str,
    *,
    today: Optional[date] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> Tuple[Optional[date], Optional[date]]:
    """(start, end) for a named period; ``None`` means unbounded."""
    today = today or date.today()
    if period == "all":
        return None, None
    if period == "week":
        # weeks start on Monday
        return today - timedelta(days=today.weekday()), today
    if period == "month":
        return today.replace(day=1), today
    if period == "year":
        return today.replace(month=1, day=1), today
    if period == "custom":
        start = start or today.replace(day=1)
        end = end or today
        if start > end:
            raise ValueError(f"Custom period starts after it ends ({start} > {end})")
        return start, end
    raise ValueError(f"Unknown period {period!r}. Expected one of: {', '.join(PERIODS)}")


def filter_by_period(trades: Iterable[Any], start: Optional[date], end: Optional[date]) -> List[Any]:
    out = []
    for trade in trades:
        d = as_date(trade_value(trade, "trade_date"))
        if d is None:
            continue
        if start is not None and d < start:
            continue
        if end is not None and d > end:
            continue
        out.append(trade)
    return out
