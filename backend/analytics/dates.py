"""Trade date parsing for spreadsheets with no declared date convention.

Two policies exist and are kept apart on purpose:

- ``parse_trade_date`` (column-mapped import): infers the layout from the
  magnitude of each group. Ambiguous dates with a trailing year are read
  month-first; ambiguous dates with a two-digit trailing group are read
  day-first.
- ``parse_day_first_date`` (fixed-template import): slash dates are always
  DD/MM/YYYY when valid, anything else goes to the generic parser.

Unifying them would change how existing files import.
"""

import re
import warnings
from datetime import date
from typing import List, Optional

import pandas as pd

_GROUP_SEPARATORS = re.compile(r"[-/]")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def _leading_int(part: str) -> Optional[int]:
    m = _LEADING_INT.match(part)
    return int(m.group(1)) if m else None


def _digits(value: int) -> int:
    return len(str(value))


def _build(year: int, month: int, day: int) -> Optional[date]:
    if year < 100:
        year += 2000
    try:
        return date(year, month, day)
    except (ValueError, OverflowError):
        return None


def generic_parse(raw: str) -> Optional[date]:
    """Best-effort parse of free-form text; ``None`` when nothing fits."""
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        try:
            ts = pd.to_datetime(raw, errors="coerce")
        except (ValueError, OverflowError):
            return None
    if pd.isna(ts):
        return None
    return ts.date()


def _resolve_groups(groups: List[int]) -> Optional[date]:
    a, b, c = groups
    if c > 31 or _digits(c) == 4:
        if a > 12:
            return _build(c, b, a)
        # b > 12 forces month-first; fully ambiguous dates are read month-first too
        return _build(c, a, b)
    if a > 31 or _digits(a) == 4:
        return _build(a, b, c)
    return _build(c, b, a)


def parse_trade_date(raw: Optional[str]) -> Optional[date]:
    """Infer year/month/day from a date string with 2-3 numeric groups.

    Empty input means "today". Never raises: returns ``None`` only when both
    the structured heuristic and the generic parser fail.
    """
    if raw is None or not raw.strip():
        return date.today()

    raw = raw.strip()
    parts = _GROUP_SEPARATORS.split(raw)
    if len(parts) == 3:
        groups = [_leading_int(p) for p in parts]
        if None not in groups:
            resolved = _resolve_groups(groups)
            if resolved is not None:
                return resolved
    return generic_parse(raw)


def parse_day_first_date(raw: Optional[str]) -> Optional[date]:
    """DD/MM/YYYY for slash dates, generic parse otherwise. ``None`` if blank.

    A slash date that is not a valid DD/MM/YYYY also goes to the generic parser.
    """
    if raw is None or not raw.strip():
        return None

    raw = raw.strip()
    parts = raw.split("/")
    if len(parts) == 3:
        day, month, year = (_leading_int(p) for p in parts)
        if None not in (day, month, year):
            resolved = _build(year, month, day)
            if resolved is not None:
                return resolved
    return generic_parse(raw)
