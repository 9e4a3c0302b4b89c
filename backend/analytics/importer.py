"""Row validation and best-effort import of decoded spreadsheet rows.

Every row is validated and persisted on its own. A bad row never aborts the
run or rolls back its siblings: it is recorded in ``ImportOutcome.errors``
with its 1-based position so the user can fix and re-import just that subset.

Persistence fans out as asyncio tasks bounded by a semaphore. The store is any
object with a ``create(trade_input)`` method (sync or async) that returns the
stored record or raises ``StoreError``.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import math
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Sequence

from asgiref.sync import async_to_sync, sync_to_async

from .dates import parse_day_first_date, parse_trade_date
from .errors import RowValidationError, StoreError
from .export import SUMMARY_MARKER
from .mapping import (
    REQUIRED_FIELDS,
    TEMPLATE_REQUIRED_FIELDS,
    ColumnMapping,
    SemanticField,
    template_mapping,
)
from .parser import is_filler_row
from .trades import (
    DEFAULT_MOOD,
    MOODS,
    REMARKS_MAX_LENGTH,
    SIDES,
    SYMBOL_MAX_LENGTH,
    compute_profit_loss,
    is_truthy,
)

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 8


@dataclass
class TradeInput:
    trade_date: date
    symbol: str
    side: str
    quantity: int
    entry_price: float
    exit_price: float
    gross_profit_loss: float
    charges: float
    net_profit_loss: float
    followed_setup: bool = False
    mood: str = DEFAULT_MOOD
    remarks: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class RowError:
    row_number: int
    reason: str

    def __str__(self) -> str:
        return f"Row {self.row_number}: {self.reason}"


@dataclass
class ImportOutcome:
    """Result of one import run.

    ``RowError.row_number`` counts the decoded data rows, 1-based. The decoder
    has already dropped blank and all-zero rows, so after such a row the number
    can be lower than the line's position in the source file.
    """

    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    errors: List[RowError] = field(default_factory=list)
    created_ids: List[Any] = field(default_factory=list)
    batch_id: str = ""

    def as_dict(self) -> Dict[str, Any]:
        return {
            "batch_id": self.batch_id,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "errors": [{"row": e.row_number, "reason": e.reason} for e in self.errors],
        }


@dataclass
class _RowResult:
    row_number: int
    record_id: Any = None
    error: Optional[str] = None
    skipped: bool = False


def _cell(row: Sequence[str], positions: Dict[SemanticField, int], target: SemanticField) -> Optional[str]:
    """Cell for ``target``; ``None`` when the field is unmapped."""
    index = positions.get(target)
    if index is None:
        return None
    if index >= len(row):
        return ""
    return (row[index] or "").strip()


def _parse_positive(raw: Optional[str]) -> Optional[float]:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return value


def _parse_quantity(raw: Optional[str]) -> Optional[int]:
    value = _parse_positive(raw)
    if value is None or not value.is_integer():
        return None
    return int(value)


def _parse_charges(raw: Optional[str]) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(value) or value < 0:
        return 0.0
    return value


def build_trade(
    row: Sequence[str],
    positions: Dict[SemanticField, int],
    parse_date: Callable[[str], Optional[date]] = parse_trade_date,
) -> TradeInput:
    """Validate one row and derive its P/L. Raises RowValidationError."""
    raw_date = _cell(row, positions, SemanticField.DATE)
    if not raw_date:
        raise RowValidationError("date", "missing date")
    trade_date = parse_date(raw_date)
    if trade_date is None:
        raise RowValidationError("date", f'invalid date "{raw_date}"')

    symbol = (_cell(row, positions, SemanticField.SYMBOL) or "").upper()
    if not symbol:
        raise RowValidationError("symbol", "missing symbol")
    if len(symbol) > SYMBOL_MAX_LENGTH:
        raise RowValidationError("symbol", f"symbol too long (max {SYMBOL_MAX_LENGTH} characters)")

    raw_side = _cell(row, positions, SemanticField.SIDE) or ""
    side = raw_side.upper()
    if side not in SIDES:
        raise RowValidationError("side", f'invalid side "{raw_side}" (must be BUY or SELL)')

    raw_quantity = _cell(row, positions, SemanticField.QUANTITY)
    quantity = _parse_quantity(raw_quantity)
    if quantity is None:
        raise RowValidationError("quantity", f'invalid quantity "{raw_quantity}"')

    raw_entry = _cell(row, positions, SemanticField.ENTRY_PRICE)
    entry_price = _parse_positive(raw_entry)
    if entry_price is None:
        raise RowValidationError("entry_price", f'invalid entry price "{raw_entry}"')

    raw_exit = _cell(row, positions, SemanticField.EXIT_PRICE)
    exit_price = _parse_positive(raw_exit)
    if exit_price is None:
        raise RowValidationError("exit_price", f'invalid exit price "{raw_exit}"')

    charges = _parse_charges(_cell(row, positions, SemanticField.CHARGES))
    gross, net = compute_profit_loss(entry_price, exit_price, quantity, charges)

    raw_mood = (_cell(row, positions, SemanticField.MOOD) or "").upper()
    mood = raw_mood or DEFAULT_MOOD
    if mood not in MOODS:
        raise RowValidationError("mood", f'invalid mood "{raw_mood}"')

    remarks = _cell(row, positions, SemanticField.REMARKS) or None
    if remarks and len(remarks) > REMARKS_MAX_LENGTH:
        raise RowValidationError("remarks", f"remarks too long (max {REMARKS_MAX_LENGTH} characters)")

    return TradeInput(
        trade_date=trade_date,
        symbol=symbol,
        side=side,
        quantity=quantity,
        entry_price=entry_price,
        exit_price=exit_price,
        gross_profit_loss=gross,
        charges=charges,
        net_profit_loss=net,
        followed_setup=is_truthy(_cell(row, positions, SemanticField.FOLLOW_SETUP)),
        mood=mood,
        remarks=remarks,
    )


async def import_rows_async(
    rows: Sequence[Sequence[str]],
    mapping: ColumnMapping,
    store,
    *,
    parse_date: Callable[[str], Optional[date]] = parse_trade_date,
    required: Sequence[SemanticField] = REQUIRED_FIELDS,
    concurrency: int = DEFAULT_CONCURRENCY,
    batch_id: str = "",
) -> ImportOutcome:
    mapping.require(required)
    positions = mapping.positions()
    semaphore = asyncio.Semaphore(max(1, concurrency))
    if inspect.iscoroutinefunction(store.create):
        create = store.create
    else:
        create = sync_to_async(store.create)

    async def process(row_number: int, row: Sequence[str]) -> _RowResult:
        if is_filler_row(row):
            return _RowResult(row_number, skipped=True)
        try:
            trade = build_trade(row, positions, parse_date)
        except RowValidationError as e:
            return _RowResult(row_number, error=e.reason)

        async with semaphore:
            try:
                record = await create(trade)
            except StoreError as e:
                return _RowResult(row_number, error=str(e) or "rejected by store")
        return _RowResult(row_number, record_id=getattr(record, "id", None))

    results = await asyncio.gather(
        *(process(n, row) for n, row in enumerate(rows, start=1)),
        return_exceptions=True,
    )

    outcome = ImportOutcome(batch_id=batch_id)
    for row_number, result in enumerate(results, start=1):
        if isinstance(result, BaseException):
            logger.error("Unexpected error importing row %d", row_number, exc_info=result)
            outcome.failed += 1
            outcome.errors.append(RowError(row_number, f"unexpected error: {result}"))
        elif result.skipped:
            outcome.skipped += 1
        elif result.error is not None:
            logger.debug("Row %d rejected: %s", row_number, result.error)
            outcome.failed += 1
            outcome.errors.append(RowError(row_number, result.error))
        else:
            outcome.succeeded += 1
            outcome.created_ids.append(result.record_id)

    logger.info(
        "Import %s finished: %d succeeded, %d failed, %d skipped",
        batch_id or "-", outcome.succeeded, outcome.failed, outcome.skipped,
    )
    return outcome


def import_rows(rows, mapping: ColumnMapping, store, **kwargs) -> ImportOutcome:
    """Synchronous entry point for request handlers and tests."""
    return async_to_sync(import_rows_async)(rows, mapping, store, **kwargs)


def import_template_rows(header: Sequence[str], rows, store, **kwargs) -> ImportOutcome:
    """Import a file laid out like ``analytics.export`` (DD/MM/YYYY dates).

    Rows from an exported summary block onwards are not trades and are dropped.
    """
    rows = list(rows)
    for i, row in enumerate(rows):
        if row and row[0].strip() == SUMMARY_MARKER:
            rows = rows[:i]
            break
    mapping = template_mapping(header, rows[0] if rows else None)
    kwargs.setdefault("parse_date", parse_day_first_date)
    kwargs.setdefault("required", TEMPLATE_REQUIRED_FIELDS)
    return import_rows(rows, mapping, store, **kwargs)
