"""ORM-backed record store used by the importer and the trade endpoints.

The store is the single source of truth; nothing here caches rows. Model
validation and database errors surface as ``StoreError`` so the importer can
record them against the offending row.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction

from analytics.errors import StoreError
from analytics.importer import TradeInput

from .models import TradeRecord

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "trade_date",
    "symbol",
    "side",
    "quantity",
    "entry_price",
    "exit_price",
    "charges",
    "followed_setup",
    "mood",
    "remarks",
)


def _validation_message(error: ValidationError) -> str:
    if hasattr(error, "message_dict"):
        return "; ".join(f"{k}: {' '.join(v)}" for k, v in error.message_dict.items())
    return " ".join(error.messages)


class OrmTradeStore:
    def __init__(self, owner, batch_id: str = ""):
        self.owner = owner
        self.batch_id = batch_id

    def _persist(self, record: TradeRecord) -> TradeRecord:
        record.recompute_profit_loss()
        try:
            record.full_clean()
            with transaction.atomic():
                record.save()
        except ValidationError as e:
            raise StoreError(_validation_message(e)) from e
        except DatabaseError as e:
            logger.warning("Database rejected trade %s: %s", record.symbol, e)
            raise StoreError(str(e)) from e
        return record

    def create(self, trade: TradeInput) -> TradeRecord:
        data = trade.as_dict() if isinstance(trade, TradeInput) else dict(trade)
        fields = {k: data[k] for k in EDITABLE_FIELDS if k in data}
        record = TradeRecord(owner=self.owner, batch_id=self.batch_id, **fields)
        return self._persist(record)

    def get(self, trade_id) -> TradeRecord:
        return TradeRecord.objects.get(pk=trade_id, owner=self.owner)

    def list(self, start: Optional[date] = None, end: Optional[date] = None) -> List[TradeRecord]:
        qs = TradeRecord.objects.filter(owner=self.owner)
        if start is not None:
            qs = qs.filter(trade_date__gte=start)
        if end is not None:
            qs = qs.filter(trade_date__lte=end)
        return list(qs.order_by("trade_date", "id"))

    def update(self, trade_id, patch: Dict[str, Any]) -> TradeRecord:
        record = self.get(trade_id)
        for name, value in patch.items():
            if name in EDITABLE_FIELDS:
                setattr(record, name, value)
        return self._persist(record)

    def delete(self, trade_id) -> None:
        self.get(trade_id).delete()
