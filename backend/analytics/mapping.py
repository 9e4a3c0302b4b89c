"""Column mapping: guess which semantic trade field each input column holds.

The proposal is a best guess from header keywords. Callers are expected to
review it (and override columns with ``ColumnMapping.set_target``) before the
mapping is handed to the importer.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .errors import MissingFieldsError


class SemanticField(str, Enum):
    DATE = "DATE"
    SYMBOL = "SYMBOL"
    SIDE = "SIDE"
    QUANTITY = "QUANTITY"
    ENTRY_PRICE = "ENTRY_PRICE"
    EXIT_PRICE = "EXIT_PRICE"
    PROFIT_LOSS = "PROFIT_LOSS"
    FOLLOW_SETUP = "FOLLOW_SETUP"
    REMARKS = "REMARKS"
    # only reachable by manual override, never proposed
    CHARGES = "CHARGES"
    MOOD = "MOOD"
    IGNORE = "IGNORE"


REQUIRED_FIELDS = (
    SemanticField.DATE,
    SemanticField.SYMBOL,
    SemanticField.SIDE,
    SemanticField.QUANTITY,
    SemanticField.ENTRY_PRICE,
    SemanticField.EXIT_PRICE,
    SemanticField.PROFIT_LOSS,
)

# Fixed-header "quick import" layout; mirrors analytics.export column order.
TEMPLATE_HEADERS: Dict[str, SemanticField] = {
    "date": SemanticField.DATE,
    "script": SemanticField.SYMBOL,
    "type": SemanticField.SIDE,
    "quantity": SemanticField.QUANTITY,
    "buy price": SemanticField.ENTRY_PRICE,
    "sell price": SemanticField.EXIT_PRICE,
    "charges": SemanticField.CHARGES,
    "remarks": SemanticField.REMARKS,
    "follow setup": SemanticField.FOLLOW_SETUP,
    "mood": SemanticField.MOOD,
}

TEMPLATE_REQUIRED_FIELDS = tuple(f for f in REQUIRED_FIELDS if f is not SemanticField.PROFIT_LOSS)


def _contains(*words: str) -> Callable[[str], bool]:
    return lambda name: any(w in name for w in words)


def _equals(*words: str) -> Callable[[str], bool]:
    return lambda name: name in words


def _either(*predicates: Callable[[str], bool]) -> Callable[[str], bool]:
    return lambda name: any(p(name) for p in predicates)


# Order matters: the first matching rule wins.
MAPPING_RULES: List[Tuple[Callable[[str], bool], SemanticField]] = [
    (_either(_contains("date"), _equals("day")), SemanticField.DATE),
    (_contains("script", "symbol", "stock"), SemanticField.SYMBOL),
    (_either(lambda n: "buy" in n and "sell" in n, _equals("type", "side")), SemanticField.SIDE),
    (_either(_contains("quantity"), _equals("qty", "lot")), SemanticField.QUANTITY),
    (_contains("entry", "buy price"), SemanticField.ENTRY_PRICE),
    (_contains("exit", "sell price"), SemanticField.EXIT_PRICE),
    # "Points" columns duplicate what we derive from prices.
    (lambda n: "point" in n and "profit" not in n, SemanticField.IGNORE),
    (_either(_contains("profit", "loss"), _equals("p&l", "p/l", "pl")), SemanticField.PROFIT_LOSS),
    (_contains("setup", "follow"), SemanticField.FOLLOW_SETUP),
    (_contains("remark", "comment", "note"), SemanticField.REMARKS),
    (_contains("capital", "initial", "current"), SemanticField.IGNORE),
]


def guess_field(header_name: str) -> SemanticField:
    name = header_name.lower().strip()
    for predicate, target in MAPPING_RULES:
        if predicate(name):
            return target
    return SemanticField.IGNORE


@dataclass
class MappedColumn:
    index: int
    header: str
    sample: str
    target: SemanticField


class ColumnMapping:
    """Caller-owned mapping from source column positions to semantic fields."""

    def __init__(self, columns: Iterable[MappedColumn]):
        self.columns: List[MappedColumn] = list(columns)

    def __len__(self) -> int:
        return len(self.columns)

    def __iter__(self):
        return iter(self.columns)

    def set_target(self, index: int, target) -> None:
        if not 0 <= index < len(self.columns):
            raise IndexError(f"No column at index {index}")
        self.columns[index].target = SemanticField(target)

    def positions(self) -> Dict[SemanticField, int]:
        """Field -> source column index. The right-most column wins on duplicates."""
        out = {}
        for col in self.columns:
            if col.target is not SemanticField.IGNORE:
                out[col.target] = col.index
        return out

    def missing_fields(self, required: Sequence[SemanticField] = REQUIRED_FIELDS) -> List[SemanticField]:
        mapped = self.positions()
        return [f for f in required if f not in mapped]

    def require(self, required: Sequence[SemanticField] = REQUIRED_FIELDS) -> None:
        missing = self.missing_fields(required)
        if missing:
            raise MissingFieldsError(f.value for f in missing)

    def as_list(self) -> List[dict]:
        return [
            {"index": c.index, "header": c.header, "sample": c.sample, "target": c.target.value}
            for c in self.columns
        ]


def _sample(row: Optional[Sequence[str]], index: int) -> str:
    if not row or index >= len(row):
        return ""
    return row[index] or ""


def propose_mapping(header: Sequence[str], first_data_row: Optional[Sequence[str]] = None) -> ColumnMapping:
    return ColumnMapping(
        MappedColumn(index=i, header=name, sample=_sample(first_data_row, i), target=guess_field(name))
        for i, name in enumerate(header)
    )


def template_mapping(header: Sequence[str], first_data_row: Optional[Sequence[str]] = None) -> ColumnMapping:
    """Exact-header mapping for files in the export layout (case-insensitive)."""
    return ColumnMapping(
        MappedColumn(
            index=i,
            header=name,
            sample=_sample(first_data_row, i),
            target=TEMPLATE_HEADERS.get(name.lower().strip(), SemanticField.IGNORE),
        )
        for i, name in enumerate(header)
    )


def apply_overrides(mapping: ColumnMapping, targets: Sequence[Optional[str]]) -> ColumnMapping:
    """Apply a list of target names by column index; ``None`` keeps the proposal."""
    if len(targets) > len(mapping):
        raise ValueError(f"Mapping has {len(targets)} entries but the file has {len(mapping)} columns")
    for index, target in enumerate(targets):
        if target is None:
            continue
        try:
            mapping.set_target(index, str(target).upper())
        except ValueError as e:
            raise ValueError(f"Unknown field {target!r} for column {index}") from e
    return mapping
