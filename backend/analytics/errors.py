"""Error taxonomy for the import pipeline.

FormatError and MissingFieldsError abort an import before any row is touched.
RowValidationError and StoreError only ever fail a single row; the importer
collects them into ImportOutcome.errors instead of letting them propagate.
"""

from typing import Iterable, List


class FormatError(ValueError):
    """The uploaded file could not be decoded into a header and data rows."""


class MissingFieldsError(ValueError):
    def __init__(self, missing: Iterable[str]):
        self.missing: List[str] = list(missing)
        super().__init__(f"Missing required fields: {', '.join(self.missing)}")


class RowValidationError(ValueError):
    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(reason)


class StoreError(Exception):
    """The record store rejected a trade (constraint or validation failure)."""
