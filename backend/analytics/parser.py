import io
import logging
from dataclasses import dataclass, field
from typing import List

import pandas as pd

from .errors import FormatError

logger = logging.getLogger(__name__)

CSV_EXTENSIONS = (".csv",)
SPREADSHEET_EXTENSIONS = (".xlsx", ".xls")
SUPPORTED_EXTENSIONS = CSV_EXTENSIONS + SPREADSHEET_EXTENSIONS


@dataclass
class DecodedSheet:
    header: List[str]
    rows: List[List[str]] = field(default_factory=list)


def is_filler_row(row: List[str]) -> bool:
    """True when every cell is blank or the literal "0".

    Exported journals pad the sheet with such rows; they are never real trades.
    """
    return all(cell.strip() in ("", "0") for cell in row)


def split_csv_line(line: str) -> List[str]:
    """Quote-aware comma split. A double quote toggles quoting; no escapes."""
    values = []
    current = []
    in_quotes = False
    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            values.append("".join(current).strip())
            current = []
        else:
            current.append(char)
    values.append("".join(current).strip())
    return values


def _decode_delimited(content: bytes) -> List[List[str]]:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise FormatError(f"CSV file is not valid UTF-8 text: {e}") from e

    lines = [line for line in text.split("\n") if line.strip()]
    return [split_csv_line(line) for line in lines]


def _decode_spreadsheet(content: bytes) -> List[List[str]]:
    try:
        df = pd.read_excel(
            io.BytesIO(content),
            sheet_name=0,
            header=None,
            dtype=str,
            keep_default_na=False,
        )
    except Exception as e:
        raise FormatError(f"Could not read spreadsheet: {e}") from e

    df = df.fillna("")
    return [[str(cell).strip() for cell in row] for row in df.itertuples(index=False, name=None)]


def decode_trade_file(uploaded_file) -> DecodedSheet:
    """Decode an uploaded CSV/Excel file into a header and string rows.

    Supported:
    - .csv (first line is the header)
    - .xlsx, .xls (first sheet only)
    """
    name = getattr(uploaded_file, "name", "").lower()
    if not name.endswith(SUPPORTED_EXTENSIONS):
        raise FormatError("Unsupported file type. Please upload CSV or Excel.")

    content = uploaded_file.read()
    if name.endswith(CSV_EXTENSIONS):
        grid = _decode_delimited(content)
    else:
        grid = _decode_spreadsheet(content)

    if len(grid) < 2:
        raise FormatError("File must contain a header row and at least one data row.")

    header = grid[0]
    rows = [row for row in grid[1:] if not is_filler_row(row)]
    logger.info("Decoded %s: %d columns, %d data rows (%d filler rows dropped)",
                name, len(header), len(rows), len(grid) - 1 - len(rows))
    return DecodedSheet(header=header, rows=rows)
