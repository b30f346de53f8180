"""
Spreadsheet readers: CSV and Excel bytes to a list of loose row dicts.

Rows come back as ``{column name: cell value}`` with empty cells as ``""``.
Anything that stops the file from being read at all raises ImportParseError.
"""

import io
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from cafe_directory.exceptions import ImportParseError
from cafe_directory.logging_config import get_logger

logger = get_logger(__name__)

CSV_EXTENSIONS = ("csv",)
EXCEL_EXTENSIONS = ("xlsx", "xls")
SUPPORTED_EXTENSIONS = CSV_EXTENSIONS + EXCEL_EXTENSIONS


@dataclass
class SheetRows:
    """Rows read from one sheet (CSV files have a single pseudo-sheet)."""

    name: str
    rows: list[dict[str, Any]] = field(default_factory=list)
    columns: list[str] = field(default_factory=list)


def file_extension(filename: str) -> str:
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


def _frame_to_rows(df: pd.DataFrame) -> list[dict[str, Any]]:
    df = df.dropna(how="all")
    df = df.astype(object).where(pd.notna(df), "")
    rows = []
    for record in df.to_dict(orient="records"):
        rows.append({
            str(key).strip(): value.strip() if isinstance(value, str) else value
            for key, value in record.items()
        })
    return rows


def read_csv_rows(content: bytes) -> SheetRows:
    """
    Parse CSV bytes with the first line as header.

    Every column is read as text so postcodes and phone numbers keep their
    exact form; the normalizer does the numeric coercion.
    """
    try:
        df = pd.read_csv(
            io.BytesIO(content),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            skipinitialspace=True,
            encoding="utf-8-sig",
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError, ValueError) as e:
        raise ImportParseError(f"CSV parsing error: {e}") from e

    rows = [row for row in _frame_to_rows(df) if any(v != "" for v in row.values())]
    logger.debug("CSV parsed: %d rows, columns=%s", len(rows), list(df.columns))
    return SheetRows(name="csv", rows=rows, columns=[str(c).strip() for c in df.columns])


def _sheet_rows(name: str, raw: pd.DataFrame, max_header_skip: int) -> SheetRows:
    """
    Build rows from a header-less frame.

    Row 0 is the header. When that yields no data rows, up to
    ``max_header_skip`` leading rows are skipped looking for a header with
    data beneath it (exports often start with a title block).
    """
    for skip in range(0, max_header_skip + 1):
        if skip >= len(raw):
            break
        header = raw.iloc[skip]
        if header.isna().all():
            continue
        body = raw.iloc[skip + 1:].copy()
        columns = [
            str(col).strip() if pd.notna(col) and str(col).strip() else f"column_{i}"
            for i, col in enumerate(header)
        ]
        body.columns = columns
        rows = _frame_to_rows(body)
        if rows:
            if skip:
                logger.info("Sheet %s: found data by skipping %d rows", name, skip)
            return SheetRows(name=name, rows=rows, columns=columns)
    return SheetRows(name=name)


def read_excel_rows(content: bytes, all_sheets: bool = False, max_header_skip: int = 0) -> list[SheetRows]:
    """
    Parse an .xlsx / .xls workbook.

    Args:
        content: Raw file bytes.
        all_sheets: Read every sheet instead of only the first.
        max_header_skip: Leading rows that may be skipped when hunting for the header.

    Returns:
        One SheetRows per sheet read (possibly with no rows).
    """
    try:
        frames = pd.read_excel(
            io.BytesIO(content),
            sheet_name=None if all_sheets else 0,
            header=None,
            dtype=object,
        )
    except Exception as e:
        # openpyxl / xlrd raise a wide range of types for corrupt workbooks
        raise ImportParseError(f"Excel parsing error: {e}") from e

    if isinstance(frames, pd.DataFrame):
        frames = {"Sheet1": frames}

    sheets = []
    for name, raw in frames.items():
        sheet = _sheet_rows(str(name), raw, max_header_skip)
        logger.debug("Sheet %s: %d rows, %d columns", name, len(sheet.rows), len(sheet.columns))
        sheets.append(sheet)
    return sheets
