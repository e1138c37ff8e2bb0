"""
Excel Parser - turns an uploaded workbook into JSON rows

Only the first sheet is read. The first row of its used range is the
header row; every following row that isn't completely empty becomes a
dict keyed by header.
"""
import io
import math
import os
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from app.core.config import settings
from app.core.exceptions import (
    EmptyWorkbookError,
    FileTooLargeError,
    InvalidFileTypeError,
    WorkbookParseError,
)
from app.core.logging_config import logger

# Engine per extension, anything else is left to pandas to sniff
EXCEL_ENGINES = {
    ".xlsx": "openpyxl",
    ".xls": "xlrd",
}

BLANK_HEADER = "__EMPTY"


@dataclass
class ParsedWorkbook:
    sheet_name: str
    columns: List[str] = field(default_factory=list)
    rows: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.rows)


def validate_upload(filename: Optional[str], content_type: Optional[str], size: int) -> None:
    """
    Reject uploads that aren't Excel workbooks or are too big.

    Raises:
        InvalidFileTypeError: MIME type or extension not allowed
        FileTooLargeError: size above MAX_UPLOAD_SIZE
    """
    allowed_types = settings.ALLOWED_EXCEL_TYPES
    if content_type not in allowed_types:
        raise InvalidFileTypeError(content_type, allowed_types)

    extension = os.path.splitext(filename or "")[1].lower()
    if extension not in settings.ALLOWED_EXCEL_EXTENSIONS:
        raise InvalidFileTypeError(extension or None, settings.ALLOWED_EXCEL_EXTENSIONS)

    if size > settings.MAX_UPLOAD_SIZE:
        raise FileTooLargeError(size, settings.MAX_UPLOAD_SIZE)


def _header_text(value: Any) -> str:
    if _is_blank(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def normalize_headers(raw_headers: List[Any]) -> List[str]:
    """
    Name blank headers __EMPTY, __EMPTY_1, ... and suffix repeated
    headers with _1, _2, ... so every column key is unique.
    """
    headers: List[str] = []
    seen: Dict[str, int] = {}

    for raw in raw_headers:
        base = _header_text(raw) or BLANK_HEADER
        name = base
        while name in seen:
            seen[base] += 1
            name = f"{base}_{seen[base]}"
        seen.setdefault(base, 0)
        seen.setdefault(name, 0)
        headers.append(name)

    return headers


def _is_blank(value: Any) -> bool:
    if value is None or value is pd.NaT:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def to_json_value(value: Any) -> Any:
    """Convert a cell read by pandas into a JSON-native value"""
    if _is_blank(value):
        return None

    if isinstance(value, np.generic):
        value = value.item()

    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isinf(value):
            return None
        return int(value) if value.is_integer() else value

    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime().isoformat()
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, pd.Timedelta):
        return str(value)

    return value if isinstance(value, str) else str(value)


def trim_leading_blanks(frame: pd.DataFrame) -> pd.DataFrame:
    """
    Start the frame at the sheet's used range: drop blank rows above the
    table and blank columns left of it. Blank columns inside the table stay.
    """
    if frame.empty:
        return frame

    blank = frame.map(_is_blank)
    used_rows = (~blank.all(axis=1)).to_numpy()
    used_columns = (~blank.all(axis=0)).to_numpy()
    if not used_rows.any():
        return frame.iloc[0:0, 0:0]

    return frame.iloc[used_rows.argmax():, used_columns.argmax():]


def parse_workbook(content: bytes, filename: Optional[str] = None) -> ParsedWorkbook:
    """
    Parse the first sheet of an Excel workbook.

    Args:
        content: Raw workbook bytes
        filename: Original file name, used to pick the reader engine

    Returns:
        ParsedWorkbook with header order and JSON-native rows

    Raises:
        WorkbookParseError: bytes aren't a readable workbook
        EmptyWorkbookError: first sheet has no data rows
    """
    extension = os.path.splitext(filename or "")[1].lower()
    engine = EXCEL_ENGINES.get(extension)

    try:
        with pd.ExcelFile(io.BytesIO(content), engine=engine) as workbook:
            if not workbook.sheet_names:
                raise EmptyWorkbookError()
            sheet_name = workbook.sheet_names[0]
            frame = workbook.parse(sheet_name, header=None, dtype=object)
    except EmptyWorkbookError:
        raise
    except Exception as e:
        logger.warning(f"[ExcelParser] Failed to read {filename}: {e}")
        raise WorkbookParseError(str(e))

    frame = trim_leading_blanks(frame)
    if frame.empty:
        raise EmptyWorkbookError()

    columns = normalize_headers(frame.iloc[0].tolist())

    rows: List[Dict[str, Any]] = []
    for values in frame.iloc[1:].itertuples(index=False, name=None):
        cells = [to_json_value(value) for value in values]
        if all(cell is None for cell in cells):
            continue
        rows.append(dict(zip(columns, cells)))

    if not rows:
        raise EmptyWorkbookError()

    logger.info(f"[ExcelParser] Parsed {filename}: sheet '{sheet_name}', {len(rows)} rows, {len(columns)} columns")
    return ParsedWorkbook(sheet_name=str(sheet_name), columns=columns, rows=rows)
