"""
Tabular parser skill.

Decodes an uploaded spreadsheet into a header row plus data rows. Row 0 is
always the header; only the first sheet is read.
"""

from __future__ import annotations

import io
import logging
from typing import List, Optional, Tuple

import pandas as pd

from core.messages import message
from core.models import Scalar
from core.utils import header_text, to_scalar

logger = logging.getLogger("uvicorn.error")

SPREADSHEET_MIME_TYPES = frozenset({
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-excel",
})
SPREADSHEET_EXTENSIONS = (".xlsx", ".xls")


class IngestError(ValueError):
    """Terminal failure of one parse attempt; ``message`` is user-facing."""

    message_key = "corrupt_file"

    def __init__(self, detail: str = "") -> None:
        self.message = message(self.message_key)
        self.detail = detail
        super().__init__(detail or self.message)


class UnsupportedFormat(IngestError):
    message_key = "unsupported_format"


class EmptySheet(IngestError):
    message_key = "empty_sheet"


class CorruptFile(IngestError):
    message_key = "corrupt_file"


def is_spreadsheet(filename: Optional[str], content_type: Optional[str]) -> bool:
    """Accept by declared MIME type or by file extension."""
    if content_type and content_type.split(";")[0].strip().lower() in SPREADSHEET_MIME_TYPES:
        return True
    name = (filename or "").lower()
    return name.endswith(SPREADSHEET_EXTENSIONS)


def _read_first_sheet(content: bytes) -> pd.DataFrame:
    # dtype=object keeps each cell's native type; only truly empty cells are NaN
    return pd.read_excel(
        io.BytesIO(content),
        sheet_name=0,
        header=None,
        dtype=object,
        keep_default_na=False,
        na_values=[""],
    )


def parse_spreadsheet(
    content: bytes,
    *,
    filename: Optional[str] = None,
    content_type: Optional[str] = None,
) -> Tuple[List[str], List[List[Scalar]]]:
    """
    Decode spreadsheet bytes into (headers, rows).

    Header cells are coerced to text (empty -> ""); headers are not
    deduplicated. Data cells keep their scalar type and empty cells are None.

    Raises UnsupportedFormat, EmptySheet or CorruptFile.
    """
    if not is_spreadsheet(filename, content_type):
        raise UnsupportedFormat(f"rejected '{filename}' ({content_type})")
    if not content:
        raise EmptySheet("file has no content")

    try:
        df = _read_first_sheet(content)
    except Exception as e:
        logger.warning("Failed to decode spreadsheet '%s': %s", filename, e)
        raise CorruptFile(str(e)) from e

    # pandas drops trailing empty rows; leading and interior blank rows stay
    if df.empty:
        raise EmptySheet(f"'{filename}' decoded to zero rows")

    records = df.to_numpy(dtype=object).tolist()
    headers = [header_text(v) for v in records[0]]
    rows = [[to_scalar(v) for v in r] for r in records[1:]]

    logger.info("Parsed '%s': %d columns, %d data rows", filename, len(headers), len(rows))
    return headers, rows
