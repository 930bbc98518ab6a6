"""
Shared utility helpers for cell values.

Pure functions: no LLM, no I/O, no side effects.
"""

from __future__ import annotations

import datetime as dt
import math
from typing import Any, Dict, Iterable, List, Mapping

import numpy as np
import pandas as pd

from core.models import Scalar


# ---------------------------------------------------------------------------
# Cell coercion
# ---------------------------------------------------------------------------

def to_scalar(value: Any) -> Scalar:
    """Reduce a decoded cell to text, number, boolean or None.

    numpy scalars become their Python equivalents, NaN/NaT become None and
    date/time cells become ISO-8601 text.
    """
    if value is None:
        return None
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if isinstance(value, (int, np.integer)):
        return int(value)
    if isinstance(value, (float, np.floating)):
        f = float(value)
        return None if math.isnan(f) else f
    if isinstance(value, str):
        return value
    if value is pd.NaT:
        return None
    if isinstance(value, (pd.Timestamp, dt.datetime, dt.date, dt.time)):
        return value.isoformat()
    if isinstance(value, dt.timedelta):
        return str(value)
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    return str(value)


def header_text(value: Any) -> str:
    """Coerce a header cell to text; empty cells become ""."""
    scalar = to_scalar(value)
    if scalar is None:
        return ""
    if isinstance(scalar, float) and scalar.is_integer():
        return str(int(scalar))
    return str(scalar)


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def json_safe(value: Scalar) -> Scalar:
    """Map +/-inf to None so records serialize as JSON."""
    if isinstance(value, float) and math.isinf(value):
        return None
    return value


def records_json_safe(rows: Iterable[Mapping[str, Scalar]]) -> List[Dict[str, Scalar]]:
    return [{k: json_safe(v) for k, v in row.items()} for row in rows]


# ---------------------------------------------------------------------------
# Column typing
# ---------------------------------------------------------------------------

def human_dtype(values: Iterable[Scalar]) -> str:
    """Describe a column from its non-empty values."""
    kinds = set()
    for v in values:
        if v is None:
            continue
        if isinstance(v, bool):
            kinds.add("boolean")
        elif isinstance(v, int):
            kinds.add("integer")
        elif isinstance(v, float):
            kinds.add("float")
        else:
            kinds.add("string")
    if not kinds:
        return "empty"
    if kinds == {"integer", "float"}:
        return "float"
    if len(kinds) == 1:
        return kinds.pop()
    return "mixed"
