"""
Deterministic chart recommendation (no LLM).

derive_default_config() gives the first renderable configuration for a
dataset so a chart can be shown before any advisory round-trip finishes.
"""

from __future__ import annotations

from typing import Optional

from core.models import ChartConfiguration, ChartKind, Dataset
from core.themes import DEFAULT_THEME_ID
from core.utils import is_number


def _first_numeric_header(dataset: Dataset) -> Optional[str]:
    first = dataset.first_row()
    for header in dataset.headers[1:]:
        if is_number(first.get(header)):
            return header
    return None


def derive_default_config(dataset: Dataset) -> Optional[ChartConfiguration]:
    """
    Bar chart of the first numeric column (by the first data row) against
    the first column. Returns None when there are fewer than two headers.
    """
    if len(dataset.headers) < 2:
        return None

    value_key = _first_numeric_header(dataset) or dataset.headers[1]
    return ChartConfiguration(
        chart_kind=ChartKind.bar,
        category_key=dataset.headers[0],
        value_keys=[value_key],
        theme_id=DEFAULT_THEME_ID,
    )
