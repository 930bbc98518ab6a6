"""
Dataset normalizer skill. The only place a Dataset is constructed.

Also provides the read-back paths (summary + paged preview) used by the API.
"""

from __future__ import annotations

from typing import Any, Dict, List, Sequence

from core.models import Dataset, Scalar
from core.settings import PREVIEW_LIMIT_MAX
from core.utils import human_dtype, records_json_safe


def build_dataset(name: str, headers: Sequence[str], rows: Sequence[Sequence[Scalar]]) -> Dataset:
    """
    Zip each row positionally against ``headers``.

    Values past the last header are dropped and short rows are padded with
    None, so every record has exactly the header keys. A repeated header
    name keeps the value of its last occurrence.
    """
    headers = list(headers)
    width = len(headers)
    records: List[Dict[str, Scalar]] = []
    for row in rows:
        values = list(row[:width]) + [None] * max(0, width - len(row))
        record: Dict[str, Scalar] = {}
        for header, value in zip(headers, values):
            record[header] = value
        records.append(record)
    return Dataset(name=name, headers=tuple(headers), rows=tuple(records))


def column_values(dataset: Dataset, header: str) -> List[Scalar]:
    return [row.get(header) for row in dataset.rows]


def dataset_summary(dataset: Dataset) -> Dict[str, Any]:
    return {
        "name": dataset.name,
        "n_rows": dataset.row_count,
        "n_cols": len(dataset.headers),
        "columns": list(dataset.headers),
        "dtypes": {h: human_dtype(column_values(dataset, h)) for h in dataset.headers},
    }


def sample_rows(dataset: Dataset, limit: int) -> List[Dict[str, Scalar]]:
    return records_json_safe(dataset.rows[:limit])


def preview_rows(dataset: Dataset, offset: int = 0, limit: int = 50) -> Dict[str, Any]:
    """One page of records with cursor info."""
    limit = max(0, min(limit, PREVIEW_LIMIT_MAX))
    offset = max(0, offset)
    total = dataset.row_count
    end = min(offset + limit, total)
    has_more = end < total
    page = records_json_safe(dataset.rows[offset:end])
    return {
        "table": dataset.name,
        "columns": list(dataset.headers),
        "rows": page,
        "total_rows": total,
        "offset": offset,
        "limit": limit,
        "returned_rows": len(page),
        "has_more": has_more,
        "next_offset": end if has_more else None,
    }
