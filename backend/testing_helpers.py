"""Builders shared by the test modules."""

import io
import json

from openpyxl import Workbook

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def make_xlsx(rows) -> bytes:
    """Write rows to the first sheet of an in-memory workbook."""
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(list(row))
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def analysis_json(suggestions, summary="Monthly revenue figures.") -> str:
    return json.dumps({"summary": summary, "suggestions": suggestions}, ensure_ascii=False)


def suggestion(title, chart_type, x, y, description="") -> dict:
    return {
        "title": title,
        "description": description,
        "chartType": chart_type,
        "xAxisKey": x,
        "yAxisKey": y,
    }
