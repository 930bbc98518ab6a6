"""
View builder skill.

Takes a ChartConfiguration + Dataset → ChartSpec for the charting
collaborator. The frontend renders what it receives.

Chart data contract (data_inline):
- bar / line / area: rows contain the category field plus every series field.
- scatter: rows contain the x field plus one y field.
- pie: rows contain the name field plus one value field (encoding.theta).
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List

from core.models import (
    ChartConfiguration,
    ChartEncoding,
    ChartKind,
    ChartSpec,
    ChartStyle,
    Dataset,
    EncodingChannel,
)
from core.settings import RENDER_ROW_LIMIT
from core.themes import get_theme
from core.utils import records_json_safe
from skills.validate import require_valid

logger = logging.getLogger("uvicorn.error")


def _category(config: ChartConfiguration) -> EncodingChannel:
    return EncodingChannel(field=config.category_key, type="nominal")


def _series(config: ChartConfiguration) -> List[EncodingChannel]:
    return [EncodingChannel(field=k, type="quantitative") for k in config.series_keys()]


def _cartesian(config: ChartConfiguration) -> ChartEncoding:
    return ChartEncoding(x=_category(config), y=_series(config))


def _scatter(config: ChartConfiguration) -> ChartEncoding:
    return ChartEncoding(
        x=EncodingChannel(field=config.category_key, type="quantitative"),
        y=_series(config),
    )


def _pie(config: ChartConfiguration) -> ChartEncoding:
    value = config.series_keys()[0]
    return ChartEncoding(
        theta=EncodingChannel(field=value, type="quantitative"),
        color=_category(config),
    )


_ENCODERS: Dict[ChartKind, Callable[[ChartConfiguration], ChartEncoding]] = {
    ChartKind.bar: _cartesian,
    ChartKind.line: _cartesian,
    ChartKind.area: _cartesian,
    ChartKind.scatter: _scatter,
    ChartKind.pie: _pie,
}

_missing = set(ChartKind) - set(_ENCODERS)
if _missing:
    raise RuntimeError(f"no encoder for chart kinds: {sorted(k.value for k in _missing)}")


def build_chart_spec(config: ChartConfiguration, dataset: Dataset) -> ChartSpec:
    """
    Raises InvalidConfiguration if the configuration names unknown columns.
    """
    require_valid(config, dataset)
    encoding = _ENCODERS[config.chart_kind](config)

    fields = [config.category_key, *config.series_keys()]
    rows = dataset.rows[:RENDER_ROW_LIMIT]
    data = records_json_safe({f: r.get(f) for f in fields} for r in rows)

    theme = get_theme(config.theme_id)
    style = ChartStyle(
        colors=list(theme.colors),
        background_color=theme.background_color,
        text_color=theme.text_color,
        grid_color=theme.grid_color,
        font_family=theme.font_family,
    )
    truncated = dataset.row_count > RENDER_ROW_LIMIT
    if truncated:
        logger.info("Chart for '%s' truncated to %d of %d rows",
                    dataset.name, RENDER_ROW_LIMIT, dataset.row_count)
    return ChartSpec(
        chart_type=config.chart_kind,
        encoding=encoding,
        style=style,
        data_inline=data,
        truncated=truncated,
    )
