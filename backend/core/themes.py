"""Fixed palette registry. The first entry is the default theme."""

from __future__ import annotations

from typing import Dict, List

from core.models import ChartTheme

_FONT = 'Inter, "Microsoft YaHei", sans-serif'

CHART_THEMES: List[ChartTheme] = [
    ChartTheme(
        id="corporate",
        name="现代商务",
        colors=("#3b82f6", "#10b981", "#f59e0b", "#ef4444", "#8b5cf6", "#ec4899"),
        background_color="#ffffff",
        text_color="#1e293b",
        grid_color="#e2e8f0",
        font_family=_FONT,
    ),
    ChartTheme(
        id="dark-cyber",
        name="赛博霓虹",
        colors=("#06b6d4", "#d946ef", "#f43f5e", "#8b5cf6", "#10b981", "#fbbf24"),
        background_color="#0f172a",
        text_color="#f1f5f9",
        grid_color="#334155",
        font_family=_FONT,
    ),
    ChartTheme(
        id="sunset",
        name="日落暖阳",
        colors=("#fdba74", "#fb923c", "#ea580c", "#c2410c", "#9a3412", "#7c2d12"),
        background_color="#fff7ed",
        text_color="#431407",
        grid_color="#fed7aa",
        font_family=_FONT,
    ),
    ChartTheme(
        id="forest",
        name="深邃森林",
        colors=("#22c55e", "#16a34a", "#15803d", "#166534", "#14532d", "#84cc16"),
        background_color="#f0fdf4",
        text_color="#052e16",
        grid_color="#bbf7d0",
        font_family=_FONT,
    ),
    ChartTheme(
        id="monochrome",
        name="极简黑白",
        colors=("#1e293b", "#475569", "#64748b", "#94a3b8", "#cbd5e1", "#e2e8f0"),
        background_color="#ffffff",
        text_color="#0f172a",
        grid_color="#f1f5f9",
        font_family=_FONT,
    ),
]

_BY_ID: Dict[str, ChartTheme] = {t.id: t for t in CHART_THEMES}

DEFAULT_THEME_ID = CHART_THEMES[0].id


def get_theme(theme_id: str) -> ChartTheme:
    return _BY_ID.get(theme_id, CHART_THEMES[0])


def is_known_theme(theme_id: str) -> bool:
    return theme_id in _BY_ID
