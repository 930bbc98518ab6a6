"""
Runtime settings and fixed pipeline constants.

Values that operators may change come from the environment (``.env`` is
loaded once here); sampling limits are fixed so request size never grows
with the dataset.
"""

from __future__ import annotations

import os
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip() or default


# Rows sent with the chart-suggestion request (k)
ANALYSIS_SAMPLE_ROWS = 5

# Rows embedded in the conversation instruction block (m)
CHAT_SAMPLE_ROWS = 20

# Suggestions requested from the advisory service (N)
SUGGESTION_COUNT = 3

# Points handed to the renderer per chart
RENDER_ROW_LIMIT = 500

# Max rows per preview page
PREVIEW_LIMIT_MAX = 100

ANALYSIS_TEMPERATURE = 0.4
CHAT_TEMPERATURE = 0.7

SUPPORTED_LOCALES = ("zh", "en")


def get_locale() -> str:
    locale = (_env("APP_LOCALE", "zh") or "zh").lower()
    return locale if locale in SUPPORTED_LOCALES else "zh"
