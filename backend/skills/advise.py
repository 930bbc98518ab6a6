"""
Advisory skill: asks the LLM for chart suggestions on a small sample.

The request never raises: missing credentials, transport errors and
malformed responses all come back as None so the default configuration
stays in place.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from langchain_core.language_models.chat_models import BaseChatModel

from app.llm import chat_json, chat_structured, short_error
from app.llm_loader import LLMConfigError, get_chat_model, supports_native_structured_output
from app.models import AnalysisPayload
from app.prompts import ANALYSIS_SYSTEM_PROMPT, build_analysis_prompt
from core.models import (
    AdvisorySuggestion,
    AnalysisResult,
    ChartConfiguration,
    Dataset,
    SuggestionState,
)
from core.settings import ANALYSIS_SAMPLE_ROWS, ANALYSIS_TEMPERATURE, SUGGESTION_COUNT
from core.themes import DEFAULT_THEME_ID
from skills.normalize import sample_rows
from skills.validate import check_suggestion

logger = logging.getLogger("uvicorn.error")

# Track whether we've already warned about missing credentials
_llm_warn_logged = False


async def request_analysis(
    dataset: Dataset,
    *,
    llm: Optional[BaseChatModel] = None,
    method: Optional[str] = None,
) -> Optional[AnalysisResult]:
    """
    Fetch a summary plus ranked suggestions for ``dataset``.

    Only the headers and the first ANALYSIS_SAMPLE_ROWS rows are sent.
    ``method`` is "pydantic" (tool-calling structured output) or "json"
    (plain text parsed locally); it defaults by provider.
    """
    global _llm_warn_logged
    if llm is None:
        try:
            llm = get_chat_model(temperature=ANALYSIS_TEMPERATURE)
        except LLMConfigError as e:
            if not _llm_warn_logged:
                logger.warning("Advisory service unavailable, keeping default chart: %s", e)
                _llm_warn_logged = True
            return None
        except Exception as e:
            logger.warning("Could not build advisory model, keeping default chart: %s", short_error(e))
            return None

    if method is None:
        method = "pydantic" if supports_native_structured_output() else "json"

    user_msg = build_analysis_prompt(dataset.headers, sample_rows(dataset, ANALYSIS_SAMPLE_ROWS))
    try:
        if method == "pydantic":
            payload = await chat_structured(llm, AnalysisPayload, ANALYSIS_SYSTEM_PROMPT, user_msg)
        else:
            payload = await chat_json(llm, AnalysisPayload, ANALYSIS_SYSTEM_PROMPT, user_msg)
    except Exception as e:
        logger.warning("Advisory request for '%s' failed: %s", dataset.name, short_error(e))
        return None

    result = payload.to_result(SUGGESTION_COUNT)
    logger.info("Advisory returned %d suggestions for '%s'", len(result.suggestions), dataset.name)
    return result


def rank_suggestions(result: AnalysisResult, dataset: Dataset) -> List[SuggestionState]:
    """Keep rank order; flag suggestions that name columns the dataset lacks."""
    states: List[SuggestionState] = []
    for i, suggestion in enumerate(result.suggestions):
        ok, warnings = check_suggestion(suggestion, dataset)
        if not ok:
            logger.warning("Suggestion %d '%s' not applicable: %s", i, suggestion.title, warnings)
        states.append(SuggestionState(index=i, suggestion=suggestion, applicable=ok, warnings=warnings))
    return states


def first_applicable(states: List[SuggestionState]) -> Optional[SuggestionState]:
    return next((s for s in states if s.applicable), None)


def apply_suggestion(
    suggestion: AdvisorySuggestion,
    current: Optional[ChartConfiguration],
) -> ChartConfiguration:
    """Full replacement of the configuration; the theme choice is kept."""
    theme_id = current.theme_id if current is not None else DEFAULT_THEME_ID
    return suggestion.to_configuration(theme_id)
