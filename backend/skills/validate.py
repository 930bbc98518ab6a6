"""
Validation skill for chart configurations and advisory suggestions.

Catches references to columns the live dataset does not have before they
are bound to it.
"""

from __future__ import annotations

from typing import List, Tuple

from core.models import AdvisorySuggestion, ChartConfiguration, Dataset
from core.themes import is_known_theme


class InvalidConfiguration(ValueError):
    """A configuration would reference a column outside the dataset."""

    def __init__(self, warnings: List[str]) -> None:
        self.warnings = warnings
        super().__init__("; ".join(warnings))


def _missing_keys(keys, dataset: Dataset) -> List[str]:
    return [k for k in keys if not dataset.has_header(k)]


def validate_config(config: ChartConfiguration, dataset: Dataset) -> Tuple[bool, List[str]]:
    """
    Check that every referenced key is a dataset header.

    Returns (is_valid, warnings).
    """
    warnings: List[str] = []
    for key in _missing_keys(config.referenced_keys(), dataset):
        warnings.append(f"Field '{key}' not found in dataset.")
    if not is_known_theme(config.theme_id):
        warnings.append(f"Unknown theme '{config.theme_id}'.")
    return not warnings, warnings


def check_suggestion(suggestion: AdvisorySuggestion, dataset: Dataset) -> Tuple[bool, List[str]]:
    """Membership check for a suggestion's category and value keys."""
    warnings: List[str] = []
    if not dataset.has_header(suggestion.category_key):
        warnings.append(f"Category field '{suggestion.category_key}' not found in dataset.")
    for key in _missing_keys(suggestion.value_keys, dataset):
        warnings.append(f"Value field '{key}' not found in dataset.")
    return not warnings, warnings


def require_valid(config: ChartConfiguration, dataset: Dataset) -> ChartConfiguration:
    ok, warnings = validate_config(config, dataset)
    if not ok:
        raise InvalidConfiguration(warnings)
    return config
