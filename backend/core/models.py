"""
Core Pydantic models for the spreadsheet visualization workspace.

All domain types live here so every module shares the same vocabulary.
"""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


Scalar = Union[bool, int, float, str, None]


# ---------------------------------------------------------------------------
# Dataset
# ---------------------------------------------------------------------------

class Dataset(BaseModel):
    """Normalized table built from one uploaded file. Never mutated.

    Records are read-only mappings; writing a cell raises TypeError.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    headers: Tuple[str, ...]
    rows: Tuple[Mapping[str, Scalar], ...] = ()

    @field_validator("rows")
    @classmethod
    def _freeze_records(cls, rows):
        return tuple(MappingProxyType(dict(r)) for r in rows)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def first_row(self) -> Mapping[str, Scalar]:
        return self.rows[0] if self.rows else MappingProxyType({})

    def has_header(self, name: str) -> bool:
        return name in self.headers


# ---------------------------------------------------------------------------
# Chart configuration
# ---------------------------------------------------------------------------

class ChartKind(str, Enum):
    bar = "bar"
    line = "line"
    area = "area"
    scatter = "scatter"
    pie = "pie"


# Kinds the renderer draws from exactly one value series
SINGLE_SERIES_KINDS = frozenset({ChartKind.scatter, ChartKind.pie})


class ChartConfiguration(BaseModel):
    chart_kind: ChartKind = ChartKind.bar
    category_key: str
    value_keys: List[str] = Field(..., min_length=1)
    theme_id: str

    def series_keys(self) -> List[str]:
        if self.chart_kind in SINGLE_SERIES_KINDS:
            return self.value_keys[:1]
        return list(self.value_keys)

    def referenced_keys(self) -> List[str]:
        return [self.category_key, *self.value_keys]


class ChartTheme(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    colors: Tuple[str, ...]
    background_color: str
    text_color: str
    grid_color: str
    font_family: str


# ---------------------------------------------------------------------------
# Advisory suggestions
# ---------------------------------------------------------------------------

class AdvisorySuggestion(BaseModel):
    """One externally recommended configuration plus its rationale."""

    model_config = ConfigDict(frozen=True)

    title: str
    description: str = ""
    chart_kind: ChartKind
    category_key: str
    value_keys: Tuple[str, ...] = Field(..., min_length=1)

    def to_configuration(self, theme_id: str) -> ChartConfiguration:
        return ChartConfiguration(
            chart_kind=self.chart_kind,
            category_key=self.category_key,
            value_keys=list(self.value_keys),
            theme_id=theme_id,
        )


class AnalysisResult(BaseModel):
    summary: str = ""
    suggestions: List[AdvisorySuggestion] = Field(default_factory=list)


class SuggestionState(BaseModel):
    """A suggestion as exposed to the client, with its applicability."""
    index: int
    suggestion: AdvisorySuggestion
    applicable: bool = True
    warnings: List[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Conversation
# ---------------------------------------------------------------------------

class ConversationRole(str, Enum):
    user = "user"
    assistant = "assistant"


class ConversationTurn(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: ConversationRole
    text: str


# ---------------------------------------------------------------------------
# Renderer spec (handed to the charting collaborator)
# ---------------------------------------------------------------------------

class EncodingChannel(BaseModel):
    field: str
    type: Optional[str] = None           # quantitative, nominal


class ChartEncoding(BaseModel):
    x: Optional[EncodingChannel] = None
    y: List[EncodingChannel] = Field(default_factory=list)
    theta: Optional[EncodingChannel] = None
    color: Optional[EncodingChannel] = None


class ChartStyle(BaseModel):
    colors: List[str] = Field(default_factory=list)
    background_color: str = "#ffffff"
    text_color: str = "#000000"
    grid_color: str = "#e2e8f0"
    font_family: str = ""


class ChartSpec(BaseModel):
    chart_type: ChartKind
    encoding: ChartEncoding
    style: ChartStyle = Field(default_factory=ChartStyle)
    data_inline: List[Dict[str, Any]] = Field(default_factory=list)
    truncated: bool = False


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------

class ConfigUpdateRequest(BaseModel):
    chart_kind: Optional[ChartKind] = None
    category_key: Optional[str] = None
    value_keys: Optional[List[str]] = None
    theme_id: Optional[str] = None

    @model_validator(mode="after")
    def _non_empty_values(self) -> "ConfigUpdateRequest":
        if self.value_keys is not None and not self.value_keys:
            raise ValueError("value_keys must not be empty")
        return self


class ChatRequest(BaseModel):
    text: str = Field(..., min_length=1)
