from pydantic import BaseModel, Field, field_validator
from typing import List

from core.models import AdvisorySuggestion, AnalysisResult, ChartKind


class SuggestionPayload(BaseModel):
    """One suggestion as the advisory service returns it."""
    title: str = Field(..., description="A catchy title for the chart")
    description: str = Field("", description="Why this chart is useful")
    chartType: str = Field(..., description="One of: bar, line, area, pie, scatter")
    xAxisKey: str = Field(..., description="Column for the X axis (category or time)")
    yAxisKey: str = Field(..., description="Column for the Y axis (metric/value)")

    @field_validator("chartType")
    @classmethod
    def validate_chart_type(cls, v: str) -> str:
        """Ensure chartType is one of the supported chart kinds."""
        kind = (v or "").strip().lower()
        valid = {k.value for k in ChartKind}
        if kind not in valid:
            raise ValueError(f"chartType must be one of {sorted(valid)}, got '{v}'")
        return kind

    def to_suggestion(self) -> AdvisorySuggestion:
        return AdvisorySuggestion(
            title=self.title,
            description=self.description,
            chart_kind=ChartKind(self.chartType),
            category_key=self.xAxisKey,
            value_keys=(self.yAxisKey,),
        )


class AnalysisPayload(BaseModel):
    """Structured response of the chart-suggestion request."""
    summary: str = Field(..., description="Two-sentence summary of what the dataset represents")
    suggestions: List[SuggestionPayload] = Field(
        ...,
        min_length=1,
        description="Recommended visualizations, most confident first",
    )

    def to_result(self, limit: int) -> AnalysisResult:
        return AnalysisResult(
            summary=self.summary,
            suggestions=[s.to_suggestion() for s in self.suggestions[:limit]],
        )
