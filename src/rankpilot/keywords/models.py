"""
Pydantic models for the keyword-suggestion boundary.
Incoming payloads use the web client's camelCase names; Python code uses snake_case.
"""

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_QUERY_LENGTH = 200
MIN_COUNT = 1
MAX_COUNT = 50
DEFAULT_COUNT = 10

Competition = Literal["low", "medium", "high"]
Intent = Literal["informational", "commercial", "transactional", "navigational"]


class KeywordSuggestionsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    query: str
    language: str = "en"
    count: int = DEFAULT_COUNT
    include_metrics: bool = Field(default=True, alias="includeMetrics")

    @field_validator("query", mode="before")
    @classmethod
    def _check_query(cls, value: Any) -> str:
        if not isinstance(value, str) or not value:
            raise ValueError("Query is required and must be a string")
        if len(value) > MAX_QUERY_LENGTH:
            raise ValueError(f"Query too long (max {MAX_QUERY_LENGTH} characters)")
        stripped = value.strip()
        if not stripped:
            raise ValueError("Query is required and must be a string")
        return stripped

    @field_validator("language", mode="before")
    @classmethod
    def _default_language(cls, value: Any) -> Any:
        return value or "en"

    @field_validator("count", mode="before")
    @classmethod
    def _clamp_count(cls, value: Any) -> int:
        if value is None or value == 0:
            return DEFAULT_COUNT
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("count must be a number")
        return min(max(int(value), MIN_COUNT), MAX_COUNT)


class KeywordSuggestion(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    keyword: str
    search_volume: Optional[int] = Field(default=None, alias="searchVolume")
    competition: Optional[Competition] = None
    difficulty: Optional[int] = Field(default=None, ge=0, le=100)
    intent: Optional[Intent] = None

    @field_validator("competition", "intent", mode="before")
    @classmethod
    def _lower_labels(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("difficulty", mode="before")
    @classmethod
    def _clamp_difficulty(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return min(max(int(value), 0), 100)
        return value

    def without_metrics(self) -> "KeywordSuggestion":
        return self.model_copy(update={"search_volume": None, "competition": None, "difficulty": None})


class KeywordSuggestionsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    suggestions: List[KeywordSuggestion]
    related_queries: List[str] = Field(default_factory=list, alias="relatedQueries")
    total_processing_time_ms: int = Field(default=0, alias="totalProcessingTime")
    cache_hit: bool = Field(default=False, alias="cacheHit")

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
