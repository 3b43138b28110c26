from .models import KeywordSuggestion, KeywordSuggestionsRequest, KeywordSuggestionsResponse
from .service import KeywordSuggestionService

__all__ = [
    "KeywordSuggestion",
    "KeywordSuggestionsRequest",
    "KeywordSuggestionsResponse",
    "KeywordSuggestionService",
]
