from __future__ import annotations

import json
import logging
import random
import time
import typing as t

from pydantic import ValidationError

from rankpilot.cache.expiring_cache import ExpiringCache
from rankpilot.core.errors import InternalError, InvalidArgumentError, RankPilotError, UnauthenticatedError
from rankpilot.monitoring.metrics import cache_requests_total, llm_fallbacks_total
from rankpilot.security.guard import RateLimitGuard

from .fallback import fallback_keywords
from .models import KeywordSuggestion, KeywordSuggestionsRequest, KeywordSuggestionsResponse

logger = logging.getLogger(__name__)

CacheKey = t.Tuple[str, str, int]

KEYWORDS_PROMPT = """Generate {count} SEO keyword suggestions for "{query}" in {language}.

Requirements:
- Mix of head terms (1-2 words) and long-tail keywords (3+ words)
- Include search intent classification
- Provide realistic search volume estimates
- Include competition levels
- Return valid JSON only

Format:
{{
  "keywords": [
    {{
      "keyword": "example keyword",
      "searchVolume": 1200,
      "competition": "medium",
      "difficulty": 65,
      "intent": "informational"
    }}
  ]
}}"""

RELATED_PROMPT = 'Generate 5 related search queries for "{query}" in {language}. Return as JSON array of strings.'


def _parse_json(text: str) -> t.Any:
    cleaned = text.strip()
    if cleaned.startswith("```"):
        # ```json\n...\n```
        cleaned = cleaned.split("\n", 1)[1] if "\n" in cleaned else ""
        cleaned = cleaned.rsplit("```", 1)[0]
    return json.loads(cleaned)


def _valid_suggestions(items: t.Iterable[t.Any]) -> t.List[KeywordSuggestion]:
    """Keep the items that validate; one bad item does not discard the rest."""
    suggestions: t.List[KeywordSuggestion] = []
    for item in items:
        try:
            suggestions.append(KeywordSuggestion.model_validate(item))
        except ValidationError as exc:
            logger.debug("Dropping malformed keyword item %r: %s", item, exc)
    return suggestions


class KeywordSuggestionService:
    """AI keyword suggestions memoized per (query, language, count).

    Identical requests inside the TTL are answered from the cache and flagged
    with `cache_hit`. LLM failures never reach the caller: keywords fall back
    to templates and related queries to an empty list.
    """

    OPERATION = "keyword_suggestions"

    def __init__(
        self,
        ai: t.Any,
        cache: ExpiringCache[CacheKey, KeywordSuggestionsResponse],
        guard: t.Optional[RateLimitGuard] = None,
        *,
        ttl_seconds: float = 3600.0,
        model: t.Optional[str] = None,
        rng: t.Optional[random.Random] = None,
    ) -> None:
        self._ai = ai
        self._cache = cache
        self._guard = guard
        self._ttl = ttl_seconds
        self._model = model
        self._rng = rng

    async def handle(
        self,
        payload: t.Mapping[str, t.Any],
        user_id: t.Optional[str],
        tier: t.Optional[str] = None,
    ) -> t.Dict[str, t.Any]:
        """Request-handler entry point: authenticate, rate-limit, validate, answer."""
        start = time.perf_counter()
        try:
            if not user_id:
                raise UnauthenticatedError("Authentication required")
            if self._guard is not None:
                await self._guard.enforce(user_id, self.OPERATION, tier)
            request = self._validate(payload)
            logger.info(
                "Keyword suggestions request user=%s query=%r language=%s count=%d",
                user_id,
                request.query[:50],
                request.language,
                request.count,
            )
            response = await self.suggest(request)
            logger.info(
                "Keyword suggestions completed user=%s suggestions=%d cache_hit=%s duration_ms=%d",
                user_id,
                len(response.suggestions),
                response.cache_hit,
                int((time.perf_counter() - start) * 1000),
            )
            return response.to_payload()
        except RankPilotError:
            raise
        except Exception as exc:
            logger.exception("Keyword suggestions failed user=%s", user_id)
            raise InternalError("An internal error occurred while generating keyword suggestions") from exc

    async def request_suggestions(
        self,
        query: str,
        language: str = "en",
        count: int = 10,
        include_metrics: bool = True,
    ) -> KeywordSuggestionsResponse:
        request = self._validate(
            {"query": query, "language": language, "count": count, "include_metrics": include_metrics}
        )
        return await self.suggest(request)

    async def suggest(self, request: KeywordSuggestionsRequest) -> KeywordSuggestionsResponse:
        start = time.perf_counter()
        key: CacheKey = (request.query, request.language, request.count)

        async def compute() -> KeywordSuggestionsResponse:
            return await self._generate(request.query, request.language, request.count)

        cached, hit = await self._cache.get_or_compute(key, compute, self._ttl)
        cache_requests_total.inc(cache="keywords", result="hit" if hit else "miss")
        if hit:
            logger.info("Cache hit for keyword suggestions query=%r", request.query[:50])
        else:
            self._cache.sweep()

        suggestions = cached.suggestions
        if not request.include_metrics:
            suggestions = [s.without_metrics() for s in suggestions]
        return cached.model_copy(
            update={
                "suggestions": suggestions,
                "cache_hit": hit,
                "total_processing_time_ms": int((time.perf_counter() - start) * 1000),
            }
        )

    def _validate(self, payload: t.Mapping[str, t.Any]) -> KeywordSuggestionsRequest:
        try:
            return KeywordSuggestionsRequest.model_validate(dict(payload))
        except ValidationError as exc:
            messages = "; ".join(str(err.get("msg", "")) for err in exc.errors())
            raise InvalidArgumentError(messages or "Invalid request", details={"errors": len(exc.errors())}) from exc

    async def _generate(self, query: str, language: str, count: int) -> KeywordSuggestionsResponse:
        start = time.perf_counter()
        suggestions = await self._generate_keywords(query, language, count)
        related = await self._generate_related_queries(query, language)
        return KeywordSuggestionsResponse(
            suggestions=suggestions,
            related_queries=related,
            total_processing_time_ms=int((time.perf_counter() - start) * 1000),
            cache_hit=False,
        )

    async def _generate_keywords(self, query: str, language: str, count: int) -> t.List[KeywordSuggestion]:
        prompt = KEYWORDS_PROMPT.format(count=count, query=query, language=language)
        try:
            raw = await self._ai.generate(prompt, self._model)
            parsed = _parse_json(raw)
            suggestions = _valid_suggestions(parsed.get("keywords") or [])
            if not suggestions:
                raise ValueError("no usable keywords in AI response")
            return suggestions
        except Exception as exc:
            logger.warning("AI keyword generation failed, using fallback query=%r error=%s", query[:50], exc)
            llm_fallbacks_total.inc(kind="keywords")
            return fallback_keywords(query, count, self._rng)

    async def _generate_related_queries(self, query: str, language: str) -> t.List[str]:
        prompt = RELATED_PROMPT.format(query=query, language=language)
        try:
            parsed = _parse_json(await self._ai.generate(prompt, self._model))
            if not isinstance(parsed, list):
                raise ValueError("expected a JSON array")
            return [str(item) for item in parsed]
        except Exception as exc:
            logger.warning("Related queries generation failed query=%r error=%s", query[:50], exc)
            llm_fallbacks_total.inc(kind="related_queries")
            return []
