"""Template keyword suggestions used when the LLM call fails."""

from __future__ import annotations

import random
import typing as t

from .models import KeywordSuggestion

_TEMPLATES = (
    "{q} guide",
    "{q} tips",
    "best {q}",
    "{q} tutorial",
    "how to {q}",
    "{q} examples",
    "{q} benefits",
    "{q} cost",
    "{q} comparison",
    "{q} review",
    "{q} vs",
    "{q} free",
    "{q} online",
    "{q} 2025",
    "{q} strategy",
)
_COMPETITION = ("low", "medium", "high")
_INTENT = ("informational", "commercial", "transactional", "navigational")


def fallback_keywords(query: str, count: int, rng: t.Optional[random.Random] = None) -> t.List[KeywordSuggestion]:
    rng = rng or random.Random()
    return [
        KeywordSuggestion(
            keyword=template.format(q=query),
            search_volume=rng.randint(100, 10099),
            competition=_COMPETITION[index % len(_COMPETITION)],
            difficulty=rng.randint(1, 100),
            intent=_INTENT[index % len(_INTENT)],
        )
        for index, template in enumerate(_TEMPLATES[:count])
    ]
