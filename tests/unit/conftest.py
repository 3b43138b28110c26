"""Shared fixtures and mocks for unit tests."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, Mock

import pytest

from rankpilot.monitoring import metrics


class FakeClock:
    """Manually advanced clock, callable like `time.time`."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    """A fake clock starting at a fixed epoch."""
    return FakeClock()


@pytest.fixture(autouse=True)
def reset_metrics():
    """Isolate the module-level metric registries between tests."""
    metrics.reset_all()
    yield
    metrics.reset_all()


@pytest.fixture
def keywords_json():
    """A well-formed LLM keyword payload."""
    return json.dumps(
        {
            "keywords": [
                {
                    "keyword": "seo tips for beginners",
                    "searchVolume": 1200,
                    "competition": "medium",
                    "difficulty": 45,
                    "intent": "informational",
                },
                {
                    "keyword": "seo tips 2025",
                    "searchVolume": 800,
                    "competition": "high",
                    "difficulty": 70,
                    "intent": "commercial",
                },
            ]
        }
    )


@pytest.fixture
def mock_ai(keywords_json):
    """Mock AI client manager answering the keyword prompt and the related-queries prompt."""

    async def generate(prompt, model=None, **kwargs):
        if "related search queries" in prompt:
            return json.dumps(["seo basics", "seo checklist"])
        return keywords_json

    ai = Mock()
    ai.generate = AsyncMock(side_effect=generate)
    ai.cleanup = Mock()
    return ai


@pytest.fixture
def failing_ai():
    """Mock AI client manager whose every call fails."""
    ai = Mock()
    ai.generate = AsyncMock(side_effect=RuntimeError("upstream down"))
    ai.cleanup = Mock()
    return ai


@pytest.fixture
def mock_openai_client():
    """Mock AsyncOpenAI client returning a fixed completion."""
    message = Mock()
    message.content = '["a", "b"]'
    choice = Mock()
    choice.message = message
    response = Mock()
    response.choices = [choice]

    client = Mock()
    client.chat.completions.create = AsyncMock(return_value=response)
    return client


@pytest.fixture
def mock_redis_client():
    """Mock Redis client."""
    client = AsyncMock()
    client.ping = AsyncMock(return_value=True)
    client.delete = AsyncMock(return_value=1)
    client.eval = AsyncMock(return_value=[1, 1, 60000])
    return client


@pytest.fixture
def http_scope():
    """Create a sample HTTP scope."""
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "POST",
        "scheme": "http",
        "path": "/api/keywords",
        "query_string": b"",
        "root_path": "",
        "headers": [
            (b"content-type", b"application/json"),
        ],
        "server": ("127.0.0.1", 8000),
        "client": ("10.0.0.7", 12345),
        "state": {},
    }


@pytest.fixture
def mock_asgi_app():
    """Mock ASGI application answering 200 with a JSON body."""

    async def app(scope, receive, send):
        await send(
            {
                "type": "http.response.start",
                "status": 200,
                "headers": [[b"content-type", b"application/json"]],
            }
        )
        await send({"type": "http.response.body", "body": b'{"result": "ok"}'})

    return AsyncMock(side_effect=app)
