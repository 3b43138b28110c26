"""
Pooled LLM clients for the Functions tier.

Client handles are bound to a provider and an API key, so they are pooled by
`provider::base_url::hash(api_key)`; rotating a key produces a new pool entry
without ever storing the secret itself.
"""

from __future__ import annotations

import hashlib
import logging
import os
import time
import typing as t
from dataclasses import dataclass

import openai
from openai import AsyncOpenAI

from rankpilot.cache.instance_pool import InstancePool
from rankpilot.core.errors import ConfigurationError
from rankpilot.monitoring.metrics import llm_latency_seconds
from rankpilot.utils.config import AIClientConfig, ResilienceConfig
from rankpilot.utils.resilience import CircuitBreaker, CircuitBreakerConfig, with_retries

logger = logging.getLogger(__name__)

# Failures worth retrying; auth and request errors fail fast.
TRANSIENT_ERRORS: t.Tuple[t.Type[BaseException], ...] = (
    openai.APIConnectionError,
    openai.APITimeoutError,
    openai.RateLimitError,
    openai.InternalServerError,
)


@dataclass(frozen=True)
class ProviderSettings:
    name: str
    base_url: str
    api_key_env: t.Tuple[str, ...]


PROVIDERS: t.Dict[str, ProviderSettings] = {
    "openai": ProviderSettings("openai", "https://api.openai.com/v1", ("OPENAI_API_KEY",)),
    # Gemini through its OpenAI-compatible endpoint
    "gemini": ProviderSettings(
        "gemini",
        "https://generativelanguage.googleapis.com/v1beta/openai/",
        ("GEMINI_API_KEY", "GOOGLE_AI_API_KEY"),
    ),
}

ClientFactory = t.Callable[[ProviderSettings, str, float], t.Any]


def resolve_provider(model: str) -> ProviderSettings:
    """Map a model name to the provider that serves it."""
    if model.lower().startswith("gemini"):
        return PROVIDERS["gemini"]
    return PROVIDERS["openai"]


def _api_key_hash(api_key: str | None) -> str:
    if not api_key:
        return "no-key"
    return hashlib.sha256(api_key.encode("utf-8")).hexdigest()[:16]


def _pool_key(provider: ProviderSettings, api_key: str | None) -> str:
    base_url = provider.base_url.strip().rstrip("/")
    return f"{provider.name}::{base_url}::{_api_key_hash(api_key)}"


def build_openai_client(provider: ProviderSettings, api_key: str, timeout_seconds: float) -> AsyncOpenAI:
    return AsyncOpenAI(api_key=api_key, base_url=provider.base_url, timeout=timeout_seconds)


class AIClientManager:
    """Hands out pooled LLM clients and runs prompts through them.

    Construction failures (most commonly a missing API key) surface as
    `ConfigurationError` from `get_client`/`generate` and leave nothing in the
    pool. Outbound calls go through a circuit breaker and a short retry loop.
    """

    def __init__(
        self,
        config: t.Optional[AIClientConfig] = None,
        resilience: t.Optional[ResilienceConfig] = None,
        *,
        client_factory: ClientFactory = build_openai_client,
        environ: t.Optional[t.Mapping[str, str]] = None,
        clock: t.Callable[[], float] = time.time,
    ) -> None:
        self._config = config or AIClientConfig()
        self._resilience = resilience or ResilienceConfig()
        self._client_factory = client_factory
        self._environ = os.environ if environ is None else environ
        self._pool: InstancePool[str, t.Any] = InstancePool(
            max_size=self._config.pool_max_size,
            cleanup_interval_seconds=self._config.pool_cleanup_interval_seconds,
            name="ai-clients",
            clock=clock,
        )
        self._breaker = CircuitBreaker(
            CircuitBreakerConfig(
                failure_threshold=self._resilience.failure_threshold,
                reset_timeout_seconds=self._resilience.reset_timeout_seconds,
            ),
            name="llm",
            clock=clock,
        )

    @property
    def pool(self) -> InstancePool[str, t.Any]:
        return self._pool

    def _api_key(self, provider: ProviderSettings) -> t.Optional[str]:
        explicit = self._config.api_keys.get(provider.name)
        if explicit:
            return explicit
        for env_name in provider.api_key_env:
            value = self._environ.get(env_name)
            if value:
                return value
        return None

    def get_client(self, model: t.Optional[str] = None) -> t.Any:
        provider = resolve_provider(model or self._config.default_model)
        api_key = self._api_key(provider)

        def factory() -> t.Any:
            if not api_key:
                raise ConfigurationError(
                    f"No API key configured for provider {provider.name}",
                    details={"provider": provider.name, "env": list(provider.api_key_env)},
                )
            logger.info("Creating %s client", provider.name)
            return self._client_factory(provider, api_key, self._config.request_timeout_seconds)

        return self._pool.acquire(_pool_key(provider, api_key), factory)

    async def generate(self, prompt: str, model: t.Optional[str] = None, **kwargs: t.Any) -> str:
        model_name = model or self._config.default_model
        client = self.get_client(model_name)

        async def _call() -> str:
            response = await client.chat.completions.create(
                model=model_name,
                messages=[{"role": "user", "content": prompt}],
                **kwargs,
            )
            return response.choices[0].message.content or ""

        async def _with_retries() -> str:
            return await with_retries(
                _call,
                attempts=self._resilience.retry_max_attempts,
                backoff_ms=self._resilience.retry_backoff_ms,
                retry_on=TRANSIENT_ERRORS,
            )

        start = time.perf_counter()
        outcome = "error"
        try:
            if self._resilience.circuit_breaker_enabled:
                result = await self._breaker.run(_with_retries)
            else:
                result = await _with_retries()
            outcome = "ok"
            return result
        finally:
            llm_latency_seconds.observe(time.perf_counter() - start, model=model_name, outcome=outcome)

    def cleanup(self) -> None:
        """Drop every pooled client, e.g. on a low-memory signal."""
        self._pool.cleanup()
