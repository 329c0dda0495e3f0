"""Resilient batch embedding: per-provider retry/backoff plus provider failover.

Retry policy (per provider, driven by tenacity):
  - Transient failures (HTTP 429, any 5xx, ``insufficient_quota``) are retried
    with exponential backoff: 1 s, 2 s, 4 s … capped at 20 s, plus up to
    250 ms of random jitter, for at most ``max_attempts`` attempts.
  - Any other failure stops that provider immediately.

Failover: when a provider gives up, the next configured provider is tried with
the same policy. If every provider fails, the last error is raised.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)
from tenacity.wait import wait_base

from auditkb.embed.providers import EmbeddingProvider
from auditkb.errors import (
    ConfigurationError,
    ProviderError,
    ProviderFatalError,
    ProviderTransientError,
)

_QUOTA_CODE = "insufficient_quota"

RetryCallback = Callable[[str, int, int, ProviderError, float], None]
FailoverCallback = Callable[[str, ProviderError], None]


@dataclass
class RetryPolicy:
    """Exponential backoff settings (delays in seconds)."""

    max_attempts: int = 6
    base_delay: float = 1.0
    max_delay: float = 20.0
    jitter: float = 0.25

    def wait_strategy(self) -> wait_base:
        """tenacity wait: ``base * 2**(n-1)`` capped at ``max_delay``, plus jitter."""
        return wait_exponential(multiplier=self.base_delay, max=self.max_delay) + wait_random(
            0, self.jitter
        )


def classify_error(exc: BaseException, provider: str = "") -> ProviderError:
    """Map a provider exception to ProviderTransientError or ProviderFatalError.

    Reads ``status_code`` (LiteLLM) or ``status`` and ``code`` attributes;
    falls back to matching ``insufficient_quota`` in the message.
    """
    if isinstance(exc, ProviderError):
        return exc

    status = getattr(exc, "status_code", None)
    if not isinstance(status, int):
        status = getattr(exc, "status", None)
    if not isinstance(status, int):
        status = None
    code = getattr(exc, "code", None)
    code = code if isinstance(code, str) else None
    if code is None and _QUOTA_CODE in str(exc):
        code = _QUOTA_CODE

    transient = (
        status == 429
        or (status is not None and 500 <= status < 600)
        or code == _QUOTA_CODE
    )
    cls = ProviderTransientError if transient else ProviderFatalError
    label = status if status is not None else (code or type(exc).__name__)
    return cls(f"{provider or 'provider'} failed ({label}): {exc}", provider=provider, status=status, code=code)


class EmbeddingGateway:
    """Turn a batch of texts into a batch of vectors across ordered providers.

    Args:
        providers: Providers in try order (primary first).
        policy: Retry policy applied to each provider.
        sleep: Blocking sleep function handed to tenacity (injectable for tests).
        on_retry: Called as ``on_retry(provider, attempt, max_attempts, error, delay)``
            before each backoff wait.
        on_failover: Called as ``on_failover(provider, error)`` when a provider
            gives up and another one is about to be tried.
    """

    def __init__(
        self,
        providers: Sequence[EmbeddingProvider],
        policy: RetryPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
        on_retry: RetryCallback | None = None,
        on_failover: FailoverCallback | None = None,
    ) -> None:
        if not providers:
            raise ConfigurationError("No embedding provider configured.")
        self.providers = list(providers)
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self._on_retry = on_retry
        self._on_failover = on_failover
        self.calls = 0

    @property
    def model(self) -> str:
        """Model of the primary provider."""
        return self.providers[0].model

    def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        """Return embeddings positionally aligned with *texts*.

        Raises:
            ProviderTransientError: If every provider exhausted its retries.
            ProviderFatalError: If the last provider tried failed non-transiently.
        """
        batch = list(texts)
        if not batch:
            return []

        last_error: ProviderError | None = None
        for idx, provider in enumerate(self.providers):
            try:
                return self._embed_with_retries(provider, batch)
            except ProviderError as err:
                last_error = err
                if idx + 1 < len(self.providers) and self._on_failover:
                    self._on_failover(provider.name, err)
        assert last_error is not None
        raise last_error

    def _embed_with_retries(
        self, provider: EmbeddingProvider, texts: list[str]
    ) -> list[list[float]]:
        retrying = Retrying(
            stop=stop_after_attempt(self.policy.max_attempts),
            wait=self.policy.wait_strategy(),
            retry=retry_if_exception_type(ProviderTransientError),
            before_sleep=self._retry_reporter(provider.name),
            sleep=self._sleep,
            reraise=True,
        )
        return retrying(self._attempt, provider, texts)

    def _attempt(self, provider: EmbeddingProvider, texts: list[str]) -> list[list[float]]:
        """One provider call; failures are re-raised as classified ProviderErrors."""
        self.calls += 1
        try:
            vectors = provider.embed(texts)
        except Exception as exc:
            err = classify_error(exc, provider.name)
            if err is exc:
                raise
            raise err from exc
        if len(vectors) != len(texts):
            raise ProviderFatalError(
                f"{provider.name} returned {len(vectors)} embeddings for {len(texts)} inputs",
                provider=provider.name,
            )
        return [list(v) for v in vectors]

    def _retry_reporter(self, provider: str) -> Callable[[RetryCallState], None]:
        def report(retry_state: RetryCallState) -> None:
            if self._on_retry is None:
                return
            err = retry_state.outcome.exception()
            delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
            self._on_retry(provider, retry_state.attempt_number, self.policy.max_attempts, err, delay)

        return report
