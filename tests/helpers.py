"""Provider stubs shared by the gateway, pipeline and CLI tests."""

from __future__ import annotations

from auditkb.embed.gateway import EmbeddingGateway, RetryPolicy
from auditkb.embed.providers import EmbeddingProvider


class FakeAPIError(Exception):
    """Stand-in for a provider SDK error carrying an HTTP status / error code."""

    def __init__(self, status_code: int | None = None, code: str | None = None) -> None:
        super().__init__(f"fake provider error status={status_code} code={code}")
        self.status_code = status_code
        self.code = code


class FakeProvider(EmbeddingProvider):
    """Provider stub: records every call and returns deterministic 4-dim vectors.

    Args:
        name: Provider name.
        fail_times: Raise *error* for the first N calls, then succeed.
        always_fail: Raise *error* on every call.
        error: Exception raised on failing calls (default: HTTP 429).
    """

    def __init__(
        self,
        name: str = "openai",
        fail_times: int = 0,
        always_fail: bool = False,
        error: Exception | None = None,
    ) -> None:
        super().__init__(name=name, default_model=f"{name}-model", model=f"{name}-model")
        self.fail_times = fail_times
        self.always_fail = always_fail
        self.error = error or FakeAPIError(status_code=429)
        self.calls: list[list[str]] = []

    def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        if self.always_fail or len(self.calls) <= self.fail_times:
            raise self.error
        return [fake_vector(t) for t in texts]


def fake_vector(text: str) -> list[float]:
    return [float(len(text)), float(sum(map(ord, text)) % 9973), 1.0, 0.0]


def make_gateway(*providers: EmbeddingProvider, max_attempts: int = 6) -> EmbeddingGateway:
    return EmbeddingGateway(
        list(providers),
        RetryPolicy(max_attempts=max_attempts),
        sleep=lambda _seconds: None,
    )
