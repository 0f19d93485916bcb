"""Tests for HTTP-based adapters."""

import asyncio
import json

import httpx
import openai
import pytest

from macro_planner.adapters.fdc_client import HttpxFdcClient
from macro_planner.adapters.nutritionix_client import HttpxNutritionixClient
from macro_planner.adapters.openai_proposer_client import OpenAIProposerClient
from macro_planner.domain.errors import ProposerQuotaExceeded, ProposerUnavailable


class _FakeResponses:
    def __init__(self, error: Exception | None = None) -> None:
        self.last_payload: dict[str, object] | None = None
        self.error = error

    async def create(self, **kwargs):  # type: ignore[no-untyped-def]
        self.last_payload = kwargs
        if self.error is not None:
            raise self.error
        return type("Resp", (), {"output_text": json.dumps({"meals": []})})()


class _FakeOpenAI:
    def __init__(self, error: Exception | None = None) -> None:
        self.responses = _FakeResponses(error)


def test_openai_proposer_returns_text() -> None:
    fake = _FakeOpenAI()
    client = OpenAIProposerClient(
        client=fake, model="gpt-5.2", reasoning_effort="low", store=False
    )

    result = asyncio.run(client.propose("Plan my day"))

    assert json.loads(result) == {"meals": []}
    assert fake.responses.last_payload["input"] == "Plan my day"
    assert fake.responses.last_payload["reasoning"] == {"effort": "low"}


def test_openai_rate_limit_becomes_quota_error() -> None:
    request = httpx.Request("POST", "https://api.openai.com/v1/responses")
    response = httpx.Response(429, headers={"retry-after": "12"}, request=request)
    error = openai.RateLimitError("quota exceeded", response=response, body=None)
    client = OpenAIProposerClient(client=_FakeOpenAI(error), model="gpt-5.2")

    with pytest.raises(ProposerQuotaExceeded) as excinfo:
        asyncio.run(client.propose("Plan my day"))

    assert excinfo.value.retry_after_seconds == 12


def test_openai_connection_error_becomes_unavailable() -> None:
    request = httpx.Request("POST", "https://api.openai.com/v1/responses")
    error = openai.APIConnectionError(request=request)
    client = OpenAIProposerClient(client=_FakeOpenAI(error), model="gpt-5.2")

    with pytest.raises(ProposerUnavailable):
        asyncio.run(client.propose("Plan my day"))


def test_fdc_client_search_and_get() -> None:
    seen: list[dict[str, object]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["api_key"] == "key"
        if request.url.path.endswith("/foods/search"):
            seen.append(json.loads(request.content.decode()))
            return httpx.Response(200, json={"foods": []})
        return httpx.Response(200, json={"fdcId": 1, "foodNutrients": []})

    transport = httpx.MockTransport(handler)
    async_client = httpx.AsyncClient(transport=transport)
    client = HttpxFdcClient(
        api_key="key",
        base_url="https://api.test",
        http_client=async_client,
    )

    search = asyncio.run(client.search_foods("rice"))
    food = asyncio.run(client.get_food(1))

    assert search == {"foods": []}
    assert food["fdcId"] == 1
    assert seen[0]["query"] == "rice"
    assert "Branded" not in seen[0]["dataType"]
    assert seen[0]["pageSize"] == 5


def test_fdc_client_rejects_non_object_reply() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json=[]))
    client = HttpxFdcClient(
        api_key="key",
        base_url="https://api.test",
        http_client=httpx.AsyncClient(transport=transport),
    )

    with pytest.raises(ValueError, match="expected object"):
        asyncio.run(client.get_food(1))


def test_nutritionix_client_sends_credentials() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["x-app-id"] == "app"
        assert request.headers["x-app-key"] == "secret"
        if request.url.path.endswith("/search/instant"):
            assert request.url.params["query"] == "oats"
            return httpx.Response(200, json={"common": [], "branded": []})
        assert request.url.path.endswith("/natural/nutrients")
        assert json.loads(request.content.decode()) == {"query": "1 cup oats"}
        return httpx.Response(200, json={"foods": []})

    transport = httpx.MockTransport(handler)
    async_client = httpx.AsyncClient(transport=transport)
    client = HttpxNutritionixClient(
        app_id="app",
        api_key="secret",
        base_url="https://trackapi.test/v2",
        http_client=async_client,
    )

    search = asyncio.run(client.search_instant("oats"))
    nutrients = asyncio.run(client.natural_nutrients("1 cup oats"))

    assert search == {"common": [], "branded": []}
    assert nutrients == {"foods": []}


def test_nutritionix_client_raises_on_error_status() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(500))
    client = HttpxNutritionixClient(
        app_id="app",
        api_key="secret",
        base_url="https://trackapi.test/v2",
        http_client=httpx.AsyncClient(transport=transport),
    )

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(client.search_instant("oats"))
