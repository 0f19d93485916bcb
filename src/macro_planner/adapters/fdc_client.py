"""USDA FoodData Central client restricted to generic (per 100 g) foods."""

from dataclasses import dataclass
from typing import Protocol

import httpx

# Branded records report per-serving label values, so only these are searched.
GENERIC_DATA_TYPES = ("Foundation", "SR Legacy", "Survey (FNDDS)")


class FdcClient(Protocol):
    """Search and detail calls used by the food lookup service."""

    async def search_foods(self, query: str, page_size: int = 5) -> dict[str, object]:
        """Return the raw search payload; matches are listed under ``foods``."""

    async def get_food(self, fdc_id: int) -> dict[str, object]:
        """Return the raw detail payload including ``foodNutrients``."""


def search_body(query: str, page_size: int) -> dict[str, object]:
    """JSON body for ``POST /foods/search`` limited to generic foods."""
    return {
        "query": query,
        "pageSize": page_size,
        "pageNumber": 1,
        "dataType": list(GENERIC_DATA_TYPES),
    }


@dataclass
class HttpxFdcClient(FdcClient):
    """FoodData Central over httpx; the API key travels as a query parameter."""

    api_key: str
    base_url: str
    http_client: httpx.AsyncClient
    timeout_seconds: float = 15

    @classmethod
    def create(cls, api_key: str, base_url: str) -> "HttpxFdcClient":
        return cls(
            api_key=api_key,
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(),
        )

    async def search_foods(self, query: str, page_size: int = 5) -> dict[str, object]:
        return await self._request(
            "POST", "/foods/search", json=search_body(query, page_size)
        )

    async def get_food(self, fdc_id: int) -> dict[str, object]:
        return await self._request("GET", f"/food/{fdc_id}")

    async def _request(
        self, method: str, path: str, **kwargs: object
    ) -> dict[str, object]:
        """Send an authenticated request and decode a JSON object reply.

        Raises ``httpx.HTTPStatusError`` for error statuses and ``ValueError``
        when the body is not a JSON object.
        """
        response = await self.http_client.request(
            method,
            f"{self.base_url}{path}",
            params={"api_key": self.api_key},
            headers={"Accept": "application/json"},
            timeout=self.timeout_seconds,
            **kwargs,
        )
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict):
            raise ValueError(
                f"FDC {method} {path} returned {type(payload).__name__}, expected object"
            )
        return payload

    async def close(self) -> None:
        await self.http_client.aclose()
