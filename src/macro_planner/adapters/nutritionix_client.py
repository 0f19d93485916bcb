"""Nutritionix API client."""

from dataclasses import dataclass
from typing import Protocol

import httpx


class NutritionixClient(Protocol):
    """Interface for Nutritionix food search and nutrient lookups."""

    async def search_instant(self, query: str) -> dict[str, object]:
        """Return raw instant-search results (``common`` and ``branded``)."""

    async def natural_nutrients(self, query: str) -> dict[str, object]:
        """Return raw nutrient data for a natural-language food query."""


@dataclass
class HttpxNutritionixClient(NutritionixClient):
    """HTTPX-backed Nutritionix client."""

    app_id: str
    api_key: str
    base_url: str
    http_client: httpx.AsyncClient
    timeout_seconds: float = 15

    @classmethod
    def create(
        cls, app_id: str, api_key: str, base_url: str
    ) -> "HttpxNutritionixClient":
        """Create a Nutritionix client with a managed httpx session."""
        return cls(
            app_id=app_id,
            api_key=api_key,
            base_url=base_url,
            http_client=httpx.AsyncClient(),
        )

    def _headers(self) -> dict[str, str]:
        return {
            "x-app-id": self.app_id,
            "x-app-key": self.api_key,
            "Accept": "application/json",
        }

    async def search_instant(self, query: str) -> dict[str, object]:
        """Search common and branded foods."""
        response = await self.http_client.get(
            f"{self.base_url}/search/instant",
            params={"query": query},
            headers=self._headers(),
            timeout=self.timeout_seconds,
        )
        response.raise_for_status()
        return response.json()

    async def natural_nutrients(self, query: str) -> dict[str, object]:
        """Fetch full nutrients for a query such as ``1 cup brown rice``."""
        response = await self.http_client.post(
            f"{self.base_url}/natural/nutrients",
            json={"query": query},
            headers=self._headers(),
            timeout=self.timeout_seconds,
        )
        response.raise_for_status()
        return response.json()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
