"""Food lookups against Nutritionix and USDA FoodData Central."""

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import httpx

from macro_planner.adapters.fdc_client import FdcClient
from macro_planner.adapters.nutritionix_client import NutritionixClient
from macro_planner.domain.nutrition import NutrientProfile, ResolvedFood
from macro_planner.services.cache import Cache
from macro_planner.services.names import cache_key, standardize_food_name
from macro_planner.services.targets import round_half_up, round_int

_NUTRIENT_IDS = {
    "calories": 1008,
    "protein": 1003,
    "fat": 1004,
    "carbs": 1005,
}

_logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable


@dataclass
class FoodLookupService:
    """Resolve food names to per-100 g nutrient profiles with caching.

    Both providers are queried concurrently and Nutritionix wins when both
    answer. Provider failures are logged and treated as no match.
    """

    cache: Cache
    nutritionix_client: NutritionixClient | None = None
    fdc_client: FdcClient | None = None
    ttl_seconds: int | None = None
    debug: bool = False
    retry_attempts: int = 1
    retry_delay_seconds: float = 0.3

    async def lookup(self, name: str) -> ResolvedFood | None:
        """Return the best match for ``name`` or None when nothing matches."""
        key = cache_key(name)
        cached = self.cache.get(key)
        if isinstance(cached, ResolvedFood):
            return cached

        query = standardize_food_name(name)
        nutritionix_food, fdc_food = await asyncio.gather(
            self._from_nutritionix(query), self._from_fdc(query)
        )
        food = nutritionix_food or fdc_food
        if food is None:
            _logger.info("Food lookup found no match: name=%s", name)
            return None

        self.cache.set(key, food, ttl_seconds=self.ttl_seconds)
        if self.debug:
            _logger.info(
                "Food lookup: name=%s match=%s source=%s", name, food.name, food.source
            )
        return food

    async def _from_nutritionix(self, query: str) -> ResolvedFood | None:
        if self.nutritionix_client is None:
            return None
        try:
            return await self._fetch_nutritionix(self.nutritionix_client, query)
        except Exception as exc:
            _logger.warning(
                "Nutritionix lookup failed (status=%s): %r",
                _status_code_from_exception(exc),
                exc,
            )
            return None

    async def _fetch_nutritionix(
        self, client: NutritionixClient, query: str
    ) -> ResolvedFood | None:
        search = await self._call_with_retry(
            lambda: client.search_instant(query), action="nutritionix:search"
        )
        common = search.get("common") or []
        if not common:
            return None
        best = common[0]
        food_name = str(best.get("food_name") or query)
        natural_query = _natural_query(
            best.get("serving_qty") or 1, best.get("serving_unit") or "", food_name
        )
        payload = await self._call_with_retry(
            lambda: client.natural_nutrients(natural_query),
            action="nutritionix:nutrients",
        )
        foods = payload.get("foods") or []
        if not foods:
            return None
        return _resolved_from_nutritionix(foods[0])

    async def _from_fdc(self, query: str) -> ResolvedFood | None:
        if self.fdc_client is None:
            return None
        try:
            return await self._fetch_fdc(self.fdc_client, query)
        except Exception as exc:
            _logger.warning(
                "FDC lookup failed (status=%s): %r",
                _status_code_from_exception(exc),
                exc,
            )
            return None

    async def _fetch_fdc(self, client: FdcClient, query: str) -> ResolvedFood | None:
        search = await self._call_with_retry(
            lambda: client.search_foods(query, page_size=5), action="fdc:search"
        )
        foods = search.get("foods") or []
        if not foods:
            return None
        fdc_id = foods[0]["fdcId"]
        payload = await self._call_with_retry(
            lambda: client.get_food(fdc_id), action=f"fdc:get_food:{fdc_id}"
        )

        profile = _extract_macros(payload.get("foodNutrients", []))
        if profile.calories <= 0:
            return None
        serving_size = payload.get("servingSize")
        return ResolvedFood(
            name=str(payload.get("description") or query),
            profile=profile,
            source="fdc",
            serving_qty=1 if serving_size else None,
            serving_unit="serving" if serving_size else None,
            serving_weight_g=float(serving_size) if serving_size else None,
        )

    async def _call_with_retry(
        self, func: "Callable[[], Awaitable[dict[str, object]]]", *, action: str
    ) -> dict[str, object]:
        """Call an async function with a short retry."""
        attempt = 0
        while True:
            try:
                return await func()
            except httpx.HTTPError as exc:
                attempt += 1
                if self.debug:
                    _logger.warning(
                        "Food lookup %s failed (attempt %s/%s, status=%s): %s",
                        action,
                        attempt,
                        self.retry_attempts + 1,
                        _status_code_from_exception(exc),
                        exc,
                    )
                if attempt > self.retry_attempts:
                    raise
                await asyncio.sleep(self.retry_delay_seconds)


def _natural_query(quantity: object, unit: str, name: str) -> str:
    return " ".join(part for part in (str(quantity), unit, name) if part)


def _resolved_from_nutritionix(food: dict[str, object]) -> ResolvedFood | None:
    """Convert a Nutritionix serving into a per-100 g profile."""
    weight = food.get("serving_weight_grams")
    if not weight:
        return None
    multiplier = 100 / float(weight)
    profile = NutrientProfile(
        calories=round_int(float(food.get("nf_calories") or 0) * multiplier),
        protein_g=round_half_up(float(food.get("nf_protein") or 0) * multiplier, 1),
        carbs_g=round_half_up(
            float(food.get("nf_total_carbohydrate") or 0) * multiplier, 1
        ),
        fat_g=round_half_up(float(food.get("nf_total_fat") or 0) * multiplier, 1),
    )
    return ResolvedFood(
        name=str(food.get("food_name", "")),
        profile=profile,
        source="nutritionix",
        serving_qty=food.get("serving_qty"),
        serving_unit=food.get("serving_unit"),
        serving_weight_g=float(weight),
    )


def _status_code_from_exception(exc: Exception) -> str:
    """Extract HTTP status code from an exception, if available."""
    response = getattr(exc, "response", None)
    status_code = getattr(response, "status_code", None)
    if isinstance(status_code, int):
        return str(status_code)
    return "n/a"


def _extract_macros(food_nutrients: list[dict[str, object]]) -> NutrientProfile:
    """Extract calories, protein, carbs and fat from FDC nutrients."""
    values = dict.fromkeys(_NUTRIENT_IDS, 0.0)
    for nutrient in food_nutrients:
        nutrient_info = nutrient.get("nutrient") or {}
        nutrient_id = nutrient_info.get("id") or nutrient.get("nutrientId")
        amount = nutrient.get("amount", nutrient.get("value"))
        if amount is None:
            continue
        for macro, macro_id in _NUTRIENT_IDS.items():
            if nutrient_id == macro_id:
                values[macro] = float(amount)

    return NutrientProfile(
        calories=values["calories"],
        protein_g=values["protein"],
        carbs_g=values["carbs"],
        fat_g=values["fat"],
    )
