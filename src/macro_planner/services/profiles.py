"""Nutrient profile chain for macro correction foods."""

import logging
from dataclasses import dataclass

from macro_planner.domain.nutrition import NutrientProfile, ResolvedFood
from macro_planner.services.cache import Cache
from macro_planner.services.food_lookup import FoodLookupService
from macro_planner.services.names import cache_key, standardize_food_name

_logger = logging.getLogger(__name__)

# Foods dense in a single macro, most preferred first.
PURE_MACRO_CANDIDATES: dict[str, list[str]] = {
    "protein": ["whey protein, isolate", "egg, white, raw", "chicken breast, skinless"],
    "carbs": ["brown rice, cooked", "oats, rolled", "banana, raw"],
    "fat": ["olive oil", "avocado, raw", "butter"],
}

FALLBACK_PROFILES: dict[str, NutrientProfile] = {
    "whey protein, isolate": NutrientProfile(400, 80, 8, 2),
    "egg, white, raw": NutrientProfile(52, 11, 0.7, 0.2),
    "chicken breast, skinless": NutrientProfile(165, 31, 0, 3.6),
    "brown rice, cooked": NutrientProfile(123, 2.7, 25.6, 1),
    "oats, rolled": NutrientProfile(389, 16.9, 66.3, 6.9),
    "banana, raw": NutrientProfile(89, 1.1, 22.8, 0.3),
    "olive oil": NutrientProfile(884, 0, 0, 100),
    "avocado, raw": NutrientProfile(160, 2, 9, 15),
    "butter": NutrientProfile(717, 0.9, 0.1, 81),
}


@dataclass
class ProfileService:
    """Resolve profiles from the cache, then external lookup, then constants."""

    cache: Cache
    lookup: FoodLookupService | None = None
    ttl_seconds: int | None = None

    async def fetch_profile(self, name: str) -> ResolvedFood | None:
        """Return a profile for ``name`` or None when no source knows it."""
        key = cache_key(name)
        cached = self.cache.get(key)
        if isinstance(cached, ResolvedFood):
            return cached

        if self.lookup is not None:
            found = await self.lookup.lookup(name)
            if found is not None:
                return found

        standardized = standardize_food_name(name).lower()
        profile = FALLBACK_PROFILES.get(standardized)
        if profile is None:
            return None
        _logger.info("Using built-in profile for %s", standardized)
        food = ResolvedFood(name=standardized, profile=profile, source="builtin")
        self.cache.set(key, food, ttl_seconds=self.ttl_seconds)
        return food
