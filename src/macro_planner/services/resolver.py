"""Conversion of proposed meals into resolved food portions."""

import asyncio
import logging
from dataclasses import dataclass

from macro_planner.domain.errors import FoodNotFound
from macro_planner.domain.nutrition import ResolvedFood
from macro_planner.domain.plans import FoodPortion, Meal, PlanConstraints
from macro_planner.domain.proposals import ProposedFood, ProposedPlan
from macro_planner.services.food_lookup import FoodLookupService
from macro_planner.services.names import parse_preferences
from macro_planner.services.units import convert_to_grams

_logger = logging.getLogger(__name__)


@dataclass
class PlanResolver:
    """Resolve every proposed food concurrently into a FoodPortion."""

    lookup: FoodLookupService

    async def resolve(
        self, proposal: ProposedPlan, constraints: PlanConstraints
    ) -> list[Meal]:
        """Return resolved meals, dropping meals that end up empty.

        With strict preferences only foods from the preference list are
        accepted and an unmatched item raises FoodNotFound. Otherwise the
        proposed name is tried first and an unmatched item becomes a
        placeholder portion that contributes nothing to totals.
        """
        preferences = parse_preferences(constraints.preferences)
        strict = constraints.strict_preferences and preferences is not None
        if constraints.strict_preferences and preferences is None:
            _logger.warning("Strict preferences requested without a preference list")

        tasks = [
            self._resolve_food(food, preferences, strict=strict)
            for meal in proposal.meals
            for food in meal.foods
        ]
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                raise result

        meals: list[Meal] = []
        position = 0
        for meal in proposal.meals:
            portions = results[position : position + len(meal.foods)]
            position += len(meal.foods)
            if portions:
                meals.append(Meal(name=meal.name, portions=list(portions)))
        return meals

    async def _resolve_food(
        self, food: ProposedFood, preferences: list[str] | None, *, strict: bool
    ) -> FoodPortion:
        for name in _attempt_names(food.name, preferences, strict=strict):
            match = await self.lookup.lookup(name)
            if match is not None:
                return _portion(food, match)

        if strict:
            raise FoodNotFound(food.name)
        _logger.warning("Could not find food %s, adding placeholder", food.name)
        return FoodPortion(
            name=food.name,
            quantity_g=convert_to_grams(food.quantity, food.unit),
            unit=food.unit,
            reasoning=food.reasoning or "No match found; placeholder added",
        )


def _attempt_names(
    proposed: str, preferences: list[str] | None, *, strict: bool
) -> list[str]:
    """Names to look up, in order."""
    names: list[str] = []
    if strict and preferences:
        lowered = proposed.strip().lower()
        names.extend(p for p in preferences if p.lower() == lowered)
        names.extend(p for p in preferences if p.lower() != lowered)
        return names
    if proposed:
        names.append(proposed)
    for preference in preferences or []:
        if all(preference.lower() != name.lower() for name in names):
            names.append(preference)
    return names


def _portion(food: ProposedFood, match: ResolvedFood) -> FoodPortion:
    return FoodPortion(
        name=match.name or food.name,
        quantity_g=convert_to_grams(food.quantity, food.unit, match),
        profile=match.profile,
        unit=food.unit,
        reasoning=food.reasoning,
    )
