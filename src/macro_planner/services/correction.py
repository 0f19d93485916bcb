"""Macro correction loop that appends a corrective meal."""

import logging
from dataclasses import dataclass

from macro_planner.domain.nutrition import ResolvedFood
from macro_planner.domain.plans import (
    MACROS,
    CorrectionResult,
    FoodPortion,
    MacroTargets,
    Meal,
)
from macro_planner.services.nnls import nnls_solve
from macro_planner.services.profiles import PURE_MACRO_CANDIDATES, ProfileService
from macro_planner.services.targets import round_half_up, round_int
from macro_planner.services.validation import compute_totals

CORRECTION_MEAL_NAME = "Macro correction"
MIN_MACRO_DEFICIT_G = 1
CALORIE_NOOP_TOLERANCE = 50

_logger = logging.getLogger(__name__)


@dataclass
class MacroCorrector:
    """Cover macro deficits with foods dense in a single macro."""

    profiles: ProfileService
    max_candidates: int = 3
    max_correction_calories: float = 800

    async def correct(self, meals: list[Meal], targets: MacroTargets) -> CorrectionResult:
        """Append a "Macro correction" meal to ``meals`` when deficits remain.

        The list is modified in place and also returned in the result.
        """
        totals = compute_totals(meals)
        calorie_deficit = targets.calories - totals.calories
        deficits = {
            macro: round_half_up(targets.grams(macro) - totals.grams(macro), 1)
            for macro in MACROS
        }
        needed = [macro for macro in MACROS if deficits[macro] > MIN_MACRO_DEFICIT_G]
        if not needed and abs(calorie_deficit) <= CALORIE_NOOP_TOLERANCE:
            return CorrectionResult(
                meals=meals, correction_meal_added=False, reason="within tolerance"
            )

        candidates: list[ResolvedFood] = []
        for name in self._pick_candidates(needed):
            food = await self.profiles.fetch_profile(name)
            if food is not None:
                candidates.append(food)
        if not candidates:
            return CorrectionResult(
                meals=meals, correction_meal_added=False, reason="no profiles"
            )

        grams = self._solve(candidates, deficits)
        if not any(grams):
            grams = self._greedy(candidates, deficits, needed)
        if not any(grams):
            return CorrectionResult(
                meals=meals,
                correction_meal_added=False,
                reason="unable to compute correction",
            )

        grams = self._cap_calories(candidates, grams)
        portions = [
            FoodPortion(
                name=food.name,
                quantity_g=amount,
                profile=food.profile,
                reasoning=CORRECTION_MEAL_NAME,
            )
            for food, amount in zip(candidates, grams, strict=True)
            if amount > 0
        ]
        meals.append(Meal(name=CORRECTION_MEAL_NAME, portions=portions))
        _logger.info(
            "Added correction meal: deficits=%s foods=%s",
            deficits,
            [(p.name, p.quantity_g) for p in portions],
        )
        return CorrectionResult(
            meals=meals, correction_meal_added=True, added_portions=portions
        )

    def _pick_candidates(self, needed: list[str]) -> list[str]:
        """Take candidates round-robin across the deficient macros."""
        picked: list[str] = []
        rank = 0
        while len(picked) < self.max_candidates:
            row = [
                PURE_MACRO_CANDIDATES[macro][rank]
                for macro in needed
                if rank < len(PURE_MACRO_CANDIDATES[macro])
            ]
            if not row:
                break
            picked.extend(row)
            rank += 1
        return picked[: self.max_candidates]

    @staticmethod
    def _solve(candidates: list[ResolvedFood], deficits: dict[str, float]) -> list[int]:
        matrix = [[food.profile.per_gram(macro) for food in candidates] for macro in MACROS]
        solution = nnls_solve(matrix, [deficits[macro] for macro in MACROS])
        if solution is None or len(solution) != len(candidates):
            return [0] * len(candidates)
        return [max(0, round_int(value)) for value in solution]

    @staticmethod
    def _greedy(
        candidates: list[ResolvedFood], deficits: dict[str, float], needed: list[str]
    ) -> list[int]:
        grams = [0] * len(candidates)
        for macro in needed:
            best = max(
                range(len(candidates)),
                key=lambda i: candidates[i].profile.per_gram(macro),
            )
            density = candidates[best].profile.per_gram(macro)
            if density <= 0:
                continue
            grams[best] += max(0, round_int(deficits[macro] / density))
        return grams

    def _cap_calories(self, candidates: list[ResolvedFood], grams: list[int]) -> list[int]:
        calories = sum(
            round_int(food.profile.calories * amount / 100)
            for food, amount in zip(candidates, grams, strict=True)
        )
        if calories <= self.max_correction_calories:
            return grams
        scale = self.max_correction_calories / calories
        _logger.info("Capping correction calories %s -> %s", calories, self.max_correction_calories)
        return [max(1, round_int(amount * scale)) if amount > 0 else 0 for amount in grams]
