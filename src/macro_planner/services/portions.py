"""Portion correction strategies for plans that miss their targets.

All strategies work on a deep copy of the meals and return the adjusted copy,
or None when the strategy does not apply or cannot find an acceptable answer.
Callers try them from most to least precise and fall back on None.
"""

import copy
import logging
from dataclasses import dataclass

from macro_planner.domain.plans import MACROS, FoodPortion, MacroTargets, Meal
from macro_planner.services.nnls import nnls_solve
from macro_planner.services.targets import round_int
from macro_planner.services.validation import compute_totals

_logger = logging.getLogger(__name__)

SCALING_MIN_CALORIE_DIFF = 30
REDISTRIBUTION_MAX_CALORIE_DIFF = 200
REDISTRIBUTION_MIN_MACRO_DIFF = 5
REDISTRIBUTION_LARGE_MACRO_DIFF = 50
REDISTRIBUTION_DEFAULT_STEP_PCT = 6
REDISTRIBUTION_MIN_STEP_PCT = 2
# Early exit once every macro is inside these bands.
SECONDARY_TOLERANCES = {"protein": 10.0, "carbs": 10.0, "fat": 8.0}
EXACT_SOLVER_MIN_FACTOR = 0.01
EXACT_SOLVER_ITERATIONS = 1000


@dataclass(frozen=True)
class _Slot:
    meal_index: int
    portion_index: int
    portion: FoodPortion


def _counted_slots(meals: list[Meal]) -> list[_Slot]:
    return [
        _Slot(meal_index, portion_index, portion)
        for meal_index, meal in enumerate(meals)
        for portion_index, portion in enumerate(meal.portions)
        if portion.counts_toward_totals
    ]


def scale_portions(
    meals: list[Meal], targets: MacroTargets, max_scale_pct: float = 10
) -> list[Meal] | None:
    """Scale every portion by one factor to move calories toward the target."""
    totals = compute_totals(meals)
    calorie_diff = targets.calories - totals.calories
    if abs(calorie_diff) < SCALING_MIN_CALORIE_DIFF:
        return None

    limit = max_scale_pct / 100
    ratio = calorie_diff / max(1, totals.calories)
    factor = 1 + max(-limit, min(limit, ratio))

    scaled = copy.deepcopy(meals)
    for meal in scaled:
        for portion in meal.portions:
            if not portion.quantity_g:
                continue
            portion.quantity_g = max(1, round_int(portion.quantity_g * factor))
    _logger.info("Scaled portions by factor %.3f (calorie diff %s)", factor, calorie_diff)
    return scaled


def redistribute_portions(
    meals: list[Meal],
    targets: MacroTargets,
    max_pct_change: float = 20,
    rounds: int = 5,
) -> list[Meal] | None:
    """Greedily nudge single portions to fix macro imbalances.

    Only runs when calories are already within 200 kcal. Each round works on
    the macro with the largest absolute deviation and changes the portion that
    is densest in that macro per kcal, keeping the change only when it reduces
    the deviation.
    """
    adjusted = copy.deepcopy(meals)
    totals = compute_totals(adjusted)
    if abs(totals.calories - targets.calories) > REDISTRIBUTION_MAX_CALORIE_DIFF:
        return None

    for _ in range(rounds):
        totals = compute_totals(adjusted)
        diffs = {
            macro: targets.grams(macro) - totals.grams(macro) for macro in MACROS
        }
        if all(abs(diffs[m]) <= SECONDARY_TOLERANCES[m] for m in MACROS):
            break

        candidates = [
            slot
            for slot in _counted_slots(adjusted)
            if slot.portion.profile is not None and slot.portion.profile.calories > 0
        ]
        if not candidates:
            break

        macro = max(MACROS, key=lambda m: abs(diffs[m]))
        _nudge_for_macro(adjusted, candidates, targets, macro, diffs[macro], max_pct_change)

    final = compute_totals(adjusted)
    if abs(final.calories - targets.calories) > REDISTRIBUTION_MAX_CALORIE_DIFF:
        return None
    return adjusted


def _nudge_for_macro(  # noqa: PLR0913
    meals: list[Meal],
    candidates: list[_Slot],
    targets: MacroTargets,
    macro: str,
    diff: float,
    max_pct_change: float,
) -> None:
    if abs(diff) < REDISTRIBUTION_MIN_MACRO_DIFF:
        return

    def density(slot: _Slot) -> float:
        profile = slot.portion.profile
        if profile is None:
            return 0.0
        return profile.per_gram(macro) / (profile.calories / 100)

    step_pct = (
        max_pct_change
        if abs(diff) > REDISTRIBUTION_LARGE_MACRO_DIFF
        else REDISTRIBUTION_DEFAULT_STEP_PCT
    )
    step = max(REDISTRIBUTION_MIN_STEP_PCT, min(max_pct_change, step_pct)) / 100
    sign = 1 if diff > 0 else -1

    for slot in sorted(candidates, key=density, reverse=True):
        portion = meals[slot.meal_index].portions[slot.portion_index]
        original = portion.quantity_g
        portion.quantity_g = max(1, round_int(original * (1 + sign * step)))
        new_diff = targets.grams(macro) - compute_totals(meals).grams(macro)
        if abs(new_diff) < abs(diff):
            return
        portion.quantity_g = original


def solve_exact_portions(
    meals: list[Meal], targets: MacroTargets, max_scale_pct: float = 200
) -> list[Meal] | None:
    """Solve for absolute gram quantities of the existing foods with NNLS.

    The answer is rejected when any food would shrink below 1% or grow past
    ``max_scale_pct`` of its current quantity, or when calories end up more
    than max(100 kcal, 10%) away from the target.
    """
    slots = _counted_slots(meals)
    if not slots:
        return None

    matrix = [
        [
            slot.portion.profile.per_gram(macro) if slot.portion.profile else 0.0
            for slot in slots
        ]
        for macro in MACROS
    ]
    goal = [targets.grams(macro) for macro in MACROS]
    solution = nnls_solve(matrix, goal, max_iter=EXACT_SOLVER_ITERATIONS)
    if solution is None or len(solution) != len(slots):
        return None

    max_factor = max(0.1, max_scale_pct / 100)
    solved = copy.deepcopy(meals)
    for slot, raw_grams in zip(slots, solution, strict=True):
        grams = max(0, round_int(raw_grams))
        original = slot.portion.quantity_g or 1
        factor = grams / original
        if grams <= 0 or not EXACT_SOLVER_MIN_FACTOR <= factor <= max_factor:
            _logger.info(
                "Exact solver rejected: %s would change by factor %.2f",
                slot.portion.name,
                factor,
            )
            return None
        solved[slot.meal_index].portions[slot.portion_index].quantity_g = grams

    calories = compute_totals(solved).calories
    allowed = max(100, round_int(targets.calories * 0.1))
    if abs(calories - targets.calories) > allowed:
        _logger.info(
            "Exact solver rejected: calories %s vs target %s", calories, targets.calories
        )
        return None
    return solved
