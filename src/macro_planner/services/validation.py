"""Plan totals and tolerance validation."""

import logging
from collections.abc import Iterable

from macro_planner.domain.plans import (
    KCAL_PER_GRAM,
    MACROS,
    MacroSplit,
    MacroTargets,
    MacroTotals,
    Meal,
    ValidationResult,
)
from macro_planner.services.targets import round_half_up, round_int

CALORIE_TOLERANCE = 150
MACRO_TOLERANCE_G = 15
PERCENT_TOLERANCE = 3

_logger = logging.getLogger(__name__)


def compute_totals(meals: Iterable[Meal]) -> MacroTotals:
    """Sum calories and macros over every counted portion.

    Each line is rounded before it is accumulated (calories to whole kcal,
    macros to one decimal), mirroring how a printed plan adds up.
    """
    calories = 0
    protein = 0.0
    carbs = 0.0
    fat = 0.0
    for meal in meals:
        for portion in meal.portions:
            if not portion.counts_toward_totals or portion.profile is None:
                continue
            line = portion.profile.scaled(portion.quantity_g)
            calories += round_int(line.calories)
            protein = round_half_up(protein + round_half_up(line.protein_g, 1), 1)
            carbs = round_half_up(carbs + round_half_up(line.carbs_g, 1), 1)
            fat = round_half_up(fat + round_half_up(line.fat_g, 1), 1)

    return MacroTotals(
        calories=calories,
        protein=protein,
        carbs=carbs,
        fat=fat,
        protein_pct=_percent_of_calories(protein, "protein", calories),
        carbs_pct=_percent_of_calories(carbs, "carbs", calories),
        fat_pct=_percent_of_calories(fat, "fat", calories),
    )


def validate_plan(
    meals: list[Meal], targets: MacroTargets, split: MacroSplit
) -> ValidationResult:
    """Check a plan against the fixed calorie, gram and percentage tolerances."""
    totals = compute_totals(meals)
    errors: list[str] = []

    calorie_deviation = abs(totals.calories - targets.calories)
    if calorie_deviation > CALORIE_TOLERANCE:
        errors.append(
            f"Calorie deviation too high: target {targets.calories} kcal, "
            f"actual {totals.calories} kcal, deviation {calorie_deviation} kcal "
            f"(max allowed: {CALORIE_TOLERANCE} kcal)"
        )

    for macro in MACROS:
        deviation = round_half_up(abs(totals.grams(macro) - targets.grams(macro)), 1)
        if deviation > MACRO_TOLERANCE_G:
            errors.append(
                f"{macro.capitalize()} deviation too high: "
                f"target {targets.grams(macro)}g, actual {totals.grams(macro)}g, "
                f"deviation {deviation}g (max allowed: {MACRO_TOLERANCE_G}g)"
            )

    for macro in MACROS:
        actual_pct = getattr(totals, f"{macro}_pct")
        target_pct = split.percent(macro)
        if abs(actual_pct - target_pct) > PERCENT_TOLERANCE:
            errors.append(
                f"{macro.capitalize()} percentage off: "
                f"target {target_pct}%, actual {actual_pct}%"
            )

    if errors:
        _logger.info(
            "Plan validation failed: target=%s actual=%s errors=%s",
            targets,
            totals,
            len(errors),
        )
    return ValidationResult(is_valid=not errors, errors=errors, actual_totals=totals)


def signed_deviations(totals: MacroTotals, targets: MacroTargets) -> dict[str, float]:
    """Return target minus actual for calories and each macro."""
    deviations = {"calories": targets.calories - totals.calories}
    for macro in MACROS:
        deviations[macro] = round_half_up(
            targets.grams(macro) - totals.grams(macro), 1
        )
    return deviations


def _percent_of_calories(grams: float, macro: str, total_calories: float) -> int:
    if total_calories <= 0:
        return 0
    return round_int(grams * KCAL_PER_GRAM[macro] / total_calories * 100)
