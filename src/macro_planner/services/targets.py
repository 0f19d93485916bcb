"""Calorie and macro target calculations."""

import logging
import math

from macro_planner.domain.errors import InvalidMacroSpec
from macro_planner.domain.plans import ClientProfile, MacroSplit, MacroTargets

_PERCENT_TOLERANCE = 0.1

_logger = logging.getLogger(__name__)


def round_half_up(value: float, digits: int = 0) -> float:
    """Round like a calculator: halves always go up."""
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def round_int(value: float) -> int:
    """Round half up to an integer."""
    return int(math.floor(value + 0.5))


def validate_split(split: MacroSplit) -> None:
    """Raise when the macro percentages do not add up to 100."""
    total = split.protein_pct + split.carbs_pct + split.fat_pct
    if abs(total - 100) > _PERCENT_TOLERANCE:
        raise InvalidMacroSpec(
            f"Macro percentages must add up to 100%. Current total: {total}%"
        )


def calculate_targets(
    base_target: float, calorie_adjustment: float, split: MacroSplit
) -> MacroTargets:
    """Convert a TDEE, an adjustment and a macro split into exact targets.

    Fat absorbs any rounding remainder so that the per-macro calories recomputed
    from the rounded gram targets add up to the adjusted calories. That
    recomputed sum is returned as the calorie target.
    """
    validate_split(split)
    adjusted = base_target + calorie_adjustment
    if adjusted <= 0:
        raise InvalidMacroSpec(
            f"Adjusted calorie target must be positive, got {adjusted} kcal"
        )

    protein_calories = round_int(adjusted * split.protein_pct / 100)
    carbs_calories = round_int(adjusted * split.carbs_pct / 100)
    fat_calories = round_int(adjusted * split.fat_pct / 100)

    protein_g = round_half_up(protein_calories / 4, 1)
    carbs_g = round_half_up(carbs_calories / 4, 1)

    discrepancy = adjusted - (protein_calories + carbs_calories + fat_calories)
    # A zero fat share can leave a negative remainder.
    fat_g = max(0.0, round_half_up((fat_calories + discrepancy) / 9, 1))

    final_protein = round_int(protein_g * 4)
    final_carbs = round_int(carbs_g * 4)
    final_fat = round_int(fat_g * 9)
    total = final_protein + final_carbs + final_fat
    if total != adjusted:
        _logger.info(
            "Calorie target recomputed from grams: adjusted=%s final=%s",
            adjusted,
            total,
        )

    return MacroTargets(
        calories=total,
        protein_g=protein_g,
        carbs_g=carbs_g,
        fat_g=fat_g,
        protein_calories=final_protein,
        carbs_calories=final_carbs,
        fat_calories=final_fat,
    )


def estimate_bmr(client: ClientProfile) -> float:
    """Average of the Mifflin-St Jeor and revised Harris-Benedict equations."""
    weight, height, age = client.weight_kg, client.height_cm, client.age
    if client.gender.lower() == "male":
        mifflin = 10 * weight + 6.25 * height - 5 * age + 5
        harris = 88.362 + 13.397 * weight + 4.799 * height - 5.677 * age
    else:
        mifflin = 10 * weight + 6.25 * height - 5 * age - 161
        harris = 447.593 + 9.247 * weight + 3.098 * height - 4.330 * age
    return (mifflin + harris) / 2


def estimate_tdee(client: ClientProfile) -> float:
    """Total daily energy expenditure from BMR and activity level."""
    return estimate_bmr(client) * client.activity_multiplier
