"""Prompt construction for initial and adjustment proposals."""

from macro_planner.domain.plans import (
    MACROS,
    AttemptRecord,
    MacroSplit,
    MacroTargets,
    Meal,
    PlanConstraints,
)
from macro_planner.services.profiles import PURE_MACRO_CANDIDATES
from macro_planner.services.targets import round_int
from macro_planner.services.validation import compute_totals, signed_deviations

DIET_TYPE_GUIDELINES = {
    "balanced": "Focus on whole foods, balanced macronutrients, and variety",
    "keto": (
        "Very low carb (<5%), high fat (70-80%), moderate protein. "
        "Focus on healthy fats and low-carb vegetables"
    ),
    "low-carb": (
        "Limit carbs to 20-30%, increase protein and healthy fats. "
        "Avoid grains, sugars, and starchy vegetables"
    ),
    "high-protein": (
        "Emphasize lean proteins, support muscle building and satiety. "
        "Include protein at every meal"
    ),
    "mediterranean": (
        "Emphasize olive oil, fish, vegetables, whole grains, legumes, and moderate wine"
    ),
    "paleo": (
        "Focus on whole foods: meat, fish, eggs, vegetables, fruits, nuts. "
        "Avoid grains, legumes, dairy"
    ),
    "vegan": (
        "Plant-based only: no animal products. "
        "Focus on legumes, grains, vegetables, fruits, nuts, seeds"
    ),
    "vegetarian": (
        "No meat or fish. Include dairy and eggs. Focus on plant proteins and variety"
    ),
}

GOAL_GUIDELINES = {
    "maintenance": "Maintain current weight with balanced nutrition and adequate calories",
    "weight-loss": (
        "Create moderate calorie deficit while preserving muscle mass. "
        "Emphasize protein and fiber"
    ),
    "weight-gain": (
        "Create calorie surplus with nutrient-dense foods. Focus on healthy weight gain"
    ),
    "muscle-building": (
        "Optimize protein intake (1.6-2.2g/kg body weight), "
        "ensure adequate calories and carbs for training"
    ),
    "fat-loss": "Preserve muscle while losing fat. High protein, moderate carbs",
    "athletic-performance": (
        "Optimize carbs for energy, adequate protein for recovery, proper hydration"
    ),
}

ADJUSTMENT_CALORIE_THRESHOLD = 50
ADJUSTMENT_MACRO_THRESHOLD = 5
HISTORY_WINDOW = 3

_RESPONSE_FORMAT = """Respond ONLY with a valid JSON object, no additional text:
{
  "meals": [
    {
      "name": "Meal name (e.g. Breakfast)",
      "foods": [
        {"name": "exact searchable food name", "quantity": number,
         "unit": "g", "reasoning": "why this food fits"}
      ]
    }
  ],
  "notes": "practical advice",
  "reasoning": "how the plan meets the targets"
}"""


def diet_type_guidelines(diet_type: str) -> str:
    return DIET_TYPE_GUIDELINES.get(diet_type, "Follow general healthy eating principles")


def goal_guidelines(goals: str) -> str:
    return GOAL_GUIDELINES.get(goals, "Support overall health and wellness")


def build_initial_prompt(  # noqa: PLR0913
    targets: MacroTargets,
    split: MacroSplit,
    meal_count: int,
    constraints: PlanConstraints,
    base_target: float,
    calorie_adjustment: float,
) -> str:
    """Prompt for the first proposal of a session."""
    lines = [
        "You are an expert registered dietitian. Build a one-day meal plan.",
        "",
    ]
    lines.extend(_client_lines(constraints))
    lines.extend(
        [
            f"Base TDEE: {base_target:g} kcal",
            f"Calorie adjustment: {_signed(calorie_adjustment)} kcal",
            "",
            "Targets (the plan must hit these within 50 kcal and 5 g):",
            *_target_lines(targets, split),
            "",
            f"Create exactly {meal_count} meals.",
            f"Diet type {constraints.diet_type}: "
            f"{diet_type_guidelines(constraints.diet_type)}",
            f"Goal {constraints.goals}: {goal_guidelines(constraints.goals)}",
        ]
    )
    lines.extend(_preference_lines(constraints))
    lines.extend(
        [
            'Use exact, searchable food names such as "chicken breast, skinless" '
            'or "brown rice, cooked", with quantities in grams.',
            "",
            _RESPONSE_FORMAT,
        ]
    )
    return "\n".join(lines)


def build_adjustments(meals: list[Meal], targets: MacroTargets) -> list[str]:
    """Describe the changes needed to bring ``meals`` onto the targets."""
    deviations = signed_deviations(compute_totals(meals), targets)
    adjustments: list[str] = []
    calories = deviations["calories"]
    if abs(calories) > ADJUSTMENT_CALORIE_THRESHOLD:
        verb = "Add" if calories > 0 else "Remove"
        adjustments.append(f"{verb} about {abs(round_int(calories))} kcal")
    for macro in MACROS:
        diff = deviations[macro]
        if abs(diff) > ADJUSTMENT_MACRO_THRESHOLD:
            verb = "Increase" if diff > 0 else "Decrease"
            adjustments.append(f"{verb} {macro} by {abs(diff):g}g")
    return adjustments


def build_adjustment_prompt(  # noqa: PLR0913
    meals: list[Meal],
    targets: MacroTargets,
    split: MacroSplit,
    meal_count: int,
    constraints: PlanConstraints,
    history: list[AttemptRecord],
) -> str:
    """Prompt asking the proposer to revise its most recent plan."""
    totals = compute_totals(meals)
    deviations = signed_deviations(totals, targets)
    lines = [
        "Your previous meal plan missed its targets. Revise it.",
        "",
        "Targets:",
        *_target_lines(targets, split),
        "",
        "Previous plan:",
    ]
    for meal in meals:
        foods = ", ".join(
            f"{portion.name} {round_int(portion.quantity_g)}g"
            for portion in meal.portions
            if not portion.is_alternative
        )
        lines.append(f"- {meal.name}: {foods}")
    lines.extend(
        [
            "",
            f"Actual: {totals.calories} kcal, protein {totals.protein}g, "
            f"carbs {totals.carbs}g, fat {totals.fat}g",
            "Needed change (target minus actual): "
            f"calories {_signed(deviations['calories'])}, "
            + ", ".join(f"{m} {_signed(deviations[m])}g" for m in MACROS),
        ]
    )

    adjustments = build_adjustments(meals, targets)
    if adjustments:
        lines.append("Required adjustments:")
        lines.extend(f"- {adjustment}" for adjustment in adjustments)

    hints = [
        f"- To add {macro}, prefer {', '.join(PURE_MACRO_CANDIDATES[macro])}"
        for macro in MACROS
        if deviations[macro] > ADJUSTMENT_MACRO_THRESHOLD
    ]
    if hints:
        lines.append("Foods dense in a single macro:")
        lines.extend(hints)

    recent = history[-HISTORY_WINDOW:]
    if recent:
        lines.append("Recent attempts:")
        lines.extend(_attempt_summary(record) for record in recent)

    lines.extend(
        [
            "",
            f"Keep exactly {meal_count} meals and the diet type "
            f"{constraints.diet_type}.",
        ]
    )
    lines.extend(_preference_lines(constraints))
    lines.extend(["", _RESPONSE_FORMAT])
    return "\n".join(lines)


def _client_lines(constraints: PlanConstraints) -> list[str]:
    client = constraints.client
    if client is None:
        return []
    return [
        f"Client: {client.name or 'N/A'}, {client.gender}, {client.age} years, "
        f"{client.height_cm:g} cm, {client.weight_kg:g} kg, "
        f"activity {client.activity_multiplier:g}",
    ]


def _target_lines(targets: MacroTargets, split: MacroSplit) -> list[str]:
    return [
        f"- Calories: {targets.calories:g} kcal",
        f"- Protein: {targets.protein_g:g}g ({split.protein_pct:g}%)",
        f"- Carbs: {targets.carbs_g:g}g ({split.carbs_pct:g}%)",
        f"- Fat: {targets.fat_g:g}g ({split.fat_pct:g}%)",
    ]


def _preference_lines(constraints: PlanConstraints) -> list[str]:
    lines = []
    if constraints.restrictions:
        lines.append(f"MUST AVOID: {constraints.restrictions}")
    if constraints.preferences:
        if constraints.strict_preferences:
            lines.append(f"Use ONLY these foods: {constraints.preferences}")
        else:
            lines.append(f"Prefer: {constraints.preferences}")
    return lines


def _attempt_summary(record: AttemptRecord) -> str:
    if record.validation is None:
        return f"- Attempt {record.attempt_number}: failed ({record.error or 'no plan'})"
    totals = record.validation.actual_totals
    return (
        f"- Attempt {record.attempt_number}: {totals.calories} kcal, "
        f"protein {totals.protein}g, carbs {totals.carbs}g, fat {totals.fat}g, "
        f"{len(record.validation.errors)} issues"
    )


def _signed(value: float) -> str:
    return f"{value:+g}"
