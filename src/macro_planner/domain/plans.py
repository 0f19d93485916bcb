"""Domain models for meal plans, targets and validation."""

from dataclasses import dataclass, field
from uuid import uuid4

from macro_planner.domain.nutrition import NutrientProfile

MACROS = ("protein", "carbs", "fat")
KCAL_PER_GRAM = {"protein": 4, "carbs": 4, "fat": 9}


def _portion_id() -> str:
    return uuid4().hex


@dataclass
class FoodPortion:
    """A quantity of a food inside a meal.

    A portion without a profile is a placeholder for a food that could not be
    resolved; it contributes nothing to totals. Alternatives are shown to the
    client as substitutes and never summed.
    """

    name: str
    quantity_g: float
    profile: NutrientProfile | None = None
    is_alternative: bool = False
    unit: str = "g"
    reasoning: str | None = None
    id: str = field(default_factory=_portion_id)

    @property
    def counts_toward_totals(self) -> bool:
        """Whether this portion contributes to plan totals."""
        return (
            not self.is_alternative
            and self.profile is not None
            and self.quantity_g > 0
        )


@dataclass
class Meal:
    """Named, ordered collection of food portions."""

    name: str
    portions: list[FoodPortion] = field(default_factory=list)


@dataclass(frozen=True)
class MacroSplit:
    """Share of calories assigned to each macro, in percent."""

    protein_pct: float
    carbs_pct: float
    fat_pct: float

    def percent(self, macro: str) -> float:
        """Return the target percentage for a macro."""
        return float(getattr(self, f"{macro}_pct"))


@dataclass(frozen=True)
class MacroTargets:
    """Daily calorie and macro gram targets."""

    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float
    protein_calories: int = 0
    carbs_calories: int = 0
    fat_calories: int = 0

    def grams(self, macro: str) -> float:
        """Return the gram target for a macro."""
        return float(getattr(self, f"{macro}_g"))


@dataclass(frozen=True)
class MacroTotals:
    """Actual totals computed from a plan."""

    calories: float
    protein: float
    carbs: float
    fat: float
    protein_pct: int = 0
    carbs_pct: int = 0
    fat_pct: int = 0

    def grams(self, macro: str) -> float:
        """Return the total grams for a macro."""
        return float(getattr(self, macro))


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of checking a plan against its targets."""

    is_valid: bool
    errors: list[str]
    actual_totals: MacroTotals


@dataclass(frozen=True)
class AttemptRecord:
    """One pass of the generation loop."""

    attempt_number: int
    meals: list[Meal] | None
    validation: ValidationResult | None
    adjustments: list[str] = field(default_factory=list)
    error: str | None = None


@dataclass(frozen=True)
class ClientProfile:
    """Anthropometrics used to estimate energy expenditure."""

    height_cm: float
    weight_kg: float
    age: int
    gender: str
    activity_multiplier: float
    name: str | None = None


@dataclass(frozen=True)
class PlanConstraints:
    """Diet preferences and restrictions for a planning session."""

    diet_type: str = "balanced"
    goals: str = "maintenance"
    restrictions: str = ""
    preferences: str = ""
    strict_preferences: bool = False
    client: ClientProfile | None = None


@dataclass
class DietPlan:
    """Accepted meal plan returned to callers."""

    meals: list[Meal]
    notes: str
    reasoning: str
    targets: MacroTargets
    validation: ValidationResult
    attempts: int
    correction: str | None = None


@dataclass
class CorrectionResult:
    """Outcome of the macro correction loop."""

    meals: list[Meal]
    correction_meal_added: bool
    reason: str | None = None
    added_portions: list[FoodPortion] = field(default_factory=list)
