"""Pydantic models for the planning API."""

from pydantic import BaseModel, Field, model_validator

from macro_planner.domain.plans import (
    ClientProfile,
    DietPlan,
    MacroSplit,
    PlanConstraints,
)
from macro_planner.services.targets import round_half_up, round_int


class ClientPayload(BaseModel):
    """Client anthropometrics used when no TDEE is supplied."""

    height_cm: float = Field(gt=0)
    weight_kg: float = Field(gt=0)
    age: int = Field(gt=0)
    gender: str
    activity_multiplier: float = Field(default=1.2, gt=0)
    name: str | None = None

    def to_domain(self) -> ClientProfile:
        return ClientProfile(**self.model_dump())


class PlanRequest(BaseModel):
    """Request body for ``POST /plans``."""

    base_target: float | None = Field(default=None, gt=0)
    calorie_adjustment: float = 0
    protein_pct: float
    carbs_pct: float
    fat_pct: float
    meal_count: int = Field(default=3, ge=1, le=10)
    diet_type: str = "balanced"
    goals: str = "maintenance"
    restrictions: str = ""
    preferences: str = ""
    strict_preferences: bool = False
    client: ClientPayload | None = None

    @model_validator(mode="after")
    def _require_energy_source(self) -> "PlanRequest":
        if self.base_target is None and self.client is None:
            raise ValueError("Either base_target or client must be provided")
        return self

    def split(self) -> MacroSplit:
        return MacroSplit(self.protein_pct, self.carbs_pct, self.fat_pct)

    def constraints(self) -> PlanConstraints:
        return PlanConstraints(
            diet_type=self.diet_type,
            goals=self.goals,
            restrictions=self.restrictions,
            preferences=self.preferences,
            strict_preferences=self.strict_preferences,
            client=self.client.to_domain() if self.client else None,
        )


class PortionPayload(BaseModel):
    """Food portion in a returned plan."""

    name: str
    quantity_g: float
    calories: int | None
    protein_g: float | None
    carbs_g: float | None
    fat_g: float | None
    is_alternative: bool = False
    reasoning: str | None = None


class MealPayload(BaseModel):
    """Meal in a returned plan."""

    name: str
    portions: list[PortionPayload]


class TotalsPayload(BaseModel):
    """Plan totals and macro percentages."""

    calories: float
    protein: float
    carbs: float
    fat: float
    protein_pct: int
    carbs_pct: int
    fat_pct: int


class TargetsPayload(BaseModel):
    """Daily targets derived from the request."""

    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float


class PlanResponse(BaseModel):
    """Accepted plan returned by ``POST /plans``."""

    meals: list[MealPayload]
    notes: str
    reasoning: str
    targets: TargetsPayload
    totals: TotalsPayload
    attempts: int
    correction: str | None = None

    @classmethod
    def from_plan(cls, plan: DietPlan) -> "PlanResponse":
        meals = []
        for meal in plan.meals:
            portions = []
            for portion in meal.portions:
                line = (
                    portion.profile.scaled(portion.quantity_g)
                    if portion.profile is not None
                    else None
                )
                portions.append(
                    PortionPayload(
                        name=portion.name,
                        quantity_g=portion.quantity_g,
                        calories=round_int(line.calories) if line else None,
                        protein_g=round_half_up(line.protein_g, 1) if line else None,
                        carbs_g=round_half_up(line.carbs_g, 1) if line else None,
                        fat_g=round_half_up(line.fat_g, 1) if line else None,
                        is_alternative=portion.is_alternative,
                        reasoning=portion.reasoning,
                    )
                )
            meals.append(MealPayload(name=meal.name, portions=portions))

        totals = plan.validation.actual_totals
        return cls(
            meals=meals,
            notes=plan.notes,
            reasoning=plan.reasoning,
            targets=TargetsPayload(
                calories=plan.targets.calories,
                protein_g=plan.targets.protein_g,
                carbs_g=plan.targets.carbs_g,
                fat_g=plan.targets.fat_g,
            ),
            totals=TotalsPayload(
                calories=totals.calories,
                protein=totals.protein,
                carbs=totals.carbs,
                fat=totals.fat,
                protein_pct=totals.protein_pct,
                carbs_pct=totals.carbs_pct,
                fat_pct=totals.fat_pct,
            ),
            attempts=plan.attempts,
            correction=plan.correction,
        )
