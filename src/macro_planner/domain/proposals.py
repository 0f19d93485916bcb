"""Models for meal plans proposed by the text-generation service."""

from pydantic import BaseModel, Field, field_validator


class ProposedFood(BaseModel):
    """Single food line suggested by the proposer."""

    name: str
    quantity: float = 100.0
    unit: str = "g"
    reasoning: str | None = None

    @field_validator("quantity", mode="before")
    @classmethod
    def _default_quantity(cls, value: object) -> object:
        if value is None or value == "" or value == 0:
            return 100.0
        return value

    @field_validator("unit", mode="before")
    @classmethod
    def _default_unit(cls, value: object) -> object:
        return value or "g"


class ProposedMeal(BaseModel):
    """Meal suggested by the proposer."""

    name: str = "Meal"
    foods: list[ProposedFood] = Field(default_factory=list)


class ProposedPlan(BaseModel):
    """Structured meal plan extracted from proposer output."""

    meals: list[ProposedMeal]
    notes: str = ""
    reasoning: str = ""

    @field_validator("notes", "reasoning", mode="before")
    @classmethod
    def _coerce_text(cls, value: object) -> object:
        if value is None:
            return ""
        if isinstance(value, list | dict):
            return str(value)
        return value
