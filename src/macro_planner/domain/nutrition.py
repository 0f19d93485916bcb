"""Nutrition domain models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class NutrientProfile:
    """Calories and macronutrients per 100 grams of a food."""

    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float

    def scaled(self, grams: float) -> "NutrientProfile":
        """Return the unrounded contribution of ``grams`` of this food."""
        factor = grams / 100.0
        return NutrientProfile(
            calories=self.calories * factor,
            protein_g=self.protein_g * factor,
            carbs_g=self.carbs_g * factor,
            fat_g=self.fat_g * factor,
        )

    def per_gram(self, macro: str) -> float:
        """Return grams of ``macro`` contributed by one gram of food."""
        return float(getattr(self, f"{macro}_g")) / 100.0


@dataclass(frozen=True)
class ResolvedFood:
    """A food matched in an external database."""

    name: str
    profile: NutrientProfile
    source: str
    serving_qty: float | None = None
    serving_unit: str | None = None
    serving_weight_g: float | None = None
