"""Conversion of proposer quantities into grams."""

import logging

from macro_planner.domain.nutrition import ResolvedFood

_logger = logging.getLogger(__name__)

_GRAMS_PER_UNIT: dict[str, float] = {
    "g": 1,
    "gram": 1,
    "grams": 1,
    "kg": 1000,
    "kilogram": 1000,
    "oz": 28.35,
    "ounce": 28.35,
    "ounces": 28.35,
    "lb": 453.59,
    "lbs": 453.59,
    "pound": 453.59,
    "pounds": 453.59,
    "cup": 240,
    "cups": 240,
    "tbsp": 15,
    "tablespoon": 15,
    "tablespoons": 15,
    "tsp": 5,
    "teaspoon": 5,
    "teaspoons": 5,
    "ml": 1,
    "milliliter": 1,
    "milliliters": 1,
    "l": 1000,
    "liter": 1000,
    "liters": 1000,
    "fl oz": 30,
    "fluid ounce": 30,
    "fluid ounces": 30,
}

# Counted units whose weight depends on the food's serving size.
_PIECE_UNITS = frozenset(
    {
        "piece",
        "pieces",
        "slice",
        "slices",
        "serving",
        "servings",
        "item",
        "items",
        "medium",
        "large",
        "small",
        "whole",
        "fillet",
        "fillets",
        "patty",
        "patties",
        "breast",
    }
)


def convert_to_grams(
    quantity: float, unit: str | None, food: ResolvedFood | None = None
) -> float:
    """Convert a quantity in ``unit`` to grams.

    Piece-like units use the food's serving weight. Unknown units are treated
    as grams.
    """
    if quantity <= 0:
        return 0.0
    normalized = (unit or "g").strip().lower()

    if food is not None and _is_serving_unit(normalized, food):
        return quantity * _grams_per_serving_unit(food)

    if normalized in _GRAMS_PER_UNIT:
        return quantity * _GRAMS_PER_UNIT[normalized]

    if normalized in _PIECE_UNITS:
        if food is not None and food.serving_weight_g and food.serving_qty:
            return quantity * _grams_per_serving_unit(food)
        _logger.warning("Cannot convert %s to grams without serving weight", unit)
        return quantity

    _logger.warning("Unknown unit %s, treating quantity as grams", unit)
    return quantity


def _is_serving_unit(unit: str, food: ResolvedFood) -> bool:
    return bool(
        food.serving_unit
        and food.serving_weight_g
        and food.serving_qty
        and unit == food.serving_unit.strip().lower()
        and unit not in _GRAMS_PER_UNIT
    )


def _grams_per_serving_unit(food: ResolvedFood) -> float:
    if not food.serving_weight_g or not food.serving_qty:
        return 1.0
    return food.serving_weight_g / food.serving_qty
