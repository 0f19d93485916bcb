"""Food name normalization and preference parsing."""

import re

_STANDARD_NAMES = {
    "chicken": "chicken breast, skinless",
    "chicken breast": "chicken breast, skinless",
    "brown rice": "brown rice, cooked",
    "white rice": "rice, white, cooked",
    "olive oil": "olive oil",
    "egg white": "egg, white, raw",
    "whey": "whey protein, isolate",
}

_PREFERENCE_SEPARATORS = re.compile(r"[,\n;]")


def standardize_food_name(name: str) -> str:
    """Map common shorthand to a database-searchable food name."""
    if not name:
        return name
    return _STANDARD_NAMES.get(name.strip().lower(), name.strip())


def cache_key(name: str) -> str:
    """Cache key for a food name."""
    return f"food:{standardize_food_name(name).lower()}"


def parse_preferences(raw: str | None) -> list[str] | None:
    """Split a free-form preference list into standardized food names."""
    if not raw:
        return None
    parts = [part.strip() for part in _PREFERENCE_SEPARATORS.split(raw)]
    names = [standardize_food_name(part) for part in parts if part]
    return names or None
