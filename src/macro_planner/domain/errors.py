"""Planner error taxonomy."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from macro_planner.domain.plans import AttemptRecord


class PlannerError(Exception):
    """Base class for planning failures surfaced to callers."""


class InvalidMacroSpec(PlannerError, ValueError):  # noqa: N818
    """Macro percentages or calorie inputs cannot produce targets."""


class ProposerUnavailable(PlannerError):  # noqa: N818
    """The meal proposer is unreachable or in quota backoff."""


class ProposerQuotaExceeded(PlannerError):  # noqa: N818
    """The meal proposer reported a rate limit or exhausted quota."""

    def __init__(self, message: str, retry_after_seconds: float | None = None) -> None:
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds


class ProposerMalformedResponse(PlannerError):  # noqa: N818
    """The proposer's free text did not contain a usable meal plan."""


class FoodNotFound(PlannerError):  # noqa: N818
    """No allowed food could be resolved for a requested item."""

    def __init__(self, food_name: str) -> None:
        super().__init__(f"No matching food found for '{food_name}'")
        self.food_name = food_name


class AttemptsExhausted(PlannerError):  # noqa: N818
    """Every attempt produced a plan outside the tolerance bands."""

    def __init__(self, max_attempts: int, history: list[AttemptRecord]) -> None:
        super().__init__(
            "Failed to generate a diet plan meeting the macro targets "
            f"after {max_attempts} attempts"
        )
        self.max_attempts = max_attempts
        self.history = history
