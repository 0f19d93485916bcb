"""Generate, validate and correct meal plans against macro targets."""

import asyncio
import copy
import logging
from collections.abc import Callable
from dataclasses import dataclass

from macro_planner.domain.errors import (
    AttemptsExhausted,
    FoodNotFound,
    ProposerMalformedResponse,
    ProposerQuotaExceeded,
    ProposerUnavailable,
)
from macro_planner.domain.plans import (
    AttemptRecord,
    DietPlan,
    MacroSplit,
    MacroTargets,
    Meal,
    PlanConstraints,
    ValidationResult,
)
from macro_planner.domain.proposals import ProposedPlan
from macro_planner.services.correction import MacroCorrector
from macro_planner.services.portions import (
    redistribute_portions,
    scale_portions,
    solve_exact_portions,
)
from macro_planner.services.prompts import (
    build_adjustment_prompt,
    build_adjustments,
    build_initial_prompt,
)
from macro_planner.services.proposals import MealPlanProposer, parse_proposal
from macro_planner.services.rate_limit import (
    QuotaBackoff,
    looks_like_quota_error,
    retry_delay_from_error,
)
from macro_planner.services.resolver import PlanResolver
from macro_planner.services.targets import calculate_targets
from macro_planner.services.validation import validate_plan

_logger = logging.getLogger(__name__)

_PORTION_STRATEGIES: tuple[
    tuple[str, Callable[[list[Meal], MacroTargets], list[Meal] | None]], ...
] = (
    ("exact", solve_exact_portions),
    ("redistribute", redistribute_portions),
    ("scale", scale_portions),
)


@dataclass
class _Candidate:
    meals: list[Meal]
    notes: str
    reasoning: str


@dataclass
class PlannerService:
    """Drive the proposer until a plan lands inside the tolerance bands.

    Each attempt asks the proposer for a plan (a fresh plan first, then a
    revision of the latest one), resolves its foods and validates the
    totals. When ``portion_correction_enabled`` is set, invalid plans are
    first passed through the local correction strategies.
    """

    proposer: MealPlanProposer
    resolver: PlanResolver
    backoff: QuotaBackoff
    corrector: MacroCorrector | None = None
    max_attempts: int = 10
    attempt_delay_seconds: float = 0.7
    empty_result_delay_seconds: float = 0.5
    portion_correction_enabled: bool = False

    async def plan_diet(  # noqa: PLR0913
        self,
        base_target: float,
        calorie_adjustment: float,
        split: MacroSplit,
        meal_count: int,
        constraints: PlanConstraints | None = None,
    ) -> DietPlan:
        """Return the first plan meeting the targets.

        Raises InvalidMacroSpec for bad inputs, ProposerUnavailable when the
        proposer is in quota backoff, and AttemptsExhausted with the attempt
        history when no attempt succeeds.
        """
        constraints = constraints or PlanConstraints()
        targets = calculate_targets(base_target, calorie_adjustment, split)
        history: list[AttemptRecord] = []
        latest: list[Meal] | None = None

        for attempt in range(1, self.max_attempts + 1):
            if latest is None:
                prompt = build_initial_prompt(
                    targets, split, meal_count, constraints, base_target, calorie_adjustment
                )
            else:
                prompt = build_adjustment_prompt(
                    latest, targets, split, meal_count, constraints, history
                )

            try:
                candidate = await self._propose(prompt, constraints)
            except (ProposerMalformedResponse, FoodNotFound) as exc:
                _logger.warning("Attempt %s failed: %s", attempt, exc)
                history.append(AttemptRecord(attempt, None, None, error=str(exc)))
                await self._pause(attempt, self.attempt_delay_seconds)
                continue

            if not candidate.meals:
                _logger.warning("Attempt %s produced no meals", attempt)
                history.append(AttemptRecord(attempt, None, None, error="empty plan"))
                await self._pause(attempt, self.empty_result_delay_seconds)
                continue

            meals = candidate.meals
            validation = validate_plan(meals, targets, split)
            strategy = None
            if not validation.is_valid and self.portion_correction_enabled:
                corrected = await self._correct(meals, targets, split)
                if corrected is not None:
                    strategy, meals, validation = corrected

            if validation.is_valid:
                history.append(AttemptRecord(attempt, meals, validation))
                _logger.info(
                    "Plan accepted on attempt %s (correction=%s)", attempt, strategy
                )
                return DietPlan(
                    meals=meals,
                    notes=candidate.notes,
                    reasoning=candidate.reasoning,
                    targets=targets,
                    validation=validation,
                    attempts=attempt,
                    correction=strategy,
                )

            adjustments = build_adjustments(meals, targets)
            history.append(AttemptRecord(attempt, meals, validation, adjustments))
            _logger.info(
                "Attempt %s rejected with %s issues: %s",
                attempt,
                len(validation.errors),
                "; ".join(validation.errors),
            )
            latest = meals
            await self._pause(attempt, self.attempt_delay_seconds)

        _logger.warning("Giving up after %s attempts", self.max_attempts)
        raise AttemptsExhausted(self.max_attempts, history)

    async def _propose(self, prompt: str, constraints: PlanConstraints) -> _Candidate:
        if not self.backoff.try_acquire():
            raise ProposerUnavailable(
                "Meal proposer is in quota backoff, retry in "
                f"{self.backoff.remaining_seconds:.0f}s"
            )
        try:
            text = await self.proposer.propose(prompt)
        except ProposerQuotaExceeded as exc:
            self.backoff.trip(exc.retry_after_seconds)
            raise ProposerUnavailable(str(exc)) from exc
        except ProposerUnavailable:
            raise
        except Exception as exc:
            if looks_like_quota_error(exc):
                self.backoff.trip(retry_delay_from_error(exc))
                raise ProposerUnavailable("Meal proposer quota exceeded") from exc
            raise ProposerMalformedResponse(f"Proposer call failed: {exc}") from exc

        proposal: ProposedPlan = parse_proposal(text)
        meals = await self.resolver.resolve(proposal, constraints)
        return _Candidate(meals=meals, notes=proposal.notes, reasoning=proposal.reasoning)

    async def _correct(
        self, meals: list[Meal], targets: MacroTargets, split: MacroSplit
    ) -> tuple[str, list[Meal], ValidationResult] | None:
        """Try local corrections from most to least precise."""
        for name, strategy in _PORTION_STRATEGIES:
            adjusted = strategy(meals, targets)
            if adjusted is None:
                continue
            validation = validate_plan(adjusted, targets, split)
            if validation.is_valid:
                return name, adjusted, validation

        if self.corrector is None:
            return None
        result = await self.corrector.correct(copy.deepcopy(meals), targets)
        if not result.correction_meal_added:
            return None
        validation = validate_plan(result.meals, targets, split)
        if validation.is_valid:
            return "macro_correction", result.meals, validation
        return None

    async def _pause(self, attempt: int, seconds: float) -> None:
        if attempt < self.max_attempts and seconds > 0:
            await asyncio.sleep(seconds)
