"""Tests for the plan generation loop."""

import asyncio

import httpx
import pytest

from macro_planner.adapters.fdc_client import HttpxFdcClient
from macro_planner.domain.errors import (
    AttemptsExhausted,
    FoodNotFound,
    InvalidMacroSpec,
    ProposerQuotaExceeded,
    ProposerUnavailable,
)
from macro_planner.domain.plans import MacroSplit, PlanConstraints
from macro_planner.services.cache import InMemoryCache
from macro_planner.services.food_lookup import FoodLookupService
from macro_planner.services.proposals import parse_proposal
from macro_planner.services.rate_limit import QuotaBackoff
from macro_planner.services.resolver import PlanResolver
from tests.conftest import (
    BALANCED_SPLIT,
    FakeClock,
    FakeNutritionixClient,
    FakeProposer,
    build_planner,
    plan_json,
)


def _plan(planner, constraints: PlanConstraints | None = None):
    return asyncio.run(
        planner.plan_diet(
            base_target=2500,
            calorie_adjustment=0,
            split=BALANCED_SPLIT,
            meal_count=2,
            constraints=constraints,
        )
    )


def test_accepts_first_valid_plan() -> None:
    proposer = FakeProposer(replies=[plan_json(187.5, 250, 83.3)])
    planner = build_planner(proposer)

    plan = _plan(planner)

    assert plan.attempts == 1
    assert plan.correction is None
    assert plan.validation.is_valid
    assert [meal.name for meal in plan.meals] == ["Breakfast", "Dinner"]
    assert plan.notes == "Drink water"
    assert plan.targets.calories == 2500
    assert len(proposer.prompts) == 1
    assert "Create exactly 2 meals" in proposer.prompts[0]


def test_exhausts_after_ten_attempts() -> None:
    proposer = FakeProposer(replies=[plan_json(203.5, 250, 83.3)])
    planner = build_planner(proposer)

    with pytest.raises(AttemptsExhausted, match="after 10 attempts") as excinfo:
        _plan(planner)

    history = excinfo.value.history
    assert len(proposer.prompts) == 10
    assert [record.attempt_number for record in history] == list(range(1, 11))
    assert all(not record.validation.is_valid for record in history)
    assert "Decrease protein by 16g" in history[0].adjustments
    assert "previous meal plan missed its targets" in proposer.prompts[1]
    assert "protein -16g" in proposer.prompts[1]


def test_local_correction_rescues_plan() -> None:
    proposer = FakeProposer(replies=[plan_json(203.5, 250, 83.3)])
    planner = build_planner(proposer, portion_correction_enabled=True)

    plan = _plan(planner)

    assert plan.attempts == 1
    assert plan.correction == "exact"
    assert plan.validation.is_valid


def test_adjustment_reaches_valid_plan() -> None:
    proposer = FakeProposer(
        replies=[plan_json(150, 250, 83.3), plan_json(187.5, 250, 83.3)]
    )
    planner = build_planner(proposer)

    plan = _plan(planner)

    assert plan.attempts == 2
    assert "Increase protein by 37.5g" in proposer.prompts[1]
    assert "whey protein, isolate" in proposer.prompts[1]


def test_malformed_response_consumes_attempt() -> None:
    proposer = FakeProposer(replies=["sorry, no plan today", plan_json(187.5, 250, 83.3)])
    planner = build_planner(proposer)

    plan = _plan(planner)

    assert plan.attempts == 2
    assert "Build a one-day meal plan" in proposer.prompts[1]


def test_transient_errors_consume_attempts() -> None:
    proposer = FakeProposer(replies=[RuntimeError("upstream hiccup")])
    planner = build_planner(proposer, max_attempts=3)

    with pytest.raises(AttemptsExhausted) as excinfo:
        _plan(planner)

    assert len(proposer.prompts) == 3
    assert all("upstream hiccup" in record.error for record in excinfo.value.history)


def test_empty_plan_consumes_attempt() -> None:
    proposer = FakeProposer(replies=['{"meals": []}', plan_json(187.5, 250, 83.3)])
    planner = build_planner(proposer)

    assert _plan(planner).attempts == 2


def test_quota_error_trips_shared_backoff() -> None:
    clock = FakeClock()
    backoff = QuotaBackoff(clock=clock)
    proposer = FakeProposer(
        replies=[ProposerQuotaExceeded("quota", retry_after_seconds=30)]
    )
    planner = build_planner(proposer, backoff=backoff)

    with pytest.raises(ProposerUnavailable):
        _plan(planner)

    assert backoff.remaining_seconds == 30
    other = FakeProposer(replies=[plan_json(187.5, 250, 83.3)])
    with pytest.raises(ProposerUnavailable, match="backoff"):
        _plan(build_planner(other, backoff=backoff))
    assert other.prompts == []

    clock.advance(30)
    assert _plan(build_planner(other, backoff=backoff)).attempts == 1


def test_generic_quota_message_trips_backoff() -> None:
    backoff = QuotaBackoff(clock=FakeClock())
    proposer = FakeProposer(replies=[RuntimeError('429 {"retryDelay": "45s"}')])

    with pytest.raises(ProposerUnavailable):
        _plan(build_planner(proposer, backoff=backoff))

    assert backoff.remaining_seconds == 45
    assert len(proposer.prompts) == 1


def test_invalid_split_fails_before_proposing() -> None:
    proposer = FakeProposer(replies=[plan_json(187.5, 250, 83.3)])
    planner = build_planner(proposer)

    with pytest.raises(InvalidMacroSpec):
        asyncio.run(
            planner.plan_diet(
                base_target=2500,
                calorie_adjustment=0,
                split=MacroSplit(50, 40, 30),
                meal_count=3,
            )
        )

    assert proposer.prompts == []


def test_strict_preferences_fail_attempt_when_nothing_matches() -> None:
    proposer = FakeProposer(replies=[plan_json(187.5, 250, 83.3)])
    planner = build_planner(proposer, max_attempts=2)
    constraints = PlanConstraints(preferences="dragon fruit", strict_preferences=True)

    with pytest.raises(AttemptsExhausted) as excinfo:
        _plan(planner, constraints)

    assert all(
        "No matching food found" in record.error for record in excinfo.value.history
    )
    assert "Use ONLY these foods: dragon fruit" in proposer.prompts[0]


def test_strict_preferences_substitute_allowed_food() -> None:
    reply = plan_json(187.5, 250, 83.3)
    proposer = FakeProposer(replies=[reply])
    planner = build_planner(proposer)
    constraints = PlanConstraints(
        preferences="pure protein, pure sugar, pure fat", strict_preferences=True
    )

    plan = _plan(planner, constraints)

    assert plan.attempts == 1


def test_unknown_food_becomes_placeholder() -> None:
    reply = plan_json(
        187.5,
        250,
        83.3,
        meals=[
            {
                "name": "Lunch",
                "foods": [
                    {"name": "pure protein", "quantity": 187.5},
                    {"name": "pure sugar", "quantity": 250},
                    {"name": "pure fat", "quantity": 83.3},
                    {"name": "mystery stew", "quantity": 2, "unit": "cups"},
                ],
            }
        ],
    )
    planner = build_planner(FakeProposer(replies=[reply]))

    plan = _plan(planner)

    placeholder = plan.meals[0].portions[-1]
    assert placeholder.name == "mystery stew"
    assert placeholder.profile is None
    assert placeholder.quantity_g == 480


def test_broken_food_provider_does_not_abort_planning() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>"))
    fdc_client = HttpxFdcClient(
        api_key="key",
        base_url="https://api.test",
        http_client=httpx.AsyncClient(transport=transport),
    )
    proposer = FakeProposer(replies=[plan_json(187.5, 250, 83.3)])
    planner = build_planner(proposer, fdc_client=fdc_client)

    plan = _plan(planner)

    assert plan.attempts == 1
    assert plan.validation.is_valid


def test_strict_resolution_raises_once_after_every_food_is_tried() -> None:
    nutritionix = FakeNutritionixClient()
    resolver = PlanResolver(
        FoodLookupService(cache=InMemoryCache(), nutritionix_client=nutritionix)
    )
    proposal = parse_proposal(plan_json(187.5, 250, 83.3))
    constraints = PlanConstraints(preferences="dragon fruit", strict_preferences=True)

    with pytest.raises(FoodNotFound):
        asyncio.run(resolver.resolve(proposal, constraints))

    assert len(nutritionix.search_calls) == 3
