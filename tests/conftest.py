"""Shared test fixtures."""

import json
from dataclasses import dataclass, field

import pytest

from macro_planner.adapters.fdc_client import FdcClient
from macro_planner.adapters.nutritionix_client import NutritionixClient
from macro_planner.config import Settings
from macro_planner.containers import AppContainer
from macro_planner.domain.nutrition import NutrientProfile
from macro_planner.domain.plans import FoodPortion, MacroSplit, Meal
from macro_planner.services.cache import InMemoryCache
from macro_planner.services.correction import MacroCorrector
from macro_planner.services.food_lookup import FoodLookupService
from macro_planner.services.planner import PlannerService
from macro_planner.services.profiles import ProfileService
from macro_planner.services.proposals import MealPlanProposer
from macro_planner.services.rate_limit import QuotaBackoff
from macro_planner.services.resolver import PlanResolver

PURE_PROTEIN = NutrientProfile(calories=400, protein_g=100, carbs_g=0, fat_g=0)
PURE_CARBS = NutrientProfile(calories=400, protein_g=0, carbs_g=100, fat_g=0)
PURE_FAT = NutrientProfile(calories=900, protein_g=0, carbs_g=0, fat_g=100)

# Per-100 g values served by the fake Nutritionix client.
FAKE_FOODS: dict[str, NutrientProfile] = {
    "pure protein": PURE_PROTEIN,
    "pure sugar": PURE_CARBS,
    "pure fat": PURE_FAT,
}

# 2500 kcal at 30/40/30 gives 187.5 g protein, 250 g carbs, 83.3 g fat.
BALANCED_SPLIT = MacroSplit(protein_pct=30, carbs_pct=40, fat_pct=30)


def pure_meals(protein_g: float, carbs_g: float, fat_g: float) -> list[Meal]:
    """One meal of single-macro foods in the given gram amounts."""
    return [
        Meal(
            name="Day",
            portions=[
                FoodPortion("pure protein", protein_g, PURE_PROTEIN),
                FoodPortion("pure sugar", carbs_g, PURE_CARBS),
                FoodPortion("pure fat", fat_g, PURE_FAT),
            ],
        )
    ]


def plan_json(protein_g: float, carbs_g: float, fat_g: float, **extra: object) -> str:
    """Proposer output describing a plan made of the fake pure foods."""
    payload = {
        "meals": [
            {
                "name": "Breakfast",
                "foods": [
                    {"name": "pure protein", "quantity": protein_g, "unit": "g"},
                    {"name": "pure sugar", "quantity": carbs_g, "unit": "g"},
                ],
            },
            {
                "name": "Dinner",
                "foods": [{"name": "pure fat", "quantity": fat_g, "unit": "g"}],
            },
        ],
        "notes": "Drink water",
        "reasoning": "Single-macro foods",
    }
    payload.update(extra)
    return json.dumps(payload)


@dataclass
class FakeProposer(MealPlanProposer):
    """Proposer that replays scripted replies and records prompts.

    The last reply repeats once the script runs out. Exceptions in the
    script are raised instead of returned.
    """

    replies: list[str | Exception] = field(default_factory=list)
    prompts: list[str] = field(default_factory=list)

    async def propose(self, prompt: str) -> str:
        self.prompts.append(prompt)
        index = min(len(self.prompts), len(self.replies)) - 1
        reply = self.replies[index]
        if isinstance(reply, Exception):
            raise reply
        return reply


@dataclass
class FakeNutritionixClient(NutritionixClient):
    """Nutritionix client answering from a fixed table of 100 g servings."""

    foods: dict[str, NutrientProfile] = field(default_factory=lambda: dict(FAKE_FOODS))
    search_calls: list[str] = field(default_factory=list)
    nutrient_calls: list[str] = field(default_factory=list)

    async def search_instant(self, query: str) -> dict[str, object]:
        self.search_calls.append(query)
        name = query.lower()
        if name not in self.foods:
            return {"common": [], "branded": []}
        return {
            "common": [{"food_name": name, "serving_qty": 100, "serving_unit": "g"}],
            "branded": [],
        }

    async def natural_nutrients(self, query: str) -> dict[str, object]:
        self.nutrient_calls.append(query)
        for name, profile in self.foods.items():
            if query.lower().endswith(name):
                return {
                    "foods": [
                        {
                            "food_name": name,
                            "serving_qty": 100,
                            "serving_unit": "g",
                            "serving_weight_grams": 100,
                            "nf_calories": profile.calories,
                            "nf_protein": profile.protein_g,
                            "nf_total_carbohydrate": profile.carbs_g,
                            "nf_total_fat": profile.fat_g,
                        }
                    ]
                }
        return {"foods": []}


@dataclass
class FakeFdcClient(FdcClient):
    """FDC client returning one generic food for every search."""

    description: str = "Rice, brown, long-grain, cooked"
    nutrients: dict[int, float] = field(
        default_factory=lambda: {1008: 123, 1003: 2.7, 1005: 25.6, 1004: 1}
    )
    found: bool = True
    search_calls: int = 0
    food_calls: int = 0

    async def search_foods(self, query: str, page_size: int = 5) -> dict[str, object]:
        self.search_calls += 1
        if not self.found:
            return {"foods": []}
        return {"foods": [{"fdcId": 169704, "description": self.description}]}

    async def get_food(self, fdc_id: int) -> dict[str, object]:
        self.food_calls += 1
        return {
            "fdcId": fdc_id,
            "description": self.description,
            "foodNutrients": [
                {"nutrient": {"id": nutrient_id}, "amount": amount}
                for nutrient_id, amount in self.nutrients.items()
            ],
        }


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def build_planner(  # noqa: PLR0913
    proposer: MealPlanProposer,
    *,
    backoff: QuotaBackoff | None = None,
    max_attempts: int = 10,
    portion_correction_enabled: bool = False,
    nutritionix_client: NutritionixClient | None = None,
    fdc_client: FdcClient | None = None,
) -> PlannerService:
    """Planner over the fake food table with no sleeps between attempts."""
    cache = InMemoryCache()
    lookup = FoodLookupService(
        cache=cache,
        nutritionix_client=nutritionix_client or FakeNutritionixClient(),
        fdc_client=fdc_client,
    )
    return PlannerService(
        proposer=proposer,
        resolver=PlanResolver(lookup),
        backoff=backoff or QuotaBackoff(clock=FakeClock()),
        corrector=MacroCorrector(ProfileService(cache=cache, lookup=lookup)),
        max_attempts=max_attempts,
        attempt_delay_seconds=0,
        empty_result_delay_seconds=0,
        portion_correction_enabled=portion_correction_enabled,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        openai_api_key="openai-key",
        nutritionix_app_id="nix-app",
        nutritionix_api_key="nix-key",
        fdc_api_key="fdc-key",
    )


@pytest.fixture
def proposer() -> FakeProposer:
    return FakeProposer(replies=[plan_json(187.5, 250, 83.3)])


@pytest.fixture
def container(settings: Settings, proposer: FakeProposer) -> AppContainer:
    planner_service = build_planner(proposer)

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        cache=InMemoryCache(),
        backoff=planner_service.backoff,
        food_lookup_service=planner_service.resolver.lookup,
        planner_service=planner_service,
        close_resources=close_resources,
    )
