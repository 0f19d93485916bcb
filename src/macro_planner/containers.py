"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from macro_planner.adapters.fdc_client import HttpxFdcClient
from macro_planner.adapters.nutritionix_client import HttpxNutritionixClient
from macro_planner.adapters.openai_proposer_client import OpenAIProposerClient
from macro_planner.config import Settings
from macro_planner.services.cache import InMemoryCache
from macro_planner.services.correction import MacroCorrector
from macro_planner.services.food_lookup import FoodLookupService
from macro_planner.services.planner import PlannerService
from macro_planner.services.profiles import ProfileService
from macro_planner.services.rate_limit import QuotaBackoff
from macro_planner.services.resolver import PlanResolver


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    cache: InMemoryCache
    backoff: QuotaBackoff
    food_lookup_service: FoodLookupService
    planner_service: PlannerService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    cache = InMemoryCache()
    backoff = QuotaBackoff(
        default_seconds=resolved_settings.quota_backoff_default_seconds,
        min_seconds=resolved_settings.quota_backoff_min_seconds,
    )

    nutritionix_client = None
    if resolved_settings.nutritionix_app_id and resolved_settings.nutritionix_api_key:
        nutritionix_client = HttpxNutritionixClient.create(
            app_id=resolved_settings.nutritionix_app_id,
            api_key=resolved_settings.nutritionix_api_key,
            base_url=resolved_settings.nutritionix_base_url,
        )
    fdc_client = None
    if resolved_settings.fdc_api_key:
        fdc_client = HttpxFdcClient.create(
            api_key=resolved_settings.fdc_api_key,
            base_url=resolved_settings.fdc_base_url,
        )

    food_lookup_service = FoodLookupService(
        cache=cache,
        nutritionix_client=nutritionix_client,
        fdc_client=fdc_client,
        ttl_seconds=resolved_settings.profile_cache_ttl_seconds,
        debug=resolved_settings.debug,
    )
    profile_service = ProfileService(
        cache=cache,
        lookup=food_lookup_service,
        ttl_seconds=resolved_settings.profile_cache_ttl_seconds,
    )
    proposer = OpenAIProposerClient.create(
        api_key=resolved_settings.openai_api_key,
        model=resolved_settings.openai_model,
        reasoning_effort=resolved_settings.openai_reasoning_effort,
        store=resolved_settings.openai_store,
    )
    planner_service = PlannerService(
        proposer=proposer,
        resolver=PlanResolver(food_lookup_service),
        backoff=backoff,
        corrector=MacroCorrector(
            profiles=profile_service,
            max_correction_calories=resolved_settings.max_correction_calories,
        ),
        max_attempts=resolved_settings.max_attempts,
        attempt_delay_seconds=resolved_settings.attempt_delay_seconds,
        empty_result_delay_seconds=resolved_settings.empty_result_delay_seconds,
        portion_correction_enabled=resolved_settings.portion_correction_enabled,
    )

    async def close_resources() -> None:
        await proposer.close()
        if nutritionix_client is not None:
            await nutritionix_client.close()
        if fdc_client is not None:
            await fdc_client.close()

    return AppContainer(
        settings=resolved_settings,
        cache=cache,
        backoff=backoff,
        food_lookup_service=food_lookup_service,
        planner_service=planner_service,
        close_resources=close_resources,
    )
