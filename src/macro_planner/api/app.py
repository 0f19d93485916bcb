"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, status

from macro_planner.api.models import PlanRequest, PlanResponse
from macro_planner.app_logging import configure_logging
from macro_planner.containers import AppContainer
from macro_planner.domain.errors import (
    AttemptsExhausted,
    InvalidMacroSpec,
    ProposerUnavailable,
)
from macro_planner.services.targets import estimate_tdee, round_int


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/plans")
    async def create_plan(payload: PlanRequest, request: Request) -> PlanResponse:
        """Generate a meal plan that meets the requested macro targets."""
        state_container: AppContainer = request.app.state.container
        constraints = payload.constraints()
        base_target = payload.base_target
        if base_target is None and constraints.client is not None:
            base_target = round_int(estimate_tdee(constraints.client))
            logger.info("Estimated TDEE %s kcal from client profile", base_target)

        try:
            plan = await state_container.planner_service.plan_diet(
                base_target=base_target,
                calorie_adjustment=payload.calorie_adjustment,
                split=payload.split(),
                meal_count=payload.meal_count,
                constraints=constraints,
            )
        except InvalidMacroSpec as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        except AttemptsExhausted as exc:
            logger.warning("Plan generation exhausted: %s", exc)
            raise HTTPException(
                status_code=422,
                detail={
                    "message": str(exc),
                    "attempts": len(exc.history),
                    "last_errors": _last_errors(exc),
                },
            ) from exc
        except ProposerUnavailable as exc:
            logger.warning("Meal proposer unavailable: %s", exc)
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
            ) from exc

        return PlanResponse.from_plan(plan)

    return app


def _last_errors(exc: AttemptsExhausted) -> list[str]:
    for record in reversed(exc.history):
        if record.validation is not None:
            return record.validation.errors
        if record.error:
            return [record.error]
    return []
