"""OpenAI Responses API client for meal plan proposals."""

from dataclasses import dataclass

import openai
from openai import AsyncOpenAI

from macro_planner.domain.errors import ProposerQuotaExceeded, ProposerUnavailable
from macro_planner.services.proposals import MealPlanProposer
from macro_planner.services.rate_limit import retry_delay_from_error

_INSTRUCTIONS = (
    "You are a precise registered dietitian. Reply with a single JSON object "
    "and no other text."
)


@dataclass
class OpenAIProposerClient(MealPlanProposer):
    """Meal plan proposer backed by the OpenAI Responses API."""

    client: AsyncOpenAI
    model: str
    reasoning_effort: str | None = None
    store: bool = False

    @classmethod
    def create(
        cls,
        api_key: str,
        model: str,
        reasoning_effort: str | None = None,
        store: bool = False,
    ) -> "OpenAIProposerClient":
        """Create an OpenAI proposer client."""
        return cls(
            client=AsyncOpenAI(api_key=api_key),
            model=model,
            reasoning_effort=reasoning_effort,
            store=store,
        )

    async def propose(self, prompt: str) -> str:
        """Send a planning prompt and return the raw response text."""
        request_payload: dict[str, object] = {
            "model": self.model,
            "instructions": _INSTRUCTIONS,
            "input": prompt,
            "store": self.store,
        }
        if self.reasoning_effort:
            request_payload["reasoning"] = {"effort": self.reasoning_effort}

        try:
            response = await self.client.responses.create(**request_payload)
        except openai.RateLimitError as exc:
            raise ProposerQuotaExceeded(
                "OpenAI rate limit or quota exceeded",
                retry_after_seconds=retry_delay_from_error(exc),
            ) from exc
        except openai.APIConnectionError as exc:
            raise ProposerUnavailable("OpenAI API is unreachable") from exc

        output_text = response.output_text
        if not output_text:
            raise RuntimeError("OpenAI returned an empty response")
        return output_text

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.client.close()
