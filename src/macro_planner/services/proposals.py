"""Meal plan proposer interface and response parsing."""

import json
import logging
import re
from typing import Protocol

from pydantic import ValidationError

from macro_planner.domain.errors import ProposerMalformedResponse
from macro_planner.domain.proposals import ProposedPlan

_logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)
_TRAILING_COMMA = re.compile(r",\s*([}\]])")
_SMART_QUOTES = str.maketrans({"“": '"', "”": '"', "‘": "'", "’": "'"})


class MealPlanProposer(Protocol):
    """Interface for the text-generation service that drafts meal plans."""

    async def propose(self, prompt: str) -> str:
        """Return free text expected to contain one JSON meal plan."""


def parse_proposal(text: str) -> ProposedPlan:
    """Extract a meal plan from loosely formatted proposer output.

    Tries the raw JSON object first, then progressively more forgiving repairs
    (trailing commas, single quotes, both). Raises ProposerMalformedResponse
    when no variant parses into an object with a ``meals`` list.
    """
    if not text or not text.strip():
        raise ProposerMalformedResponse("Proposer returned an empty response")

    cleaned = _CODE_FENCE.sub("", text).translate(_SMART_QUOTES).strip()
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end <= start:
        raise ProposerMalformedResponse("No JSON object found in proposer response")
    candidate = cleaned[start : end + 1]

    without_commas = _TRAILING_COMMA.sub(r"\1", candidate)
    variants = (
        candidate,
        without_commas,
        candidate.replace("'", '"'),
        without_commas.replace("'", '"'),
    )
    for variant in variants:
        try:
            payload = json.loads(variant)
        except json.JSONDecodeError:
            continue
        if not isinstance(payload, dict) or "meals" not in payload:
            raise ProposerMalformedResponse("Proposer response has no 'meals' key")
        try:
            return ProposedPlan.model_validate(payload)
        except ValidationError as exc:
            raise ProposerMalformedResponse(
                f"Proposer meal plan has an invalid shape: {exc.error_count()} errors"
            ) from exc

    _logger.warning("Unparseable proposer response: %.200s", candidate)
    raise ProposerMalformedResponse("Proposer response is not valid JSON")
