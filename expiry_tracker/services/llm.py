"""LLM service for OpenAI recipe generation."""

import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Any

import httpx

from expiry_tracker.config import Settings, get_settings
from expiry_tracker.exceptions import (
    ProviderEmptyResponse,
    ProviderInvalidShape,
    ProviderMalformedOutput,
    ProviderRequestError,
)
from expiry_tracker.schemas.recipe_suggestion import RecipeSuggestion
from expiry_tracker.services.llm_prompts import (
    RECIPE_SUGGESTION_INSTRUCTIONS,
    get_recipe_suggestion_prompt,
)

logger = logging.getLogger(__name__)

MAX_RECIPES = 3
UNTITLED_RECIPE = "Untitled Recipe"
DEFAULT_DESCRIPTION = "A quick recipe with your expiring ingredients."

_FENCE_OPEN = re.compile(r"^```(?:json)?\n?")
_FENCE_CLOSE = re.compile(r"\n?```$")


@dataclass
class GenerationResult:
    """Recipes plus the diagnostics recorded alongside them in the cache."""

    recipes: list[RecipeSuggestion]
    prompt_text: str
    model: str
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    time_ms: int


def extract_response_text(result: dict[str, Any]) -> str | None:
    """Recover the generated text from a Responses API payload.

    Prefers the ``output_text`` convenience field, then walks ``output`` in
    document order and returns the first non-empty text block.
    """
    output_text = result.get("output_text")
    if isinstance(output_text, str) and output_text:
        return output_text

    output = result.get("output")
    if not isinstance(output, list):
        return None

    for item in output:
        if not isinstance(item, dict):
            continue
        blocks = item.get("content")
        if isinstance(blocks, list):
            for block in blocks:
                text = block.get("text") if isinstance(block, dict) else None
                if isinstance(text, str) and text:
                    return text
        text = item.get("text")
        if isinstance(text, str) and text:
            return text
    return None


def strip_code_fences(content: str) -> str:
    """Remove surrounding whitespace and Markdown code fences."""
    text = content.strip()
    if text.startswith("```"):
        text = _FENCE_OPEN.sub("", text)
        text = _FENCE_CLOSE.sub("", text)
    return text


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(element) for element in value]


def coerce_recipe(raw: Any) -> RecipeSuggestion:
    """Coerce one loosely-shaped recipe object into a RecipeSuggestion."""
    data = raw if isinstance(raw, dict) else {}
    return RecipeSuggestion(
        title=str(data.get("title") or UNTITLED_RECIPE),
        description=str(data.get("description") or DEFAULT_DESCRIPTION),
        steps=_string_list(data.get("steps")),
        ingredients_used=_string_list(data.get("ingredients_used")),
    )


def parse_recipe_response(result: dict[str, Any]) -> list[RecipeSuggestion]:
    """Decode a provider payload into at most three validated recipes.

    Raises:
        ProviderEmptyResponse: no text could be recovered
        ProviderMalformedOutput: the text is not JSON
        ProviderInvalidShape: no non-empty recipes array
    """
    content = extract_response_text(result)
    if not content:
        output = result.get("output")
        output_info = str(len(output)) if isinstance(output, list) else "not array"
        logger.error(
            f"OpenAI empty response. Status: {result.get('status')}, "
            f"error: {json.dumps(result.get('error'))}, "
            f"incomplete_details: {json.dumps(result.get('incomplete_details'))}"
        )
        raise ProviderEmptyResponse(
            status=result.get("status"),
            error_detail=json.dumps(result.get("error")),
            output_info=output_info,
        )

    try:
        parsed = json.loads(strip_code_fences(content))
    except json.JSONDecodeError as e:
        raise ProviderMalformedOutput(content) from e

    # Handle both [...] and {"recipes": [...]} formats
    recipes = parsed if isinstance(parsed, list) else None
    if isinstance(parsed, dict):
        recipes = parsed.get("recipes")

    if not isinstance(recipes, list) or not recipes:
        raise ProviderInvalidShape()

    return [coerce_recipe(raw) for raw in recipes[:MAX_RECIPES]]


def _usage_counts(usage: Any) -> tuple[int, int, int]:
    """Normalize Responses API (input/output) and chat-style token counts."""
    if not isinstance(usage, dict):
        usage = {}
    prompt_tokens = usage.get("input_tokens", usage.get("prompt_tokens")) or 0
    completion_tokens = usage.get("output_tokens", usage.get("completion_tokens")) or 0
    total_tokens = usage.get("total_tokens") or prompt_tokens + completion_tokens
    return int(prompt_tokens), int(completion_tokens), int(total_tokens)


class LLMService:
    """Service for generating recipe suggestions with the OpenAI Responses API."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self.api_key = self.settings.openai_api_key
        self.base_url = self.settings.openai_base_url.rstrip("/")
        self.model = self.settings.openai_model
        self.max_output_tokens = self.settings.openai_max_output_tokens
        self.timeout = self.settings.openai_timeout_seconds

    async def generate(self, instructions: str, prompt: str) -> dict[str, Any]:
        """Call the Responses API and return the decoded JSON body.

        Raises:
            ProviderRequestError: on missing credentials, transport errors,
                non-2xx statuses or an incomplete generation
        """
        if not self.api_key:
            raise ProviderRequestError("OPENAI_API_KEY is not configured")

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/responses",
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json={
                        "model": self.model,
                        "instructions": instructions,
                        "input": prompt,
                        "max_output_tokens": self.max_output_tokens,
                    },
                )
        except httpx.HTTPError as e:
            logger.error(f"HTTP error calling OpenAI: {e}")
            raise ProviderRequestError(f"OpenAI request failed: {e}") from e

        if response.is_error:
            raise ProviderRequestError(f"OpenAI API error {response.status_code}: {response.text}")

        try:
            result = response.json()
        except ValueError as e:
            raise ProviderRequestError("OpenAI returned a non-JSON body") from e

        if not isinstance(result, dict):
            raise ProviderRequestError(
                f"OpenAI returned an unexpected body: {type(result).__name__}"
            )

        status = result.get("status")
        if status and status != "completed":
            detail = json.dumps(result["error"]) if result.get("error") else f"status={status}"
            raise ProviderRequestError(f"OpenAI response not completed: {detail}")

        return result

    async def generate_recipes(self, ingredients: list[str]) -> GenerationResult:
        """Generate up to three recipes that use the given ingredients."""
        prompt = get_recipe_suggestion_prompt(ingredients)

        start = time.monotonic()
        result = await self.generate(RECIPE_SUGGESTION_INSTRUCTIONS, prompt)
        time_ms = int((time.monotonic() - start) * 1000)

        recipes = parse_recipe_response(result)
        prompt_tokens, completion_tokens, total_tokens = _usage_counts(result.get("usage"))

        logger.info(
            f"Generated {len(recipes)} recipes for {len(ingredients)} ingredients "
            f"in {time_ms}ms ({total_tokens} tokens)"
        )
        return GenerationResult(
            recipes=recipes,
            prompt_text=prompt,
            model=self.model,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=total_tokens,
            time_ms=time_ms,
        )
