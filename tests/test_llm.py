"""Tests for the OpenAI recipe generation adapter."""

import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from expiry_tracker.exceptions import (
    ProviderEmptyResponse,
    ProviderInvalidShape,
    ProviderMalformedOutput,
    ProviderRequestError,
)
from expiry_tracker.services.llm import (
    DEFAULT_DESCRIPTION,
    UNTITLED_RECIPE,
    LLMService,
    extract_response_text,
    parse_recipe_response,
    strip_code_fences,
)

RECIPE = {
    "title": "Spinach Omelette",
    "description": "Fluffy eggs with wilted spinach.",
    "steps": ["Whisk eggs", "Wilt spinach", "Cook together"],
    "ingredients_used": ["eggs", "spinach"],
}


def _response(payload) -> dict:
    return {"status": "completed", "output_text": json.dumps(payload)}


class TestExtractResponseText:
    """Tests for recovering text from a Responses API payload."""

    def test_prefers_output_text(self):
        """The convenience field wins over the output list."""
        result = {
            "output_text": "[1]",
            "output": [{"content": [{"type": "output_text", "text": "[2]"}]}],
        }
        assert extract_response_text(result) == "[1]"

    def test_walks_output_content_blocks(self):
        """The first non-empty text block in document order is used."""
        result = {
            "output": [
                {"type": "reasoning", "content": []},
                {"type": "message", "content": [{"text": ""}, {"text": "first"}, {"text": "x"}]},
                {"type": "message", "content": [{"text": "second"}]},
            ]
        }
        assert extract_response_text(result) == "first"

    def test_falls_back_to_item_text(self):
        """An item-level text field is used when it has no content blocks."""
        result = {"output": [{"type": "reasoning"}, {"type": "message", "text": "plain"}]}
        assert extract_response_text(result) == "plain"

    def test_returns_none_without_text(self):
        """No recoverable text yields None."""
        assert extract_response_text({"output": [{"content": [{"type": "refusal"}]}]}) is None
        assert extract_response_text({"output": "not a list"}) is None


def test_strip_code_fences():
    """Markdown fences are removed before parsing."""
    assert strip_code_fences('```json\n[{"a": 1}]\n```') == '[{"a": 1}]'
    assert strip_code_fences("```\n[]\n```") == "[]"
    assert strip_code_fences("  [] ") == "[]"


class TestParseRecipeResponse:
    """Tests for the tolerant recipe decoder."""

    def test_parses_bare_array(self):
        """A bare JSON array of recipes is accepted."""
        recipes = parse_recipe_response(_response([RECIPE]))
        assert len(recipes) == 1
        assert recipes[0].title == "Spinach Omelette"
        assert recipes[0].steps == ["Whisk eggs", "Wilt spinach", "Cook together"]

    def test_parses_recipes_object(self):
        """An object with a recipes array is accepted."""
        recipes = parse_recipe_response(_response({"recipes": [RECIPE, RECIPE]}))
        assert len(recipes) == 2

    def test_parses_fenced_output_text(self):
        """Fenced JSON inside an output block is accepted."""
        result = {"output": [{"content": [{"text": f"```json\n{json.dumps([RECIPE])}\n```"}]}]}
        assert parse_recipe_response(result)[0].title == "Spinach Omelette"

    def test_truncates_to_three(self):
        """Five recipes are truncated to exactly three."""
        payload = [{**RECIPE, "title": f"Recipe {i}"} for i in range(5)]
        recipes = parse_recipe_response(_response(payload))
        assert [r.title for r in recipes] == ["Recipe 0", "Recipe 1", "Recipe 2"]

    def test_coerces_missing_and_odd_fields(self):
        """Missing fields get placeholders and elements are stringified."""
        payload = [
            {"description": None, "steps": "not a list", "ingredients_used": [1, "milk", 2.5]},
            "just a string",
        ]
        recipes = parse_recipe_response(_response(payload))

        assert recipes[0].title == UNTITLED_RECIPE
        assert recipes[0].description == DEFAULT_DESCRIPTION
        assert recipes[0].steps == []
        assert recipes[0].ingredients_used == ["1", "milk", "2.5"]
        assert recipes[1].title == UNTITLED_RECIPE
        assert recipes[1].ingredients_used == []

    def test_empty_response_raises(self):
        """No recoverable text raises ProviderEmptyResponse with the status."""
        with pytest.raises(ProviderEmptyResponse) as exc_info:
            parse_recipe_response({"status": "completed", "output": [], "error": None})
        assert exc_info.value.status == "completed"
        assert "output length: 0" in str(exc_info.value)

    def test_malformed_json_raises_with_preview(self):
        """Unparseable text raises ProviderMalformedOutput with a 200 char preview."""
        raw = "Here are some recipes! " + "x" * 500
        with pytest.raises(ProviderMalformedOutput) as exc_info:
            parse_recipe_response({"output_text": raw})
        assert exc_info.value.raw_preview == raw[:200]

    @pytest.mark.parametrize("payload", [[], {"recipes": []}, {"recipes": "none"}, {"foo": 1}, 42])
    def test_invalid_shape_raises(self, payload):
        """Empty or non-array recipe lists raise ProviderInvalidShape."""
        with pytest.raises(ProviderInvalidShape):
            parse_recipe_response(_response(payload))


class TestLLMService:
    """Tests for the HTTP side of the adapter."""

    @pytest.mark.asyncio
    async def test_generate_recipes_reports_diagnostics(self, settings):
        """Token usage and prompt text are returned with the recipes."""
        service = LLMService(settings)
        result = {
            **_response([RECIPE] * 4),
            "usage": {"input_tokens": 100, "output_tokens": 250, "total_tokens": 350},
        }

        with patch.object(service, "generate", AsyncMock(return_value=result)) as mock_generate:
            generation = await service.generate_recipes(["eggs", "spinach"])

        assert len(generation.recipes) == 3
        assert generation.prompt_tokens == 100
        assert generation.completion_tokens == 250
        assert generation.total_tokens == 350
        assert generation.model == "gpt-5-mini"
        assert "eggs, spinach" in generation.prompt_text
        assert mock_generate.call_args[0][1] == generation.prompt_text

    @pytest.mark.asyncio
    async def test_generate_recipes_sums_missing_total(self, settings):
        """Chat-style usage keys are accepted and the total is derived."""
        service = LLMService(settings)
        result = {**_response([RECIPE]), "usage": {"prompt_tokens": 10, "completion_tokens": 5}}

        with patch.object(service, "generate", AsyncMock(return_value=result)):
            generation = await service.generate_recipes(["eggs"])

        assert generation.total_tokens == 15

    @pytest.mark.asyncio
    async def test_generate_posts_responses_request(self, settings):
        """The request carries model, instructions, input and the output cap."""
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["url"] = str(request.url)
            captured["auth"] = request.headers["Authorization"]
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json=_response([RECIPE]))

        real_client = httpx.AsyncClient
        transport = httpx.MockTransport(handler)
        with patch(
            "expiry_tracker.services.llm.httpx.AsyncClient",
            lambda **kwargs: real_client(transport=transport, **kwargs),
        ):
            result = await LLMService(settings).generate("instructions", "prompt")

        assert result["status"] == "completed"
        assert captured["url"] == "https://api.openai.com/v1/responses"
        assert captured["auth"] == "Bearer sk-test"
        assert captured["body"] == {
            "model": "gpt-5-mini",
            "instructions": "instructions",
            "input": "prompt",
            "max_output_tokens": 16000,
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(500, text="upstream exploded"),
            httpx.Response(200, json={"status": "incomplete", "error": {"code": "max_tokens"}}),
            httpx.Response(200, json=["oops"]),
        ],
    )
    async def test_generate_raises_request_error(self, settings, response):
        """Non-2xx, non-object and incomplete responses raise ProviderRequestError."""
        real_client = httpx.AsyncClient
        transport = httpx.MockTransport(lambda request: response)
        with patch(
            "expiry_tracker.services.llm.httpx.AsyncClient",
            lambda **kwargs: real_client(transport=transport, **kwargs),
        ):
            with pytest.raises(ProviderRequestError):
                await LLMService(settings).generate("instructions", "prompt")

    @pytest.mark.asyncio
    async def test_generate_requires_api_key(self, settings):
        """A missing API key fails before any request is made."""
        service = LLMService(settings.model_copy(update={"openai_api_key": None}))
        with pytest.raises(ProviderRequestError, match="OPENAI_API_KEY"):
            await service.generate("instructions", "prompt")
