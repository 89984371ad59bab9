"""
Tests for JSON validation with AI-assisted repair.
"""

import pytest

from ai.errors import JsonValidatorError
from ai.json_validator import is_json_value, json_validator, parse_json_layers, strip_code_fences
from ai.models import MODEL_TIERS
from ai.schemas import ContentSafetyAnalysis
from tests.conftest import FakeAi


class TestLocalParsing:
    def test_strict_json(self):
        assert parse_json_layers('{"a": 1}') == ({"a": 1}, True)

    def test_trailing_comma_and_comments(self):
        value, strict = parse_json_layers('{"a": 1, // note\n "b": [1, 2,],}')

        assert value == {"a": 1, "b": [1, 2]}
        assert strict is False

    def test_unparseable_raises_value_error(self):
        with pytest.raises(ValueError):
            parse_json_layers("{broken")

    @pytest.mark.parametrize("text", ["NaN", "[1, Infinity]", "-Infinity", "undefined", '{"a": undefined}'])
    def test_non_json_values_are_rejected(self, text):
        with pytest.raises(ValueError):
            parse_json_layers(text)

    def test_is_json_value(self):
        assert is_json_value({"a": [1, 2.5, None, True, "x"]})
        assert not is_json_value({"a": float("nan")})
        assert not is_json_value([float("inf")])
        assert not is_json_value({1: "numeric key"})

    def test_strip_code_fences(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
        assert strip_code_fences('  {"a": 1} ') == '{"a": 1}'


class TestJsonValidator:
    @pytest.mark.asyncio
    async def test_valid_json_needs_no_ai(self):
        ai = FakeAi([])

        result = await json_validator('{"ok": true}', ai)

        assert result == '{"ok": true}'
        assert ai.requests == []

    @pytest.mark.asyncio
    async def test_parse_returns_value(self):
        result = await json_validator('```json\n{"ok": true}\n```', FakeAi([]), parse=True)

        assert result == {"ok": True}

    @pytest.mark.asyncio
    async def test_lenient_json_is_reserialized(self):
        result = await json_validator("{'a': 1,}", FakeAi([]))

        assert result == '{"a": 1}'

    @pytest.mark.asyncio
    async def test_repair_through_ai(self):
        ai = FakeAi(['{"fixed": "yes"}'])

        result = await json_validator("{broken", ai, parse=True)

        assert result == {"fixed": "yes"}
        assert len(ai.requests) == 1
        request = ai.requests[0]
        assert request.model == MODEL_TIERS["low"]
        assert "<json>{broken</json>" in request.messages[1].content

    @pytest.mark.asyncio
    async def test_one_retry_means_two_parses_and_one_ai_call(self):
        ai = FakeAi(["{still broken"])

        with pytest.raises(JsonValidatorError) as exc_info:
            await json_validator("{broken", ai, max_retries=1)

        assert len(ai.requests) == 1
        assert exc_info.value.json == "{still broken"
        assert "Maximum number of attempts reached" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_model_tier_escalates(self):
        ai = FakeAi(["{a", "{b", "{c"])

        with pytest.raises(JsonValidatorError):
            await json_validator("{broken", ai, max_retries=3)

        assert [r.model for r in ai.requests] == [
            MODEL_TIERS["low"],
            MODEL_TIERS["medium"],
            MODEL_TIERS["high"],
        ]

    @pytest.mark.asyncio
    async def test_too_many_retries_rejected_before_parsing(self):
        ai = FakeAi([])

        with pytest.raises(JsonValidatorError):
            await json_validator('{"ok": true}', ai, max_retries=6)

        assert ai.requests == []

    @pytest.mark.asyncio
    async def test_empty_repair_answer(self):
        with pytest.raises(JsonValidatorError, match="Fixed JSON content not found."):
            await json_validator("{broken", FakeAi([None]))

    @pytest.mark.asyncio
    async def test_schema_failure_triggers_repair(self):
        fixed = '{"isAppropriate": true, "isHarmful": false, "reason": "fine", "score": 9}'
        ai = FakeAi([fixed])

        result = await json_validator(
            '{"isAppropriate": true}', ai, parse=True, schema=ContentSafetyAnalysis
        )

        assert result["score"] == 9
        assert len(ai.requests) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["undefined", '{"a": undefined}', "NaN"])
    async def test_non_json_values_go_to_repair(self, text):
        ai = FakeAi(['{"a": null}'])

        result = await json_validator(text, ai)

        assert result == '{"a": null}'
        assert len(ai.requests) == 1
        assert f"<json>{text}</json>" in ai.requests[0].messages[1].content

    @pytest.mark.asyncio
    async def test_unrepairable_non_json_value_raises_validator_error(self):
        ai = FakeAi(["NaN"])

        with pytest.raises(JsonValidatorError):
            await json_validator('{"a": undefined}', ai, parse=True, max_retries=1)

        assert len(ai.requests) == 1
