"""Tests for schemefeed.services.generative_source."""

import json

import pytest
import respx
from httpx import ConnectError, InvalidURL, Response, TimeoutException

from schemefeed.config import Settings
from schemefeed.services.generative_source import (
    CURRENT_CONTEXT,
    UPDATE_CONTEXT,
    GenerativeSource,
    SourceUnavailable,
    build_prompt,
    extract_json_array,
    parse_schemes,
)

_API_URL = "https://llm.example.com/chat/completions"


def _settings(**overrides) -> Settings:
    values = {
        "deepseek_api_key": "test-key",
        "deepseek_api_url": _API_URL,
        "generative_timeout_seconds": 2.0,
    }
    values.update(overrides)
    return Settings(**values)


def _completion(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


_SCHEMES_JSON = json.dumps(
    [
        {"id": 11, "title": "PM Awas Yojana", "description": "Housing", "category": "Urban", "version": 2.3},
        {"title": "Jal Jeevan Mission", "description": "Water", "category": "Rural"},
    ]
)


# ---------------------------------------------------------------------------
# extract_json_array / parse_schemes
# ---------------------------------------------------------------------------


class TestExtractJsonArray:
    def test_plain_array(self):
        assert extract_json_array('[{"title": "A"}]') == [{"title": "A"}]

    def test_array_embedded_in_prose(self):
        text = 'Here are the schemes:\n[{"title": "A"}, {"title": "B"}]\nHope this helps [1].'
        assert extract_json_array(text) == [{"title": "A"}, {"title": "B"}]

    def test_code_fences_are_stripped(self):
        text = '```json\n[{"title": "A"}]\n```'
        assert extract_json_array(text) == [{"title": "A"}]

    def test_brackets_inside_strings_do_not_unbalance(self):
        text = '[{"title": "Scheme [Phase 2]", "description": "uses ] and ["}]'
        assert extract_json_array(text) == [
            {"title": "Scheme [Phase 2]", "description": "uses ] and ["}
        ]

    def test_skips_unparseable_leading_span(self):
        text = 'See [note] below. [{"title": "A"}]'
        assert extract_json_array(text) == [{"title": "A"}]

    def test_no_array_raises(self):
        with pytest.raises(ValueError):
            extract_json_array('{"title": "A"}')

    def test_unbalanced_array_raises(self):
        with pytest.raises(ValueError):
            extract_json_array('[{"title": "A"}')

    def test_deeply_nested_array_raises_value_error(self):
        with pytest.raises(ValueError, match="nested too deeply"):
            extract_json_array("[" * 30_000 + "]" * 30_000)

    def test_oversized_response_rejected_before_scanning(self):
        with pytest.raises(ValueError, match="exceeds"):
            extract_json_array('[{"title": "A"}]' + " " * 70_000)

    def test_unclosed_bracket_ends_scan(self):
        with pytest.raises(ValueError):
            extract_json_array("[" * 20_000 + '{"title": "A"}')

    def test_candidate_limit(self):
        text = "[x] " * 40 + '[{"title": "A"}]'
        with pytest.raises(ValueError, match="no JSON array"):
            extract_json_array(text)


class TestParseSchemes:
    def test_valid_payload(self):
        schemes = parse_schemes(_SCHEMES_JSON)
        assert [s.title for s in schemes] == ["PM Awas Yojana", "Jal Jeevan Mission"]
        assert schemes[0].id == 11
        assert schemes[0].version == "2.3"
        assert schemes[1].id is None

    def test_missing_title_rejected(self):
        with pytest.raises(SourceUnavailable):
            parse_schemes('[{"description": "no title"}]')

    def test_empty_title_rejected(self):
        with pytest.raises(SourceUnavailable):
            parse_schemes('[{"title": ""}]')

    def test_non_object_items_rejected(self):
        with pytest.raises(SourceUnavailable):
            parse_schemes('["just", "strings"]')

    def test_empty_list_rejected(self):
        with pytest.raises(SourceUnavailable):
            parse_schemes("[]")

    def test_free_text_rejected(self):
        with pytest.raises(SourceUnavailable):
            parse_schemes("Sorry, I cannot help with that.")

    def test_deeply_nested_payload_rejected(self):
        with pytest.raises(SourceUnavailable, match="unparseable"):
            parse_schemes("[" * 30_000 + "]" * 30_000)


class TestBuildPrompt:
    def test_update_context(self):
        prompt = build_prompt(True)
        assert prompt.startswith(UPDATE_CONTEXT)
        assert '"isNew": true' in prompt

    def test_current_context(self):
        prompt = build_prompt(False)
        assert prompt.startswith(CURRENT_CONTEXT)
        assert '"isNew": false' in prompt


# ---------------------------------------------------------------------------
# GenerativeSource.fetch
# ---------------------------------------------------------------------------


class TestGenerativeSourceFetch:
    @pytest.mark.asyncio
    async def test_success_returns_schemes(self):
        source = GenerativeSource(_settings())
        with respx.mock:
            route = respx.post(_API_URL).mock(
                return_value=Response(200, json=_completion(f"```json\n{_SCHEMES_JSON}\n```"))
            )
            schemes = await source.fetch(False)

        assert route.called
        assert len(schemes) == 2
        sent = json.loads(route.calls.last.request.content)
        assert sent["model"] == "deepseek-chat"
        assert sent["messages"][0]["content"].startswith(CURRENT_CONTEXT)
        assert route.calls.last.request.headers["authorization"] == "Bearer test-key"

    @pytest.mark.asyncio
    async def test_update_context_sent_when_oracle_positive(self):
        source = GenerativeSource(_settings())
        with respx.mock:
            route = respx.post(_API_URL).mock(
                return_value=Response(200, json=_completion(_SCHEMES_JSON))
            )
            await source.fetch(True)

        sent = json.loads(route.calls.last.request.content)
        assert sent["messages"][0]["content"].startswith(UPDATE_CONTEXT)

    @pytest.mark.asyncio
    async def test_missing_api_key_skips_network(self):
        source = GenerativeSource(_settings(deepseek_api_key=None))
        with respx.mock as router:
            with pytest.raises(SourceUnavailable, match="not configured"):
                await source.fetch(False)
        assert router.calls.call_count == 0

    @pytest.mark.asyncio
    async def test_error_status_raises(self):
        source = GenerativeSource(_settings())
        with respx.mock:
            respx.post(_API_URL).mock(return_value=Response(503))
            with pytest.raises(SourceUnavailable, match="503"):
                await source.fetch(False)

    @pytest.mark.asyncio
    async def test_timeout_raises(self):
        source = GenerativeSource(_settings())
        with respx.mock:
            respx.post(_API_URL).mock(side_effect=TimeoutException("timed out"))
            with pytest.raises(SourceUnavailable, match="timed out"):
                await source.fetch(False)

    @pytest.mark.asyncio
    async def test_connection_error_raises(self):
        source = GenerativeSource(_settings())
        with respx.mock:
            respx.post(_API_URL).mock(side_effect=ConnectError("refused"))
            with pytest.raises(SourceUnavailable):
                await source.fetch(False)

    @pytest.mark.asyncio
    async def test_malformed_envelope_raises(self):
        source = GenerativeSource(_settings())
        with respx.mock:
            respx.post(_API_URL).mock(return_value=Response(200, json={"error": "nope"}))
            with pytest.raises(SourceUnavailable, match="envelope"):
                await source.fetch(False)

    @pytest.mark.asyncio
    async def test_non_json_body_raises(self):
        source = GenerativeSource(_settings())
        with respx.mock:
            respx.post(_API_URL).mock(return_value=Response(200, text="<html>bad gateway</html>"))
            with pytest.raises(SourceUnavailable):
                await source.fetch(False)

    @pytest.mark.asyncio
    async def test_unparseable_content_raises(self):
        source = GenerativeSource(_settings())
        with respx.mock:
            respx.post(_API_URL).mock(
                return_value=Response(200, json=_completion("No schemes today."))
            )
            with pytest.raises(SourceUnavailable, match="unparseable"):
                await source.fetch(False)

    @pytest.mark.asyncio
    async def test_invalid_url_raises(self):
        source = GenerativeSource(_settings())
        with respx.mock:
            respx.post(_API_URL).mock(side_effect=InvalidURL("bad url"))
            with pytest.raises(SourceUnavailable, match="request failed"):
                await source.fetch(False)

    @pytest.mark.asyncio
    async def test_deeply_nested_completion_raises(self):
        source = GenerativeSource(_settings())
        with respx.mock:
            respx.post(_API_URL).mock(
                return_value=Response(200, json=_completion("[" * 30_000 + "]" * 30_000))
            )
            with pytest.raises(SourceUnavailable, match="nested too deeply"):
                await source.fetch(False)
