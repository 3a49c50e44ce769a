"""
Unit tests for GenerationClient.

This module tests the Gemini client, including:
- Request payload construction from settings
- Text extraction with fallback to candidate parts
- Classification of empty and failed responses
"""

import logging
import aiohttp
import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, patch

from cheatsheetai.generation_client import GenerationClient, GenerationFailed, GenerationSettings
from cheatsheetai.schemas import GenerationFailureKind

from tests.conftest import SAMPLE_CHEATSHEET


def response_with(text=None, finish_reason="STOP", parts=None):
    if parts is None:
        parts = [{"text": text}]
    return {"candidates": [{"content": {"role": "model", "parts": parts}, "finishReason": finish_reason}]}


class TestGenerationClient:
    """Tests for the GenerationClient class."""

    @pytest.fixture
    def settings(self):
        return GenerationSettings(api_key="fake_api_key", model="gemini-test")

    @pytest.fixture
    def client(self, settings):
        return GenerationClient(settings)

    def test_build_payload(self, client):
        # Act
        payload = client.build_payload("# Docs\nSome text", "Demo")

        # Assert
        user_text = payload["contents"][0]["parts"][0]["text"]
        assert payload["contents"][0]["role"] == "user"
        assert "<docs>\n# Docs\nSome text\n</docs>" in user_text
        assert "Demo cheatsheet" in user_text
        assert payload["systemInstruction"]["parts"][0]["text"] == client.settings.system_instruction
        assert payload["generationConfig"] == {
            "temperature": 0.7,
            "maxOutputTokens": 65536,
            "responseMimeType": "text/plain",
        }

    def test_settings_are_substitutable(self):
        settings = GenerationSettings(
            api_key="k", system_instruction="Be brief.", temperature=0.1, max_output_tokens=128
        )

        payload = GenerationClient(settings).build_payload("docs", "Demo")

        assert payload["systemInstruction"]["parts"][0]["text"] == "Be brief."
        assert payload["generationConfig"]["maxOutputTokens"] == 128
        assert payload["generationConfig"]["temperature"] == 0.1

    def test_endpoint(self, settings):
        assert settings.endpoint == (
            "https://generativelanguage.googleapis.com/v1beta/models/gemini-test:generateContent"
        )

    @pytest.mark.asyncio
    async def test_generate_success(self, client):
        # Arrange
        with patch.object(client, "_post", AsyncMock(return_value=response_with(SAMPLE_CHEATSHEET))) as mock_post:
            # Act
            result = await client.generate("docs", "Demo")

        # Assert
        assert result == SAMPLE_CHEATSHEET
        mock_post.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_generate_joins_parts(self, client):
        data = response_with(parts=[{"text": "## Introduction for the LLM Agent\n"}, {"text": "More."}])

        with patch.object(client, "_post", AsyncMock(return_value=data)):
            result = await client.generate("docs", "Demo")

        assert result == "## Introduction for the LLM Agent\nMore."

    @pytest.mark.asyncio
    async def test_fallback_to_candidate_parts(self, client, caplog):
        # Primary extraction refuses a policy finish; the fallback still reads the parts
        data = response_with("## Introduction for the LLM Agent\npartial", finish_reason="SAFETY")

        with patch.object(client, "_post", AsyncMock(return_value=data)):
            result = await client.generate("docs", "Demo")

        assert result == "## Introduction for the LLM Agent\npartial"
        assert "Checking candidates" in caplog.text

    @pytest.mark.asyncio
    async def test_missing_heading_only_warns(self, client, caplog):
        with patch.object(client, "_post", AsyncMock(return_value=response_with("# Something else"))):
            with caplog.at_level(logging.WARNING):
                result = await client.generate("docs", "Demo")

        assert result == "# Something else"
        assert "does not start with the expected" in caplog.text

    @pytest.mark.asyncio
    async def test_prompt_blocked(self, client):
        # Arrange
        data = {
            "candidates": [],
            "promptFeedback": {
                "blockReason": "SAFETY",
                "safetyRatings": [{"category": "HARM_CATEGORY_DANGEROUS_CONTENT", "probability": "HIGH"}],
            },
        }

        # Act
        with patch.object(client, "_post", AsyncMock(return_value=data)):
            with pytest.raises(GenerationFailed) as exc_info:
                await client.generate("docs", "Demo")

        # Assert
        assert exc_info.value.kind == GenerationFailureKind.BLOCKED

    @pytest.mark.asyncio
    async def test_candidate_blocked_by_safety(self, client):
        data = response_with(parts=[], finish_reason="SAFETY")

        with patch.object(client, "_post", AsyncMock(return_value=data)):
            with pytest.raises(GenerationFailed) as exc_info:
                await client.generate("docs", "Demo")

        assert exc_info.value.kind == GenerationFailureKind.BLOCKED

    @pytest.mark.asyncio
    async def test_abnormal_finish(self, client):
        data = response_with(parts=[], finish_reason="MAX_TOKENS")

        with patch.object(client, "_post", AsyncMock(return_value=data)):
            with pytest.raises(GenerationFailed) as exc_info:
                await client.generate("docs", "Demo")

        assert exc_info.value.kind == GenerationFailureKind.ABNORMAL_FINISH
        assert "MAX_TOKENS" in str(exc_info.value)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("data", [{}, {"candidates": []}, response_with("   ")])
    async def test_no_content(self, client, data):
        with patch.object(client, "_post", AsyncMock(return_value=data)):
            with pytest.raises(GenerationFailed) as exc_info:
                await client.generate("docs", "Demo")

        assert exc_info.value.kind == GenerationFailureKind.NO_CONTENT

    @pytest.mark.asyncio
    async def test_transport_error(self, client):
        with patch.object(client, "_post", AsyncMock(side_effect=aiohttp.ClientConnectionError("refused"))):
            with pytest.raises(GenerationFailed) as exc_info:
                await client.generate("docs", "Demo")

        assert exc_info.value.kind == GenerationFailureKind.API_ERROR
        assert "refused" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_api_error_status_propagates(self, client):
        error = GenerationFailed(GenerationFailureKind.API_ERROR, "API request failed with status 401: denied")

        with patch.object(client, "_post", AsyncMock(side_effect=error)):
            with pytest.raises(GenerationFailed) as exc_info:
                await client.generate("docs", "Demo")

        assert exc_info.value is error

    @pytest.mark.asyncio
    async def test_truncated_text_is_returned_with_warning(self, client, caplog):
        data = response_with(SAMPLE_CHEATSHEET, finish_reason="MAX_TOKENS")

        with patch.object(client, "_post", AsyncMock(return_value=data)):
            result = await client.generate("docs", "Demo")

        assert result == SAMPLE_CHEATSHEET
        assert "may be truncated" in caplog.text


class TestGenerationTransport:
    """Tests for the HTTP request against a local server."""

    @pytest_asyncio.fixture
    async def gemini_server(self):
        """Serve a canned generateContent endpoint and record requests."""
        from aiohttp import web
        from aiohttp.test_utils import TestServer

        requests = []
        state = {"status": 200, "body": response_with(SAMPLE_CHEATSHEET)}

        async def generate_content(request):
            requests.append({"path": request.path, "headers": dict(request.headers), "json": await request.json()})
            if "text" in state:
                return web.Response(text=state["text"], content_type=state["content_type"], status=state["status"])
            return web.json_response(state["body"], status=state["status"])

        app = web.Application()
        app.router.add_post("/v1beta/models/{model}", generate_content)
        server = TestServer(app)
        await server.start_server()
        yield server, requests, state
        await server.close()

    @pytest.mark.asyncio
    async def test_post_sends_key_and_payload(self, gemini_server):
        # Arrange
        server, requests, _ = gemini_server
        settings = GenerationSettings(api_key="secret", model="gemini-test", api_base=str(server.make_url("/v1beta")))
        client = GenerationClient(settings)

        # Act
        result = await client.generate("docs", "Demo")

        # Assert
        assert result == SAMPLE_CHEATSHEET
        assert requests[0]["path"] == "/v1beta/models/gemini-test:generateContent"
        assert requests[0]["headers"]["x-goog-api-key"] == "secret"
        assert requests[0]["json"]["generationConfig"]["maxOutputTokens"] == 65536

    @pytest.mark.asyncio
    async def test_error_status_is_api_error(self, gemini_server):
        server, _, state = gemini_server
        state["status"] = 403
        state["body"] = {"error": {"message": "API key not valid"}}
        client = GenerationClient(GenerationSettings(api_key="bad", api_base=str(server.make_url("/v1beta"))))

        with pytest.raises(GenerationFailed) as exc_info:
            await client.generate("docs", "Demo")

        assert exc_info.value.kind == GenerationFailureKind.API_ERROR
        assert "403" in str(exc_info.value)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "text, content_type",
        [
            ("<html><body>Service Unavailable</body></html>", "text/html"),
            ('[{"candidates": []}]', "application/json"),
            ('"just a string"', "application/json"),
        ],
    )
    async def test_malformed_ok_body_is_api_error(self, gemini_server, text, content_type):
        # Arrange
        server, _, state = gemini_server
        state["text"] = text
        state["content_type"] = content_type
        client = GenerationClient(GenerationSettings(api_key="secret", api_base=str(server.make_url("/v1beta"))))

        # Act
        with pytest.raises(GenerationFailed) as exc_info:
            await client.generate("docs", "Demo")

        # Assert
        assert exc_info.value.kind == GenerationFailureKind.API_ERROR
        assert "Malformed API response" in str(exc_info.value)
