"""Tests for the LLM gateway client."""

import asyncio
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from finplan.clients.gateway import (
    CreditsExhaustedError,
    GatewayClient,
    GatewayError,
    GatewayResponse,
    GatewayTimeoutError,
    RateLimitError,
)

GATEWAY_URL = "https://gateway.test/v1/chat/completions"


def _completion(content="", tool_calls=None, finish_reason="stop", usage=(10, 5)):
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(
        choices=[SimpleNamespace(message=message, finish_reason=finish_reason)],
        usage=SimpleNamespace(prompt_tokens=usage[0], completion_tokens=usage[1]),
        model="google/gemini-2.5-flash",
    )


def _tool_call(call_id, name, arguments):
    return SimpleNamespace(
        id=call_id, function=SimpleNamespace(name=name, arguments=arguments)
    )


def _status_error(status_code, headers=None):
    request = httpx.Request("POST", GATEWAY_URL)
    response = httpx.Response(status_code, request=request, headers=headers or {})
    return openai.APIStatusError("gateway failed", response=response, body={"error": "x"})


@pytest.fixture
def sdk():
    """A stand-in for openai.AsyncOpenAI."""
    client = MagicMock()
    client.chat.completions.create = AsyncMock()
    client.close = AsyncMock()
    return client


class TestGatewayClient:
    """Tests for GatewayClient setup and format conversion."""

    def test_client_initialization_with_defaults(self, sdk):
        """Test client initializes with settings defaults."""
        client = GatewayClient(client=sdk)

        assert client.model == "google/gemini-2.5-flash"
        assert client._api_key == "gateway-key-test"
        assert client._max_tokens > 0

    def test_client_initialization_with_custom_params(self, sdk):
        """Test client accepts custom parameters."""
        client = GatewayClient(
            api_key="other", model="openai/gpt-5", max_tokens=512, temperature=0.0, client=sdk
        )

        assert client._api_key == "other"
        assert client.model == "openai/gpt-5"
        assert client._max_tokens == 512
        assert client._temperature == 0.0

    def test_convert_tools(self, sdk):
        """Test tool format conversion."""
        client = GatewayClient(client=sdk)
        tools = [
            {
                "name": "categorize_transactions",
                "description": "Kategorile",
                "input_schema": {"type": "object", "properties": {}},
            }
        ]

        converted = client._convert_tools_to_openai_format(tools)

        assert converted[0]["type"] == "function"
        assert converted[0]["function"]["name"] == "categorize_transactions"
        assert converted[0]["function"]["parameters"] == {"type": "object", "properties": {}}

    def test_convert_messages_with_system_prompt(self, sdk):
        """Test that the system prompt comes first."""
        client = GatewayClient(client=sdk)

        converted = client._convert_messages_to_openai_format(
            "System", [{"role": "user", "content": "Merhaba"}]
        )

        assert converted == [
            {"role": "system", "content": "System"},
            {"role": "user", "content": "Merhaba"},
        ]

    def test_convert_messages_without_system_prompt(self, sdk):
        """Test that an empty system prompt is omitted."""
        client = GatewayClient(client=sdk)
        parts = [{"type": "text", "text": "Fişi oku"}]

        converted = client._convert_messages_to_openai_format(
            "", [{"role": "user", "content": parts}]
        )

        assert converted == [{"role": "user", "content": parts}]

    def test_convert_assistant_tool_calls(self, sdk):
        """Test that tool call arguments are serialized."""
        client = GatewayClient(client=sdk)
        messages = [
            {
                "role": "assistant",
                "tool_calls": [{"id": "c1", "name": "t", "arguments": {"a": 1}}],
            }
        ]

        converted = client._convert_messages_to_openai_format("S", messages)

        assert "content" not in converted[1]
        assert converted[1]["tool_calls"][0]["function"]["arguments"] == json.dumps({"a": 1})


class TestParseResponse:
    """Tests for response parsing."""

    def test_parse_text_response(self, sdk):
        """Test parsing text-only response."""
        client = GatewayClient(client=sdk)

        parsed = client._parse_response(_completion(content="Merhaba"))

        assert parsed.content == "Merhaba"
        assert parsed.tool_calls == []
        assert parsed.stop_reason == "end_turn"
        assert parsed.usage == {"input_tokens": 10, "output_tokens": 5}

    def test_parse_tool_call_response(self, sdk):
        """Test parsing tool calls and skipping invalid arguments."""
        client = GatewayClient(client=sdk)
        completion = _completion(
            tool_calls=[
                _tool_call("c1", "categorize_transactions", '{"results": []}'),
                _tool_call("c2", "broken", "{not json"),
            ],
            finish_reason="tool_calls",
        )

        parsed = client._parse_response(completion)

        assert parsed.stop_reason == "tool_use"
        assert len(parsed.tool_calls) == 1
        assert parsed.tool_arguments("categorize_transactions") == {"results": []}
        assert parsed.tool_arguments("broken") is None

    def test_parse_length_stop(self, sdk):
        """Test the max_tokens stop reason."""
        client = GatewayClient(client=sdk)

        parsed = client._parse_response(_completion(content="{", finish_reason="length"))

        assert parsed.stop_reason == "max_tokens"

    def test_no_choices(self, sdk):
        """Test that an empty completion raises."""
        client = GatewayClient(client=sdk)

        with pytest.raises(GatewayError):
            client._parse_response(SimpleNamespace(choices=[], usage=None))


class TestGenerate:
    """Tests for generate."""

    @pytest.mark.asyncio
    async def test_generate_with_forced_tool(self, sdk):
        """Test request shape when a tool is forced."""
        sdk.chat.completions.create.return_value = _completion(content="ok")
        client = GatewayClient(client=sdk)
        tools = [{"name": "t", "description": "d", "input_schema": {"type": "object"}}]

        response = await client.generate(
            "System",
            [{"role": "user", "content": "Hi"}],
            tools=tools,
            tool_choice="t",
            model="google/gemini-2.5-pro",
            temperature=0.1,
        )

        assert isinstance(response, GatewayResponse)
        kwargs = sdk.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "google/gemini-2.5-pro"
        assert kwargs["temperature"] == 0.1
        assert kwargs["tool_choice"] == {"type": "function", "function": {"name": "t"}}
        assert kwargs["tools"][0]["function"]["name"] == "t"

    @pytest.mark.asyncio
    async def test_generate_without_tools(self, sdk):
        """Test that tools are omitted when not given."""
        sdk.chat.completions.create.return_value = _completion(content="ok")
        client = GatewayClient(client=sdk)

        await client.generate("S", [{"role": "user", "content": "Hi"}])

        kwargs = sdk.chat.completions.create.call_args.kwargs
        assert "tools" not in kwargs
        assert "tool_choice" not in kwargs
        assert kwargs["max_tokens"] == client._max_tokens

    @pytest.mark.asyncio
    async def test_rate_limit(self, sdk):
        """Test that 429 maps to RateLimitError with Retry-After."""
        sdk.chat.completions.create.side_effect = _status_error(429, {"Retry-After": "12"})
        client = GatewayClient(client=sdk)

        with pytest.raises(RateLimitError) as exc_info:
            await client.generate("S", [{"role": "user", "content": "Hi"}])

        assert exc_info.value.status_code == 429
        assert exc_info.value.retry_after == 12

    @pytest.mark.asyncio
    async def test_credits_exhausted(self, sdk):
        """Test that 402 maps to CreditsExhaustedError."""
        sdk.chat.completions.create.side_effect = _status_error(402)
        client = GatewayClient(client=sdk)

        with pytest.raises(CreditsExhaustedError):
            await client.generate("S", [{"role": "user", "content": "Hi"}])

    @pytest.mark.asyncio
    async def test_other_status(self, sdk):
        """Test that other statuses keep their code."""
        sdk.chat.completions.create.side_effect = _status_error(500)
        client = GatewayClient(client=sdk)

        with pytest.raises(GatewayError) as exc_info:
            await client.generate("S", [{"role": "user", "content": "Hi"}])

        assert str(exc_info.value) == "AI Gateway error: 500"
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_status_errors_are_not_retried(self, sdk):
        """Test that HTTP errors fail on the first attempt."""
        sdk.chat.completions.create.side_effect = _status_error(500)
        client = GatewayClient(client=sdk)

        with pytest.raises(GatewayError):
            await client.generate("S", [{"role": "user", "content": "Hi"}], retries=3)

        assert sdk.chat.completions.create.call_count == 1

    @pytest.mark.asyncio
    async def test_timeout_retried_then_succeeds(self, sdk):
        """Test that timeouts are retried with doubling delay."""
        request = httpx.Request("POST", GATEWAY_URL)
        sdk.chat.completions.create.side_effect = [
            openai.APITimeoutError(request=request),
            openai.APIConnectionError(request=request),
            _completion(content="ok"),
        ]
        client = GatewayClient(client=sdk)

        with patch("finplan.clients.gateway.asyncio.sleep", new=AsyncMock()) as sleep:
            response = await client.generate(
                "S", [{"role": "user", "content": "Hi"}], retries=3, retry_delay=2.0
            )

        assert response.content == "ok"
        assert [c.args[0] for c in sleep.await_args_list] == [2.0, 4.0]

    @pytest.mark.asyncio
    async def test_timeout_exhausted(self, sdk):
        """Test that the last timeout raises GatewayTimeoutError."""

        async def slow(**kwargs):
            await asyncio.sleep(1)

        sdk.chat.completions.create.side_effect = slow
        client = GatewayClient(client=sdk)

        with pytest.raises(GatewayTimeoutError) as exc_info:
            await client.generate("S", [{"role": "user", "content": "Hi"}], timeout=0.01)

        assert exc_info.value.status_code == 504

    @pytest.mark.asyncio
    async def test_close(self, sdk):
        """Test that close closes the SDK client."""
        async with GatewayClient(client=sdk):
            pass

        sdk.close.assert_awaited_once()
