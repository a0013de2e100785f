"""Async client for the OpenAI-compatible LLM gateway."""

import asyncio
import json
from dataclasses import dataclass
from typing import Any

import openai
import structlog

from finplan.config import get_settings

logger = structlog.get_logger(__name__)

RATE_LIMIT_MESSAGE = "Rate limit aşıldı, lütfen biraz bekleyin."
CREDITS_EXHAUSTED_MESSAGE = "Kredi yetersiz, lütfen AI hesabınıza kredi ekleyin."
TIMEOUT_MESSAGE = "İşlem zaman aşımına uğradı. Lütfen daha küçük bir dosya deneyin."


class GatewayError(Exception):
    """Base exception for LLM gateway errors."""

    def __init__(self, message: str, status_code: int | None = None, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class RateLimitError(GatewayError):
    """Gateway rate limit exceeded (HTTP 429)."""

    def __init__(self, message: str = RATE_LIMIT_MESSAGE, retry_after: int = 60):
        super().__init__(message, status_code=429, details={"retry_after": retry_after})
        self.retry_after = retry_after


class CreditsExhaustedError(GatewayError):
    """Gateway account is out of credits (HTTP 402)."""

    def __init__(self, message: str = CREDITS_EXHAUSTED_MESSAGE):
        super().__init__(message, status_code=402)


class GatewayTimeoutError(GatewayError):
    """The request did not finish within its timeout."""

    def __init__(self, message: str = TIMEOUT_MESSAGE):
        super().__init__(message, status_code=504)


class EmptyResponseError(GatewayError):
    """The gateway answered without content or tool calls."""

    pass


@dataclass
class GatewayResponse:
    """Response from the LLM gateway."""

    content: str
    tool_calls: list[dict[str, Any]]
    stop_reason: str
    usage: dict[str, int]
    model: str = ""

    def tool_arguments(self, name: str) -> dict[str, Any] | None:
        """Arguments of the first call to tool ``name``, if any."""
        for call in self.tool_calls:
            if call["name"] == name:
                return call["arguments"]
        return None


class GatewayClient:
    """Client for the chat completions gateway with tool calling support.

    The SDK's own retries are disabled; ``generate`` retries connection
    failures and timeouts itself when asked to.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        client: openai.AsyncOpenAI | None = None,
    ):
        settings = get_settings()
        self._api_key = api_key or settings.gateway_api_key.get_secret_value()
        self._base_url = base_url or settings.gateway_url
        self._model = model or settings.fast_model
        self._max_tokens = max_tokens or settings.llm_max_tokens
        self._temperature = (
            temperature if temperature is not None else settings.llm_temperature
        )

        self._client = client or openai.AsyncOpenAI(
            api_key=self._api_key,
            base_url=self._base_url,
            max_retries=0,
        )
        self._logger = logger.bind(client="gateway", model=self._model)

    @property
    def model(self) -> str:
        return self._model

    async def close(self) -> None:
        await self._client.close()

    async def __aenter__(self) -> "GatewayClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _convert_tools_to_openai_format(
        self, tools: list[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        """Convert neutral tool definitions to OpenAI function tools.

        The gateway expects:
        {
            "type": "function",
            "function": {
                "name": "...",
                "description": "...",
                "parameters": {...}  # JSON Schema
            }
        }
        """
        return [
            {
                "type": "function",
                "function": {
                    "name": tool["name"],
                    "description": tool["description"],
                    "parameters": tool["input_schema"],
                },
            }
            for tool in tools
        ]

    def _convert_messages_to_openai_format(
        self, system_prompt: str, messages: list[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        """Prepend the system prompt, if any; user content may be text or content parts."""
        openai_messages: list[dict[str, Any]] = []
        if system_prompt:
            openai_messages.append({"role": "system", "content": system_prompt})
        for msg in messages:
            if msg["role"] == "assistant":
                assistant_msg: dict[str, Any] = {"role": "assistant"}
                if msg.get("content"):
                    assistant_msg["content"] = msg["content"]
                if msg.get("tool_calls"):
                    assistant_msg["tool_calls"] = [
                        {
                            "id": tc["id"],
                            "type": "function",
                            "function": {
                                "name": tc["name"],
                                "arguments": json.dumps(tc["arguments"]),
                            },
                        }
                        for tc in msg["tool_calls"]
                    ]
                openai_messages.append(assistant_msg)
            else:
                openai_messages.append({"role": msg["role"], "content": msg["content"]})
        return openai_messages

    def _parse_response(self, response: Any) -> GatewayResponse:
        """Parse a chat completion into our format."""
        if not response.choices:
            raise EmptyResponseError("Gateway returned no choices")

        choice = response.choices[0]
        message = choice.message
        tool_calls = []
        for tc in message.tool_calls or []:
            try:
                arguments = json.loads(tc.function.arguments or "{}")
            except json.JSONDecodeError:
                self._logger.warning(
                    "tool_arguments_invalid",
                    tool=tc.function.name,
                    raw=(tc.function.arguments or "")[:200],
                )
                continue
            tool_calls.append({"id": tc.id, "name": tc.function.name, "arguments": arguments})

        stop_reason_map = {
            "stop": "end_turn",
            "tool_calls": "tool_use",
            "length": "max_tokens",
            "content_filter": "content_filter",
        }
        stop_reason = stop_reason_map.get(choice.finish_reason or "stop", "end_turn")

        usage = response.usage
        return GatewayResponse(
            content=message.content or "",
            tool_calls=tool_calls,
            stop_reason=stop_reason,
            usage={
                "input_tokens": usage.prompt_tokens if usage else 0,
                "output_tokens": usage.completion_tokens if usage else 0,
            },
            model=getattr(response, "model", None) or "",
        )

    def _translate_status_error(self, error: openai.APIStatusError) -> GatewayError:
        if error.status_code == 429:
            retry_after = error.response.headers.get("Retry-After", "60")
            return RateLimitError(retry_after=int(retry_after) if retry_after.isdigit() else 60)
        if error.status_code == 402:
            return CreditsExhaustedError()
        body = error.body if error.body is not None else error.message
        return GatewayError(
            f"AI Gateway error: {error.status_code}",
            status_code=error.status_code,
            details=body,
        )

    async def generate(
        self,
        system_prompt: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        tool_choice: str | None = None,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        timeout: float | None = None,
        retries: int = 0,
        retry_delay: float = 2.0,
    ) -> GatewayResponse:
        """Generate a completion.

        Args:
            system_prompt: System prompt for the task.
            messages: Conversation as role/content dicts.
            tools: Optional neutral tool definitions.
            tool_choice: Name of a tool the model must call.
            model: Override the client's default model.
            temperature: Override the default temperature.
            max_tokens: Override the default completion budget.
            timeout: Seconds before the attempt is abandoned.
            retries: Extra attempts on connection errors and timeouts.
            retry_delay: Base delay, doubled after each failed attempt.

        Returns:
            GatewayResponse with content, tool calls and usage.

        Raises:
            RateLimitError: HTTP 429.
            CreditsExhaustedError: HTTP 402.
            GatewayTimeoutError: Every attempt timed out.
            GatewayError: Any other gateway failure.
        """
        kwargs: dict[str, Any] = {
            "model": model or self._model,
            "messages": self._convert_messages_to_openai_format(system_prompt, messages),
            "temperature": temperature if temperature is not None else self._temperature,
            "max_tokens": max_tokens or self._max_tokens,
        }
        if tools:
            kwargs["tools"] = self._convert_tools_to_openai_format(tools)
            if tool_choice:
                kwargs["tool_choice"] = {"type": "function", "function": {"name": tool_choice}}
            else:
                kwargs["tool_choice"] = "auto"

        log = self._logger.bind(model=kwargs["model"])
        log.debug(
            "generating_response",
            message_count=len(messages),
            tool_count=len(tools) if tools else 0,
        )

        attempt = 0
        while True:
            try:
                request = self._client.chat.completions.create(**kwargs)
                if timeout is not None:
                    response = await asyncio.wait_for(request, timeout=timeout)
                else:
                    response = await request
                break
            except (asyncio.TimeoutError, openai.APITimeoutError) as e:
                log.warning("request_timed_out", attempt=attempt + 1, timeout=timeout)
                if attempt >= retries:
                    raise GatewayTimeoutError() from e
            except openai.APIConnectionError as e:
                log.warning("request_failed", attempt=attempt + 1, error=str(e))
                if attempt >= retries:
                    raise GatewayError(f"Request failed: {e}") from e
            except openai.APIStatusError as e:
                log.error("api_error", status_code=e.status_code, error=str(e))
                raise self._translate_status_error(e) from e
            except openai.APIError as e:
                log.error("api_error", error=str(e))
                raise GatewayError(str(e)) from e

            delay = retry_delay * 2**attempt
            log.info("retrying_request", delay=delay)
            await asyncio.sleep(delay)
            attempt += 1

        parsed = self._parse_response(response)
        log.info(
            "response_generated",
            stop_reason=parsed.stop_reason,
            tool_calls=len(parsed.tool_calls),
            input_tokens=parsed.usage["input_tokens"],
            output_tokens=parsed.usage["output_tokens"],
        )
        return parsed
