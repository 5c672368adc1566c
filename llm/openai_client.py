"""OpenAI (and OpenAI-compatible) LLM client implementation."""

import os
import json
import logging
from typing import Optional, List, Dict, Any
from pydantic import ValidationError

from .base_client import BaseLLMClient, Message, LLMResponse, ToolCall, ModelInvocationError

logger = logging.getLogger(__name__)


class OpenAIClient(BaseLLMClient):
    """OpenAI chat completions client.

    Also talks to any server exposing the same API (Ollama, vLLM) when a
    ``base_url`` is given.
    """

    DEFAULT_MODEL = "gpt-4o-mini"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 120.0,
        provider_name: str = "openai"
    ):
        """
        Initialize OpenAI client.

        Args:
            api_key: OpenAI API key (falls back to OPENAI_API_KEY env var)
            model: Model to use (default: gpt-4o-mini)
            base_url: Optional OpenAI-compatible endpoint
            timeout: Per-request timeout in seconds
            provider_name: Name reported by get_provider_name()
        """
        self.api_key = api_key or os.environ.get("OPENAI_API_KEY")
        self.model = model or self.DEFAULT_MODEL
        self.base_url = base_url
        self.provider_name = provider_name
        self.client = None

        if self.api_key:
            from openai import OpenAI
            self.client = OpenAI(api_key=self.api_key, base_url=base_url, timeout=timeout)
            logger.info(f"OpenAI client initialized with model: {self.model}")
        else:
            logger.warning("No OpenAI API key provided")

    def _to_openai_messages(self, messages: List[Message]) -> List[Dict[str, Any]]:
        openai_messages = []
        for msg in messages:
            openai_msg = {"role": msg.role, "content": msg.content}
            if msg.tool_call_id:
                openai_msg["tool_call_id"] = msg.tool_call_id
            # Include tool_calls for assistant messages that made tool calls
            if msg.tool_calls:
                openai_msg["tool_calls"] = [
                    {
                        "id": tc.id,
                        "type": "function",
                        "function": {
                            "name": tc.name,
                            "arguments": json.dumps(tc.arguments)
                        }
                    }
                    for tc in msg.tool_calls
                ]
            openai_messages.append(openai_msg)
        return openai_messages

    def chat(
        self,
        messages: List[Message],
        tools: Optional[List[Dict]] = None,
        temperature: float = 0.7,
        max_tokens: int = 4000
    ) -> LLMResponse:
        """Send chat completion request to OpenAI."""
        if not self.client:
            raise ModelInvocationError("OpenAI client not initialized. Check API key.")

        kwargs = {
            "model": self.model,
            "messages": self._to_openai_messages(messages),
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "auto"

        try:
            response = self.client.chat.completions.create(**kwargs)
        except Exception as e:
            logger.error(f"OpenAI API error: {e}")
            raise ModelInvocationError(f"OpenAI API error: {e}") from e

        if not response.choices:
            raise ModelInvocationError("OpenAI response contained no choices")

        choice = response.choices[0]
        content = choice.message.content or ""

        tool_calls = None
        if choice.message.tool_calls:
            tool_calls = []
            for tc in choice.message.tool_calls:
                try:
                    arguments = json.loads(tc.function.arguments or "{}")
                except json.JSONDecodeError as e:
                    raise ModelInvocationError(
                        f"Malformed arguments for tool call {tc.function.name}: {e}"
                    ) from e
                if not isinstance(arguments, dict):
                    raise ModelInvocationError(
                        f"Tool call {tc.function.name} arguments are not an object"
                    )
                try:
                    tool_calls.append(ToolCall(
                        id=tc.id,
                        name=tc.function.name,
                        arguments=arguments
                    ))
                except ValidationError as e:
                    raise ModelInvocationError(f"Malformed tool call in OpenAI response: {e}") from e

        usage = None
        if response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        return LLMResponse(
            content=content,
            tool_calls=tool_calls,
            usage=usage,
            finish_reason=choice.finish_reason
        )

    def get_provider_name(self) -> str:
        """Get the provider name."""
        return self.provider_name

    def get_model_name(self) -> str:
        """Get the model name."""
        return self.model
