"""LLM client factory."""

from enum import Enum
from typing import Optional

from .base_client import BaseLLMClient
from .openai_client import OpenAIClient
from .anthropic_client import AnthropicClient


class LLMProvider(str, Enum):
    """Supported LLM providers."""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    OLLAMA = "ollama"


OLLAMA_DEFAULT_URL = "http://localhost:11434/v1"
OLLAMA_DEFAULT_MODEL = "llama3.1"


def create_llm_client(
    provider: LLMProvider,
    api_key: Optional[str] = None,
    model: Optional[str] = None,
    base_url: Optional[str] = None,
    timeout: float = 120.0
) -> BaseLLMClient:
    """
    Create an LLM client for the specified provider.

    Args:
        provider: LLM provider (openai, anthropic or ollama)
        api_key: API key for the provider
        model: Optional model override
        base_url: Optional OpenAI-compatible endpoint
        timeout: Per-request timeout in seconds

    Returns:
        Configured LLM client

    Raises:
        ValueError: If provider is not supported
    """
    if provider == LLMProvider.OPENAI:
        return OpenAIClient(api_key=api_key, model=model, base_url=base_url, timeout=timeout)
    elif provider == LLMProvider.ANTHROPIC:
        return AnthropicClient(api_key=api_key, model=model, timeout=timeout)
    elif provider == LLMProvider.OLLAMA:
        return OpenAIClient(
            api_key=api_key or "ollama",
            model=model or OLLAMA_DEFAULT_MODEL,
            base_url=base_url or OLLAMA_DEFAULT_URL,
            timeout=timeout,
            provider_name="ollama"
        )
    else:
        raise ValueError(f"Unsupported LLM provider: {provider}")
