"""LLM client abstraction layer."""

from .base_client import (
    BaseLLMClient,
    Message,
    LLMResponse,
    ToolCall,
    FinalAnswer,
    ToolCallsRequested,
    ModelTurn,
    ModelInvocationError,
)
from .factory import create_llm_client, LLMProvider

__all__ = [
    "BaseLLMClient",
    "Message",
    "LLMResponse",
    "ToolCall",
    "FinalAnswer",
    "ToolCallsRequested",
    "ModelTurn",
    "ModelInvocationError",
    "create_llm_client",
    "LLMProvider",
]
