"""Application settings."""

import os
from typing import Optional
from pydantic import BaseModel


class Settings(BaseModel):
    """Application configuration settings."""

    # LLM Provider settings
    llm_provider: str = "openai"  # "openai", "anthropic" or "ollama"
    llm_model: Optional[str] = None  # Override default model
    llm_base_url: Optional[str] = None  # OpenAI-compatible endpoint (e.g. Ollama)
    llm_temperature: float = 0.7
    llm_timeout_seconds: float = 120.0

    # API Keys
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None

    # Embeddings
    embedding_model: str = "text-embedding-3-small"
    embedding_base_url: Optional[str] = None

    # Storage
    data_dir: str = "data"
    conversations_path: str = "data/conversations.json"
    vectors_path: str = "data/vectors.json"
    calendar_tokens_path: str = "data/calendar_tokens.json"

    # Memory settings
    max_memory_turns: int = 50

    # Retrieval settings
    chunk_size: int = 1000
    chunk_overlap: int = 200
    over_fetch_factor: int = 5
    top_k: int = 3

    # Agent loop settings
    max_iterations: int = 25
    max_identical_tool_calls: int = 3
    max_tool_workers: int = 4
    tool_timeout_seconds: float = 60.0
    show_thinking: bool = False

    # Calendar OAuth client (token refresh only)
    google_client_id: Optional[str] = None
    google_client_secret: Optional[str] = None

    # Calendar reminders
    reminder_lookahead_minutes: int = 30
    reminder_poll_seconds: float = 900.0

    # Logging
    verbose: bool = False

    def __init__(self, **data):
        # Auto-load secrets and endpoints from environment if not provided
        env_fallbacks = {
            "openai_api_key": "OPENAI_API_KEY",
            "anthropic_api_key": "ANTHROPIC_API_KEY",
            "llm_base_url": "LLM_BASE_URL",
            "embedding_base_url": "EMBEDDING_BASE_URL",
            "google_client_id": "GOOGLE_CLIENT_ID",
            "google_client_secret": "GOOGLE_CLIENT_SECRET",
        }
        for field, env_var in env_fallbacks.items():
            if data.get(field) is None:
                data[field] = os.environ.get(env_var)

        super().__init__(**data)

    def get_llm_api_key(self) -> Optional[str]:
        """Get the API key for the configured LLM provider."""
        if self.llm_provider == "openai":
            return self.openai_api_key
        elif self.llm_provider == "anthropic":
            return self.anthropic_api_key
        elif self.llm_provider == "ollama":
            # Ollama ignores the key but the OpenAI SDK requires one
            return self.openai_api_key or "ollama"
        return None
