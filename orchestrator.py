"""Main orchestrator wiring the assistant's services together."""

import logging
from typing import Optional, List

from config.settings import Settings

# LLM components
from llm.factory import create_llm_client, LLMProvider
from llm.base_client import BaseLLMClient, ModelInvocationError

# Retrieval components
from retrieval.chunker import RecursiveTextSplitter
from retrieval.embeddings import EmbeddingProvider, EmbeddingProviderError, OpenAIEmbeddingProvider
from retrieval.vector_store import VectorStore

# Memory components
from memory.conversation_store import ConversationMemory, ConversationKey
from memory.models import MemoryStats

# Agent components
from agent.tools import ToolRegistry
from agent.loop import AgentLoop, MaxIterationsExceeded, InvocationTimeout
from agent.prompt import strip_reasoning

# Tools and the services behind them
from services.weather import WeatherService
from services.calendar import CalendarService, CalendarTokenStore, ReminderService
from tools import (
    SearchDocumentsTool,
    ListFilesTool,
    WeatherTool,
    CreateEventTool,
    ListEventsTool,
    DeleteEventTool,
)

logger = logging.getLogger(__name__)


APOLOGY = "Sorry, something went wrong while I was working on that. Please try again in a moment."


class AssistantOrchestrator:
    """Builds the stores, tools and agent loop, and serves the messaging front-end."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        llm_client: Optional[BaseLLMClient] = None,
        embeddings: Optional[EmbeddingProvider] = None,
        memory: Optional[ConversationMemory] = None,
        vector_store: Optional[VectorStore] = None,
        registry: Optional[ToolRegistry] = None
    ):
        """
        Initialize orchestrator.

        Args:
            settings: Application settings
            llm_client: Model client (default: built from settings)
            embeddings: Embedding provider (default: built from settings)
            memory: Conversation memory (default: loaded from settings path)
            vector_store: Document store (default: loaded from settings path)
            registry: Tool registry (default: all built-in tools)
        """
        self.settings = settings or Settings()

        self.llm_client = llm_client if llm_client is not None else self._init_llm_client()
        self.embeddings = embeddings if embeddings is not None else OpenAIEmbeddingProvider(
            api_key=self.settings.openai_api_key,
            model=self.settings.embedding_model,
            base_url=self.settings.embedding_base_url,
        )

        self.memory = memory if memory is not None else ConversationMemory(
            path=self.settings.conversations_path,
            max_turns=self.settings.max_memory_turns,
        )
        self.vector_store = vector_store if vector_store is not None else VectorStore(
            path=self.settings.vectors_path,
            embeddings=self.embeddings,
            splitter=RecursiveTextSplitter(
                chunk_size=self.settings.chunk_size,
                chunk_overlap=self.settings.chunk_overlap,
            ),
            over_fetch_factor=self.settings.over_fetch_factor,
        )

        self.calendar = CalendarService(
            token_store=CalendarTokenStore(self.settings.calendar_tokens_path),
            client_id=self.settings.google_client_id,
            client_secret=self.settings.google_client_secret,
        )
        self.registry = registry if registry is not None else self._init_tools()

        self.agent = AgentLoop(
            llm_client=self.llm_client,
            registry=self.registry,
            memory=self.memory,
            max_iterations=self.settings.max_iterations,
            max_identical_tool_calls=self.settings.max_identical_tool_calls,
            max_tool_workers=self.settings.max_tool_workers,
            tool_timeout_seconds=self.settings.tool_timeout_seconds,
            temperature=self.settings.llm_temperature,
        )
        logger.info(f"Agent loop initialized with {len(self.registry)} tools")

    def _init_llm_client(self) -> BaseLLMClient:
        """Initialize LLM client based on settings."""
        provider = LLMProvider(self.settings.llm_provider)
        client = create_llm_client(
            provider=provider,
            api_key=self.settings.get_llm_api_key(),
            model=self.settings.llm_model,
            base_url=self.settings.llm_base_url,
            timeout=self.settings.llm_timeout_seconds,
        )
        logger.info(
            f"LLM client initialized: {client.get_provider_name()} ({client.get_model_name()})"
        )
        return client

    def _init_tools(self) -> ToolRegistry:
        return ToolRegistry([
            WeatherTool(WeatherService()),
            SearchDocumentsTool(self.vector_store, default_results=self.settings.top_k),
            ListFilesTool(self.vector_store),
            CreateEventTool(self.calendar),
            ListEventsTool(self.calendar),
            DeleteEventTool(self.calendar),
        ])

    def respond(
        self,
        conversation_key: ConversationKey,
        text: str,
        owner_id: Optional[int] = None,
        show_thinking: Optional[bool] = None
    ) -> str:
        """
        Produce the user-facing reply to a message.

        Fatal invocation errors become a single apology; memory is only
        written when an answer was produced.
        """
        try:
            answer = self.agent.handle_message(conversation_key, text, owner_id)
        except (ModelInvocationError, MaxIterationsExceeded, InvocationTimeout) as e:
            logger.error(f"Failed to answer {conversation_key}: {e}")
            return APOLOGY

        if show_thinking is None:
            show_thinking = self.settings.show_thinking
        if show_thinking:
            return answer

        reply = strip_reasoning(answer)
        return reply or answer

    def ingest_document(self, owner_id: int, source_file: str, text: str) -> str:
        """Index a document's text and describe the outcome."""
        try:
            count = self.vector_store.ingest(text, owner_id, source_file)
        except EmbeddingProviderError as e:
            logger.error(f"Failed to index {source_file}: {e}")
            return f'Sorry, I couldn\'t index "{source_file}" right now.'

        if count == 0:
            return f'"{source_file}" has no text I can index.'
        return f'Indexed "{source_file}" ({count} chunks). You can now ask me about it.'

    def delete_file(self, owner_id: int, source_file: str) -> str:
        removed = self.vector_store.remove(owner_id, source_file)
        if removed:
            return f'Deleted "{source_file}" ({removed} chunks removed).'
        return f'Could not find "{source_file}".'

    def list_files(self, owner_id: int) -> List[str]:
        return sorted(self.vector_store.list_owned(owner_id))

    def clear_history(self, conversation_key: ConversationKey) -> None:
        self.memory.clear(conversation_key)

    def memory_stats(self, conversation_key: ConversationKey) -> MemoryStats:
        return self.memory.get_stats(conversation_key)

    def reminder_service(self, send) -> ReminderService:
        """Reminder poller over every connected calendar, delivering through ``send(user_id, text)``."""
        return ReminderService(
            calendar=self.calendar,
            send=send,
            lookahead_minutes=self.settings.reminder_lookahead_minutes,
            poll_interval_seconds=self.settings.reminder_poll_seconds,
        )
