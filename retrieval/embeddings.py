"""Embedding providers used by the retrieval store."""

import os
import logging
from abc import ABC, abstractmethod
from typing import List, Optional

logger = logging.getLogger(__name__)


class EmbeddingProviderError(Exception):
    """An embedding request failed or returned unusable vectors."""


class EmbeddingProvider(ABC):
    """Maps text to fixed-length vectors."""

    @abstractmethod
    def embed_documents(self, texts: List[str]) -> List[List[float]]:
        """Embed a batch of texts, one vector per input in the same order."""
        pass

    @abstractmethod
    def embed_query(self, text: str) -> List[float]:
        """Embed a single search query."""
        pass


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """Embeddings through the OpenAI API or an OpenAI-compatible server."""

    DEFAULT_MODEL = "text-embedding-3-small"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        batch_size: int = 100,
        timeout: float = 60.0
    ):
        """
        Initialize embedding provider.

        Args:
            api_key: OpenAI API key. If not provided, uses OPENAI_API_KEY env var.
            model: Embedding model name (e.g. nomic-embed-text for Ollama)
            base_url: Optional OpenAI-compatible endpoint
            batch_size: Texts per embeddings request
            timeout: Per-request timeout in seconds
        """
        self.api_key = api_key or os.environ.get("OPENAI_API_KEY")
        if not self.api_key and base_url:
            # Local servers ignore the key but the SDK insists on one
            self.api_key = "local"
        self.model = model or self.DEFAULT_MODEL
        self.batch_size = batch_size
        self.client = None

        if self.api_key:
            from openai import OpenAI
            self.client = OpenAI(api_key=self.api_key, base_url=base_url, timeout=timeout)
            logger.info(f"Embedding client initialized with model: {self.model}")
        else:
            logger.warning("No OpenAI API key provided. Embeddings will be disabled.")

    def _request(self, inputs) -> list:
        if not self.client:
            raise EmbeddingProviderError("Embedding client not initialized. Check API key.")
        try:
            response = self.client.embeddings.create(model=self.model, input=inputs)
        except Exception as e:
            logger.error(f"Error embedding batch: {e}")
            raise EmbeddingProviderError(f"Embedding request failed: {e}") from e
        return [list(item.embedding) for item in response.data]

    def embed_documents(self, texts: List[str]) -> List[List[float]]:
        all_embeddings: List[List[float]] = []

        for i in range(0, len(texts), self.batch_size):
            batch = texts[i:i + self.batch_size]
            vectors = self._request(batch)
            if len(vectors) != len(batch):
                raise EmbeddingProviderError(
                    f"Expected {len(batch)} embeddings, received {len(vectors)}"
                )
            all_embeddings.extend(vectors)

            if i + self.batch_size < len(texts):
                logger.info(f"Embedded {i + self.batch_size}/{len(texts)} chunks...")

        return all_embeddings

    def embed_query(self, text: str) -> List[float]:
        vectors = self._request(text)
        if not vectors:
            raise EmbeddingProviderError("Embedding response was empty")
        return vectors[0]
