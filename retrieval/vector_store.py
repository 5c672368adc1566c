"""JSON-backed vector store for per-user document retrieval."""

import json
import logging
import os
import tempfile
import threading
import time
from pathlib import Path
from typing import List, Optional, Set

from schemas.documents import Chunk, ScoredChunk, StoreStats
from .chunker import RecursiveTextSplitter
from .embeddings import EmbeddingProvider, EmbeddingProviderError
from .similarity import SimilarityIndex, FlatIndex

logger = logging.getLogger(__name__)


STORE_FORMAT_VERSION = 1


def _now_ms() -> int:
    return int(time.time() * 1000)


class VectorStore:
    """
    Flat collection of document chunks with owner-scoped similarity search.

    The collection lives in memory and is rewritten to a JSON file after
    every mutation. Mutations are serialized by a single lock; queries copy
    the collection under the lock and score the copy outside it.
    """

    DEFAULT_OVER_FETCH = 5

    def __init__(
        self,
        path: str,
        embeddings: EmbeddingProvider,
        splitter: Optional[RecursiveTextSplitter] = None,
        index: Optional[SimilarityIndex] = None,
        over_fetch_factor: int = DEFAULT_OVER_FETCH
    ):
        """
        Initialize the store and load any persisted chunks.

        Args:
            path: JSON file used for persistence
            embeddings: Provider used for both chunks and queries
            splitter: Text splitter (default: 1000 chars, 200 overlap)
            index: Similarity index (default: exhaustive scan)
            over_fetch_factor: Candidates ranked per requested result before owner filtering
        """
        if over_fetch_factor < 1:
            raise ValueError("over_fetch_factor must be at least 1")

        self.path = Path(path)
        self.embeddings = embeddings
        self.splitter = splitter or RecursiveTextSplitter()
        self.index = index or FlatIndex()
        self.over_fetch_factor = over_fetch_factor

        self._chunks: List[Chunk] = []
        self._lock = threading.RLock()
        self.load()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> int:
        """Rehydrate chunks from disk. A missing file means an empty store."""
        with self._lock:
            if not self.path.exists():
                logger.info(f"No vector store at {self.path}, starting empty")
                self._chunks = []
                return 0

            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                if not isinstance(data, dict) or not isinstance(data.get("chunks", []), list):
                    raise ValueError("snapshot is not a chunk collection")
                self._chunks = [Chunk.model_validate(item) for item in data.get("chunks", [])]
                logger.info(f"Loaded {len(self._chunks)} document chunks from {self.path}")
            except (OSError, ValueError, TypeError) as e:
                logger.error(f"Could not load vector store from {self.path}: {e}")
                self._chunks = []

            return len(self._chunks)

    def _persist(self) -> bool:
        """Write the full collection to disk. Caller holds the lock."""
        data = {
            "version": STORE_FORMAT_VERSION,
            "saved_at": _now_ms(),
            "chunks": [chunk.model_dump() for chunk in self._chunks],
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".vectors-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            # Mutation stays committed in memory; the next one rewrites everything
            logger.error(f"Failed to persist vector store to {self.path}: {e}")
            return False

        logger.info(f"Persisted vector store with {len(self._chunks)} document chunks")
        return True

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def ingest(self, raw_text: str, owner_id: int, source_file: str) -> int:
        """
        Chunk, embed and store a document.

        Args:
            raw_text: Extracted document text
            owner_id: User who owns the document
            source_file: Original file name

        Returns:
            Number of chunks added

        Raises:
            EmbeddingProviderError: If embedding fails; nothing is stored
        """
        logger.info(f"Adding document {source_file} for owner {owner_id} ({len(raw_text)} characters)")

        texts = self.splitter.split_text(raw_text)
        if not texts:
            logger.warning(f"No text to index in {source_file}")
            return 0

        started = time.monotonic()
        vectors = self.embeddings.embed_documents(texts)
        elapsed_ms = (time.monotonic() - started) * 1000
        logger.info(
            f"Embeddings generated in {elapsed_ms:.0f}ms "
            f"(avg {elapsed_ms / len(texts):.0f}ms per chunk)"
        )

        if len(vectors) != len(texts):
            raise EmbeddingProviderError(
                f"Expected {len(texts)} embeddings, received {len(vectors)}"
            )

        uploaded_at = _now_ms()
        new_chunks = [
            Chunk(
                text=text,
                vector=vector,
                owner_id=owner_id,
                source_file=source_file,
                chunk_index=i,
                total_chunks=len(texts),
                uploaded_at=uploaded_at,
            )
            for i, (text, vector) in enumerate(zip(texts, vectors))
        ]

        with self._lock:
            self._check_dimensions(new_chunks)
            self._chunks.extend(new_chunks)
            self._persist()

        logger.info(f"Added {len(new_chunks)} chunks from {source_file} to vector store")
        return len(new_chunks)

    def _check_dimensions(self, new_chunks: List[Chunk]) -> None:
        expected = len(self._chunks[0].vector) if self._chunks else len(new_chunks[0].vector)
        if expected == 0:
            raise EmbeddingProviderError("Embedding provider returned empty vectors")
        for chunk in new_chunks:
            if len(chunk.vector) != expected:
                raise EmbeddingProviderError(
                    f"Embedding dimension {len(chunk.vector)} does not match store dimension {expected}"
                )

    def remove(self, owner_id: int, source_file: str) -> int:
        """
        Delete every chunk of one file.

        Returns:
            Number of chunks removed (0 if the file is unknown)
        """
        with self._lock:
            kept = [
                chunk for chunk in self._chunks
                if not (chunk.owner_id == owner_id and chunk.source_file == source_file)
            ]
            removed = len(self._chunks) - len(kept)
            if removed:
                self._chunks = kept
                self._persist()

        logger.info(f"Removed {removed} chunks for {source_file} from vector store")
        return removed

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _snapshot(self) -> List[Chunk]:
        with self._lock:
            return list(self._chunks)

    def query_with_scores(self, text: str, owner_id: int, k: int) -> List[ScoredChunk]:
        """
        Search an owner's chunks, returning scores alongside chunks.

        Ranks ``k * over_fetch_factor`` candidates across the whole store,
        then keeps the owner's and truncates to ``k``.
        """
        if k <= 0:
            return []

        chunks = self._snapshot()
        if not chunks:
            return []

        query_vector = self.embeddings.embed_query(text)

        started = time.monotonic()
        ranked = self.index.rank(
            query_vector,
            [chunk.vector for chunk in chunks],
            limit=k * self.over_fetch_factor,
        )
        elapsed_ms = (time.monotonic() - started) * 1000

        results = [
            ScoredChunk(chunk=chunks[position], score=score)
            for position, score in ranked
            if chunks[position].owner_id == owner_id
        ][:k]

        logger.info(
            f"Search complete in {elapsed_ms:.0f}ms: {len(ranked)} candidates, "
            f"{len(results)} for owner {owner_id}"
        )
        return results

    def query(self, text: str, owner_id: int, k: int) -> List[Chunk]:
        """Return up to ``k`` of the owner's chunks, most similar first."""
        return [scored.chunk for scored in self.query_with_scores(text, owner_id, k)]

    def list_owned(self, owner_id: int) -> Set[str]:
        """Distinct source file names held for an owner."""
        return {chunk.source_file for chunk in self._snapshot() if chunk.owner_id == owner_id}

    def stats(self) -> StoreStats:
        """Counts of chunks, owners and files in the store."""
        chunks = self._snapshot()
        return StoreStats(
            total_chunks=len(chunks),
            unique_owners=sorted({chunk.owner_id for chunk in chunks}),
            unique_files=sorted({chunk.source_file for chunk in chunks}),
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._chunks)
