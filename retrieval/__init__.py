"""Retrieval layer: chunking, embeddings and the document vector store."""

from .chunker import RecursiveTextSplitter
from .embeddings import EmbeddingProvider, EmbeddingProviderError, OpenAIEmbeddingProvider
from .similarity import SimilarityIndex, FlatIndex, cosine_similarity
from .vector_store import VectorStore
from .loaders import load_text, load_pdf_text, TextExtractionError, UnsupportedFileType

__all__ = [
    "RecursiveTextSplitter",
    "EmbeddingProvider",
    "EmbeddingProviderError",
    "OpenAIEmbeddingProvider",
    "SimilarityIndex",
    "FlatIndex",
    "cosine_similarity",
    "VectorStore",
    "load_text",
    "load_pdf_text",
    "TextExtractionError",
    "UnsupportedFileType",
]
