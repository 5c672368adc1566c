"""Pydantic schemas shared across the assistant."""

from .documents import Chunk, ScoredChunk, StoreStats

__all__ = [
    "Chunk",
    "ScoredChunk",
    "StoreStats",
]
