"""Document chunk schemas for the retrieval store."""

from typing import List
from pydantic import BaseModel, ConfigDict, Field


class Chunk(BaseModel):
    """A slice of an uploaded document paired with its embedding."""
    model_config = ConfigDict(frozen=True)

    text: str
    vector: List[float]
    owner_id: int
    source_file: str
    chunk_index: int = Field(ge=0)
    total_chunks: int = Field(ge=1)
    uploaded_at: int = Field(description="Upload time in epoch milliseconds")


class ScoredChunk(BaseModel):
    """A chunk returned from a similarity query."""
    chunk: Chunk
    score: float


class StoreStats(BaseModel):
    """Summary counts for the retrieval store."""
    total_chunks: int = 0
    unique_owners: List[int] = Field(default_factory=list)
    unique_files: List[str] = Field(default_factory=list)
