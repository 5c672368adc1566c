"""Memory data models."""

import time
from typing import Literal
from pydantic import BaseModel, Field


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


class ConversationTurn(BaseModel):
    """A single turn in a conversation."""
    role: Literal["user", "assistant"]
    content: str
    timestamp: int = Field(default_factory=now_ms)  # epoch milliseconds


class MemoryStats(BaseModel):
    """Utilisation of one conversation's history buffer."""
    message_count: int
    max_size: int
    utilization_percent: float


