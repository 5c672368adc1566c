"""Memory system for conversation persistence."""

from .models import ConversationTurn, MemoryStats
from .conversation_store import ConversationMemory

__all__ = [
    "ConversationTurn",
    "MemoryStats",
    "ConversationMemory",
]
