"""JSON-backed bounded conversation memory."""

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, List, Union

from llm.base_client import Message
from .models import ConversationTurn, MemoryStats

logger = logging.getLogger(__name__)


ConversationKey = Union[str, int]


class ConversationMemory:
    """
    Per-conversation transcript capped at ``max_turns`` entries.

    Oldest turns are dropped first once the cap is exceeded. The whole
    mapping is rewritten to disk after every mutation.
    """

    DEFAULT_MAX_TURNS = 50

    def __init__(self, path: str = "data/conversations.json", max_turns: int = DEFAULT_MAX_TURNS):
        """
        Initialize conversation memory and load it from disk.

        Args:
            path: JSON snapshot file
            max_turns: Maximum turns retained per conversation
        """
        if max_turns <= 0:
            raise ValueError("max_turns must be positive")

        self.path = Path(path)
        self.max_turns = max_turns
        self._conversations: Dict[str, List[ConversationTurn]] = {}
        self._lock = threading.RLock()
        self.load()

    @staticmethod
    def _key(conversation_key: ConversationKey) -> str:
        return str(conversation_key)

    def load(self) -> None:
        """Load conversation memory from disk."""
        with self._lock:
            self._conversations = {}
            if not self.path.exists():
                logger.info("No existing memory file found, starting fresh")
                return

            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                if not isinstance(data, dict):
                    raise ValueError("snapshot is not a mapping of conversations")
                for key, turns in data.items():
                    if not isinstance(turns, list):
                        raise ValueError(f"conversation {key} is not a list of turns")
                    parsed = [ConversationTurn.model_validate(turn) for turn in turns]
                    self._conversations[key] = parsed[-self.max_turns:]
            except (OSError, ValueError, TypeError) as e:
                logger.error(f"Failed to load memory from {self.path}: {e}")
                self._conversations = {}
                return

            total_messages = sum(len(turns) for turns in self._conversations.values())
            logger.info(
                f"Loaded {total_messages} messages across "
                f"{len(self._conversations)} conversations from disk"
            )

    def _save(self) -> bool:
        """Rewrite the snapshot. Caller holds the lock."""
        data = {
            key: [turn.model_dump() for turn in turns]
            for key, turns in self._conversations.items()
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".conversations-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            logger.error(f"Failed to save memory to {self.path}: {e}")
            return False
        return True

    def append(self, conversation_key: ConversationKey, turn: ConversationTurn) -> None:
        """Append a turn, evicting the oldest beyond the cap, and persist."""
        key = self._key(conversation_key)
        with self._lock:
            history = self._conversations.setdefault(key, [])
            history.append(turn)
            if len(history) > self.max_turns:
                del history[:len(history) - self.max_turns]
            self._save()

    def get_history(self, conversation_key: ConversationKey) -> List[ConversationTurn]:
        """Turns for a conversation, oldest first."""
        with self._lock:
            return list(self._conversations.get(self._key(conversation_key), []))

    def get_context_messages(self, conversation_key: ConversationKey) -> List[Message]:
        """History as chat messages for the model."""
        return [
            Message(role=turn.role, content=turn.content)
            for turn in self.get_history(conversation_key)
        ]

    def clear(self, conversation_key: ConversationKey) -> None:
        """Forget a conversation's history."""
        key = self._key(conversation_key)
        with self._lock:
            if self._conversations.pop(key, None) is not None:
                self._save()
        logger.info(f"Cleared conversation history for {key}")

    def get_stats(self, conversation_key: ConversationKey) -> MemoryStats:
        count = len(self.get_history(conversation_key))
        return MemoryStats(
            message_count=count,
            max_size=self.max_turns,
            utilization_percent=(count / self.max_turns) * 100,
        )

    def conversation_keys(self) -> List[str]:
        with self._lock:
            return list(self._conversations.keys())
