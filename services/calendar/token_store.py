"""Per-user calendar OAuth token storage."""

import json
import logging
import threading
from pathlib import Path
from typing import Dict, List, Optional

from .models import UserTokens

logger = logging.getLogger(__name__)


class CalendarTokenStore:
    """JSON file mapping user ids to their calendar tokens."""

    def __init__(self, path: str = "data/calendar_tokens.json"):
        self.path = Path(path)
        self._lock = threading.RLock()

    def _load(self) -> Dict[str, dict]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Error loading calendar tokens: {e}")
            return {}

    def _save(self, tokens: Dict[str, dict]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(tokens, f, indent=2)
        logger.info(f"Calendar tokens saved to {self.path}")

    def get(self, user_id: int) -> Optional[UserTokens]:
        with self._lock:
            raw = self._load().get(str(user_id))
        return UserTokens.model_validate(raw) if raw else None

    def save(self, user_id: int, tokens: UserTokens) -> None:
        with self._lock:
            data = self._load()
            data[str(user_id)] = tokens.model_dump()
            self._save(data)

    def delete(self, user_id: int) -> None:
        with self._lock:
            data = self._load()
            if data.pop(str(user_id), None) is not None:
                self._save(data)
        logger.info(f"Deleted calendar tokens for user {user_id}")

    def has_valid_tokens(self, user_id: int) -> bool:
        tokens = self.get(user_id)
        return bool(tokens and tokens.access_token and tokens.refresh_token)

    def user_ids(self) -> List[int]:
        with self._lock:
            return [int(key) for key in self._load().keys()]
