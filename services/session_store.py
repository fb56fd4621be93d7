"""
Session Store
Per-user pending send intents with expiry and atomic check-and-clear
"""

import time
import logging
import threading
from enum import Enum
from dataclasses import dataclass, field
from typing import Dict, Optional, Callable

logger = logging.getLogger(__name__)


class SendKind(Enum):
    TOKEN = 'token'
    HBAR = 'hbar'


@dataclass(frozen=True)
class PendingSend:
    kind: SendKind
    chat_id: int
    created_at: float = field(default_factory=time.monotonic)


class PendingSendStore:
    """Holds at most one pending send intent per user"""

    def __init__(self, ttl_seconds: float = 600, clock: Callable[[], float] = time.monotonic):
        """
        Initialize Pending Send Store

        Args:
            ttl_seconds: Seconds after which an unanswered intent expires
            clock: Monotonic time source
        """
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._intents: Dict[int, PendingSend] = {}

    def _expired(self, intent: PendingSend) -> bool:
        return self._clock() - intent.created_at > self.ttl_seconds

    def put(self, user_id: int, kind: SendKind, chat_id: int) -> PendingSend:
        """Start (or replace) the pending send for a user"""
        intent = PendingSend(kind=kind, chat_id=chat_id, created_at=self._clock())
        with self._lock:
            self._intents[user_id] = intent
        logger.info(f"Pending {kind.value} send started for user {user_id}")
        return intent

    def peek(self, user_id: int) -> Optional[PendingSend]:
        """Return the live intent for a user without consuming it"""
        with self._lock:
            intent = self._intents.get(user_id)
            if intent and self._expired(intent):
                del self._intents[user_id]
                logger.info(f"Pending send for user {user_id} expired")
                return None
            return intent

    def pop(self, user_id: int) -> Optional[PendingSend]:
        """Atomically take and clear the live intent for a user"""
        with self._lock:
            intent = self._intents.pop(user_id, None)
            if intent and self._expired(intent):
                logger.info(f"Pending send for user {user_id} expired")
                return None
            return intent

    def clear(self, user_id: int):
        with self._lock:
            self._intents.pop(user_id, None)

    def purge_expired(self) -> int:
        """Drop all expired intents, returning how many were removed"""
        with self._lock:
            expired = [uid for uid, intent in self._intents.items() if self._expired(intent)]
            for uid in expired:
                del self._intents[uid]
        return len(expired)
