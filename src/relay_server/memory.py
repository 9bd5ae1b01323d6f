"""In-process conversation context store keyed by user id (thread-safe, bounded)."""
from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .extract import extract_topics

logger = logging.getLogger(__name__)


class ConversationNotFound(KeyError):
    """Raised when no context exists for a user id."""


# -----------------------------
# Records
# -----------------------------
@dataclass
class ConversationContext:
    user_id: str
    last_message: str = ""
    message_count: int = 0
    topics: List[str] = field(default_factory=list)
    timestamp: Optional[datetime] = None

    def copy(self) -> "ConversationContext":
        return replace(self, topics=list(self.topics))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "messageCount": self.message_count,
            "topics": list(self.topics),
            "lastMessage": self.last_message,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }


@dataclass(frozen=True)
class StoreSnapshot:
    conversation_count: int
    total_messages: int


# -----------------------------
# ConversationStore
# -----------------------------
class ConversationStore:
    """Per-user conversation contexts held in memory.

    Every read-modify-write happens under one lock, so concurrent requests
    for the same user never lose increments or interleave topic appends.
    Readers always receive detached copies.

    Retention:
        Contexts are kept in least-recently-updated order. Once more than
        ``max_conversations`` users are tracked, the stalest context is
        dropped. ``None`` or ``0`` keeps everything for the process lifetime.
    """

    def __init__(self, max_conversations: Optional[int] = 10000) -> None:
        self.max_conversations = max_conversations or None
        self._contexts: "OrderedDict[str, ConversationContext]" = OrderedDict()
        self._lock = threading.RLock()

    # --------- core API ----------
    def update(self, user_id: str, message: str) -> ConversationContext:
        """Record ``message`` for ``user_id`` and return the updated context."""
        topics = extract_topics(message)
        with self._lock:
            ctx = self._contexts.get(user_id)
            if ctx is None:
                ctx = ConversationContext(user_id=user_id)
                self._contexts[user_id] = ctx
            else:
                self._contexts.move_to_end(user_id)

            ctx.last_message = message
            ctx.message_count += 1
            ctx.timestamp = datetime.now(timezone.utc)
            for topic in topics:
                if topic not in ctx.topics:
                    ctx.topics.append(topic)

            self._evict_if_needed()
            return ctx.copy()

    def get(self, user_id: str) -> ConversationContext:
        with self._lock:
            ctx = self._contexts.get(user_id)
            if ctx is None:
                raise ConversationNotFound(user_id)
            return ctx.copy()

    def snapshot(self) -> StoreSnapshot:
        """Return conversation and message totals across all stored users."""
        with self._lock:
            total = sum(c.message_count for c in self._contexts.values())
            return StoreSnapshot(conversation_count=len(self._contexts), total_messages=total)

    # --------- convenience ----------
    def find(self, user_id: str) -> Optional[ConversationContext]:
        """Like :meth:`get` but returns ``None`` for unknown users."""
        try:
            return self.get(user_id)
        except ConversationNotFound:
            return None

    def __len__(self) -> int:
        with self._lock:
            return len(self._contexts)

    def __contains__(self, user_id: object) -> bool:
        with self._lock:
            return user_id in self._contexts

    # --------- internals ----------
    def _evict_if_needed(self) -> None:
        if self.max_conversations is None:
            return
        while len(self._contexts) > self.max_conversations:
            stale, _ = self._contexts.popitem(last=False)
            logger.debug("Evicted conversation context for %s", stale)
