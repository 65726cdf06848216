"""
Memory Provider
Bounded working-memory view over the memory store, one sliding window per conversation.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional, Sequence, Tuple

from langchain_core.messages import BaseMessage

from config.settings import settings
from memory.codec import message_from_json
from memory.store import BaseMemoryStore, ConversationId, ConversationTurn

logger = logging.getLogger(__name__)


class MemoryProvider:
    """
    Sliding-window chat memory backed by a BaseMemoryStore.

    Holds no conversation state of its own. The window bound is applied when
    reading; with trim_on_write the store is also compacted after each append.
    """

    def __init__(
        self,
        store: BaseMemoryStore,
        max_messages: Optional[int] = None,
        trim_on_write: Optional[bool] = None,
    ):
        self.store = store
        self.max_messages = max_messages if max_messages is not None else settings.memory_max_messages
        self.trim_on_write = trim_on_write if trim_on_write is not None else settings.memory_trim_on_write
        if self.max_messages < 1:
            raise ValueError(f"max_messages must be positive, got {self.max_messages}")

        self._locks: Dict[ConversationId, asyncio.Lock] = {}
        self._lock_users: Dict[ConversationId, int] = {}

    async def get_window(
        self,
        conversation_id: ConversationId,
        max_messages: Optional[int] = None,
    ) -> List[ConversationTurn]:
        """
        Get the most recent turns of a conversation, oldest first.

        Args:
            conversation_id: Memory identifier
            max_messages: Window size, defaults to the provider's bound

        Returns:
            At most max_messages turns; the store is left untouched
        """
        limit = self.max_messages if max_messages is None else max_messages
        if limit < 0:
            raise ValueError(f"max_messages must not be negative, got {limit}")

        turns = await self.store.load(conversation_id)
        if len(turns) > limit:
            turns = turns[len(turns) - limit:]
        return turns

    async def record_turn(self, conversation_id: ConversationId, payload: str) -> None:
        """Append a single serialized message to the conversation."""
        await self.record_turns(conversation_id, [payload])

    async def record_turns(self, conversation_id: ConversationId, payloads: Sequence[str]) -> None:
        """Append several serialized messages, keeping their order."""
        await self.store.append(conversation_id, payloads)
        if self.trim_on_write:
            await self.store.trim(conversation_id, self.max_messages)

    async def messages(
        self,
        conversation_id: ConversationId,
        max_messages: Optional[int] = None,
    ) -> List[Tuple[ConversationTurn, BaseMessage]]:
        """
        Decode the current window into LangChain messages.

        Returns:
            (turn, message) pairs, oldest first

        Raises:
            SerializationError: if a stored payload cannot be decoded
        """
        window = await self.get_window(conversation_id, max_messages)
        return [(turn, message_from_json(turn.content)) for turn in window]

    async def clear(self, conversation_id: ConversationId) -> None:
        """Forget a conversation entirely."""
        await self.store.delete(conversation_id)
        logger.info(f"Cleared memory for conversation {conversation_id}")

    @asynccontextmanager
    async def lock(self, conversation_id: ConversationId) -> AsyncIterator[None]:
        """
        Serialize read-modify-append cycles for one conversation.

        Calls for different conversations do not block each other. The lock
        entry is dropped once nobody holds or waits for it.
        """
        lock = self._locks.setdefault(conversation_id, asyncio.Lock())
        self._lock_users[conversation_id] = self._lock_users.get(conversation_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[conversation_id] -= 1
            if self._lock_users[conversation_id] == 0:
                del self._lock_users[conversation_id]
                del self._locks[conversation_id]
