"""
Memory Module
Handles conversation turn storage and the sliding-window view over it.
"""
from .codec import SerializationError, message_from_json, message_to_json
from .provider import MemoryProvider
from .store import (
    BaseMemoryStore,
    ConversationId,
    ConversationTurn,
    MemoryStore,
    RedisMemoryStore,
    SQLiteMemoryStore,
    memory_store,
)

__all__ = [
    "BaseMemoryStore",
    "ConversationId",
    "ConversationTurn",
    "MemoryProvider",
    "MemoryStore",
    "RedisMemoryStore",
    "SQLiteMemoryStore",
    "SerializationError",
    "memory_store",
    "message_from_json",
    "message_to_json",
]
