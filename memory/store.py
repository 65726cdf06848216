"""
Memory Store
Durable, ordered append log of conversation turns with SQLite or Redis backends.
"""
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence

import aiosqlite

from config.settings import settings
from memory.codec import SerializationError

logger = logging.getLogger(__name__)

# Single identifier type for the store's key space
ConversationId = str


@dataclass(frozen=True)
class ConversationTurn:
    """A single persisted message in a conversation."""
    id: int
    conversation_id: ConversationId
    content: str  # serialized message, opaque to the store
    created_at: datetime


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _format_ts(value: datetime) -> str:
    # Fixed width so lexical order matches chronological order
    return value.isoformat(timespec="microseconds")


def _next_sequence_key(last: Optional[datetime]) -> datetime:
    """Current time, clamped so it never precedes the newest stored turn."""
    now = _now()
    if last is not None and now < last:
        return last
    return now


class BaseMemoryStore(ABC):
    """Abstract base class for memory stores."""

    @abstractmethod
    async def load(self, conversation_id: ConversationId) -> List[ConversationTurn]:
        """Get every turn of a conversation, oldest first."""
        pass

    @abstractmethod
    async def append(self, conversation_id: ConversationId, payloads: Sequence[str]) -> None:
        """Persist each payload as a new turn, in the given order."""
        pass

    @abstractmethod
    async def delete(self, conversation_id: ConversationId) -> None:
        """Remove every turn of a conversation."""
        pass

    @abstractmethod
    async def trim(self, conversation_id: ConversationId, keep: int) -> None:
        """Delete all but the newest `keep` turns of a conversation."""
        pass

    @abstractmethod
    async def count(self, conversation_id: ConversationId) -> int:
        """Number of stored turns for a conversation."""
        pass

    @abstractmethod
    async def list_conversations(self) -> List[ConversationId]:
        """List all conversation IDs that have at least one turn."""
        pass

    @abstractmethod
    async def ping(self) -> bool:
        """Check that the backend is reachable."""
        pass


class SQLiteMemoryStore(BaseMemoryStore):
    """SQLite-based conversation memory store."""

    def __init__(self, db_path: str = None):
        self.db_path = db_path or str(settings.memory_db_path)
        self._initialized = False

    async def _ensure_initialized(self):
        """Initialize the database if not already done."""
        if self._initialized:
            return

        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("""
                CREATE TABLE IF NOT EXISTS messages (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    conversation_id TEXT NOT NULL,
                    content TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)
            await db.execute("""
                CREATE INDEX IF NOT EXISTS idx_messages_conversation
                ON messages(conversation_id, created_at)
            """)
            await db.commit()

        self._initialized = True
        logger.info(f"SQLite memory store initialized at {self.db_path}")

    async def load(self, conversation_id: ConversationId) -> List[ConversationTurn]:
        """Get every turn of a conversation, oldest first."""
        await self._ensure_initialized()

        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                """
                SELECT id, conversation_id, content, created_at
                FROM messages
                WHERE conversation_id = ?
                ORDER BY created_at ASC, id ASC
                """,
                (conversation_id,),
            )
            rows = await cursor.fetchall()

        turns = [
            ConversationTurn(
                id=row["id"],
                conversation_id=row["conversation_id"],
                content=row["content"],
                created_at=datetime.fromisoformat(row["created_at"]),
            )
            for row in rows
        ]
        logger.debug(f"Loaded {len(turns)} turns for conversation {conversation_id}")
        return turns

    async def append(self, conversation_id: ConversationId, payloads: Sequence[str]) -> None:
        """
        Persist each payload as a new turn, in the given order.

        Every turn is committed on its own; a failure part-way leaves the
        earlier turns of the same call stored.
        """
        if not payloads:
            return
        await self._ensure_initialized()

        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                "SELECT MAX(created_at) FROM messages WHERE conversation_id = ?",
                (conversation_id,),
            )
            row = await cursor.fetchone()
            last = datetime.fromisoformat(row[0]) if row and row[0] else None

            for payload in payloads:
                last = _next_sequence_key(last)
                await db.execute(
                    """
                    INSERT INTO messages (conversation_id, content, created_at)
                    VALUES (?, ?, ?)
                    """,
                    (conversation_id, payload, _format_ts(last)),
                )
                await db.commit()

        logger.debug(f"Appended {len(payloads)} turns to conversation {conversation_id}")

    async def delete(self, conversation_id: ConversationId) -> None:
        """Remove every turn of a conversation."""
        await self._ensure_initialized()

        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                "DELETE FROM messages WHERE conversation_id = ?",
                (conversation_id,),
            )
            await db.commit()

    async def trim(self, conversation_id: ConversationId, keep: int) -> None:
        """Delete all but the newest `keep` turns of a conversation."""
        await self._ensure_initialized()

        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                """
                DELETE FROM messages
                WHERE conversation_id = ?
                AND id NOT IN (
                    SELECT id FROM messages
                    WHERE conversation_id = ?
                    ORDER BY created_at DESC, id DESC
                    LIMIT ?
                )
                """,
                (conversation_id, conversation_id, max(keep, 0)),
            )
            await db.commit()
            removed = cursor.rowcount

        if removed:
            logger.debug(f"Trimmed {removed} turns from conversation {conversation_id}")

    async def count(self, conversation_id: ConversationId) -> int:
        """Number of stored turns for a conversation."""
        await self._ensure_initialized()

        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                "SELECT COUNT(*) FROM messages WHERE conversation_id = ?",
                (conversation_id,),
            )
            row = await cursor.fetchone()

        return row[0]

    async def list_conversations(self) -> List[ConversationId]:
        """List all conversation IDs."""
        await self._ensure_initialized()

        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                "SELECT DISTINCT conversation_id FROM messages ORDER BY conversation_id"
            )
            rows = await cursor.fetchall()

        return [row[0] for row in rows]

    async def ping(self) -> bool:
        await self._ensure_initialized()
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("SELECT 1")
        return True


class RedisMemoryStore(BaseMemoryStore):
    """
    Redis-based conversation memory store.

    Each conversation is a list of JSON records appended with RPUSH, so list
    order is insertion order. Primary keys come from a shared INCR counter.
    """

    KEY_PREFIX = "chat:memory:"
    ID_COUNTER = "chat:memory-ids"

    def __init__(self, redis_url: str = None):
        self.redis_url = redis_url or settings.redis_url
        self._client = None

    async def _get_client(self):
        """Get or create Redis client."""
        if self._client is None:
            import redis.asyncio as redis
            self._client = redis.from_url(self.redis_url, decode_responses=True)
            logger.info(f"Redis memory store connected to {self.redis_url}")
        return self._client

    def _key(self, conversation_id: ConversationId) -> str:
        """Generate Redis key for a conversation."""
        return f"{self.KEY_PREFIX}{conversation_id}"

    def _to_turn(self, conversation_id: ConversationId, record_json: str) -> ConversationTurn:
        try:
            record = json.loads(record_json)
            return ConversationTurn(
                id=record["id"],
                conversation_id=conversation_id,
                content=record["content"],
                created_at=datetime.fromisoformat(record["created_at"]),
            )
        except (ValueError, KeyError, TypeError) as e:
            raise SerializationError(
                f"Cannot decode stored turn of conversation {conversation_id}: {e}"
            ) from e

    async def load(self, conversation_id: ConversationId) -> List[ConversationTurn]:
        """Get every turn of a conversation, oldest first."""
        client = await self._get_client()
        records = await client.lrange(self._key(conversation_id), 0, -1)
        return [self._to_turn(conversation_id, r) for r in records]

    async def append(self, conversation_id: ConversationId, payloads: Sequence[str]) -> None:
        """Persist each payload as a new turn, in the given order."""
        if not payloads:
            return
        client = await self._get_client()
        key = self._key(conversation_id)

        newest = await client.lindex(key, -1)
        last = self._to_turn(conversation_id, newest).created_at if newest else None

        for payload in payloads:
            last = _next_sequence_key(last)
            turn_id = await client.incr(self.ID_COUNTER)
            record = {
                "id": turn_id,
                "content": payload,
                "created_at": _format_ts(last),
            }
            await client.rpush(key, json.dumps(record))

    async def delete(self, conversation_id: ConversationId) -> None:
        """Remove every turn of a conversation."""
        client = await self._get_client()
        await client.delete(self._key(conversation_id))

    async def trim(self, conversation_id: ConversationId, keep: int) -> None:
        """Delete all but the newest `keep` turns of a conversation."""
        client = await self._get_client()
        if keep <= 0:
            await client.delete(self._key(conversation_id))
            return
        await client.ltrim(self._key(conversation_id), -keep, -1)

    async def count(self, conversation_id: ConversationId) -> int:
        client = await self._get_client()
        return await client.llen(self._key(conversation_id))

    async def list_conversations(self) -> List[ConversationId]:
        """List all conversation IDs."""
        client = await self._get_client()
        keys = [k async for k in client.scan_iter(match=f"{self.KEY_PREFIX}*")]
        return sorted(k[len(self.KEY_PREFIX):] for k in keys)

    async def ping(self) -> bool:
        client = await self._get_client()
        return bool(await client.ping())


class MemoryStore:
    """
    Factory class that provides the appropriate memory store
    based on configuration.
    """

    _instance: Optional[BaseMemoryStore] = None

    @classmethod
    def get_store(cls) -> BaseMemoryStore:
        """Get or create the memory store instance."""
        if cls._instance is None:
            if settings.memory_backend == "redis":
                cls._instance = RedisMemoryStore()
            else:
                cls._instance = SQLiteMemoryStore()
            logger.info(f"Using {settings.memory_backend} memory backend")
        return cls._instance


# Convenience instance
memory_store = MemoryStore.get_store()
